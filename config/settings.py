"""Typed pipeline settings built from the loaded configuration mapping."""

from __future__ import annotations

from dataclasses import dataclass, field
import math
from typing import Any, Mapping


VEHICLE_LABELS: tuple[str, ...] = ("car", "bus", "truck", "motorcycle", "bicycle")


@dataclass(frozen=True)
class DetectionSettings:
    """Model-backed detection settings."""

    model_path: str = "models/yolov11n.tflite"
    labels_path: str = "models/labels.txt"
    vehicle_labels: tuple[str, ...] = VEHICLE_LABELS
    confidence_threshold: float = 0.3
    input_width: int = 640
    input_height: int = 640


@dataclass(frozen=True)
class HeuristicSettings:
    """Luminance fallback used when the model cannot be loaded."""

    enabled: bool = True
    brightness_threshold: float = 60.0
    width_fraction: float = 0.5
    use_geometry: bool = True


@dataclass(frozen=True)
class DistanceSettings:
    """Monocular distance calibration and smoothing."""

    known_width_m: float = 1.8
    focal_length_px: float = 1200.0
    smoothing_factor: float = 0.25
    min_distance_m: float = 0.5
    max_distance_m: float = 200.0
    min_confidence_distance_m: float = 5.0
    max_confidence_distance_m: float = 35.0


@dataclass(frozen=True)
class SpeedFilterSettings:
    """Scalar Kalman filter noise terms."""

    process_noise: float = 1e-3
    measurement_noise: float = 0.05


@dataclass(frozen=True)
class CollisionSettings:
    """Time-to-collision gating."""

    min_speed_kmh: float = 1.0


@dataclass(frozen=True)
class WarningSettings:
    """Danger level thresholds and alert hysteresis."""

    danger_ttc_s: float = 2.0
    danger_distance_m: float = 10.0
    caution_ttc_s: float = 3.5
    alert_cooldown_ms: float = 1500.0


@dataclass(frozen=True)
class WorkerSettings:
    """Frame worker lifecycle settings."""

    stop_timeout_s: float = 2.0
    status_log_period_s: float = 15.0


@dataclass(frozen=True)
class PipelineSettings:
    """All tunable constants of the collision warning pipeline."""

    detection: DetectionSettings = field(default_factory=DetectionSettings)
    heuristic: HeuristicSettings = field(default_factory=HeuristicSettings)
    distance: DistanceSettings = field(default_factory=DistanceSettings)
    speed_filter: SpeedFilterSettings = field(default_factory=SpeedFilterSettings)
    collision: CollisionSettings = field(default_factory=CollisionSettings)
    warning: WarningSettings = field(default_factory=WarningSettings)
    worker: WorkerSettings = field(default_factory=WorkerSettings)

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "PipelineSettings":
        """Build settings from a configuration mapping, defaulting missing keys."""

        detection_cfg = _section(config, "detection")
        heuristic_cfg = _section(config, "heuristic")
        distance_cfg = _section(config, "distance")
        speed_cfg = _section(config, "speed_filter")
        collision_cfg = _section(config, "collision")
        warning_cfg = _section(config, "warning")
        worker_cfg = _section(config, "worker")

        defaults = DetectionSettings()
        labels_value = detection_cfg.get("vehicle_labels")
        if labels_value is None:
            vehicle_labels = defaults.vehicle_labels
        elif isinstance(labels_value, (list, tuple)):
            vehicle_labels = tuple(str(item).strip() for item in labels_value)
        else:
            raise ValueError("detection.vehicle_labels must be a list of labels")

        detection = DetectionSettings(
            model_path=str(detection_cfg.get("model_path", defaults.model_path)),
            labels_path=str(detection_cfg.get("labels_path", defaults.labels_path)),
            vehicle_labels=vehicle_labels,
            confidence_threshold=_fraction(
                detection_cfg, "detection.confidence_threshold", defaults.confidence_threshold
            ),
            input_width=_positive_int(detection_cfg, "detection.input_width", defaults.input_width),
            input_height=_positive_int(detection_cfg, "detection.input_height", defaults.input_height),
        )

        heuristic_defaults = HeuristicSettings()
        heuristic = HeuristicSettings(
            enabled=bool(heuristic_cfg.get("enabled", heuristic_defaults.enabled)),
            brightness_threshold=_float(
                heuristic_cfg,
                "heuristic.brightness_threshold",
                heuristic_defaults.brightness_threshold,
                minimum=0.0,
                maximum=254.0,
            ),
            width_fraction=_fraction(
                heuristic_cfg, "heuristic.width_fraction", heuristic_defaults.width_fraction
            ),
            use_geometry=bool(heuristic_cfg.get("use_geometry", heuristic_defaults.use_geometry)),
        )

        distance_defaults = DistanceSettings()
        distance = DistanceSettings(
            known_width_m=_float(
                distance_cfg, "distance.known_width_m", distance_defaults.known_width_m, minimum=0.0
            ),
            focal_length_px=_float(
                distance_cfg, "distance.focal_length_px", distance_defaults.focal_length_px
            ),
            smoothing_factor=_fraction(
                distance_cfg, "distance.smoothing_factor", distance_defaults.smoothing_factor
            ),
            min_distance_m=_float(
                distance_cfg, "distance.min_distance_m", distance_defaults.min_distance_m, minimum=0.0
            ),
            max_distance_m=_float(
                distance_cfg, "distance.max_distance_m", distance_defaults.max_distance_m, minimum=0.0
            ),
            min_confidence_distance_m=_float(
                distance_cfg,
                "distance.min_confidence_distance_m",
                distance_defaults.min_confidence_distance_m,
                minimum=0.0,
            ),
            max_confidence_distance_m=_float(
                distance_cfg,
                "distance.max_confidence_distance_m",
                distance_defaults.max_confidence_distance_m,
                minimum=0.0,
            ),
        )
        if distance.min_distance_m > distance.max_distance_m:
            raise ValueError("distance.min_distance_m must not exceed distance.max_distance_m")

        speed_defaults = SpeedFilterSettings()
        speed_filter = SpeedFilterSettings(
            process_noise=_float(
                speed_cfg, "speed_filter.process_noise", speed_defaults.process_noise, minimum=0.0
            ),
            measurement_noise=_float(
                speed_cfg, "speed_filter.measurement_noise", speed_defaults.measurement_noise, minimum=0.0
            ),
        )

        collision = CollisionSettings(
            min_speed_kmh=_float(
                collision_cfg, "collision.min_speed_kmh", CollisionSettings().min_speed_kmh, minimum=0.0
            ),
        )

        warning_defaults = WarningSettings()
        warning = WarningSettings(
            danger_ttc_s=_float(warning_cfg, "warning.danger_ttc_s", warning_defaults.danger_ttc_s, minimum=0.0),
            danger_distance_m=_float(
                warning_cfg, "warning.danger_distance_m", warning_defaults.danger_distance_m, minimum=0.0
            ),
            caution_ttc_s=_float(warning_cfg, "warning.caution_ttc_s", warning_defaults.caution_ttc_s, minimum=0.0),
            alert_cooldown_ms=_float(
                warning_cfg, "warning.alert_cooldown_ms", warning_defaults.alert_cooldown_ms, minimum=0.0
            ),
        )

        worker_defaults = WorkerSettings()
        worker = WorkerSettings(
            stop_timeout_s=_float(worker_cfg, "worker.stop_timeout_s", worker_defaults.stop_timeout_s, minimum=0.0),
            status_log_period_s=_float(
                worker_cfg, "worker.status_log_period_s", worker_defaults.status_log_period_s, minimum=0.0
            ),
        )

        return cls(
            detection=detection,
            heuristic=heuristic,
            distance=distance,
            speed_filter=speed_filter,
            collision=collision,
            warning=warning,
            worker=worker,
        )


def load_pipeline_settings() -> PipelineSettings:
    """Return settings for the configuration loaded by ``ConfigController``."""

    from config.controller import ConfigController

    return PipelineSettings.from_config(ConfigController.get_instance().get_config())


def _section(config: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = config.get(name) if isinstance(config, Mapping) else None
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"{name} must be a mapping, got {type(value).__name__}")
    return value


def _float(
    section: Mapping[str, Any],
    key: str,
    default: float,
    *,
    minimum: float | None = None,
    maximum: float | None = None,
) -> float:
    raw = section.get(key.rsplit(".", 1)[-1], default)
    try:
        value = float(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{key} must be a number, got {raw!r}") from exc
    if not math.isfinite(value):
        raise ValueError(f"{key} must be finite, got {raw!r}")
    if minimum is not None and value < minimum:
        raise ValueError(f"{key} must be >= {minimum}, got {value}")
    if maximum is not None and value > maximum:
        raise ValueError(f"{key} must be <= {maximum}, got {value}")
    return value


def _fraction(section: Mapping[str, Any], key: str, default: float) -> float:
    return _float(section, key, default, minimum=0.0, maximum=1.0)


def _positive_int(section: Mapping[str, Any], key: str, default: int) -> int:
    raw = section.get(key.rsplit(".", 1)[-1], default)
    try:
        value = int(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{key} must be an integer, got {raw!r}") from exc
    if value <= 0:
        raise ValueError(f"{key} must be positive, got {value}")
    return value
