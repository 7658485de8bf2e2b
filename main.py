"""Command-line entry point for the brake assist runtime."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys

from config import ConfigController
from config.settings import PipelineSettings
from core.logging import (
    disable_file_logging,
    enable_file_logging,
    log_error,
    log_info,
    log_warning,
    logger,
    set_level,
)


def configure_logging(level_name: str) -> None:
    """Configure application logging."""

    if level_name.upper() not in logging._nameToLevel:
        logger.warning("Unknown logging level %r; using INFO", level_name)
        level_name = "INFO"
    logging.basicConfig(
        level=logging._nameToLevel[level_name.upper()],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    set_level(level_name)


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Raw command-line arguments.

    Returns:
        Parsed arguments namespace.
    """

    parser = argparse.ArgumentParser(
        description="Forward collision warning over camera frames and vehicle speed."
    )
    parser.add_argument(
        "--diagnostics",
        action="store_true",
        help="Run diagnostics probes and exit.",
    )
    parser.add_argument(
        "--replay",
        type=Path,
        help="Replay a directory of images (sorted by name) through the pipeline.",
    )
    parser.add_argument(
        "--speed-kmh",
        type=float,
        default=36.0,
        help="Constant vehicle speed used during replay.",
    )
    parser.add_argument(
        "--fps",
        type=float,
        default=10.0,
        help="Frame rate the replay clock advances at.",
    )
    parser.add_argument(
        "--audio",
        action="store_true",
        help="Play alert tones through PyAudio instead of logging them.",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        help="Also write logs to this file.",
    )
    return parser.parse_args(argv)


def run_diagnostics_cli(settings: PipelineSettings) -> int:
    from config.diagnostics import probe as config_probe
    from core.diagnostics import probe as core_probe
    from diagnostics.models import exit_code
    from diagnostics.runner import format_results, run_diagnostics
    from hardware.diagnostics import HardwareProbeConfig, probe as hardware_probe
    from interaction.diagnostics import probe as alert_probe
    from services.diagnostics import probe as services_probe

    def hardware_probe_configured():
        return hardware_probe(config=HardwareProbeConfig(model_path=settings.detection.model_path))

    def services_probe_configured():
        return services_probe(settings.speed_filter)

    results = run_diagnostics(
        [
            config_probe,
            core_probe,
            hardware_probe_configured,
            alert_probe,
            services_probe_configured,
        ]
    )
    print(format_results(results))
    return exit_code(results)


def create_alert_output(audio: bool):
    """Return the tone player when requested and available, else a logging output."""

    from interaction.alerts import LoggingAlertOutput, ToneAlertPlayer

    if audio:
        try:
            return ToneAlertPlayer()
        except Exception as exc:  # noqa: BLE001
            log_warning(f"Audio alerts unavailable ({exc}); logging alerts instead")
    return LoggingAlertOutput()


def replay(
    directory: Path,
    speed_kmh: float,
    fps: float,
    settings: PipelineSettings,
    audio: bool = False,
) -> int:
    """Run every image in ``directory`` through a session at a fixed speed."""

    from core.session import DrivingSession
    from interaction.display import LoggingDisplay
    from vision.replay import iter_frames

    clock = {"now_ms": 0.0}

    def replay_clock_ms() -> float:
        return clock["now_ms"]

    def on_degraded(reason: str) -> None:
        log_warning(f"Running in degraded detection mode: {reason}")

    alerts = create_alert_output(audio)
    try:
        session = DrivingSession(
            settings=settings,
            display=LoggingDisplay(),
            alerts=alerts,
            on_degraded=on_degraded,
            clock_ms=replay_clock_ms,
        )
    except RuntimeError as exc:
        log_error(f"Session startup failed: {exc}")
        _release_alerts(alerts)
        return 1

    log_info(f"Replaying {directory} at {speed_kmh:.1f} km/h, {fps:g} fps", style="bold green")
    session.start()
    try:
        for frame in iter_frames(directory, fps=fps):
            clock["now_ms"] = frame.timestamp_s * 1000.0
            session.submit_speed_sample(speed_kmh / 3.6)
            outcome = session.process_frame(frame)
            logger.debug("Frame %s -> %s", outcome.frame_index, outcome)
    except FileNotFoundError as exc:
        logger.error("%s", exc)
        return 1
    except KeyboardInterrupt:
        logger.info("Replay interrupted by user")
    finally:
        session.stop()
        _release_alerts(alerts)
    return 0


def _release_alerts(alerts) -> None:
    release = getattr(alerts, "release", None)
    if release is None:
        return
    try:
        release()
    except Exception:
        logger.exception("[ALERT] Alert output release failed")


def main(argv: list[str] | None = None) -> int:
    """Application entry point.

    Args:
        argv: Optional list of command-line arguments.

    Returns:
        Process exit code.
    """

    if argv is None:
        argv = sys.argv[1:]

    args = parse_args(argv)
    config = ConfigController.get_instance().get_config()
    configure_logging(str(config.get("logging_level", "INFO")))
    try:
        settings = PipelineSettings.from_config(config)
    except ValueError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 2

    if args.diagnostics:
        return run_diagnostics_cli(settings)

    log_file = args.log_file
    if log_file is None and config.get("file_logging_enabled", False):
        log_file = Path(config.get("log_file", "logs/brake_assist.log"))
    if log_file is not None:
        enable_file_logging(log_file)
        logger.info("Writing logs to %s", log_file)

    if args.replay is None:
        logger.error("Nothing to do: pass --replay DIR or --diagnostics")
        return 2

    try:
        audio = args.audio or bool(config.get("audio_alerts_enabled", False))
        return replay(args.replay, args.speed_kmh, args.fps, settings, audio=audio)
    finally:
        if log_file is not None:
            disable_file_logging()


if __name__ == "__main__":
    raise SystemExit(main())
