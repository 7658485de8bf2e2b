"""Diagnostics routines for the configuration subsystem."""

from __future__ import annotations

from pathlib import Path

import yaml

from config.controller import deep_merge
from config.settings import PipelineSettings
from diagnostics.models import DiagnosticResult, DiagnosticStatus


def probe(base_dir: Path | None = None) -> DiagnosticResult:
    """Run a configuration probe to validate config files and settings.

    Args:
        base_dir: Optional base directory for offline testing.

    Returns:
        Diagnostic result indicating config readiness.
    """

    name = "config"
    try:
        root_dir = base_dir if base_dir is not None else Path.cwd()
        config_dir = root_dir / "config"
        default_config = config_dir / "default.yaml"
        override_config = config_dir / "override.yaml"

        if not config_dir.exists():
            return DiagnosticResult(
                name=name,
                status=DiagnosticStatus.FAIL,
                details=f"Config directory missing at {config_dir}",
            )

        if not default_config.exists():
            return DiagnosticResult(
                name=name,
                status=DiagnosticStatus.FAIL,
                details=f"Missing default config at {default_config}",
            )

        merged = yaml.safe_load(default_config.read_text(encoding="utf-8")) or {}
        if override_config.exists():
            override = yaml.safe_load(override_config.read_text(encoding="utf-8")) or {}
            merged = deep_merge(merged, override)

        settings = PipelineSettings.from_config(merged)
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.PASS,
            details=(
                f"Config files readable at {config_dir} "
                f"(model={settings.detection.model_path})"
            ),
        )
    except OSError as exc:
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.FAIL,
            details=f"Config access failed: {exc}",
        )
    except (yaml.YAMLError, ValueError) as exc:
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.FAIL,
            details=f"Config invalid: {exc}",
        )
