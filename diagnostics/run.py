"""Command-line entry point for running diagnostics."""

from __future__ import annotations

import argparse
from pathlib import Path
import tempfile

from config.diagnostics import probe as config_probe
from diagnostics.models import exit_code
from diagnostics.runner import format_results, run_diagnostics
from core.diagnostics import probe as core_probe
from interaction.alerts import FakeAlertOutput
from interaction.diagnostics import probe as alert_probe
from hardware.diagnostics import HardwareProbeConfig, probe as hardware_probe
from services.diagnostics import probe as services_probe


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""

    parser = argparse.ArgumentParser(description="Run diagnostics probes.")
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Run probes against a temporary offline directory.",
    )
    parser.add_argument(
        "--base-dir",
        type=Path,
        default=None,
        help="Optional base directory for offline diagnostics.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Run diagnostics and return an exit code."""

    args = parse_args(argv)
    base_dir = args.base_dir

    if args.offline and base_dir is None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            tmp_base = Path(tmp_dir)

            config_dir = tmp_base / "config"
            config_dir.mkdir(parents=True, exist_ok=True)
            (config_dir / "default.yaml").write_text("{}", encoding="utf-8")

            def config_probe_offline():
                return config_probe(base_dir=tmp_base)

            def core_probe_offline():
                return core_probe()

            def alert_probe_offline():
                return alert_probe(output=FakeAlertOutput())

            def hardware_probe_offline():
                return hardware_probe(
                    config=HardwareProbeConfig(require_all=False),
                    available_modules={"numpy", "PIL"},
                )

            def services_probe_offline():
                return services_probe()

            results = run_diagnostics(
                [
                    config_probe_offline,
                    core_probe_offline,
                    alert_probe_offline,
                    hardware_probe_offline,
                    services_probe_offline,
                ]
            )
    else:
        def config_probe_with_base():
            return config_probe(base_dir=base_dir)

        def core_probe_live():
            return core_probe()

        def alert_probe_live():
            return alert_probe()

        def hardware_probe_live():
            return hardware_probe(config=HardwareProbeConfig(require_all=False))

        def services_probe_live():
            return services_probe()

        results = run_diagnostics(
            [
                config_probe_with_base,
                core_probe_live,
                alert_probe_live,
                hardware_probe_live,
                services_probe_live,
            ]
        )

    print(format_results(results))

    return exit_code(results)


if __name__ == "__main__":
    raise SystemExit(main())
