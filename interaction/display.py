"""Display sinks for the overlay collaborator."""

from __future__ import annotations

from typing import Protocol

from core.logging import logger
from core.warning import DisplayUpdate, WarningLevel


class DisplaySink(Protocol):
    def update(self, update: DisplayUpdate) -> None:
        """Receive the latest display state."""


class LoggingDisplay:
    """Logs level changes at info and every update at debug."""

    def __init__(self) -> None:
        self._last_level: WarningLevel | None = None

    def update(self, update: DisplayUpdate) -> None:
        summary = " | ".join(update.format_lines())
        if update.level != self._last_level:
            logger.info("[DISPLAY] %s", summary)
            self._last_level = update.level
        else:
            logger.debug("[DISPLAY] %s", summary)


class RecordingDisplay:
    """Keeps every update; used offline and in tests."""

    def __init__(self) -> None:
        self.updates: list[DisplayUpdate] = []

    def update(self, update: DisplayUpdate) -> None:
        self.updates.append(update)

    @property
    def latest(self) -> DisplayUpdate | None:
        return self.updates[-1] if self.updates else None
