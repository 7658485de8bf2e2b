"""Single-slot frame worker: the newest camera frame always wins."""

from __future__ import annotations

import threading
from typing import Callable, Generic, TypeVar

from core.logging import logger


FrameT = TypeVar("FrameT")
ResultT = TypeVar("ResultT")


class LatestFrameWorker(Generic[FrameT, ResultT]):
    """Runs ``process`` on a dedicated thread, one frame at a time.

    ``submit`` never blocks. A frame still waiting when a newer one arrives
    is dropped; the one being processed is never interrupted. Results go to
    ``on_result`` from the worker thread.
    """

    def __init__(
        self,
        process: Callable[[FrameT], ResultT],
        on_result: Callable[[ResultT], None] | None = None,
        name: str = "frame-worker",
    ) -> None:
        self._process = process
        self._on_result = on_result
        self._name = name
        self._cond = threading.Condition()
        self._pending: FrameT | None = None
        self._has_pending = False
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self.frames_submitted = 0
        self.frames_dropped = 0
        self.frames_processed = 0
        self.frames_failed = 0

    def start(self) -> None:
        if self._thread is None or not self._thread.is_alive():
            self._stop_event.clear()
            self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
            self._thread.start()

    def stop(self, timeout_s: float = 2.0) -> None:
        with self._cond:
            self._stop_event.set()
            self._pending = None
            self._has_pending = False
            self._cond.notify_all()
        if self._thread is not None:
            self._thread.join(timeout=timeout_s)
            if self._thread.is_alive():
                logger.warning("[WORKER] Worker did not stop within timeout")
                return
            self._thread = None
            logger.info(
                "[WORKER] Worker stopped (processed=%s dropped=%s failed=%s)",
                self.frames_processed,
                self.frames_dropped,
                self.frames_failed,
            )

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def submit(self, frame: FrameT) -> bool:
        """Offer a frame; returns ``False`` once the worker is stopping."""

        with self._cond:
            if self._stop_event.is_set():
                return False
            if self._has_pending:
                self.frames_dropped += 1
            self._pending = frame
            self._has_pending = True
            self.frames_submitted += 1
            self._cond.notify()
        return True

    def get_runtime_status(self) -> dict[str, int]:
        return {
            "frames_submitted": self.frames_submitted,
            "frames_processed": self.frames_processed,
            "frames_dropped": self.frames_dropped,
            "frames_failed": self.frames_failed,
            "alive": int(self.is_alive()),
        }

    def _take(self) -> tuple[bool, FrameT | None]:
        with self._cond:
            while not self._has_pending and not self._stop_event.is_set():
                self._cond.wait()
            if self._stop_event.is_set():
                return False, None
            frame = self._pending
            self._pending = None
            self._has_pending = False
            return True, frame

    def _run(self) -> None:
        while True:
            ok, frame = self._take()
            if not ok:
                return
            try:
                result = self._process(frame)  # type: ignore[arg-type]
            except Exception:
                self.frames_failed += 1
                logger.exception("[WORKER] Frame processing failed")
                continue
            self.frames_processed += 1
            # results finishing after stop() are not delivered
            if self._on_result is not None and not self._stop_event.is_set():
                try:
                    self._on_result(result)
                except Exception:
                    logger.exception("[WORKER] Result callback failed")
