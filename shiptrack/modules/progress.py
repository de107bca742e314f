"""Progress events and cooperative cancellation for ingestion runs.

Progress delivery is best-effort: a failing callback is logged and
ignored, and ``QueueProgressSink`` drops events instead of blocking when a
slow consumer lets its queue fill up.
"""
from __future__ import annotations

import logging
import queue
import threading
from dataclasses import asdict, dataclass
from typing import Any, Callable, Optional

from shiptrack.config import settings
from shiptrack.models.base import ProgressStageEnum

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressEvent:
    stage: ProgressStageEnum
    percentage: float
    processed: Optional[int] = None
    total: Optional[int] = None
    completed: bool = False
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["stage"] = self.stage.value
        return data


ProgressCallback = Callable[[ProgressEvent], Any]


def percentage_of(done: int, total: int) -> float:
    if total <= 0:
        return 100.0
    return min(100.0, done / total * 100)


class ProgressNotifier:
    """Wraps a user callback so that it can never abort ingestion."""

    def __init__(self, callback: ProgressCallback | None) -> None:
        self._callback = callback
        self.failures = 0

    def emit(self, event: ProgressEvent) -> None:
        if self._callback is None:
            return
        try:
            self._callback(event)
        except Exception as exc:
            self.failures += 1
            logger.warning("Progress callback failed (%s): %s", event.stage.value, exc)


class QueueProgressSink:
    """Bounded, non-blocking progress channel for cross-thread consumers.

    Pass the sink itself as ``progress_callback``; the consumer reads
    ``sink.queue``. Events arriving while the queue is full are dropped,
    except that a terminal (completed/error) event evicts the oldest entry
    so the consumer always sees how the run ended.
    """

    def __init__(self, maxsize: int | None = None) -> None:
        maxsize = settings.PROGRESS_QUEUE_SIZE if maxsize is None else maxsize
        self.queue: queue.Queue[ProgressEvent] = queue.Queue(maxsize=maxsize)
        self.dropped = 0

    def __call__(self, event: ProgressEvent) -> None:
        try:
            self.queue.put_nowait(event)
            return
        except queue.Full:
            pass
        if event.completed or event.error:
            try:
                self.queue.get_nowait()
                self.dropped += 1
                self.queue.put_nowait(event)
                return
            except (queue.Empty, queue.Full):
                pass
        self.dropped += 1
        logger.debug("Progress queue full, dropped %s event", event.stage.value)

    def drain(self) -> list[ProgressEvent]:
        events: list[ProgressEvent] = []
        while True:
            try:
                events.append(self.queue.get_nowait())
            except queue.Empty:
                return events


class CancellationToken:
    """Cancellation flag checked by the pipeline at every row boundary."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self._timer: threading.Timer | None = None

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel_after(self, seconds: float) -> threading.Timer:
        """Cancel automatically after *seconds* of wall-clock time."""
        timer = threading.Timer(seconds, self.cancel)
        timer.daemon = True
        timer.start()
        self._timer = timer
        return timer

    def dispose(self) -> None:
        """Stop a pending ``cancel_after`` timer."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
