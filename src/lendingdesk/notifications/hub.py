"""Fan-out of notification events to registered sinks."""

import logging
import queue
import threading
from typing import Optional, Protocol

from .events import NotificationEvent

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    """A delivery endpoint for notification events."""

    def receive(self, event: NotificationEvent) -> None:
        ...


_STOP = object()


class NotificationHub:
    """Delivers each published event to every attached sink.

    Sinks are called in attachment order. A sink that raises is logged and
    skipped; the remaining sinks still receive the event and ``publish`` never
    fails because of a sink.

    With ``background=True`` events are queued and delivered by a single worker
    thread, so each sink still sees events in publish order.
    """

    def __init__(self, background: bool = False):
        self._sinks: list[NotificationSink] = []
        self._lock = threading.Lock()
        self._queue: Optional[queue.Queue] = None
        self._worker: Optional[threading.Thread] = None
        if background:
            self._queue = queue.Queue()
            self._worker = threading.Thread(
                target=self._drain, name="lendingdesk-notifications", daemon=True
            )
            self._worker.start()

    @property
    def sinks(self) -> list[NotificationSink]:
        with self._lock:
            return list(self._sinks)

    @property
    def is_background(self) -> bool:
        return self._queue is not None

    def attach(self, sink: NotificationSink) -> None:
        """Attach a sink. Attaching the same sink twice has no effect."""
        with self._lock:
            if not any(s is sink for s in self._sinks):
                self._sinks.append(sink)

    def detach(self, sink: NotificationSink) -> None:
        """Detach a sink if it is attached."""
        with self._lock:
            self._sinks = [s for s in self._sinks if s is not sink]

    def publish(self, event: NotificationEvent) -> None:
        if self._queue is not None:
            self._queue.put(event)
        else:
            self._deliver(event)

    def flush(self) -> None:
        """Block until every queued event has been delivered."""
        if self._queue is not None:
            self._queue.join()

    def close(self) -> None:
        """Deliver what is queued, then stop the worker thread."""
        if self._queue is None or self._worker is None:
            return
        self._queue.put(_STOP)
        self._worker.join()
        self._queue = None
        self._worker = None

    def _deliver(self, event: NotificationEvent) -> None:
        for sink in self.sinks:
            try:
                sink.receive(event)
            except Exception:
                logger.exception(
                    "Sink %s failed to receive %s", type(sink).__name__, event.event_type.value
                )

    def _drain(self) -> None:
        events = self._queue
        while True:
            event = events.get()
            try:
                if event is _STOP:
                    return
                self._deliver(event)
            finally:
                events.task_done()
