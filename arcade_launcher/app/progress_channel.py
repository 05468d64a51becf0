"""Consume-once progress channel between a background job and a poller.

The producer posts status lines and finishes with exactly one terminal event
(``complete`` or ``failed``). The consumer polls without blocking, typically
once per UI refresh tick. Events arrive in the order they were posted and the
terminal event is always the last one delivered.
"""

from __future__ import annotations

import queue
import threading
from dataclasses import dataclass
from typing import Any, List, Optional

EVENT_LOG = "log"
EVENT_COMPLETE = "complete"
EVENT_FAILED = "failed"
TERMINAL_KINDS = frozenset({EVENT_COMPLETE, EVENT_FAILED})


@dataclass(frozen=True)
class ProgressEvent:
    kind: str
    message: Optional[str] = None
    result: Optional[Any] = None

    @property
    def is_terminal(self) -> bool:
        return self.kind in TERMINAL_KINDS


class ProgressChannel:
    def __init__(self) -> None:
        self._queue: "queue.Queue[ProgressEvent]" = queue.Queue()
        self._lock = threading.Lock()
        self._closed = False
        self._finished = False

    # Producer side

    def _put(self, event: ProgressEvent) -> bool:
        with self._lock:
            if self._closed:
                return False
            if event.is_terminal:
                self._closed = True
            self._queue.put_nowait(event)
            return True

    def post(self, message: str) -> bool:
        return self._put(ProgressEvent(kind=EVENT_LOG, message=str(message)))

    def complete(self, result: Any = None, message: Optional[str] = None) -> bool:
        return self._put(ProgressEvent(kind=EVENT_COMPLETE, message=message, result=result))

    def fail(self, message: str, result: Any = None) -> bool:
        return self._put(ProgressEvent(kind=EVENT_FAILED, message=str(message), result=result))

    # Consumer side

    def poll(self) -> Optional[ProgressEvent]:
        """Next pending event, or None when nothing is waiting."""
        try:
            event = self._queue.get_nowait()
        except queue.Empty:
            return None
        if event.is_terminal:
            self._finished = True
        return event

    def drain(self) -> List[ProgressEvent]:
        events = []
        while True:
            event = self.poll()
            if event is None:
                return events
            events.append(event)

    def wait(self, timeout: Optional[float] = None) -> Optional[ProgressEvent]:
        """Block for the next event; for scripts and tests, not UI threads."""
        try:
            event = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        if event.is_terminal:
            self._finished = True
        return event

    @property
    def closed(self) -> bool:
        """True once the producer posted its terminal event."""
        return self._closed

    @property
    def finished(self) -> bool:
        """True once the consumer received the terminal event."""
        return self._finished
