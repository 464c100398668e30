# fooddispatch/notifications.py
"""
Event notifier contract and stock implementations.

The core only ever calls ``notify(kind, subject_id, payload)``. A notifier is
fire-and-forget: it must not block the caller for long and must never raise
back into the core. Delivery mechanics (SMS, push, email) belong to the
subscribers plugged in by whoever composes the system.

Available notifiers:

1. **NullNotifier**: Drops every event.
2. **LoggingNotifier**: Writes each event to a logger.
3. **CallbackNotifier**: Synchronous fan-out to a registry of callbacks.
4. **ChannelNotifier**: Puts events on a queue drained by a worker thread,
   so subscribers never run on the caller's thread.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional

from . import utils

logger = logging.getLogger(__name__)


class EventKind(Enum):
    ORDER_STATUS_CHANGED = "ORDER_STATUS_CHANGED"
    DRIVER_ASSIGNED = "DRIVER_ASSIGNED"
    DRIVER_RELEASED = "DRIVER_RELEASED"


@dataclass(frozen=True)
class Event:
    """
    One notification.

    Attributes:
        kind: What happened
        subject_id: Order id for order events, driver id for driver events
        payload: Event-specific details (new status, penalty, order id, ...)
        timestamp: When the event was emitted
    """
    kind: EventKind
    subject_id: str
    payload: Mapping[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utils.utc_now)


Subscriber = Callable[[Event], None]


class EventNotifier(ABC):
    """Capability the core uses to announce transitions."""

    @abstractmethod
    def notify(self, kind: EventKind, subject_id: str, payload: Optional[Mapping[str, Any]] = None) -> None:
        ...


class NullNotifier(EventNotifier):
    def notify(self, kind: EventKind, subject_id: str, payload: Optional[Mapping[str, Any]] = None) -> None:
        return None


class LoggingNotifier(EventNotifier):
    def __init__(self, log: Optional[logging.Logger] = None, level: int = logging.INFO) -> None:
        self.log = log or logger
        self.level = level

    def notify(self, kind: EventKind, subject_id: str, payload: Optional[Mapping[str, Any]] = None) -> None:
        self.log.log(self.level, f"{kind.value} {subject_id} {dict(payload or {})}")


class CallbackNotifier(EventNotifier):
    """
    Synchronous fan-out to registered callbacks.

    Subscribers are registered when the system is composed. A failing
    subscriber is logged and skipped; the remaining ones still run.
    """

    def __init__(self, subscribers: Optional[List[Subscriber]] = None) -> None:
        self._subscribers: List[Subscriber] = list(subscribers or [])
        self._lock = threading.Lock()

    def subscribe(self, subscriber: Subscriber) -> None:
        with self._lock:
            self._subscribers.append(subscriber)

    def unsubscribe(self, subscriber: Subscriber) -> None:
        with self._lock:
            self._subscribers = [s for s in self._subscribers if s is not subscriber]

    def notify(self, kind: EventKind, subject_id: str, payload: Optional[Mapping[str, Any]] = None) -> None:
        self.publish(Event(kind, subject_id, dict(payload or {})))

    def publish(self, event: Event) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for subscriber in subscribers:
            try:
                subscriber(event)
            except Exception:
                logger.exception(f"Subscriber {subscriber!r} failed on {event.kind.value} {event.subject_id}")


class ChannelNotifier(EventNotifier):
    """
    Message-passing notifier.

    ``notify`` only enqueues; a daemon worker thread hands each event to the
    wrapped CallbackNotifier. ``close`` delivers what is queued and stops the
    worker. Events sent after ``close`` are dropped with a warning.
    """

    _STOP = object()

    def __init__(self, subscribers: Optional[List[Subscriber]] = None, maxsize: int = 0) -> None:
        self.fanout = CallbackNotifier(subscribers)
        self._queue: "queue.Queue[Any]" = queue.Queue(maxsize=maxsize)
        self._closed = False
        # Guards _closed together with the enqueue, so nothing lands behind _STOP
        self._state_lock = threading.Lock()
        self._worker = threading.Thread(target=self._drain, name="event-channel", daemon=True)
        self._worker.start()

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, subscriber: Subscriber) -> None:
        self.fanout.subscribe(subscriber)

    def notify(self, kind: EventKind, subject_id: str, payload: Optional[Mapping[str, Any]] = None) -> None:
        event = Event(kind, subject_id, dict(payload or {}))
        with self._state_lock:
            if self._closed:
                reason = "closed"
            else:
                try:
                    self._queue.put_nowait(event)
                    return
                except queue.Full:
                    reason = "full"
        logger.warning(f"Channel {reason}, dropping {kind.value} {subject_id}")

    def flush(self, timeout: Optional[float] = None) -> bool:
        """
        Block until every queued event was handed to the subscribers.

        Returns:
            False if ``timeout`` seconds passed with events still pending
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._queue.all_tasks_done:
            while self._queue.unfinished_tasks:
                if deadline is None:
                    self._queue.all_tasks_done.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._queue.all_tasks_done.wait(remaining)
        return True

    def close(self, timeout: Optional[float] = 5.0) -> None:
        with self._state_lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put(self._STOP)
        self._worker.join(timeout)

    def _drain(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is self._STOP:
                    return
                self.fanout.publish(item)
            finally:
                self._queue.task_done()


def event_summary(events: List[Event]) -> Dict[str, int]:
    """Count events per kind, handy for CLI summaries and tests."""
    counts: Dict[str, int] = {}
    for event in events:
        counts[event.kind.value] = counts.get(event.kind.value, 0) + 1
    return counts
