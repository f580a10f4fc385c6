# Overview: In-process completion event bus and the queue listener used by the SSE stream.

from __future__ import annotations

import logging
import queue
import threading
from datetime import datetime
from typing import Protocol

from uidops.time_utils import to_utc_z


logger = logging.getLogger(__name__)


class CompletionListener(Protocol):
    def notify(self, timestamp: datetime) -> None:
        ...


class ListenerGone(Exception):
    """Raised by a listener that can no longer accept events."""


class CompletionEventBus:
    """
    Fan-out of "scan completed" timestamps to live listeners.

    Fire-and-forget: publish never waits on a listener, keeps no backlog, and a
    listener that raises is removed so later publishes skip it.
    """

    def __init__(self):
        self._listeners: set[CompletionListener] = set()
        self._lock = threading.Lock()

    def subscribe(self, listener: CompletionListener) -> CompletionListener:
        with self._lock:
            self._listeners.add(listener)
        return listener

    def unsubscribe(self, listener: CompletionListener) -> None:
        with self._lock:
            self._listeners.discard(listener)

    def __len__(self) -> int:
        with self._lock:
            return len(self._listeners)

    def publish(self, timestamp: datetime) -> int:
        """Deliver to every current listener; returns how many accepted it."""
        with self._lock:
            listeners = list(self._listeners)

        delivered = 0
        for listener in listeners:
            try:
                listener.notify(timestamp)
                delivered += 1
            except Exception:
                logger.debug("Dropping completion listener %r", listener, exc_info=True)
                self.unsubscribe(listener)
        return delivered


class QueueListener:
    """
    Buffers timestamps for one SSE client; a full buffer means the client is gone.

    Once full the listener is closed for good: the bus drops it, and the stream
    drains what is buffered then ends so the client reconnects.
    """

    def __init__(self, maxsize: int = 256):
        self._queue: queue.Queue[datetime] = queue.Queue(maxsize=maxsize)
        self.closed = False

    def notify(self, timestamp: datetime) -> None:
        if self.closed:
            raise ListenerGone("listener is closed")
        try:
            self._queue.put_nowait(timestamp)
        except queue.Full as exc:
            self.closed = True
            raise ListenerGone("listener queue is full") from exc

    def next_event(self, timeout: float) -> datetime | None:
        """Next buffered timestamp; a closed listener never waits."""
        try:
            if self.closed:
                return self._queue.get_nowait()
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None


def event_payload(timestamp: datetime) -> dict:
    return {"ts": to_utc_z(timestamp)}
