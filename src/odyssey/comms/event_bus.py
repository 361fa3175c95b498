"""EventBus — thread-safe pub/sub for simulation events.

The simulation thread publishes wave, combat and upgrade events here; the
relay's websocket bridge and the tests consume them.  Each subscriber gets
its own bounded queue so a slow consumer never blocks the tick loop.
"""

from __future__ import annotations

import queue
import threading
from typing import Iterable


class EventBus:
    """Simple thread-safe pub/sub for pushing events to subscribers."""

    def __init__(self, maxsize: int = 256) -> None:
        self._lock = threading.Lock()
        self._maxsize = maxsize
        self._subscribers: list[tuple[queue.Queue, frozenset[str] | None]] = []

    def subscribe(self, topics: Iterable[str] | None = None) -> queue.Queue:
        """Subscribe to events. Returns a Queue that receives matching events.

        With ``topics`` set, only those event types are delivered; otherwise
        every event is.
        """
        q: queue.Queue = queue.Queue(maxsize=self._maxsize)
        wanted = frozenset(topics) if topics is not None else None
        with self._lock:
            self._subscribers.append((q, wanted))
        return q

    def unsubscribe(self, q: queue.Queue) -> None:
        with self._lock:
            self._subscribers = [
                (sub, wanted) for sub, wanted in self._subscribers if sub is not q
            ]

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, event_type: str, data: dict | None = None) -> None:
        msg = {"type": event_type}
        if data is not None:
            msg["data"] = data
        with self._lock:
            for q, wanted in self._subscribers:
                if wanted is not None and event_type not in wanted:
                    continue
                try:
                    q.put_nowait(msg)
                except queue.Full:
                    # Drop oldest so wave/game-over events are never lost
                    # behind a backlog of snapshots.
                    try:
                        q.get_nowait()
                    except queue.Empty:
                        pass
                    try:
                        q.put_nowait(msg)
                    except queue.Full:
                        pass
