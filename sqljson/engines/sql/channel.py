"""
Bounded row hand-off from the fetch loop to a render thread.

The producer calls ``send()`` and finally ``close()``; closing is the
end-of-input signal and makes the consumer's iteration stop. The consumer
calls ``detach()`` when it stops reading for any reason, which wakes a
blocked producer and makes every later ``send()`` return False.
"""

import threading
from collections import deque
from collections.abc import Iterator
from typing import Any


class RowChannel:
    """Single-producer, single-consumer queue with close and detach."""

    def __init__(self, capacity: int = 1) -> None:
        self._items: deque[Any] = deque()
        self._capacity = max(1, capacity)
        self._cond = threading.Condition()
        self._closed = False
        self._detached = False

    def send(self, item: Any) -> bool:
        """Block until *item* is queued; False if the consumer has gone away."""
        with self._cond:
            while len(self._items) >= self._capacity and not self._detached:
                self._cond.wait()
            if self._detached:
                return False
            if self._closed:
                raise RuntimeError("send on closed channel")
            self._items.append(item)
            self._cond.notify_all()
            return True

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def detach(self) -> None:
        with self._cond:
            self._detached = True
            self._items.clear()
            self._cond.notify_all()

    @property
    def detached(self) -> bool:
        with self._cond:
            return self._detached

    def __iter__(self) -> Iterator[Any]:
        while True:
            with self._cond:
                while not self._items and not self._closed and not self._detached:
                    self._cond.wait()
                if not self._items:
                    return
                item = self._items.popleft()
                self._cond.notify_all()
            yield item
