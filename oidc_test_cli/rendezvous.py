"""Single-use channel for handing one value from a worker thread to a waiter."""
from __future__ import annotations

import queue
import threading
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")

_CLOSED = object()


class ChannelClosed(Exception):
    """The sender side was closed without ever sending a value."""


class OneShot(Generic[T]):
    """
    A one-value rendezvous channel.

    The sender side can be used exactly once: the first ``send`` or ``close``
    takes it, every later call is a no-op returning ``False``. The receiver
    blocks in ``receive`` until the value (or the close marker) arrives.
    """

    def __init__(self) -> None:
        self._queue: "queue.Queue[Any]" = queue.Queue(maxsize=1)
        self._lock = threading.Lock()
        self._sender_taken = False

    def _take_sender(self) -> bool:
        with self._lock:
            if self._sender_taken:
                return False
            self._sender_taken = True
            return True

    @property
    def consumed(self) -> bool:
        with self._lock:
            return self._sender_taken

    def send(self, value: T) -> bool:
        if not self._take_sender():
            return False
        self._queue.put_nowait(value)
        return True

    def close(self) -> bool:
        if not self._take_sender():
            return False
        self._queue.put_nowait(_CLOSED)
        return True

    def receive(self, timeout: Optional[float] = None) -> T:
        """
        Raises:
            ChannelClosed: the sender closed the channel without a value.
            TimeoutError: nothing arrived within ``timeout`` seconds.
        """
        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            raise TimeoutError(f"No value received within {timeout} seconds") from None
        if item is _CLOSED:
            raise ChannelClosed()
        return item
