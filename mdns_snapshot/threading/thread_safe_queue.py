"""Defines `ThreadSafeQueue[T]`, a closable wrapper for `queue.Queue`."""

import logging
import queue
import threading
from typing import Generic, Optional, TypeVar

# Type variable for the generic type of items in the queue.
T = TypeVar("T")


class ThreadSafeQueue(Generic[T]):
    """An unbounded queue shared between one producer thread and a consumer.

    Producers are typically zeroconf callback threads, which may keep firing
    for a short while after the consumer has stopped listening. Once
    `close()` has been called, further pushes are dropped instead of
    accumulating in a queue nobody will drain.
    """

    def __init__(self) -> None:
        self._queue: queue.Queue[T] = queue.Queue()
        self._lock = threading.Lock()
        self._closed = False

    def push(self, item: T) -> bool:
        """Adds an item to the queue.

        Returns:
            True if the item was queued, False if the queue is closed.
        """
        with self._lock:
            if self._closed:
                logging.debug("Dropping item pushed to closed queue.")
                return False
            self._queue.put_nowait(item)
            return True

    def pop(self, timeout: Optional[float] = None) -> Optional[T]:
        """Removes and returns the next item, waiting up to `timeout` seconds.

        The lock is not held while waiting, so producers are never blocked by
        a consumer that is waiting for an item.

        Args:
            timeout: Max time in seconds to wait. None waits indefinitely and
                     0 returns immediately.

        Returns:
            The next item, or None if nothing arrived within `timeout`.
        """
        try:
            if timeout is not None and timeout <= 0:
                return self._queue.get_nowait()
            return self._queue.get(True, timeout)
        except queue.Empty:
            return None

    def close(self) -> None:
        """Stops accepting new items and discards anything still queued."""
        with self._lock:
            self._closed = True
            while True:
                try:
                    self._queue.get_nowait()
                except queue.Empty:
                    break

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def size(self) -> int:
        """Returns the approximate number of queued items."""
        return self._queue.qsize()
