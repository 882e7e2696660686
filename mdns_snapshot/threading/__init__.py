"""Threading helpers used to hand events from zeroconf threads to callers."""

from mdns_snapshot.threading.thread_safe_queue import ThreadSafeQueue

__all__ = ["ThreadSafeQueue"]
