import threading
import time

import pytest

from mdns_snapshot.threading.thread_safe_queue import ThreadSafeQueue


class TestThreadSafeQueue:

    def test_push_then_pop_is_fifo(self):
        q = ThreadSafeQueue[int]()
        q.push(1)
        q.push(2)

        assert q.size() == 2
        assert q.pop(0) == 1
        assert q.pop(0) == 2

    def test_pop_times_out_with_none(self):
        q = ThreadSafeQueue[str]()

        start = time.monotonic()
        assert q.pop(0.05) is None
        assert time.monotonic() - start >= 0.04

    def test_pop_with_zero_timeout_does_not_block(self):
        q = ThreadSafeQueue[str]()

        assert q.pop(0) is None

    def test_pop_wakes_on_push_from_other_thread(self):
        q = ThreadSafeQueue[str]()
        timer = threading.Timer(0.05, q.push, args=("event",))
        timer.start()
        try:
            assert q.pop(2.0) == "event"
        finally:
            timer.cancel()

    def test_close_drops_pending_and_future_items(self):
        q = ThreadSafeQueue[int]()
        q.push(1)

        q.close()

        assert q.closed
        assert q.size() == 0
        assert q.push(2) is False
        assert q.pop(0) is None

    @pytest.mark.parametrize("producers", [2, 4])
    def test_concurrent_pushes_are_all_delivered(self, producers):
        q = ThreadSafeQueue[int]()
        per_producer = 100

        threads = [
            threading.Thread(
                target=lambda: [q.push(i) for i in range(per_producer)]
            )
            for _ in range(producers)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        received = []
        while (item := q.pop(0)) is not None:
            received.append(item)
        assert len(received) == producers * per_producer
