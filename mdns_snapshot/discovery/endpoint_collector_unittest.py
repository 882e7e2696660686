import pytest

from mdns_snapshot.discovery.endpoint_collector import EndpointCollector
from mdns_snapshot.discovery.endpoint_record import EndpointRecord


def make_record(full_name: str, port: int = 80, *addresses: str):
    return EndpointRecord(
        hostname="host.local.",
        full_name=full_name,
        addresses=list(addresses),
        port=port,
        attributes={},
    )


class TestEndpointCollector:

    def test_offer_new_record_returns_true(self):
        collector = EndpointCollector()

        assert collector.offer(make_record("a._svc.local.")) is True
        assert len(collector) == 1
        assert "a._svc.local." in collector

    def test_duplicate_is_rejected_and_first_record_kept(self):
        collector = EndpointCollector()
        first = make_record("a._svc.local.", 8080, "10.0.0.1")
        second = EndpointRecord(
            hostname="other.local.",
            full_name="a._svc.local.",
            addresses=["10.0.0.2"],
            port=9090,
            attributes={"version": "2"},
        )

        collector.offer(first)
        assert collector.offer(second) is False

        assert collector.snapshot() == [first]
        assert collector.snapshot()[0].port == 8080
        assert collector.snapshot()[0].attributes == {}

    def test_order_is_first_appearance(self):
        collector = EndpointCollector()
        names = ["c", "a", "c", "b", "a", "d"]
        for index, name in enumerate(names):
            collector.offer(make_record(f"{name}._svc.local.", index))

        snapshot = collector.snapshot()

        assert [r.full_name for r in snapshot] == [
            "c._svc.local.",
            "a._svc.local.",
            "b._svc.local.",
            "d._svc.local.",
        ]
        assert [r.port for r in snapshot] == [0, 1, 3, 5]

    def test_identity_is_name_not_content(self):
        collector = EndpointCollector()
        collector.offer(make_record("a._svc.local.", 80, "10.0.0.1"))

        assert collector.offer(make_record("b._svc.local.", 80, "10.0.0.1"))
        assert len(collector) == 2

    def test_snapshot_is_a_copy(self):
        collector = EndpointCollector()
        collector.offer(make_record("a._svc.local."))

        snapshot = collector.snapshot()
        snapshot.clear()
        collector.offer(make_record("b._svc.local."))

        assert snapshot == []
        assert len(collector.snapshot()) == 2

    @pytest.mark.parametrize("count", [0, 1, 5])
    def test_never_holds_two_records_with_same_name(self, count):
        collector = EndpointCollector()
        for i in range(count):
            collector.offer(make_record("same._svc.local.", i))
            collector.offer(make_record(f"other{i}._svc.local.", i))

        names = [r.full_name for r in collector.snapshot()]
        assert len(names) == len(set(names))
