import dataclasses

import pytest

from mdns_snapshot.discovery.endpoint_record import EndpointRecord


def test_as_dict_uses_host_facing_keys():
    record = EndpointRecord(
        hostname="nas.local.",
        full_name="nas._aaxion._tcp.local.",
        addresses=["192.168.1.20", "fe80::1"],
        port=8080,
        attributes={"version": "1.2"},
    )

    assert record.as_dict() == {
        "hostname": "nas.local.",
        "fullname": "nas._aaxion._tcp.local.",
        "addresses": ["192.168.1.20", "fe80::1"],
        "port": 8080,
        "txt": {"version": "1.2"},
    }


def test_as_dict_returns_copies():
    record = EndpointRecord("h", "n", ["10.0.0.1"], 1, {"k": "v"})

    as_dict = record.as_dict()
    as_dict["addresses"].append("10.0.0.2")
    as_dict["txt"]["k"] = "changed"

    assert record.addresses == ["10.0.0.1"]
    assert record.attributes == {"k": "v"}


def test_record_is_frozen():
    record = EndpointRecord("h", "n", [], 1, {})

    with pytest.raises(dataclasses.FrozenInstanceError):
        record.port = 2  # type: ignore[misc]
