import logging
import socket

import pytest

from mdns_snapshot.discovery.event_normalizer import (
    address_to_string,
    normalize,
)
from mdns_snapshot.discovery.mdns.service_event import ResolvedServiceInfo


def make_info(**kwargs) -> ResolvedServiceInfo:
    defaults = dict(
        hostname="nas.local.",
        full_name="nas._aaxion._tcp.local.",
        addresses=[],
        port=8080,
        properties={},
    )
    defaults.update(kwargs)
    return ResolvedServiceInfo(**defaults)


class TestAddressToString:

    def test_ipv4(self):
        assert address_to_string(socket.inet_aton("192.168.1.7")) == (
            "192.168.1.7"
        )

    def test_ipv6(self):
        packed = socket.inet_pton(socket.AF_INET6, "fe80::1:2")
        assert address_to_string(packed) == "fe80::1:2"

    def test_text_passes_through(self):
        assert address_to_string("10.1.2.3") == "10.1.2.3"

    def test_bad_length_raises(self):
        with pytest.raises(ValueError):
            address_to_string(b"\x01\x02\x03")


class TestNormalize:

    def test_copies_scalar_fields(self):
        record = normalize(make_info())

        assert record.hostname == "nas.local."
        assert record.full_name == "nas._aaxion._tcp.local."
        assert record.port == 8080
        assert record.addresses == []
        assert record.attributes == {}

    def test_addresses_keep_order_and_duplicates(self):
        addresses = [
            socket.inet_aton("10.0.0.2"),
            socket.inet_pton(socket.AF_INET6, "::1"),
            socket.inet_aton("10.0.0.1"),
            socket.inet_aton("10.0.0.2"),
        ]

        record = normalize(make_info(addresses=addresses))

        assert record.addresses == ["10.0.0.2", "::1", "10.0.0.1", "10.0.0.2"]

    def test_properties_are_decoded(self):
        properties = {
            b"version": b"1.4.0",
            b"secure": None,
            b"name": "café".encode("utf-8"),
        }

        record = normalize(make_info(properties=properties))

        assert record.attributes == {
            "version": "1.4.0",
            "secure": "",
            "name": "café",
        }

    def test_undecodable_bytes_are_replaced(self):
        record = normalize(make_info(properties={b"blob": b"\xff\xfe"}))

        assert record.attributes == {"blob": "\ufffd\ufffd"}

    def test_is_deterministic(self):
        info = make_info(
            addresses=[socket.inet_aton("10.0.0.1")],
            properties={b"k": b"v"},
        )

        assert normalize(info) == normalize(info)

    def test_malformed_address_is_skipped(self, caplog):
        addresses = [
            socket.inet_aton("10.0.0.1"),
            b"\x01\x02\x03",
            socket.inet_aton("10.0.0.2"),
        ]

        with caplog.at_level(logging.WARNING):
            record = normalize(make_info(addresses=addresses))

        assert record.addresses == ["10.0.0.1", "10.0.0.2"]
        assert "nas._aaxion._tcp.local." in caplog.text
