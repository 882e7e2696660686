import datetime
import ipaddress
import socket
import threading
import time
import uuid

import pytest
from zeroconf import IPVersion, ServiceInfo, Zeroconf

from mdns_snapshot import DiscoveryConfig, discover, discover_async

pytestmark = pytest.mark.e2e

LOOPBACK = "127.0.0.1"
# Allowance for creating and closing the Zeroconf instance.
TEARDOWN_SLACK_S = 0.5


def loopback_config(**kwargs) -> DiscoveryConfig:
    kwargs.setdefault("duration", datetime.timedelta(seconds=3))
    return DiscoveryConfig(interfaces=(LOOPBACK,), ip_version="v4", **kwargs)


def make_service_type() -> str:
    return f"_e2e-{uuid.uuid4().hex[:8]}._tcp.local."


def make_info(
    service_type: str, instance: str, port: int, **properties: str
) -> ServiceInfo:
    return ServiceInfo(
        service_type,
        f"{instance}.{service_type}",
        port=port,
        properties={k.encode(): v.encode() for k, v in properties.items()},
        server=f"{instance.lower()}.local.",
        addresses=[socket.inet_aton(LOOPBACK)],
    )


@pytest.fixture
def publisher():
    zc = Zeroconf(interfaces=[LOOPBACK], ip_version=IPVersion.V4Only)
    registered = []

    def publish(info: ServiceInfo) -> None:
        zc.register_service(info)
        registered.append(info)

    yield publish

    for info in registered:
        zc.unregister_service(info)
    zc.close()


def test_published_service_is_discovered(publisher):
    service_type = make_service_type()
    info = make_info(service_type, "Nas", 50001, version="1.4")
    publisher(info)

    records = discover(service_type, config=loopback_config())

    assert len(records) == 1, f"Expected one record, got {records}"
    record = records[0]
    assert record.full_name == info.name
    assert record.hostname == "nas.local."
    assert record.port == 50001
    assert record.attributes == {"version": "1.4"}
    assert LOOPBACK in record.addresses
    for address in record.addresses:
        ipaddress.ip_address(address)


def test_two_instances_are_both_discovered(publisher):
    service_type = make_service_type()
    publisher(make_info(service_type, "First", 50002))
    publisher(make_info(service_type, "Second", 50003))

    records = discover(service_type, config=loopback_config())

    assert sorted(r.port for r in records) == [50002, 50003]
    assert len({r.full_name for r in records}) == 2


def test_unadvertised_type_returns_empty_list():
    config = loopback_config(duration=datetime.timedelta(seconds=1))

    start = time.monotonic()
    records = discover(make_service_type(), config=config)
    elapsed = time.monotonic() - start

    assert records == []
    assert elapsed >= config.duration_seconds
    assert elapsed < (
        config.duration_seconds
        + config.poll_interval_seconds
        + TEARDOWN_SLACK_S
    )


def test_slow_resolution_does_not_extend_deadline(publisher, monkeypatch):
    service_type = make_service_type()
    publisher(make_info(service_type, "Slow", 50006))

    def slow_get_service_info(self, type_, name, timeout=3000, **kwargs):
        # A responder that never answers holds the call for the full timeout.
        time.sleep(timeout / 1000)
        return None

    monkeypatch.setattr(Zeroconf, "get_service_info", slow_get_service_info)
    config = loopback_config(
        duration=datetime.timedelta(seconds=1.5),
        resolve_timeout=datetime.timedelta(seconds=5),
    )

    start = time.monotonic()
    discover(service_type, config=config)
    elapsed = time.monotonic() - start

    assert elapsed < (
        config.duration_seconds
        + config.poll_interval_seconds
        + TEARDOWN_SLACK_S
    )


def test_concurrent_sessions_are_independent(publisher):
    service_type = make_service_type()
    publisher(make_info(service_type, "Shared", 50004))
    results = {}

    def run(key: str) -> None:
        results[key] = discover(service_type, config=loopback_config())

    threads = [threading.Thread(target=run, args=(k,)) for k in ("a", "b")]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert [r.port for r in results["a"]] == [50004]
    assert [r.port for r in results["b"]] == [50004]


@pytest.mark.asyncio
async def test_discover_async_finds_service(publisher):
    service_type = make_service_type()
    publisher(make_info(service_type, "Async", 50005))

    records = await discover_async(service_type, config=loopback_config())

    assert [r.port for r in records] == [50005]
