import datetime
import threading
import time

import pytest

from mdns_snapshot.config.discovery_config import DiscoveryConfig
from mdns_snapshot.discovery.discovery_session import (
    DiscoverySession,
    discover,
    discover_async,
)
from mdns_snapshot.discovery.errors import ReceiveError, SubscriptionError
from mdns_snapshot.discovery.mdns.service_event import (
    ResolvedServiceInfo,
    ServiceFound,
    ServiceRemoved,
    ServiceResolved,
)
from mdns_snapshot.test.discovery_fixtures import (
    FakeAdvertisementRuntime,
    FakeClock,
    FakeSubscription,
    resolved_event,
)


def make_config(**kwargs) -> DiscoveryConfig:
    kwargs.setdefault("service_type", "_svc._tcp.local.")
    return DiscoveryConfig(**kwargs)


def run_session(script, config=None, cancel_event=None):
    clock = FakeClock()
    subscription = FakeSubscription(script, clock=clock)
    runtime = FakeAdvertisementRuntime(subscription)
    session = DiscoverySession(
        runtime,
        config or make_config(),
        cancel_event=cancel_event,
        clock=clock,
    )
    return session.run(), subscription, runtime, clock


def test_duplicate_resolutions_keep_first_record():
    script = [
        resolved_event("a._svc.local.", 8080, ["10.0.0.1"]),
        resolved_event("a._svc.local.", 9090, ["10.0.0.2"]),
        resolved_event("b._svc.local.", 80, []),
    ]

    records, subscription, _, _ = run_session(script)

    assert [r.full_name for r in records] == [
        "a._svc.local.",
        "b._svc.local.",
    ]
    assert records[0].port == 8080
    assert records[0].addresses == ["10.0.0.1"]
    assert records[1].port == 80
    assert records[1].addresses == []
    assert subscription.close_count == 1


def test_no_events_returns_empty_list():
    records, subscription, _, _ = run_session([])

    assert records == []
    assert subscription.close_count == 1


def test_non_resolved_events_are_ignored():
    script = [
        ServiceFound("_svc._tcp.local.", "a._svc._tcp.local."),
        None,
        ServiceRemoved("_svc._tcp.local.", "a._svc._tcp.local."),
        resolved_event("b._svc._tcp.local.", 80, ["10.0.0.3"]),
    ]

    records, _, _, _ = run_session(script)

    assert [r.full_name for r in records] == ["b._svc._tcp.local."]


def test_runs_until_deadline_even_after_results():
    config = make_config(
        duration=datetime.timedelta(seconds=1),
        poll_interval=datetime.timedelta(milliseconds=100),
    )
    script = [resolved_event("a._svc.local.", 1, ["10.0.0.1"])]

    records, subscription, _, clock = run_session(script, config)

    assert len(records) == 1
    # One delivered event, then timeouts until the full second is used.
    assert len(subscription.timeouts) >= 10
    assert clock.now >= 1000.0 + 1.0


def test_poll_timeout_never_exceeds_remaining_time():
    config = make_config(
        duration=datetime.timedelta(milliseconds=250),
        poll_interval=datetime.timedelta(milliseconds=100),
    )

    _, subscription, _, clock = run_session([], config)

    assert subscription.timeouts[:2] == pytest.approx([0.1, 0.1])
    assert subscription.timeouts[2] == pytest.approx(0.05)
    assert all(t <= 0.1 + 1e-9 for t in subscription.timeouts)
    assert clock.now == pytest.approx(1000.25)


def test_subscription_failure_propagates_without_polling():
    subscription = FakeSubscription()
    runtime = FakeAdvertisementRuntime(
        subscription, open_error=SubscriptionError("socket failure")
    )
    session = DiscoverySession(runtime, make_config())

    with pytest.raises(SubscriptionError, match="socket failure"):
        session.run()

    assert subscription.timeouts == []


def test_invalid_service_type_raises_subscription_error():
    runtime = FakeAdvertisementRuntime()
    session = DiscoverySession(runtime, make_config(service_type="nope"))

    with pytest.raises(SubscriptionError) as exc_info:
        session.run()

    assert isinstance(exc_info.value.__cause__, ValueError)
    assert runtime.opened_types == []


def test_service_type_is_normalized_before_opening():
    _, _, runtime, _ = run_session([], make_config(service_type="_aaxion"))

    assert runtime.opened_types == ["_aaxion._tcp.local."]


def test_receive_error_is_treated_as_timeout_by_default():
    script = [
        ReceiveError("transport hiccup"),
        resolved_event("a._svc.local.", 8080, ["10.0.0.1"]),
    ]

    records, subscription, _, _ = run_session(script)

    assert [r.full_name for r in records] == ["a._svc.local."]
    assert subscription.close_count == 1


def test_receive_error_propagates_when_configured():
    script = [
        resolved_event("a._svc.local.", 8080, ["10.0.0.1"]),
        ReceiveError("transport failure"),
    ]
    config = make_config(raise_on_receive_error=True)

    with pytest.raises(ReceiveError, match="transport failure"):
        run_session(script, config)


def test_subscription_closed_when_receive_error_propagates():
    clock = FakeClock()
    subscription = FakeSubscription([ReceiveError("boom")], clock=clock)
    session = DiscoverySession(
        FakeAdvertisementRuntime(subscription),
        make_config(raise_on_receive_error=True),
        clock=clock,
    )

    with pytest.raises(ReceiveError):
        session.run()

    assert subscription.close_count == 1


def test_cancel_event_stops_before_polling():
    cancel_event = threading.Event()
    cancel_event.set()

    records, subscription, _, _ = run_session(
        [resolved_event("a._svc.local.", 1)], cancel_event=cancel_event
    )

    assert records == []
    assert subscription.timeouts == []
    assert subscription.close_count == 1


def test_cancel_event_keeps_records_found_so_far():
    cancel_event = threading.Event()

    class CancellingSubscription(FakeSubscription):
        def next_event(self, timeout):
            event = super().next_event(timeout)
            if event is not None:
                cancel_event.set()
            return event

    clock = FakeClock()
    subscription = CancellingSubscription(
        [
            resolved_event("a._svc.local.", 1),
            resolved_event("b._svc.local.", 2),
        ],
        clock=clock,
    )
    session = DiscoverySession(
        FakeAdvertisementRuntime(subscription),
        make_config(),
        cancel_event=cancel_event,
        clock=clock,
    )

    records = session.run()

    assert [r.full_name for r in records] == ["a._svc.local."]


def test_session_cannot_run_twice():
    clock = FakeClock()
    session = DiscoverySession(
        FakeAdvertisementRuntime(FakeSubscription(clock=clock)),
        make_config(),
        clock=clock,
    )
    session.run()

    with pytest.raises(RuntimeError):
        session.run()


def test_session_rejects_missing_runtime():
    with pytest.raises(ValueError):
        DiscoverySession(None, make_config())  # type: ignore[arg-type]


def test_discover_returns_within_duration_plus_poll_interval():
    runtime = FakeAdvertisementRuntime(FakeSubscription())
    duration = 0.3
    poll_interval = 0.05

    start = time.monotonic()
    records = discover(
        "_svc._tcp.local.",
        duration,
        poll_interval=poll_interval,
        runtime=runtime,
    )
    elapsed = time.monotonic() - start

    assert records == []
    assert elapsed >= duration
    assert elapsed < duration + poll_interval + 0.25


def test_discover_applies_overrides_to_config():
    clock = FakeClock()
    subscription = FakeSubscription(clock=clock)
    runtime = FakeAdvertisementRuntime(subscription)
    base = DiscoveryConfig(service_type="_other._tcp.local.")

    discover(
        "_svc._udp",
        datetime.timedelta(milliseconds=500),
        poll_interval=datetime.timedelta(milliseconds=250),
        config=base,
        runtime=runtime,
        clock=clock,
    )

    assert runtime.opened_types == ["_svc._udp.local."]
    assert subscription.timeouts == pytest.approx([0.25, 0.25])


def test_discover_uses_config_defaults():
    clock = FakeClock()
    runtime = FakeAdvertisementRuntime(FakeSubscription(clock=clock))

    discover(runtime=runtime, clock=clock)

    assert runtime.opened_types == ["_aaxion._tcp.local."]
    assert clock.now == pytest.approx(1002.0)


def test_short_duration_shrinks_inherited_poll_interval():
    clock = FakeClock()
    subscription = FakeSubscription(clock=clock)

    records = discover(
        "_svc._tcp.local.",
        0.05,
        runtime=FakeAdvertisementRuntime(subscription),
        clock=clock,
    )

    assert records == []
    assert subscription.timeouts[0] == pytest.approx(0.025)
    assert all(t <= 0.025 + 1e-9 for t in subscription.timeouts)
    assert clock.now == pytest.approx(1000.05)


def test_short_duration_keeps_poll_interval_that_fits():
    clock = FakeClock()
    subscription = FakeSubscription(clock=clock)
    base = make_config(poll_interval=datetime.timedelta(milliseconds=10))

    discover(
        duration=0.05,
        config=base,
        runtime=FakeAdvertisementRuntime(subscription),
        clock=clock,
    )

    assert subscription.timeouts[:4] == pytest.approx([0.01] * 4)
    assert clock.now == pytest.approx(1000.05)


def test_malformed_address_does_not_fail_discovery():
    event = ServiceResolved(
        ResolvedServiceInfo(
            hostname="host.local.",
            full_name="a._svc.local.",
            addresses=[b"\x0a\x00\x00\x01", b"\x01\x02"],
            port=8080,
            properties={},
        )
    )

    records, _, _, _ = run_session([event])

    assert [r.addresses for r in records] == [["10.0.0.1"]]


def test_discover_rejects_poll_interval_not_below_duration():
    with pytest.raises(ValueError):
        discover(
            "_svc._tcp.local.",
            0.1,
            poll_interval=0.1,
            runtime=FakeAdvertisementRuntime(),
        )


def test_discover_rejects_non_numeric_duration():
    with pytest.raises(TypeError):
        discover(
            "_svc._tcp.local.",
            "2s",  # type: ignore[arg-type]
            runtime=FakeAdvertisementRuntime(),
        )


def test_discover_builds_zeroconf_runtime_by_default(mocker):
    fake_runtime = FakeAdvertisementRuntime(
        FakeSubscription([resolved_event("a._svc.local.", 1)])
    )
    runtime_cls = mocker.patch(
        "mdns_snapshot.discovery.discovery_session.ZeroconfRuntime",
        return_value=fake_runtime,
    )

    records = discover("_svc._tcp.local.", 0.2, poll_interval=0.01)

    runtime_cls.assert_called_once()
    (config,), _ = runtime_cls.call_args
    assert config.service_type == "_svc._tcp.local."
    assert config.duration == datetime.timedelta(seconds=0.2)
    assert [r.full_name for r in records] == ["a._svc.local."]


@pytest.mark.asyncio
async def test_discover_async_returns_records():
    runtime = FakeAdvertisementRuntime(
        FakeSubscription(
            [
                resolved_event("a._svc.local.", 1, ["10.0.0.1"]),
                resolved_event("a._svc.local.", 2, ["10.0.0.2"]),
            ]
        )
    )

    records = await discover_async(
        "_svc._tcp.local.", 0.1, poll_interval=0.01, runtime=runtime
    )

    assert len(records) == 1
    assert records[0].port == 1


@pytest.mark.asyncio
async def test_discover_async_propagates_subscription_error():
    runtime = FakeAdvertisementRuntime(
        open_error=SubscriptionError("no sockets")
    )

    with pytest.raises(SubscriptionError):
        await discover_async("_svc._tcp.local.", runtime=runtime)


@pytest.mark.asyncio
async def test_discover_async_forwards_clock():
    clock = FakeClock()
    subscription = FakeSubscription(clock=clock)

    records = await discover_async(
        "_svc._tcp.local.",
        0.5,
        poll_interval=0.25,
        runtime=FakeAdvertisementRuntime(subscription),
        clock=clock,
    )

    assert records == []
    assert subscription.timeouts == pytest.approx([0.25, 0.25])
    assert clock.now == pytest.approx(1000.5)
