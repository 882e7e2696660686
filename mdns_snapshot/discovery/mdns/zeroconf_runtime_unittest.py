import datetime
import socket

import pytest
from unittest.mock import ANY, MagicMock
from zeroconf import (
    BadTypeInNameException,
    InterfaceChoice,
    IPVersion,
    ServiceInfo,
    Zeroconf,
)

from mdns_snapshot.config.discovery_config import DiscoveryConfig
from mdns_snapshot.discovery.errors import ReceiveError, SubscriptionError
from mdns_snapshot.discovery.mdns.service_event import (
    ResolvedServiceInfo,
    ServiceFound,
    ServiceRemoved,
    ServiceResolved,
)
from mdns_snapshot.discovery.mdns.zeroconf_runtime import ZeroconfRuntime
from mdns_snapshot.test.discovery_fixtures import FakeClock

SERVICE_TYPE = "_aaxion._tcp.local."
INSTANCE_NAME = f"nas.{SERVICE_TYPE}"
MODULE = "mdns_snapshot.discovery.mdns.zeroconf_runtime"


@pytest.fixture
def mock_zeroconf_cls(mocker):
    zc_cls = mocker.patch(f"{MODULE}.Zeroconf")
    zc_cls.return_value = MagicMock(spec=Zeroconf, name="owned_zc")
    return zc_cls


@pytest.fixture
def mock_browser_cls(mocker):
    return mocker.patch(f"{MODULE}.ServiceBrowser")


def listener_of(browser_cls):
    return browser_cls.call_args.kwargs["listener"]


def make_service_info(port=8080, properties=None):
    return ServiceInfo(
        SERVICE_TYPE,
        INSTANCE_NAME,
        port=port,
        properties=properties or {b"version": b"1.0"},
        server="nas.local.",
        addresses=[socket.inet_aton("192.168.1.20")],
    )


def make_zc(info=None, error=None):
    zc = MagicMock(spec=Zeroconf, name="callback_zc")
    if error is not None:
        zc.get_service_info.side_effect = error
    else:
        zc.get_service_info.return_value = info
    return zc


def drain(subscription):
    events = []
    while (event := subscription.next_event(0)) is not None:
        events.append(event)
    return events


class TestOpenSubscription:

    def test_owned_zeroconf_is_created_and_closed(
        self, mock_zeroconf_cls, mock_browser_cls
    ):
        runtime = ZeroconfRuntime()

        subscription = runtime.open_subscription(SERVICE_TYPE)

        mock_zeroconf_cls.assert_called_once_with(
            interfaces=InterfaceChoice.All, ip_version=IPVersion.All
        )
        owned_zc = mock_zeroconf_cls.return_value
        mock_browser_cls.assert_called_once_with(
            owned_zc, SERVICE_TYPE, listener=ANY
        )

        subscription.close()

        mock_browser_cls.return_value.cancel.assert_called_once()
        owned_zc.close.assert_called_once()

    def test_close_is_idempotent(self, mock_zeroconf_cls, mock_browser_cls):
        subscription = ZeroconfRuntime().open_subscription(SERVICE_TYPE)

        subscription.close()
        subscription.close()

        mock_browser_cls.return_value.cancel.assert_called_once()
        mock_zeroconf_cls.return_value.close.assert_called_once()

    def test_context_manager_closes(self, mock_zeroconf_cls, mock_browser_cls):
        with ZeroconfRuntime().open_subscription(SERVICE_TYPE):
            pass

        mock_zeroconf_cls.return_value.close.assert_called_once()

    def test_shared_zeroconf_is_not_closed(
        self, mock_zeroconf_cls, mock_browser_cls
    ):
        shared_zc = MagicMock(spec=Zeroconf, name="shared_zc")
        runtime = ZeroconfRuntime(zc_instance=shared_zc)

        subscription = runtime.open_subscription(SERVICE_TYPE)
        subscription.close()

        mock_zeroconf_cls.assert_not_called()
        mock_browser_cls.assert_called_once_with(
            shared_zc, SERVICE_TYPE, listener=ANY
        )
        mock_browser_cls.return_value.cancel.assert_called_once()
        shared_zc.close.assert_not_called()

    def test_config_controls_interfaces_and_ip_version(
        self, mock_zeroconf_cls, mock_browser_cls
    ):
        config = DiscoveryConfig(ip_version="v4", interfaces=("127.0.0.1",))

        ZeroconfRuntime(config).open_subscription(SERVICE_TYPE).close()

        mock_zeroconf_cls.assert_called_once_with(
            interfaces=["127.0.0.1"], ip_version=IPVersion.V4Only
        )

    def test_zeroconf_failure_raises_subscription_error(
        self, mock_zeroconf_cls, mock_browser_cls
    ):
        mock_zeroconf_cls.side_effect = OSError("Address already in use")

        with pytest.raises(SubscriptionError) as exc_info:
            ZeroconfRuntime().open_subscription(SERVICE_TYPE)

        assert isinstance(exc_info.value.__cause__, OSError)
        mock_browser_cls.assert_not_called()

    def test_browser_failure_closes_owned_zeroconf(
        self, mock_zeroconf_cls, mock_browser_cls
    ):
        mock_browser_cls.side_effect = BadTypeInNameException("bad type")

        with pytest.raises(SubscriptionError) as exc_info:
            ZeroconfRuntime().open_subscription(SERVICE_TYPE)

        assert isinstance(exc_info.value.__cause__, BadTypeInNameException)
        mock_zeroconf_cls.return_value.close.assert_called_once()


class TestSubscriptionEvents:

    @pytest.fixture
    def subscription(self, mock_zeroconf_cls, mock_browser_cls):
        config = DiscoveryConfig(
            resolve_timeout=datetime.timedelta(milliseconds=250)
        )
        subscription = ZeroconfRuntime(config).open_subscription(SERVICE_TYPE)
        yield subscription
        subscription.close()

    def test_added_service_is_found_then_resolved(
        self, subscription, mock_browser_cls
    ):
        zc = make_zc(make_service_info())

        listener_of(mock_browser_cls).add_service(
            zc, SERVICE_TYPE, INSTANCE_NAME
        )

        zc.get_service_info.assert_called_once_with(
            SERVICE_TYPE, INSTANCE_NAME, timeout=250
        )
        assert drain(subscription) == [
            ServiceFound(SERVICE_TYPE, INSTANCE_NAME),
            ServiceResolved(
                ResolvedServiceInfo(
                    hostname="nas.local.",
                    full_name=INSTANCE_NAME,
                    addresses=[socket.inet_aton("192.168.1.20")],
                    port=8080,
                    properties={b"version": b"1.0"},
                )
            ),
        ]

    def test_updated_service_is_resolved_again(
        self, subscription, mock_browser_cls
    ):
        zc = make_zc(make_service_info(port=9090))

        listener_of(mock_browser_cls).update_service(
            zc, SERVICE_TYPE, INSTANCE_NAME
        )

        events = drain(subscription)
        assert len(events) == 1
        assert isinstance(events[0], ServiceResolved)
        assert events[0].info.port == 9090

    def test_removed_service(self, subscription, mock_browser_cls):
        listener_of(mock_browser_cls).remove_service(
            make_zc(), SERVICE_TYPE, INSTANCE_NAME
        )

        assert drain(subscription) == [
            ServiceRemoved(SERVICE_TYPE, INSTANCE_NAME)
        ]

    def test_other_service_types_are_ignored(
        self, subscription, mock_browser_cls
    ):
        zc = make_zc(make_service_info())
        listener = listener_of(mock_browser_cls)

        listener.add_service(zc, "_http._tcp.local.", "web._http._tcp.local.")
        listener.remove_service(
            zc, "_http._tcp.local.", "web._http._tcp.local."
        )

        zc.get_service_info.assert_not_called()
        assert subscription.next_event(0) is None

    def test_unresolvable_service_only_reports_found(
        self, subscription, mock_browser_cls
    ):
        listener_of(mock_browser_cls).add_service(
            make_zc(info=None), SERVICE_TYPE, INSTANCE_NAME
        )

        assert drain(subscription) == [
            ServiceFound(SERVICE_TYPE, INSTANCE_NAME)
        ]

    def test_resolution_failure_surfaces_as_receive_error(
        self, subscription, mock_browser_cls
    ):
        listener_of(mock_browser_cls).add_service(
            make_zc(error=RuntimeError("zeroconf is closed")),
            SERVICE_TYPE,
            INSTANCE_NAME,
        )

        assert isinstance(subscription.next_event(0), ServiceFound)
        with pytest.raises(ReceiveError) as exc_info:
            subscription.next_event(0)
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert subscription.next_event(0) is None

    def test_next_event_after_close_raises(self, subscription):
        subscription.close()

        with pytest.raises(ReceiveError):
            subscription.next_event(0)

    def test_callbacks_after_close_are_dropped(
        self, subscription, mock_browser_cls
    ):
        listener = listener_of(mock_browser_cls)
        subscription.close()

        listener.add_service(
            make_zc(make_service_info()), SERVICE_TYPE, INSTANCE_NAME
        )

        with pytest.raises(ReceiveError):
            subscription.next_event(0)

    def test_next_event_times_out_with_none(self, subscription):
        assert subscription.next_event(0.01) is None


class TestResolutionWindow:

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def subscription(self, clock, mock_zeroconf_cls, mock_browser_cls):
        config = DiscoveryConfig(
            duration=datetime.timedelta(seconds=2),
            resolve_timeout=datetime.timedelta(seconds=1),
        )
        runtime = ZeroconfRuntime(config, clock=clock)
        subscription = runtime.open_subscription(SERVICE_TYPE)
        yield subscription
        subscription.close()

    def test_resolve_timeout_used_while_window_allows(
        self, subscription, mock_browser_cls
    ):
        zc = make_zc(make_service_info())

        listener_of(mock_browser_cls).add_service(
            zc, SERVICE_TYPE, INSTANCE_NAME
        )

        zc.get_service_info.assert_called_once_with(
            SERVICE_TYPE, INSTANCE_NAME, timeout=1000
        )

    def test_resolve_timeout_capped_by_time_left(
        self, clock, subscription, mock_browser_cls
    ):
        zc = make_zc(make_service_info())
        clock.advance(1.5)

        listener_of(mock_browser_cls).update_service(
            zc, SERVICE_TYPE, INSTANCE_NAME
        )

        zc.get_service_info.assert_called_once_with(
            SERVICE_TYPE, INSTANCE_NAME, timeout=500
        )
        assert isinstance(subscription.next_event(0), ServiceResolved)

    def test_nothing_resolved_after_window(
        self, clock, subscription, mock_browser_cls
    ):
        zc = make_zc(make_service_info())
        clock.advance(2.0)

        listener_of(mock_browser_cls).add_service(
            zc, SERVICE_TYPE, INSTANCE_NAME
        )

        zc.get_service_info.assert_not_called()
        assert drain(subscription) == [
            ServiceFound(SERVICE_TYPE, INSTANCE_NAME)
        ]
