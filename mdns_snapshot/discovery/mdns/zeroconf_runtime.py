"""AdvertisementRuntime backed by the `zeroconf` library."""

import logging
import time
from typing import Callable, Optional, Union

from zeroconf import (
    Error as ZeroconfError,
    InterfaceChoice,
    IPVersion,
    ServiceBrowser,
    ServiceListener,
    Zeroconf,
)

from mdns_snapshot.config.discovery_config import DiscoveryConfig
from mdns_snapshot.discovery.errors import ReceiveError, SubscriptionError
from mdns_snapshot.discovery.mdns.advertisement_runtime import (
    AdvertisementRuntime,
    Subscription,
)
from mdns_snapshot.discovery.mdns.service_event import (
    ResolvedServiceInfo,
    ServiceEvent,
    ServiceFound,
    ServiceRemoved,
    ServiceResolved,
)
from mdns_snapshot.threading.thread_safe_queue import ThreadSafeQueue

_IP_VERSIONS = {
    "all": IPVersion.All,
    "v4": IPVersion.V4Only,
    "v6": IPVersion.V6Only,
}

QueueItem = Union[ServiceEvent, ReceiveError]
Clock = Callable[[], float]


class EventListener(ServiceListener):
    """Turns `zeroconf` browser callbacks into queued `ServiceEvent`s.

    Callbacks arrive on the `ServiceBrowser` thread. New and updated
    services are resolved there, synchronously, before being queued. No
    resolution may run past `deadline`, since cancelling the browser waits
    for the one in flight.
    """

    def __init__(
        self,
        events: ThreadSafeQueue[QueueItem],
        service_type: str,
        *,
        ip_version: IPVersion = IPVersion.All,
        resolve_timeout_ms: int = 1000,
        deadline: Optional[float] = None,
        clock: Clock = time.monotonic,
    ) -> None:
        """Initializes the EventListener.

        Args:
            events: Queue the events are pushed to.
            service_type: Fully-qualified type, e.g. "_aaxion._tcp.local.".
                          Callbacks for other types are ignored.
            ip_version: Which address families to report.
            resolve_timeout_ms: Max time one resolution may take.
            deadline: `clock()` value after which nothing is resolved.
                      None means no limit beyond `resolve_timeout_ms`.
            clock: Monotonic time source, in seconds.
        """
        super().__init__()
        self.__events = events
        self.__expected_type = service_type
        self.__ip_version = ip_version
        self.__resolve_timeout_ms = resolve_timeout_ms
        self.__deadline = deadline
        self.__clock = clock

    # --- ServiceListener interface methods ---

    def add_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        """Called by `zeroconf` when a new service is discovered."""
        if not self.__is_expected_type(type_, name):
            return

        logging.debug("Service found: type='%s', name='%s'", type_, name)
        self.__events.push(ServiceFound(type_, name))
        self.__resolve(zc, type_, name)

    def update_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        """Called by `zeroconf` when a service's records change."""
        if not self.__is_expected_type(type_, name):
            return

        logging.debug("Service updated: type='%s', name='%s'", type_, name)
        self.__resolve(zc, type_, name)

    def remove_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        """Called by `zeroconf` when a service leaves the network."""
        if not self.__is_expected_type(type_, name):
            return

        logging.debug("Service removed: type='%s', name='%s'", type_, name)
        self.__events.push(ServiceRemoved(type_, name))

    def __is_expected_type(self, type_: str, name: str) -> bool:
        if type_.lower() == self.__expected_type.lower():
            return True

        logging.debug(
            "Ignoring event for '%s', type '%s'. Expected '%s'.",
            name,
            type_,
            self.__expected_type,
        )
        return False

    def __resolve_budget_ms(self) -> int:
        if self.__deadline is None:
            return self.__resolve_timeout_ms
        remaining_ms = int((self.__deadline - self.__clock()) * 1000)
        return min(self.__resolve_timeout_ms, remaining_ms)

    def __resolve(self, zc: Zeroconf, type_: str, name: str) -> None:
        timeout_ms = self.__resolve_budget_ms()
        if timeout_ms <= 0:
            logging.debug(
                "Not resolving '%s' type '%s': discovery window is over.",
                name,
                type_,
            )
            return

        try:
            info = zc.get_service_info(type_, name, timeout=timeout_ms)
        except Exception as e:  # pylint: disable=broad-exception-caught
            # Handed to the consumer, which raises it from next_event().
            logging.error(
                "Resolving '%s' type '%s' failed: %s", name, type_, e
            )
            error = ReceiveError(f"Failed to resolve '{name}': {e}")
            error.__cause__ = e
            self.__events.push(error)
            return

        if info is None:
            logging.error(
                "Failed to get info for service '%s' type '%s'.", name, type_
            )
            return

        if info.port is None:
            logging.error("No port for service '%s' type '%s'.", name, type_)
            return

        addresses = info.addresses_by_version(self.__ip_version)
        if not addresses:
            logging.warning(
                "No addresses for service '%s' type '%s'.", name, type_
            )

        resolved = ResolvedServiceInfo(
            hostname=info.server or "",
            full_name=info.name,
            addresses=list(addresses),
            port=info.port,
            properties=dict(info.properties),
        )
        self.__events.push(ServiceResolved(resolved))


class ZeroconfSubscription(Subscription):
    """A running `ServiceBrowser` plus the queue its listener feeds."""

    def __init__(
        self,
        mdns: Zeroconf,
        service_type: str,
        *,
        owns_mdns: bool,
        ip_version: IPVersion = IPVersion.All,
        resolve_timeout_ms: int = 1000,
        deadline: Optional[float] = None,
        clock: Clock = time.monotonic,
    ) -> None:
        """Initializes the subscription. Browsing starts with `start()`.

        Args:
            mdns: The `Zeroconf` instance to browse with.
            service_type: Fully-qualified type, e.g. "_aaxion._tcp.local.".
            owns_mdns: Whether `close()` should also close `mdns`.
            ip_version: Which address families to report.
            resolve_timeout_ms: Max time one resolution may take.
            deadline: `clock()` value after which nothing is resolved.
            clock: Monotonic time source, in seconds.
        """
        self.__mdns = mdns
        self.__owns_mdns = owns_mdns
        self.__service_type = service_type
        self.__events: ThreadSafeQueue[QueueItem] = ThreadSafeQueue()
        self.__listener = EventListener(
            self.__events,
            service_type,
            ip_version=ip_version,
            resolve_timeout_ms=resolve_timeout_ms,
            deadline=deadline,
            clock=clock,
        )
        self.__browser: Optional[ServiceBrowser] = None

    def start(self) -> None:
        self.__browser = ServiceBrowser(
            self.__mdns, self.__service_type, listener=self.__listener
        )

    def next_event(self, timeout: float) -> Optional[ServiceEvent]:
        if self.__events.closed:
            raise ReceiveError(
                f"Subscription for {self.__service_type} is closed."
            )

        item = self.__events.pop(timeout)
        if isinstance(item, ReceiveError):
            raise item
        return item

    def close(self) -> None:
        if self.__events.closed:
            return

        # Closed first so callbacks racing with shutdown are dropped.
        self.__events.close()

        if self.__browser is not None:
            logging.info(
                "Cancelling ServiceBrowser for %s", self.__service_type
            )
            self.__browser.cancel()
            self.__browser = None

        if self.__owns_mdns:
            logging.info(
                "Closing owned Zeroconf instance for %s", self.__service_type
            )
            self.__mdns.close()
        else:
            logging.info(
                "Not closing shared Zeroconf instance for %s",
                self.__service_type,
            )


class ZeroconfRuntime(AdvertisementRuntime):
    """Opens `ZeroconfSubscription`s.

    Each subscription gets its own `Zeroconf` instance unless a shared one is
    passed in, in which case subscriptions never close it. A subscription
    stops resolving services once `config.duration` has passed since it was
    opened.
    """

    def __init__(
        self,
        config: Optional[DiscoveryConfig] = None,
        zc_instance: Optional[Zeroconf] = None,
        *,
        clock: Clock = time.monotonic,
    ) -> None:
        self.__config = config if config is not None else DiscoveryConfig()
        self.__shared_mdns = zc_instance
        self.__clock = clock

    def open_subscription(self, service_type: str) -> Subscription:
        config = self.__config
        ip_version = _IP_VERSIONS[config.ip_version]
        # Resolutions must end with the caller's discovery window.
        deadline = self.__clock() + config.duration_seconds

        mdns: Zeroconf
        if self.__shared_mdns is not None:
            mdns = self.__shared_mdns
            logging.info("Using shared Zeroconf for type: %s", service_type)
        else:
            interfaces = (
                list(config.interfaces)
                if config.interfaces is not None
                else InterfaceChoice.All
            )
            try:
                mdns = Zeroconf(interfaces=interfaces, ip_version=ip_version)
            except (ZeroconfError, OSError, RuntimeError, ValueError) as e:
                raise SubscriptionError(
                    f"Could not start mDNS for {service_type}: {e}"
                ) from e
            logging.info("Created new Zeroconf for type: %s", service_type)

        subscription = ZeroconfSubscription(
            mdns,
            service_type,
            owns_mdns=self.__shared_mdns is None,
            ip_version=ip_version,
            resolve_timeout_ms=config.resolve_timeout_ms,
            deadline=deadline,
            clock=self.__clock,
        )
        try:
            subscription.start()
        except (ZeroconfError, OSError, RuntimeError) as e:
            subscription.close()
            raise SubscriptionError(
                f"Could not browse for {service_type}: {e}"
            ) from e

        return subscription
