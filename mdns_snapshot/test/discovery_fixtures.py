import socket
import time
from typing import Dict, Iterable, List, Optional, Union

from mdns_snapshot.discovery.mdns.advertisement_runtime import (
    AdvertisementRuntime,
    Subscription,
)
from mdns_snapshot.discovery.mdns.service_event import (
    ResolvedServiceInfo,
    ServiceEvent,
    ServiceResolved,
)

# A scripted subscription step: an event, a timeout (None) or a failure.
ScriptItem = Union[ServiceEvent, Exception, None]


def resolved_event(
    full_name: str,
    port: int,
    addresses: Iterable[str] = (),
    hostname: str = "host.local.",
    properties: Optional[Dict[bytes, Optional[bytes]]] = None,
) -> ServiceResolved:
    """Builds a ServiceResolved event with packed IPv4 addresses."""
    return ServiceResolved(
        ResolvedServiceInfo(
            hostname=hostname,
            full_name=full_name,
            addresses=[socket.inet_aton(a) for a in addresses],
            port=port,
            properties=dict(properties or {}),
        )
    )


class FakeClock:
    __test__ = False

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSubscription(Subscription):
    """Replays a script of events, one per `next_event()` call.

    With a `FakeClock`, a delivered event costs `event_cost` seconds and a
    timeout (a None step, or an exhausted script) costs the full timeout.
    Without one, timeouts really sleep.
    """

    __test__ = False

    def __init__(
        self,
        script: Iterable[ScriptItem] = (),
        clock: Optional[FakeClock] = None,
        event_cost: float = 0.001,
    ) -> None:
        self.script: List[ScriptItem] = list(script)
        self.clock = clock
        self.event_cost = event_cost
        self.timeouts: List[float] = []
        self.close_count = 0

    @property
    def closed(self) -> bool:
        return self.close_count > 0

    def next_event(self, timeout: float) -> Optional[ServiceEvent]:
        assert not self.closed, "next_event() called after close()"
        self.timeouts.append(timeout)

        item = self.script.pop(0) if self.script else None
        if self.clock is not None:
            self.clock.advance(timeout if item is None else self.event_cost)
        elif item is None:
            time.sleep(timeout)
        if isinstance(item, Exception):
            raise item
        return item

    def close(self) -> None:
        self.close_count += 1


class FakeAdvertisementRuntime(AdvertisementRuntime):
    __test__ = False

    def __init__(
        self,
        subscription: Optional[Subscription] = None,
        open_error: Optional[Exception] = None,
    ) -> None:
        self.subscription = (
            subscription if subscription is not None else FakeSubscription()
        )
        self.open_error = open_error
        self.opened_types: List[str] = []

    def open_subscription(self, service_type: str) -> Subscription:
        self.opened_types.append(service_type)
        if self.open_error is not None:
            raise self.open_error
        return self.subscription
