"""Advertisement-protocol collaborators used by a discovery session.

`AdvertisementRuntime` and `Subscription` describe what a discovery session
needs from the protocol layer. `ZeroconfRuntime` implements them on top of
the `zeroconf` library.
"""

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
from mdns_snapshot.discovery.mdns.zeroconf_runtime import ZeroconfRuntime

__all__ = [
    "AdvertisementRuntime",
    "ResolvedServiceInfo",
    "ServiceEvent",
    "ServiceFound",
    "ServiceRemoved",
    "ServiceResolved",
    "Subscription",
    "ZeroconfRuntime",
]
