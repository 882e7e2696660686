"""mdns_snapshot package for bounded-duration mDNS service discovery.

This package browses the local network for a single mDNS service type for a
fixed window of time and returns a deduplicated snapshot of the endpoints
that resolved during that window.
"""

from mdns_snapshot.config.discovery_config import DiscoveryConfig
from mdns_snapshot.discovery.discovery_session import (
    DiscoverySession,
    discover,
    discover_async,
)
from mdns_snapshot.discovery.endpoint_record import EndpointRecord
from mdns_snapshot.discovery.errors import (
    DiscoveryError,
    ReceiveError,
    SubscriptionError,
)

__all__ = [
    "DiscoveryConfig",
    "DiscoveryError",
    "DiscoverySession",
    "EndpointRecord",
    "ReceiveError",
    "SubscriptionError",
    "discover",
    "discover_async",
]
