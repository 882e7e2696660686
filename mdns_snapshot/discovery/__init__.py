"""Initializes the mdns_snapshot.discovery package and exposes its API.

This package contains the discovery session, which browses for one mDNS
service type for a bounded time, along with the pieces it is built from:
event normalization, deduplicating collection and the error taxonomy.
"""

from mdns_snapshot.discovery.discovery_session import (
    DiscoverySession,
    discover,
    discover_async,
)
from mdns_snapshot.discovery.endpoint_collector import EndpointCollector
from mdns_snapshot.discovery.endpoint_record import EndpointRecord
from mdns_snapshot.discovery.errors import (
    DiscoveryError,
    ReceiveError,
    SubscriptionError,
)
from mdns_snapshot.discovery.event_normalizer import normalize
from mdns_snapshot.discovery.service_type import normalize_service_type

__all__ = [
    "DiscoveryError",
    "DiscoverySession",
    "EndpointCollector",
    "EndpointRecord",
    "ReceiveError",
    "SubscriptionError",
    "discover",
    "discover_async",
    "normalize",
    "normalize_service_type",
]
