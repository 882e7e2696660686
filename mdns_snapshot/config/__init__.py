"""Configuration objects for discovery sessions."""

from mdns_snapshot.config.discovery_config import (
    DEFAULT_SERVICE_TYPE,
    DiscoveryConfig,
    IpVersionType,
)

__all__ = ["DEFAULT_SERVICE_TYPE", "DiscoveryConfig", "IpVersionType"]
