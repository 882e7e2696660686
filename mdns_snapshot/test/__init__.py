# mdns_snapshot - Test Utilities
# Allows "from mdns_snapshot.test import ..." for shared fakes and helpers.

from mdns_snapshot.test.discovery_fixtures import (
    FakeAdvertisementRuntime,
    FakeClock,
    FakeSubscription,
    resolved_event,
)

__all__ = [
    "FakeAdvertisementRuntime",
    "FakeClock",
    "FakeSubscription",
    "resolved_event",
]
