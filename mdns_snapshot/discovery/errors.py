"""Exceptions raised by a discovery session."""


class DiscoveryError(Exception):
    """Base class for all failures surfaced by a discovery call."""


class SubscriptionError(DiscoveryError):
    """Raised when a subscription for a service type cannot be opened.

    Covers transport or socket failures, resource exhaustion, and service
    type labels that the advertisement protocol rejects. Always fatal to the
    call that raised it.
    """


class ReceiveError(DiscoveryError):
    """Raised by a subscription when the event source reports a failure."""
