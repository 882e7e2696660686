"""AdvertisementRuntime ABC and the Subscription it hands out."""

from abc import ABC, abstractmethod
from types import TracebackType
from typing import Optional, Type

from mdns_snapshot.discovery.mdns.service_event import ServiceEvent


class Subscription(ABC):
    """An open browse for one service type.

    Events are pulled by the owner with `next_event()`. A subscription is
    owned by exactly one discovery session and must be closed on every exit
    path, which the context manager protocol takes care of.
    """

    @abstractmethod
    def next_event(self, timeout: float) -> Optional[ServiceEvent]:
        """Waits up to `timeout` seconds for the next event.

        Args:
            timeout: Max time in seconds to block.

        Returns:
            The next event, or None if nothing arrived in time.

        Raises:
            ReceiveError: If the event source reported a failure.
        """
        raise NotImplementedError(
            "Subscription.next_event must be implemented by subclasses."
        )

    @abstractmethod
    def close(self) -> None:
        """Stops browsing and releases all resources. Safe to call twice."""
        raise NotImplementedError(
            "Subscription.close must be implemented by subclasses."
        )

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        self.close()


class AdvertisementRuntime(ABC):
    """Entry point into the service advertisement protocol."""

    @abstractmethod
    def open_subscription(self, service_type: str) -> Subscription:
        """Starts browsing for `service_type`.

        Args:
            service_type: Fully-qualified type, e.g. "_aaxion._tcp.local.".

        Returns:
            A new `Subscription` owned by the caller.

        Raises:
            SubscriptionError: If browsing could not be started.
        """
        raise NotImplementedError(
            "AdvertisementRuntime.open_subscription must be implemented by "
            "subclasses."
        )
