"""Runs one bounded-duration mDNS discovery and returns a snapshot."""

import asyncio
import dataclasses
import datetime
import logging
import threading
import time
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Union

from mdns_snapshot.config.discovery_config import DiscoveryConfig
from mdns_snapshot.discovery.endpoint_collector import EndpointCollector
from mdns_snapshot.discovery.endpoint_record import EndpointRecord
from mdns_snapshot.discovery.errors import ReceiveError, SubscriptionError
from mdns_snapshot.discovery.event_normalizer import normalize
from mdns_snapshot.discovery.mdns.advertisement_runtime import (
    AdvertisementRuntime,
    Subscription,
)
from mdns_snapshot.discovery.mdns.service_event import (
    ServiceEvent,
    ServiceResolved,
)
from mdns_snapshot.discovery.mdns.zeroconf_runtime import ZeroconfRuntime
from mdns_snapshot.discovery.service_type import normalize_service_type

DurationLike = Union[datetime.timedelta, float, int]
Clock = Callable[[], float]


class DiscoverySession:
    """Owns the subscription, deadline and results of one discovery call.

    A session is single-use: `run()` opens one subscription, drains it until
    the deadline passes (or `cancel_event` is set), closes it, and returns
    the records collected along the way. Sessions share nothing with each
    other, so any number may run concurrently on different threads.
    """

    def __init__(
        self,
        runtime: AdvertisementRuntime,
        config: DiscoveryConfig,
        *,
        cancel_event: Optional[threading.Event] = None,
        clock: Clock = time.monotonic,
    ) -> None:
        """Initializes the DiscoverySession.

        Args:
            runtime: Source of subscriptions for the advertisement protocol.
            config: Service type and timing for this call.
            cancel_event: When set, ends the session early at the next
                          deadline check. Records found so far are kept.
            clock: Monotonic time source, in seconds.

        Raises:
            ValueError: If `runtime` or `config` is None.
        """
        if runtime is None:
            raise ValueError("runtime cannot be None for DiscoverySession.")
        if config is None:
            raise ValueError("config cannot be None for DiscoverySession.")

        self.__runtime = runtime
        self.__config = config
        self.__cancel_event = cancel_event
        self.__clock = clock
        self.__collector = EndpointCollector()
        self.__has_run = False

    def run(self) -> List[EndpointRecord]:
        """Collects resolved services until the deadline passes.

        Returns:
            Distinct records in the order they were first resolved. Empty if
            nothing resolved in time.

        Raises:
            SubscriptionError: If the service type is invalid or the
                subscription could not be opened. No polling takes place.
            ReceiveError: Only if `raise_on_receive_error` is configured.
            RuntimeError: If the session was already run.
        """
        if self.__has_run:
            raise RuntimeError(
                "DiscoverySession.run() may only be called once."
            )
        self.__has_run = True

        try:
            service_type = normalize_service_type(self.__config.service_type)
        except ValueError as e:
            raise SubscriptionError(str(e)) from e

        deadline = self.__clock() + self.__config.duration_seconds
        logging.info(
            "Browsing for %s for up to %.3fs",
            service_type,
            self.__config.duration_seconds,
        )

        with self.__runtime.open_subscription(service_type) as subscription:
            self.__drain(subscription, deadline)

        records = self.__collector.snapshot()
        logging.info(
            "Discovery of %s finished with %d endpoint(s).",
            service_type,
            len(records),
        )
        return records

    def __drain(self, subscription: Subscription, deadline: float) -> None:
        poll_interval = self.__config.poll_interval_seconds
        while True:
            cancel_event = self.__cancel_event
            if cancel_event is not None and cancel_event.is_set():
                logging.info("Discovery cancelled before its deadline.")
                return

            remaining = deadline - self.__clock()
            if remaining <= 0:
                return

            event = self.__receive(subscription, min(poll_interval, remaining))
            if event is not None:
                self.__handle(event)

    def __receive(
        self, subscription: Subscription, timeout: float
    ) -> Optional[ServiceEvent]:
        try:
            return subscription.next_event(timeout)
        except ReceiveError as e:
            if self.__config.raise_on_receive_error:
                raise
            logging.warning("Treating receive failure as a timeout: %s", e)
            return None

    def __handle(self, event: ServiceEvent) -> None:
        if not isinstance(event, ServiceResolved):
            logging.debug("Ignoring %s event.", type(event).__name__)
            return

        record = normalize(event.info)
        if self.__collector.offer(record):
            logging.info(
                "Discovered '%s' on %s port %d",
                record.full_name,
                record.addresses,
                record.port,
            )


def _as_timedelta(value: DurationLike) -> datetime.timedelta:
    if isinstance(value, datetime.timedelta):
        return value
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(
            f"Expected timedelta or seconds, got {type(value).__name__}."
        )
    return datetime.timedelta(seconds=value)


def discover(
    service_type: Optional[str] = None,
    duration: Optional[DurationLike] = None,
    *,
    poll_interval: Optional[DurationLike] = None,
    config: Optional[DiscoveryConfig] = None,
    runtime: Optional[AdvertisementRuntime] = None,
    cancel_event: Optional[threading.Event] = None,
    clock: Clock = time.monotonic,
) -> List[EndpointRecord]:
    """Browses for `service_type` for `duration` and returns what resolved.

    Arguments left as None fall back to `config`, and `config` falls back to
    `DiscoveryConfig()` (2 seconds of "_aaxion._tcp.local.", polling every
    100 ms).

    Args:
        service_type: mDNS service type, e.g. "_aaxion._tcp.local.".
        duration: Total time to browse, as a timedelta or seconds.
        poll_interval: Max time a single wait may block. When omitted and
                       the inherited value does not fit inside `duration`,
                       half of `duration` is used.
        config: Base configuration.
        runtime: Advertisement-protocol runtime. Defaults to a
                 `ZeroconfRuntime` built from the effective config.
        cancel_event: Optional early-stop signal.
        clock: Monotonic time source, in seconds.

    Returns:
        The deduplicated endpoints, in first-seen order.

    Raises:
        SubscriptionError: If browsing could not be started.
        ValueError: If the timing arguments are invalid.
    """
    effective_config = config if config is not None else DiscoveryConfig()

    overrides: Dict[str, Any] = {}
    if service_type is not None:
        overrides["service_type"] = service_type
    if duration is not None:
        overrides["duration"] = _as_timedelta(duration)
    if poll_interval is not None:
        overrides["poll_interval"] = _as_timedelta(poll_interval)
    elif (
        "duration" in overrides
        and effective_config.poll_interval >= overrides["duration"]
    ):
        # An inherited poll interval is shrunk to fit a shorter window.
        overrides["poll_interval"] = overrides["duration"] / 2

    if overrides:
        effective_config = dataclasses.replace(effective_config, **overrides)

    if runtime is None:
        runtime = ZeroconfRuntime(effective_config, clock=clock)

    session = DiscoverySession(
        runtime, effective_config, cancel_event=cancel_event, clock=clock
    )
    return session.run()


async def discover_async(
    service_type: Optional[str] = None,
    duration: Optional[DurationLike] = None,
    *,
    poll_interval: Optional[DurationLike] = None,
    config: Optional[DiscoveryConfig] = None,
    runtime: Optional[AdvertisementRuntime] = None,
    cancel_event: Optional[threading.Event] = None,
    clock: Clock = time.monotonic,
) -> List[EndpointRecord]:
    """Runs `discover()` on the running loop's default executor.

    Takes the same arguments as `discover()`. The event loop stays free
    while the blocking browse is in progress.
    """
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(
        None,
        partial(
            discover,
            service_type,
            duration,
            poll_interval=poll_interval,
            config=config,
            runtime=runtime,
            cancel_event=cancel_event,
            clock=clock,
        ),
    )
