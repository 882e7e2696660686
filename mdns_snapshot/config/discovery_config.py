# mdns_snapshot/config/discovery_config.py
import datetime
from dataclasses import dataclass
from typing import Literal, Optional, Tuple

IpVersionType = Literal[
    "all",
    "v4",
    "v6",
]

DEFAULT_SERVICE_TYPE = "_aaxion._tcp.local."


@dataclass(frozen=True)
class DiscoveryConfig:
    """Configuration for a single bounded discovery call."""

    service_type: str = DEFAULT_SERVICE_TYPE

    # Total wall-clock window of the call, and the max time one wait for an
    # event may block. The loop overshoots the window by at most one poll.
    duration: datetime.timedelta = datetime.timedelta(seconds=2)
    poll_interval: datetime.timedelta = datetime.timedelta(milliseconds=100)

    # Used by ZeroconfRuntime when resolving a newly announced instance.
    # Each resolution is further capped by the time left in `duration`.
    resolve_timeout: datetime.timedelta = datetime.timedelta(seconds=1)
    ip_version: IpVersionType = "all"
    # IP addresses of the interfaces to browse on. None means all of them.
    interfaces: Optional[Tuple[str, ...]] = None

    # When False, receive failures are logged and treated as poll timeouts.
    raise_on_receive_error: bool = False

    def __post_init__(self) -> None:
        for field_name in ("duration", "poll_interval", "resolve_timeout"):
            value = getattr(self, field_name)
            if not isinstance(value, datetime.timedelta):
                raise TypeError(
                    f"{field_name} must be datetime.timedelta, "
                    f"got {type(value).__name__}."
                )
            if value <= datetime.timedelta(0):
                raise ValueError(
                    f"{field_name} must be positive, got {value}."
                )

        if self.poll_interval >= self.duration:
            raise ValueError(
                f"poll_interval ({self.poll_interval}) must be less than "
                f"duration ({self.duration})."
            )

        if self.ip_version not in ("all", "v4", "v6"):
            raise ValueError(
                f"ip_version must be 'all', 'v4' or 'v6', got "
                f"'{self.ip_version}'."
            )

    @property
    def duration_seconds(self) -> float:
        return self.duration.total_seconds()

    @property
    def poll_interval_seconds(self) -> float:
        return self.poll_interval.total_seconds()

    @property
    def resolve_timeout_ms(self) -> int:
        return int(self.resolve_timeout.total_seconds() * 1000)
