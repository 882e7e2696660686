"""Raw events delivered by an advertisement subscription."""

import dataclasses
from typing import Dict, List, Optional, Union


@dataclasses.dataclass(frozen=True)
class ResolvedServiceInfo:
    """Connection details of a resolved service, as the protocol reports them.

    Addresses are packed binary IPs (4 bytes for IPv4, 16 for IPv6) and the
    TXT record is left undecoded. `EventNormalizer` turns this into an
    `EndpointRecord`.
    """

    hostname: str
    full_name: str
    addresses: List[Union[bytes, str]]
    port: int
    properties: Dict[bytes, Optional[bytes]]


@dataclasses.dataclass(frozen=True)
class ServiceEvent:
    """Base class for all subscription events."""


@dataclasses.dataclass(frozen=True)
class ServiceFound(ServiceEvent):
    """A service instance was announced but is not resolved yet."""

    service_type: str
    full_name: str


@dataclasses.dataclass(frozen=True)
class ServiceResolved(ServiceEvent):
    """A service instance's addresses, port and TXT record are known."""

    info: ResolvedServiceInfo


@dataclasses.dataclass(frozen=True)
class ServiceRemoved(ServiceEvent):
    """A service instance left the network."""

    service_type: str
    full_name: str
