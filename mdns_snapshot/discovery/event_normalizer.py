"""Converts resolved mDNS service info into EndpointRecord instances."""

import logging
import socket
from typing import Dict, List, Optional, Union

from mdns_snapshot.discovery.endpoint_record import EndpointRecord
from mdns_snapshot.discovery.mdns.service_event import ResolvedServiceInfo

_IPV4_PACKED_LEN = 4
_IPV6_PACKED_LEN = 16


def address_to_string(address: Union[bytes, str]) -> str:
    """Returns the textual form of a packed IPv4 or IPv6 address.

    Strings are returned unchanged. No well-formedness check is made beyond
    what is needed to pick the address family.

    Raises:
        ValueError: If `address` is bytes of a length other than 4 or 16.
    """
    if isinstance(address, str):
        return address
    if len(address) == _IPV4_PACKED_LEN:
        return socket.inet_ntop(socket.AF_INET, address)
    if len(address) == _IPV6_PACKED_LEN:
        return socket.inet_ntop(socket.AF_INET6, address)
    raise ValueError(
        f"Packed address must be 4 or 16 bytes, got {len(address)}."
    )


def _decode_text(value: Optional[bytes]) -> str:
    # A TXT key without '=' has no value at all; report it as empty.
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return value.decode("utf-8", errors="replace")


def normalize(info: ResolvedServiceInfo) -> EndpointRecord:
    """Reshapes a resolved service into the canonical `EndpointRecord`.

    Deterministic: address order and duplicates are kept as
    reported, and every TXT entry becomes a string attribute. Packed
    addresses that are neither IPv4 nor IPv6 are logged and left out.

    Args:
        info: The resolution details delivered with a `ServiceResolved`.

    Returns:
        A new `EndpointRecord`.
    """
    addresses: List[str] = []
    for address in info.addresses:
        try:
            addresses.append(address_to_string(address))
        except ValueError as e:
            logging.warning(
                "Skipping address of '%s': %s", info.full_name, e
            )

    attributes: Dict[str, str] = {}
    for key, value in info.properties.items():
        attributes[_decode_text(key)] = _decode_text(value)

    return EndpointRecord(
        hostname=info.hostname,
        full_name=info.full_name,
        addresses=addresses,
        port=info.port,
        attributes=attributes,
    )
