"""Helpers for validating and completing mDNS service type labels."""

import re

_TRANSPORT_SUFFIXES = ("._tcp", "._udp")
_DOMAIN_SUFFIX = ".local."

# Leading underscore, then letters, digits, hyphens or underscores. Must not
# end in a hyphen or contain a double hyphen.
_SERVICE_NAME = re.compile(
    r"^_[A-Za-z0-9](?:[A-Za-z0-9_-]{0,61}[A-Za-z0-9])?$"
)


def normalize_service_type(service_type: str) -> str:
    """Returns the fully-qualified form of an mDNS service type.

    Accepts "_name._tcp.local.", "_name._udp.local.", "_name._tcp",
    "_name._udp" and a bare "_name", which is treated as TCP.

    Args:
        service_type: The service type label to check.

    Returns:
        The label with its transport and ".local." domain suffix.

    Raises:
        TypeError: If `service_type` is not a str.
        ValueError: If the label is not a valid service type.
    """
    if not isinstance(service_type, str):
        raise TypeError(
            f"service_type must be str, got {type(service_type).__name__}."
        )

    label = service_type
    if label.endswith(_DOMAIN_SUFFIX):
        label = label[: -len(_DOMAIN_SUFFIX)]
        if not label.endswith(_TRANSPORT_SUFFIXES):
            raise ValueError(
                f"service_type must end in '._tcp.local.' or '._udp.local.', "
                f"got '{service_type}'."
            )

    transport = "._tcp"
    for suffix in _TRANSPORT_SUFFIXES:
        if label.endswith(suffix):
            transport = suffix
            label = label[: -len(suffix)]
            break

    if not _SERVICE_NAME.match(label) or "--" in label:
        raise ValueError(
            f"service_type must look like '_name._tcp.local.', "
            f"got '{service_type}'."
        )

    return f"{label}{transport}{_DOMAIN_SUFFIX}"
