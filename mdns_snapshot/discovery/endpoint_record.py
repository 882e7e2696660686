"""Defines the EndpointRecord class describing one discovered server."""

import dataclasses
from typing import Any, Dict, List


@dataclasses.dataclass(frozen=True)
class EndpointRecord:
    """Represents a resolved service instance found during discovery.

    `full_name` is the logical identity of the instance (for example
    "office._aaxion._tcp.local."). Two records with the same `full_name`
    describe the same real-world service, even when their addresses differ.
    """

    hostname: str
    full_name: str
    addresses: List[str]
    port: int
    attributes: Dict[str, str]

    def as_dict(self) -> Dict[str, Any]:
        """Returns a plain mapping suitable for handing to a host application.

        Keys follow the host-facing naming: `fullname` and `txt` rather than
        the attribute names used in Python.
        """
        return {
            "hostname": self.hostname,
            "fullname": self.full_name,
            "addresses": list(self.addresses),
            "port": self.port,
            "txt": dict(self.attributes),
        }
