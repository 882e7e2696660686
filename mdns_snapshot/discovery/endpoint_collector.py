"""Defines EndpointCollector, which deduplicates records by full name."""

import logging
from typing import List, Set

from mdns_snapshot.discovery.endpoint_record import EndpointRecord


class EndpointCollector:
    """Ordered set of `EndpointRecord`s keyed by `full_name`.

    The first record offered for a given name is kept as-is. Later records
    with the same name are discarded rather than merged, even if their
    addresses or attributes differ.
    """

    def __init__(self) -> None:
        self.__records: List[EndpointRecord] = []
        self.__seen_names: Set[str] = set()

    def offer(self, record: EndpointRecord) -> bool:
        """Adds `record` unless its `full_name` was already collected.

        Returns:
            True if the record was added, False if it was a duplicate.
        """
        if record.full_name in self.__seen_names:
            logging.debug(
                "Discarding duplicate resolution for '%s'.", record.full_name
            )
            return False

        self.__seen_names.add(record.full_name)
        self.__records.append(record)
        return True

    def snapshot(self) -> List[EndpointRecord]:
        """Returns the collected records in first-seen order, as a new list."""
        return list(self.__records)

    def __len__(self) -> int:
        return len(self.__records)

    def __contains__(self, full_name: object) -> bool:
        return full_name in self.__seen_names
