"""Indexed table of devices discovered while scanning."""

import logging
import threading
from dataclasses import dataclass

logger = logging.getLogger(__name__)

UNKNOWN_NAME = "Unknown"


@dataclass(frozen=True)
class DeviceIdentity:
    address: int
    name: str = UNKNOWN_NAME


class DeviceRegistry:
    """Maps 1-based indices to devices in the order they were first seen."""

    def __init__(self):
        self._by_index: dict[int, DeviceIdentity] = {}
        self._seen: set[int] = set()
        self._lock = threading.Lock()

    def observe(self, identity: DeviceIdentity) -> int | None:
        """Register a device.

        Returns:
            The newly assigned index, or None if the address was already known
        """
        with self._lock:
            if identity.address in self._seen:
                return None
            self._seen.add(identity.address)
            index = len(self._by_index) + 1
            self._by_index[index] = identity
        logger.debug("Registered [%d] %s", index, identity.name)
        return index

    def resolve(self, index: int) -> DeviceIdentity | None:
        return self._by_index.get(index)

    def entries(self) -> list[tuple[int, DeviceIdentity]]:
        with self._lock:
            return sorted(self._by_index.items())

    def __len__(self) -> int:
        return len(self._by_index)
