"""Entity types and temporary identifier allocation."""

import time
from enum import Enum


class EntityType(str, Enum):
    """Kinds of entities held by the entity store."""

    PRODUCT = "product"
    CUSTOMER = "customer"
    SALE = "sale"


# Server identifiers are expected well below this; clock-derived ids are above it.
TEMP_ID_FLOOR = 10**12


def is_temporary_id(entity_id: int | str | None) -> bool:
    """True if the identifier was allocated locally and awaits a server id."""
    return isinstance(entity_id, int) and entity_id >= TEMP_ID_FLOOR


class TemporaryIdFactory:
    """
    Allocates temporary identifiers from the wall clock in milliseconds.

    Identifiers are strictly increasing within a process, so two creates in the
    same millisecond still get distinct values.
    """

    def __init__(self, floor: int = TEMP_ID_FLOOR):
        self._floor = floor
        self._last = 0

    def observe(self, entity_id: int | str | None) -> None:
        """Make sure future allocations stay above an id loaded from storage."""
        if is_temporary_id(entity_id) and entity_id > self._last:  # type: ignore[operator]
            self._last = entity_id  # type: ignore[assignment]

    def next_id(self) -> int:
        candidate = max(time.time_ns() // 1_000_000, self._floor)
        if candidate <= self._last:
            candidate = self._last + 1
        self._last = candidate
        return candidate
