from datetime import datetime
from decimal import Decimal
import re
from typing import Optional
from uuid import UUID

import attrs


DEFAULT_TABLE_SEATS = 6
_NUMBER_PATTERN = re.compile(r'\d+')


@attrs.define(frozen=True)
class TicketTier:
    """
    A priced class of ticket for one event.

    `consumed` is only ever advanced by the inventory guard's conditional update;
    this entity is a snapshot of the row at read time. Capacity is always a finite
    count; there is no unlimited tier.
    """

    id: UUID
    event_id: UUID
    name: str
    price: Decimal  # settlement currency, per unit
    total: int = attrs.field(validator=[attrs.validators.instance_of(int), attrs.validators.ge(0)])
    consumed: int = 0
    is_active: bool = True
    created_at: Optional[datetime] = None

    @property
    def remaining(self) -> int:
        return max(self.total - self.consumed, 0)

    @property
    def is_free(self) -> bool:
        return self.price == 0

    @property
    def default_quantity(self) -> int:
        """Units a single purchase of this tier stands for when the buyer gives no quantity."""
        lowered = self.name.lower()
        if 'couple' in lowered or 'Queen & Slim' in self.name:
            return 2
        if 'table' in lowered:
            match = _NUMBER_PATTERN.search(self.name)
            return int(match.group()) if match else DEFAULT_TABLE_SEATS
        return 1
