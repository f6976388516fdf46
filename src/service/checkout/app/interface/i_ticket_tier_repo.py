"""
Ticket Tier Repository Interface

The only writer of `ticket_tier.consumed` is `try_consume`, called by the inventory guard.
"""

from abc import ABC, abstractmethod
from uuid import UUID

from src.service.checkout.domain.entity.ticket_tier_entity import TicketTier


class ITicketTierRepo(ABC):
    @abstractmethod
    async def get_by_id(self, *, tier_id: UUID) -> TicketTier | None:
        pass

    @abstractmethod
    async def list_by_event_id(self, *, event_id: UUID) -> list[TicketTier]:
        pass

    @abstractmethod
    async def try_consume(self, *, tier_id: UUID, quantity: int) -> TicketTier | None:
        """
        Atomically advance consumed by quantity if the tier is active and has room

        Must be a single store-level conditional update (no read-modify-write).

        Args:
            tier_id: Tier to consume from
            quantity: Units to consume

        Returns:
            Updated tier, or None when the guard condition did not hold
        """
        pass
