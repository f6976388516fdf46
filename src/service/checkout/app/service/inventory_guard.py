"""
Inventory Guard

Two phases of one critical section over a tier's consumed counter:
- check_availability: read-only pre-check before any payment interaction
- commit: one conditional update at the store that re-validates capacity

No reservation is held between the phases. The store-level guard on `commit`
is what makes concurrent checkouts safe across processes.
"""

from uuid import UUID

from opentelemetry import trace

from src.platform.exception.exceptions import DomainError, NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.interface.i_ticket_tier_repo import ITicketTierRepo
from src.service.checkout.domain.checkout_error import (
    InsufficientStockError,
    SoldOutError,
    TierInactiveError,
)
from src.service.checkout.domain.entity.ticket_tier_entity import TicketTier


class InventoryGuard:
    def __init__(self, *, ticket_tier_repo: ITicketTierRepo) -> None:
        self.ticket_tier_repo = ticket_tier_repo
        self.tracer = trace.get_tracer(__name__)

    async def _get_tier(self, *, tier_id: UUID) -> TicketTier:
        tier = await self.ticket_tier_repo.get_by_id(tier_id=tier_id)
        if tier is None:
            raise NotFoundError('Ticket tier not found')
        return tier

    @Logger.io
    async def check_availability(self, *, tier_id: UUID, quantity: int) -> int:
        """
        Check that the tier can satisfy the requested quantity

        Returns:
            Remaining units (non-negative)

        Raises:
            NotFoundError: Unknown tier
            TierInactiveError: Tier is not on sale
            SoldOutError: Nothing left
            InsufficientStockError: Fewer units left than requested
        """
        if quantity < 1:
            raise DomainError('quantity must be at least 1', 400)

        with self.tracer.start_as_current_span('inventory.check_availability'):
            tier = await self._get_tier(tier_id=tier_id)
            if not tier.is_active:
                raise TierInactiveError(tier_id=tier_id)

            remaining = tier.remaining
            if remaining == 0:
                raise SoldOutError(tier_id=tier_id, requested=quantity)
            if remaining < quantity:
                raise InsufficientStockError(
                    tier_id=tier_id, requested=quantity, remaining=remaining
                )
            return remaining

    @Logger.io
    async def commit(self, *, tier_id: UUID, quantity: int) -> TicketTier:
        """
        Durably advance consumed by quantity, re-validating capacity at the store

        Raises:
            NotFoundError: Unknown tier
            TierInactiveError: Tier was deactivated since the availability check
            SoldOutError: Another checkout consumed the remaining capacity first
        """
        with self.tracer.start_as_current_span(
            'inventory.commit',
            attributes={'tier.id': str(tier_id), 'quantity': quantity},
        ):
            updated = await self.ticket_tier_repo.try_consume(tier_id=tier_id, quantity=quantity)
            if updated is not None:
                Logger.base.info(
                    f'🎟️ [INVENTORY] tier={tier_id} consumed={updated.consumed}/{updated.total}'
                )
                return updated

            # Guard failed: re-read only to report why
            tier = await self._get_tier(tier_id=tier_id)
            if not tier.is_active:
                raise TierInactiveError(tier_id=tier_id)
            Logger.base.warning(
                f'⚠️ [INVENTORY] Lost race for tier={tier_id}: '
                f'requested={quantity} remaining={tier.remaining}'
            )
            raise SoldOutError(tier_id=tier_id, requested=quantity, remaining=tier.remaining)
