from uuid import UUID

from sqlalchemy import select, update

from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.interface.i_ticket_tier_repo import ITicketTierRepo
from src.service.checkout.domain.entity.ticket_tier_entity import TicketTier
from src.service.checkout.driven_adapter.model.ticket_tier_model import TicketTierModel
from src.service.checkout.driven_adapter.repo.session_scoped_repo import SessionScopedRepo


class TicketTierRepoImpl(SessionScopedRepo, ITicketTierRepo):
    @staticmethod
    def _to_entity(db_tier: TicketTierModel) -> TicketTier:
        return TicketTier(
            id=db_tier.id,
            event_id=db_tier.event_id,
            name=db_tier.name,
            price=db_tier.price,
            total=db_tier.total,
            consumed=db_tier.consumed,
            is_active=db_tier.is_active,
            created_at=db_tier.created_at,
        )

    @Logger.io
    async def get_by_id(self, *, tier_id: UUID) -> TicketTier | None:
        async with self._get_session() as session:
            result = await session.execute(
                select(TicketTierModel)
                .where(TicketTierModel.id == tier_id)
                .execution_options(populate_existing=True)
            )
            db_tier = result.scalar_one_or_none()
            return self._to_entity(db_tier) if db_tier else None

    @Logger.io
    async def list_by_event_id(self, *, event_id: UUID) -> list[TicketTier]:
        async with self._get_session() as session:
            result = await session.execute(
                select(TicketTierModel)
                .where(TicketTierModel.event_id == event_id)
                .order_by(TicketTierModel.price, TicketTierModel.name)
            )
            return [self._to_entity(db_tier) for db_tier in result.scalars().all()]

    @Logger.io
    async def try_consume(self, *, tier_id: UUID, quantity: int) -> TicketTier | None:
        """
        UPDATE ticket_tier SET consumed = consumed + :q
        WHERE id = :id AND is_active AND consumed + :q <= total
        RETURNING *

        The row lock taken by the UPDATE serializes concurrent commits on the same tier;
        the loser re-evaluates the WHERE clause against the winner's value.
        """
        async with self._get_session() as session:
            result = await session.execute(
                update(TicketTierModel)
                .where(
                    TicketTierModel.id == tier_id,
                    TicketTierModel.is_active.is_(True),
                    TicketTierModel.consumed + quantity <= TicketTierModel.total,
                )
                .values(consumed=TicketTierModel.consumed + quantity)
                .returning(TicketTierModel)
                .execution_options(synchronize_session=False)
            )
            db_tier = result.scalar_one_or_none()
            if not self.in_unit_of_work:
                await session.commit()
            return self._to_entity(db_tier) if db_tier else None
