from uuid import UUID

from sqlalchemy import select

from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.interface.i_ticket_query_repo import ITicketQueryRepo
from src.service.checkout.domain.entity.ticket_entity import Ticket
from src.service.checkout.driven_adapter.model.ticket_model import TicketModel
from src.service.checkout.driven_adapter.repo.session_scoped_repo import SessionScopedRepo


class TicketQueryRepoImpl(SessionScopedRepo, ITicketQueryRepo):
    @staticmethod
    def _to_entity(db_ticket: TicketModel) -> Ticket:
        return Ticket(
            id=db_ticket.id,
            order_id=db_ticket.order_id,
            event_id=db_ticket.event_id,
            tier_id=db_ticket.tier_id,
            unit_index=db_ticket.unit_index,
            scan_payload=db_ticket.scan_payload,
            price=db_ticket.price,
            is_used=db_ticket.is_used,
            scanned_at=db_ticket.scanned_at,
            created_at=db_ticket.created_at,
        )

    @Logger.io
    async def list_by_order_id(self, *, order_id: UUID) -> list[Ticket]:
        async with self._get_session() as session:
            result = await session.execute(
                select(TicketModel)
                .where(TicketModel.order_id == order_id)
                .order_by(TicketModel.unit_index)
            )
            return [self._to_entity(db_ticket) for db_ticket in result.scalars().all()]

    @Logger.io
    async def get_by_scan_payload(self, *, scan_payload: str) -> Ticket | None:
        async with self._get_session() as session:
            result = await session.execute(
                select(TicketModel).where(TicketModel.scan_payload == scan_payload)
            )
            db_ticket = result.scalar_one_or_none()
            return self._to_entity(db_ticket) if db_ticket else None
