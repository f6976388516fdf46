from sqlalchemy.exc import IntegrityError

from src.platform.exception.exceptions import ConflictError
from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.interface.i_ticket_command_repo import ITicketCommandRepo
from src.service.checkout.domain.entity.ticket_entity import Ticket
from src.service.checkout.driven_adapter.model.ticket_model import TicketModel
from src.service.checkout.driven_adapter.repo.session_scoped_repo import SessionScopedRepo


class TicketCommandRepoImpl(SessionScopedRepo, ITicketCommandRepo):
    @Logger.io
    async def create(self, *, ticket: Ticket) -> Ticket:
        db_ticket = TicketModel(
            id=ticket.id,
            order_id=ticket.order_id,
            event_id=ticket.event_id,
            tier_id=ticket.tier_id,
            unit_index=ticket.unit_index,
            scan_payload=ticket.scan_payload,
            price=ticket.price,
            is_used=ticket.is_used,
        )
        async with self._get_session() as session:
            session.add(db_ticket)
            try:
                await session.flush()
            except IntegrityError as e:
                raise ConflictError(f'Ticket {ticket.scan_payload} already issued') from e
            if not self.in_unit_of_work:
                await session.commit()
        return ticket
