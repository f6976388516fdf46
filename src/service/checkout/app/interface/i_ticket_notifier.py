from abc import ABC, abstractmethod

from src.service.checkout.domain.entity.event_entity import Event
from src.service.checkout.domain.entity.order_entity import Order
from src.service.checkout.domain.entity.ticket_entity import Ticket
from src.service.checkout.domain.entity.ticket_tier_entity import TicketTier


class ITicketNotifier(ABC):
    @abstractmethod
    async def send_tickets(
        self, *, order: Order, event: Event, tier: TicketTier, tickets: list[Ticket]
    ) -> None:
        """Dispatch the ticket confirmation to the buyer; may raise, callers log and move on"""
        pass
