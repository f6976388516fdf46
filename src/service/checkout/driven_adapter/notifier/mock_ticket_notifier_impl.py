"""Log-only ticket notifier used when no mail API is configured."""

from datetime import datetime, timezone

from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.interface.i_ticket_notifier import ITicketNotifier
from src.service.checkout.domain.entity.event_entity import Event
from src.service.checkout.domain.entity.order_entity import Order
from src.service.checkout.domain.entity.ticket_entity import Ticket
from src.service.checkout.domain.entity.ticket_tier_entity import TicketTier


class MockTicketNotifierImpl(ITicketNotifier):
    def __init__(self, debug: bool = True):
        self.debug = debug
        self.sent: list[dict] = []  # for tests

    @Logger.io
    async def send_tickets(
        self, *, order: Order, event: Event, tier: TicketTier, tickets: list[Ticket]
    ) -> None:
        mail = {
            'to': order.buyer.email,
            'subject': f'Your tickets for {event.title}',
            'order_id': str(order.id),
            'tier': tier.name,
            'tickets': [ticket.scan_payload for ticket in tickets],
            'sent_at': datetime.now(timezone.utc),
        }
        self.sent.append(mail)

        if self.debug:
            Logger.base.info(
                f'📧 [MOCK MAIL] to={mail["to"]} subject="{mail["subject"]}" '
                f'order={mail["order_id"]} tickets={len(tickets)}'
            )
