from typing import Any, Optional

import httpx

from src.platform.logging.loguru_io import Logger
from src.platform.observability.tracing import inject_trace_context
from src.service.checkout.app.interface.i_ticket_notifier import ITicketNotifier
from src.service.checkout.domain.entity.event_entity import Event
from src.service.checkout.domain.entity.order_entity import Order
from src.service.checkout.domain.entity.ticket_entity import Ticket
from src.service.checkout.domain.entity.ticket_tier_entity import TicketTier


class HttpTicketNotifierImpl(ITicketNotifier):
    """
    Posts the ticket email request to the mail service.

    Non-2xx responses raise httpx.HTTPStatusError; the issuer logs and counts them.
    """

    def __init__(
        self,
        *,
        api_url: str,
        timeout_seconds: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.api_url = api_url
        self.timeout_seconds = timeout_seconds
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout_seconds)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @staticmethod
    def build_payload(
        *, order: Order, event: Event, tier: TicketTier, tickets: list[Ticket]
    ) -> dict[str, Any]:
        return {
            'to': order.buyer.email,
            'name': order.buyer.name,
            'eventTitle': event.title,
            'eventDate': event.starts_at.strftime('%A, %d %B %Y'),
            'eventTime': event.starts_at.strftime('%H:%M'),
            'eventVenue': f'{event.venue}, {event.location}' if event.location else event.venue,
            'tickets': [
                {
                    'ticketId': str(ticket.id),
                    'tier': tier.name,
                    'qrPayload': ticket.scan_payload,
                }
                for ticket in tickets
            ],
            'orderId': str(order.id),
        }

    @Logger.io
    async def send_tickets(
        self, *, order: Order, event: Event, tier: TicketTier, tickets: list[Ticket]
    ) -> None:
        response = await self.client.post(
            self.api_url,
            json=self.build_payload(order=order, event=event, tier=tier, tickets=tickets),
            headers=inject_trace_context(),
        )
        response.raise_for_status()
        Logger.base.info(f'📧 [MAIL] Tickets for order {order.id} sent to {order.buyer.email}')
