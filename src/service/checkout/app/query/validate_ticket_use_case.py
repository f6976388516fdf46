from datetime import datetime
from typing import Optional, Self
from uuid import UUID

import attrs
from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.di import Container
from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.interface.i_event_query_repo import IEventQueryRepo
from src.service.checkout.app.interface.i_ticket_query_repo import ITicketQueryRepo
from src.service.checkout.app.interface.i_ticket_tier_repo import ITicketTierRepo
from src.service.checkout.domain.value_object.scan_payload import (
    MalformedScanPayloadError,
    ScanPayload,
)


@attrs.define(frozen=True)
class TicketValidation:
    valid: bool
    reason: Optional[str] = None
    ticket_id: Optional[UUID] = None
    order_id: Optional[UUID] = None
    event_title: Optional[str] = None
    tier_name: Optional[str] = None
    is_used: bool = False
    scanned_at: Optional[datetime] = None


class ValidateTicketUseCase:
    """
    Look up a scanned ticket code.

    Read-only: redeeming (flipping the used flag) belongs to the door scanner.
    """

    def __init__(
        self,
        *,
        ticket_query_repo: ITicketQueryRepo,
        event_query_repo: IEventQueryRepo,
        ticket_tier_repo: ITicketTierRepo,
    ) -> None:
        self.ticket_query_repo = ticket_query_repo
        self.event_query_repo = event_query_repo
        self.ticket_tier_repo = ticket_tier_repo

    @classmethod
    @inject
    def depends(
        cls,
        ticket_query_repo: ITicketQueryRepo = Depends(Provide[Container.ticket_query_repo]),
        event_query_repo: IEventQueryRepo = Depends(Provide[Container.event_query_repo]),
        ticket_tier_repo: ITicketTierRepo = Depends(Provide[Container.ticket_tier_repo]),
    ) -> Self:
        return cls(
            ticket_query_repo=ticket_query_repo,
            event_query_repo=event_query_repo,
            ticket_tier_repo=ticket_tier_repo,
        )

    @Logger.io
    async def validate(self, *, scan_payload: str) -> TicketValidation:
        try:
            payload = ScanPayload.parse(scan_payload)
        except MalformedScanPayloadError:
            return TicketValidation(valid=False, reason='malformed')

        ticket = await self.ticket_query_repo.get_by_scan_payload(
            scan_payload=payload.encode()
        )
        if ticket is None:
            return TicketValidation(valid=False, reason='not_found')

        event = await self.event_query_repo.get_by_id(event_id=ticket.event_id)
        tier = await self.ticket_tier_repo.get_by_id(tier_id=ticket.tier_id)
        return TicketValidation(
            valid=not ticket.is_used,
            reason='already_used' if ticket.is_used else None,
            ticket_id=ticket.id,
            order_id=ticket.order_id,
            event_title=event.title if event else None,
            tier_name=tier.name if tier else None,
            is_used=ticket.is_used,
            scanned_at=ticket.scanned_at,
        )
