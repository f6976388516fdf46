from abc import ABC, abstractmethod
from uuid import UUID

from src.service.checkout.domain.entity.ticket_entity import Ticket


class ITicketQueryRepo(ABC):
    @abstractmethod
    async def list_by_order_id(self, *, order_id: UUID) -> list[Ticket]:
        """Tickets of an order ordered by unit index (also used for issuance read-back)"""
        pass

    @abstractmethod
    async def get_by_scan_payload(self, *, scan_payload: str) -> Ticket | None:
        pass
