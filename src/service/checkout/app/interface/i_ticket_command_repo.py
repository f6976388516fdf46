from abc import ABC, abstractmethod

from src.service.checkout.domain.entity.ticket_entity import Ticket


class ITicketCommandRepo(ABC):
    @abstractmethod
    async def create(self, *, ticket: Ticket) -> Ticket:
        """Insert one ticket row (one write per purchased unit)"""
        pass
