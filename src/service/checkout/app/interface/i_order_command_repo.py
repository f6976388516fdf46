from abc import ABC, abstractmethod

from src.service.checkout.domain.entity.order_entity import Order


class IOrderCommandRepo(ABC):
    @abstractmethod
    async def create(self, *, order: Order) -> Order:
        """Persist a finalized order: ISSUED, or FAILED after a ticket read-back came up short"""
        pass
