from abc import ABC, abstractmethod
from uuid import UUID

from src.service.checkout.domain.entity.order_entity import Order


class IOrderQueryRepo(ABC):
    @abstractmethod
    async def get_by_id(self, *, order_id: UUID) -> Order | None:
        pass
