from abc import ABC, abstractmethod
from typing import Any, Optional

from src.service.checkout.domain.entity.order_entity import Order
from src.service.checkout.domain.enum.order_status import OrderStatus


class ICheckoutListener(ABC):
    """Observer of checkout state transitions (e.g. the SSE stream)"""

    @abstractmethod
    async def on_transition(
        self, *, state: OrderStatus, order: Optional[Order], detail: dict[str, Any]
    ) -> None:
        pass
