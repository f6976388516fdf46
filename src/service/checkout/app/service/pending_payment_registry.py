"""
Pending Payment Registry

In-process index of checkouts waiting on a hosted payment page, so a buyer
who closes the page (storefront onClose, or the provider's cancel redirect)
can end the wait as a cancellation instead of letting it time out.

Registrations live only as long as the orchestrator's wait; a cancel request
for an order that is not waiting here is reported back as not found.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Dict, Optional
from uuid import UUID

import anyio
import attrs

from src.platform.logging.loguru_io import Logger


@attrs.define
class PendingPayment:
    order_id: UUID
    reference: str
    cancel_requested: anyio.Event = attrs.field(factory=anyio.Event)


class PendingPaymentRegistry:
    def __init__(self) -> None:
        self._by_order: Dict[UUID, PendingPayment] = {}
        self._order_by_reference: Dict[str, UUID] = {}

    @contextmanager
    def track(self, *, order_id: UUID, reference: str) -> Iterator[PendingPayment]:
        pending = PendingPayment(order_id=order_id, reference=reference)
        self._by_order[order_id] = pending
        self._order_by_reference[reference] = order_id
        Logger.base.debug(f'⏳ [PENDING] Awaiting payment for order {order_id} ref={reference}')
        try:
            yield pending
        finally:
            if self._by_order.get(order_id) is pending:
                del self._by_order[order_id]
            self._order_by_reference.pop(reference, None)

    def request_cancel(
        self, *, order_id: Optional[UUID] = None, reference: Optional[str] = None
    ) -> Optional[UUID]:
        """
        Ask the waiting checkout to stop

        Returns:
            The order id the request resolved to, or None when nothing is waiting
        """
        if order_id is None and reference is not None:
            order_id = self._order_by_reference.get(reference)
        pending = self._by_order.get(order_id) if order_id is not None else None
        if pending is None:
            return None

        pending.cancel_requested.set()
        Logger.base.info(f'🚫 [PENDING] Buyer closed the payment page for order {order_id}')
        return pending.order_id

    def is_pending(self, *, order_id: UUID) -> bool:
        return order_id in self._by_order
