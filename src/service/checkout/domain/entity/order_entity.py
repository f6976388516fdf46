from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID

import attrs

from src.platform.exception.exceptions import DomainError
from src.platform.logging.loguru_io import Logger
from src.service.checkout.domain.enum.gateway_kind import GatewayKind
from src.service.checkout.domain.enum.order_status import OrderStatus
from src.service.checkout.domain.value_object.buyer_contact import BuyerContact
from src.service.checkout.domain.value_object.checkout_quote import CheckoutQuote


FREE_REFERENCE_PREFIX = 'FREE-'

_ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.QUOTED: frozenset({OrderStatus.STOCK_CHECKED, OrderStatus.FAILED}),
    OrderStatus.STOCK_CHECKED: frozenset(
        {OrderStatus.AWAITING_GATEWAY, OrderStatus.ISSUED, OrderStatus.FAILED}
    ),
    OrderStatus.AWAITING_GATEWAY: frozenset(
        {OrderStatus.GATEWAY_CONFIRMED, OrderStatus.CANCELLED, OrderStatus.FAILED}
    ),
    OrderStatus.GATEWAY_CONFIRMED: frozenset({OrderStatus.ISSUED, OrderStatus.FAILED}),
    OrderStatus.ISSUED: frozenset(),
    OrderStatus.FAILED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


@attrs.define(frozen=True)
class Order:
    id: UUID
    event_id: UUID
    tier_id: UUID
    quantity: int
    currency: str
    gateway: GatewayKind
    buyer: BuyerContact
    unit_price_settlement: Decimal
    total: Decimal  # in `currency`
    fee: Decimal  # in `currency`
    total_settlement: Decimal
    status: OrderStatus = OrderStatus.QUOTED
    payment_reference: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    issued_at: Optional[datetime] = None

    @classmethod
    @Logger.io
    def create(
        cls,
        *,
        id: UUID,
        event_id: UUID,
        tier_id: UUID,
        unit_price_settlement: Decimal,
        buyer: BuyerContact,
        quote: CheckoutQuote,
        max_quantity: int,
    ) -> 'Order':
        if quote.quantity < 1 or quote.quantity > max_quantity:
            raise DomainError(f'quantity must be between 1 and {max_quantity}', 400)
        if not buyer.name.strip() or not buyer.phone.strip():
            raise DomainError('Buyer name and phone are required', 400)
        if '@' not in buyer.email or '.' not in buyer.email:
            raise DomainError('Please enter a valid email', 400)

        now = datetime.now(timezone.utc)
        return cls(
            id=id,
            event_id=event_id,
            tier_id=tier_id,
            quantity=quote.quantity,
            currency=quote.currency,
            gateway=quote.gateway,
            buyer=buyer,
            unit_price_settlement=unit_price_settlement,
            total=quote.total,
            fee=quote.fee,
            total_settlement=quote.total_settlement,
            status=OrderStatus.QUOTED,
            created_at=now,
            updated_at=now,
        )

    @property
    def is_free(self) -> bool:
        return self.total_settlement == 0

    @property
    def free_reference(self) -> str:
        return f'{FREE_REFERENCE_PREFIX}{self.id}'

    def _transition(self, target: OrderStatus, **changes) -> 'Order':
        if target not in _ALLOWED_TRANSITIONS[self.status]:
            raise DomainError(f'Cannot move order from {self.status} to {target}')
        return attrs.evolve(
            self, status=target, updated_at=datetime.now(timezone.utc), **changes
        )

    @Logger.io
    def mark_as_stock_checked(self) -> 'Order':
        return self._transition(OrderStatus.STOCK_CHECKED)

    @Logger.io
    def mark_as_awaiting_gateway(self, *, payment_reference: str) -> 'Order':
        if self.is_free:
            raise DomainError('Free orders never go through a payment gateway')
        return self._transition(OrderStatus.AWAITING_GATEWAY, payment_reference=payment_reference)

    @Logger.io
    def mark_as_gateway_confirmed(self, *, payment_reference: str) -> 'Order':
        return self._transition(OrderStatus.GATEWAY_CONFIRMED, payment_reference=payment_reference)

    @Logger.io
    def mark_as_issued(self) -> 'Order':
        """
        Issued straight from STOCK_CHECKED only for free orders

        Raises:
            DomainError: When a paid order has no confirmed payment
        """
        if self.status == OrderStatus.STOCK_CHECKED and not self.is_free:
            raise DomainError('Paid orders must be confirmed by the gateway before issuance')
        reference = self.payment_reference or self.free_reference
        return self._transition(
            OrderStatus.ISSUED,
            payment_reference=reference,
            issued_at=datetime.now(timezone.utc),
        )

    @Logger.io
    def mark_as_failed(self, *, payment_reference: Optional[str] = None) -> 'Order':
        return self._transition(
            OrderStatus.FAILED, payment_reference=payment_reference or self.payment_reference
        )

    @Logger.io
    def mark_as_cancelled(self) -> 'Order':
        return self._transition(OrderStatus.CANCELLED)
