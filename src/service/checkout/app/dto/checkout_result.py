"""Checkout outcome DTO."""

from typing import Optional

import attrs

from src.service.checkout.domain.checkout_error import (
    CheckoutError,
    IssuanceVerificationFailedError,
)
from src.service.checkout.domain.entity.order_entity import Order
from src.service.checkout.domain.entity.ticket_entity import Ticket
from src.service.checkout.domain.enum.order_status import OrderStatus
from src.service.checkout.domain.value_object.checkout_quote import CheckoutQuote


@attrs.define(frozen=True)
class CheckoutResult:
    """
    Terminal outcome of one checkout attempt.

    order is None only when the attempt failed before an order could be priced
    (e.g. unsupported currency).
    """

    state: OrderStatus
    order: Optional[Order] = None
    quote: Optional[CheckoutQuote] = None
    tickets: list[Ticket] = attrs.field(factory=list)
    error: Optional[CheckoutError] = None

    @property
    def succeeded(self) -> bool:
        return self.state == OrderStatus.ISSUED

    @property
    def retryable(self) -> bool:
        return self.error is not None and self.error.retryable

    @property
    def requires_support(self) -> bool:
        return isinstance(self.error, IssuanceVerificationFailedError)
