from typing import Optional, Self
from uuid import UUID

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.di import Container
from src.platform.exception.exceptions import DomainError, NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.service.pending_payment_registry import PendingPaymentRegistry


class CancelCheckoutUseCase:
    """Buyer closed the hosted payment page; the waiting checkout ends as CANCELLED"""

    def __init__(self, *, pending_payments: PendingPaymentRegistry) -> None:
        self.pending_payments = pending_payments

    @classmethod
    @inject
    def depends(
        cls,
        pending_payments: PendingPaymentRegistry = Depends(
            Provide[Container.pending_payment_registry]
        ),
    ) -> Self:
        return cls(pending_payments=pending_payments)

    @Logger.io
    def cancel(
        self, *, order_id: Optional[UUID] = None, reference: Optional[str] = None
    ) -> UUID:
        """
        Args:
            order_id: Order the storefront is cancelling
            reference: Payment reference from the provider's cancel redirect

        Returns:
            Order id of the checkout that was asked to stop

        Raises:
            DomainError: Neither an order id nor a reference was given
            NotFoundError: No checkout is waiting on a payment for it
        """
        if order_id is None and not reference:
            raise DomainError('order_id or reference is required', 400)
        cancelled = self.pending_payments.request_cancel(order_id=order_id, reference=reference)
        if cancelled is None:
            raise NotFoundError('No payment is awaiting confirmation for this order')
        return cancelled
