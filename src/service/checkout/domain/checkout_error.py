from enum import StrEnum
from typing import Optional
from uuid import UUID

from src.platform.exception.exceptions import DomainError


class CheckoutErrorCode(StrEnum):
    UNSUPPORTED_CURRENCY = 'UNSUPPORTED_CURRENCY'
    INSUFFICIENT_STOCK = 'INSUFFICIENT_STOCK'
    SOLD_OUT = 'SOLD_OUT'
    TIER_INACTIVE = 'TIER_INACTIVE'
    GATEWAY_CANCELLED = 'GATEWAY_CANCELLED'
    GATEWAY_ERROR = 'GATEWAY_ERROR'
    ISSUANCE_VERIFICATION_FAILED = 'ISSUANCE_VERIFICATION_FAILED'


class CheckoutError(DomainError):
    """Base class for checkout failures surfaced to the buyer with a stable code."""

    code: CheckoutErrorCode
    retryable: bool = False

    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message, status_code)


class UnsupportedCurrencyError(CheckoutError):
    code = CheckoutErrorCode.UNSUPPORTED_CURRENCY

    def __init__(self, currency: str, *, gateway: Optional[str] = None) -> None:
        self.currency = currency
        self.gateway = gateway
        if gateway:
            message = f'Currency {currency} is not supported by {gateway}'
        else:
            message = f'Unknown currency {currency}'
        super().__init__(message, 400)


class InsufficientStockError(CheckoutError):
    code = CheckoutErrorCode.INSUFFICIENT_STOCK

    def __init__(self, *, tier_id: UUID, requested: int, remaining: int) -> None:
        self.tier_id = tier_id
        self.requested = requested
        self.remaining = remaining
        super().__init__(
            f'Only {remaining} ticket(s) left for this tier, {requested} requested', 409
        )


class SoldOutError(InsufficientStockError):
    code = CheckoutErrorCode.SOLD_OUT

    def __init__(self, *, tier_id: UUID, requested: int, remaining: int = 0) -> None:
        super().__init__(tier_id=tier_id, requested=requested, remaining=remaining)
        self.message = 'This tier is sold out'
        self.args = (self.message,)


class TierInactiveError(CheckoutError):
    code = CheckoutErrorCode.TIER_INACTIVE

    def __init__(self, *, tier_id: UUID) -> None:
        self.tier_id = tier_id
        super().__init__('This ticket tier is not on sale', 409)


class GatewayCancelledError(CheckoutError):
    code = CheckoutErrorCode.GATEWAY_CANCELLED

    def __init__(self, message: str = 'Payment was cancelled') -> None:
        super().__init__(message, 402)


class PaymentGatewayError(CheckoutError):
    code = CheckoutErrorCode.GATEWAY_ERROR
    retryable = True

    def __init__(self, cause: str) -> None:
        self.cause = cause
        super().__init__(f'Payment could not be completed: {cause}. Please try again', 502)


class IssuanceVerificationFailedError(CheckoutError):
    """Payment was captured but the tickets could not be confirmed as stored."""

    code = CheckoutErrorCode.ISSUANCE_VERIFICATION_FAILED

    def __init__(self, *, order_id: UUID) -> None:
        self.order_id = order_id
        super().__init__(
            f'Your payment was received but your tickets could not be confirmed. '
            f'Please contact support with order id {order_id}',
            500,
        )
