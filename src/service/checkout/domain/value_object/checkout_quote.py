from decimal import Decimal

import attrs

from src.service.checkout.domain.enum.gateway_kind import GatewayKind


@attrs.define(frozen=True)
class CheckoutQuote:
    """
    Priced checkout for one tier selection.

    Display amounts are in `currency` at its minor-unit precision; the
    `*_settlement` amounts re-express them in settlement currency at two decimals.
    """

    currency: str
    gateway: GatewayKind
    quantity: int
    exchange_rate: Decimal
    unit_price: Decimal
    subtotal: Decimal
    fee: Decimal
    total: Decimal
    settlement_currency: str
    unit_price_settlement: Decimal
    subtotal_settlement: Decimal
    fee_settlement: Decimal
    total_settlement: Decimal

    @property
    def is_free(self) -> bool:
        return self.total_settlement == 0

    @classmethod
    def free(
        cls, *, currency: str, gateway: GatewayKind, quantity: int, settlement_currency: str
    ) -> 'CheckoutQuote':
        zero = Decimal('0')
        return cls(
            currency=currency,
            gateway=gateway,
            quantity=quantity,
            exchange_rate=Decimal('1'),
            unit_price=zero,
            subtotal=zero,
            fee=zero,
            total=zero,
            settlement_currency=settlement_currency,
            unit_price_settlement=zero,
            subtotal_settlement=zero,
            fee_settlement=zero,
            total_settlement=zero,
        )
