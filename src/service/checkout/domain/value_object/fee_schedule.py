from decimal import Decimal
from enum import StrEnum
from typing import Mapping, Optional

import attrs

from src.service.checkout.domain.value_object.exchange_rate_table import ExchangeRateTable


class FeeKind(StrEnum):
    FLAT = 'flat'
    PER_CURRENCY = 'per_currency'


@attrs.define(frozen=True)
class FeeSchedule:
    """
    Processing fee charged once per order.

    FLAT: one amount in `flat_currency`, converted into whatever currency the buyer pays in.
    PER_CURRENCY: an amount per currency, already expressed in that currency.
    """

    kind: FeeKind
    flat_amount: Decimal = Decimal('0')
    flat_currency: Optional[str] = None
    per_currency: Mapping[str, Decimal] = attrs.field(factory=dict)

    @classmethod
    def flat(cls, *, amount: Decimal, currency: str) -> 'FeeSchedule':
        return cls(kind=FeeKind.FLAT, flat_amount=Decimal(str(amount)), flat_currency=currency.upper())

    @classmethod
    def by_currency(cls, *, fees: Mapping[str, Decimal]) -> 'FeeSchedule':
        return cls(
            kind=FeeKind.PER_CURRENCY,
            per_currency={code.upper(): Decimal(str(fee)) for code, fee in fees.items()},
        )

    def fee_for(self, *, currency: str, rates: ExchangeRateTable) -> Decimal:
        """Fee in `currency`, unrounded. Zero when no entry exists for the currency."""
        currency = currency.upper()
        if self.kind == FeeKind.FLAT:
            return rates.convert(
                self.flat_amount,
                from_currency=self.flat_currency or rates.settlement_currency,
                to_currency=currency,
            )
        return self.per_currency.get(currency, Decimal('0'))
