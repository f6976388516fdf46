from decimal import Decimal
from typing import Mapping

import attrs

from src.service.checkout.domain.checkout_error import UnsupportedCurrencyError


def _normalize_rates(rates: Mapping[str, Decimal | int | float | str]) -> dict[str, Decimal]:
    return {code.upper(): Decimal(str(rate)) for code, rate in rates.items()}


@attrs.define(frozen=True)
class ExchangeRateTable:
    """Units of settlement currency per one unit of each listed currency."""

    settlement_currency: str = attrs.field(converter=str.upper)
    rates: dict[str, Decimal] = attrs.field(converter=_normalize_rates)

    def __attrs_post_init__(self) -> None:
        if self.rates.get(self.settlement_currency) != Decimal('1'):
            raise ValueError(f'Settlement currency {self.settlement_currency} must map to 1')
        for code, rate in self.rates.items():
            if rate <= 0:
                raise ValueError(f'Exchange rate for {code} must be positive')

    def supports(self, currency: str) -> bool:
        return currency.upper() in self.rates

    def rate(self, currency: str) -> Decimal:
        try:
            return self.rates[currency.upper()]
        except KeyError:
            raise UnsupportedCurrencyError(currency.upper()) from None

    def to_target(self, amount: Decimal, currency: str) -> Decimal:
        """Settlement amount expressed in `currency` (unrounded)."""
        return amount / self.rate(currency)

    def to_settlement(self, amount: Decimal, currency: str) -> Decimal:
        """Amount in `currency` expressed in settlement currency (unrounded)."""
        return amount * self.rate(currency)

    def convert(self, amount: Decimal, *, from_currency: str, to_currency: str) -> Decimal:
        if from_currency.upper() == to_currency.upper():
            return amount
        return self.to_target(self.to_settlement(amount, from_currency), to_currency)
