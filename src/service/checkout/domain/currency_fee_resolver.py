from decimal import Decimal

from src.platform.logging.loguru_io import Logger
from src.service.checkout.domain.checkout_error import UnsupportedCurrencyError
from src.service.checkout.domain.value_object.checkout_quote import CheckoutQuote
from src.service.checkout.domain.value_object.exchange_rate_table import ExchangeRateTable
from src.service.checkout.domain.value_object.money import (
    round_settlement,
    round_to_minor_units,
)
from src.service.checkout.domain.value_object.payment_gateway_config import PaymentGatewayConfig


class CurrencyFeeResolver:
    """
    Prices a tier selection in the buyer's currency for one gateway.

    Conversion: amount_target = amount_settlement / rate[target].
    The fee is charged once per order and never on free tiers.
    """

    def __init__(self, *, rates: ExchangeRateTable) -> None:
        self.rates = rates

    @Logger.io
    def quote(
        self,
        *,
        unit_price: Decimal,
        quantity: int,
        currency: str,
        gateway: PaymentGatewayConfig,
    ) -> CheckoutQuote:
        currency = currency.upper()
        if unit_price == 0:
            return CheckoutQuote.free(
                currency=currency,
                gateway=gateway.kind,
                quantity=quantity,
                settlement_currency=self.rates.settlement_currency,
            )

        self.ensure_supported(currency=currency, gateway=gateway)
        rate = self.rates.rate(currency)

        unit_display = round_to_minor_units(self.rates.to_target(unit_price, currency), currency)
        subtotal = round_to_minor_units(
            self.rates.to_target(unit_price * quantity, currency), currency
        )
        fee = round_to_minor_units(
            gateway.fee_schedule.fee_for(currency=currency, rates=self.rates), currency
        )
        total = subtotal + fee

        return CheckoutQuote(
            currency=currency,
            gateway=gateway.kind,
            quantity=quantity,
            exchange_rate=rate,
            unit_price=unit_display,
            subtotal=subtotal,
            fee=fee,
            total=total,
            settlement_currency=self.rates.settlement_currency,
            unit_price_settlement=round_settlement(unit_price),
            subtotal_settlement=round_settlement(unit_price * quantity),
            fee_settlement=round_settlement(self.rates.to_settlement(fee, currency)),
            total_settlement=round_settlement(self.rates.to_settlement(total, currency)),
        )

    def ensure_supported(self, *, currency: str, gateway: PaymentGatewayConfig) -> None:
        """
        Raises:
            UnsupportedCurrencyError: Unknown code, or a code the gateway cannot charge in
        """
        if not self.rates.supports(currency):
            raise UnsupportedCurrencyError(currency.upper())
        if not gateway.supports(currency):
            raise UnsupportedCurrencyError(currency.upper(), gateway=gateway.display_name)
