from decimal import Decimal

import pytest

from src.service.checkout.domain.checkout_error import UnsupportedCurrencyError
from src.service.checkout.domain.currency_fee_resolver import CurrencyFeeResolver
from src.service.checkout.domain.value_object.exchange_rate_table import ExchangeRateTable
from src.service.checkout.domain.value_object.money import minor_units, round_to_minor_units
from src.service.checkout.driven_adapter.gateway.flutterwave_gateway_impl import (
    flutterwave_config,
)
from src.service.checkout.driven_adapter.gateway.paystack_gateway_impl import paystack_config


@pytest.fixture
def rates() -> ExchangeRateTable:
    return ExchangeRateTable(
        settlement_currency='NGN',
        rates={'NGN': 1, 'USD': 1600, 'GBP': 2000, 'JPY': '10.5', 'KWD': 5000},
    )


@pytest.fixture
def resolver(rates: ExchangeRateTable) -> CurrencyFeeResolver:
    return CurrencyFeeResolver(rates=rates)


@pytest.fixture
def flutterwave():
    return flutterwave_config(
        fees={'NGN': 150, 'USD': 1, 'GBP': 1, 'JPY': 150, 'KWD': '0.3'},
        payment_options=['card'],
    )


@pytest.fixture
def paystack():
    return paystack_config(settlement_currency='NGN', flat_fee=Decimal('100'), channels=['card'])


@pytest.mark.unit
class TestCurrencyFeeResolver:
    def test_usd_on_multi_currency_gateway_adds_one_dollar_fee(self, resolver, flutterwave):
        # Act
        quote = resolver.quote(
            unit_price=Decimal('3200'), quantity=1, currency='usd', gateway=flutterwave
        )

        # Assert - (3200 / 1600) + 1 = 3.00
        assert quote.currency == 'USD'
        assert quote.unit_price == Decimal('2.00')
        assert quote.subtotal == Decimal('2.00')
        assert quote.fee == Decimal('1.00')
        assert quote.total == Decimal('3.00')
        assert quote.exchange_rate == Decimal('1600')
        assert quote.total_settlement == Decimal('4800.00')
        assert quote.fee_settlement == Decimal('1600.00')
        assert not quote.is_free

    def test_flat_fee_in_settlement_currency(self, resolver, paystack):
        quote = resolver.quote(
            unit_price=Decimal('10000'), quantity=2, currency='NGN', gateway=paystack
        )

        assert quote.subtotal == Decimal('20000.00')
        assert quote.fee == Decimal('100.00')
        assert quote.total == Decimal('20100.00')
        assert quote.total_settlement == Decimal('20100.00')

    def test_fee_is_charged_once_per_order_not_per_unit(self, resolver, flutterwave):
        single = resolver.quote(
            unit_price=Decimal('3200'), quantity=1, currency='USD', gateway=flutterwave
        )
        triple = resolver.quote(
            unit_price=Decimal('3200'), quantity=3, currency='USD', gateway=flutterwave
        )

        assert single.fee == triple.fee == Decimal('1.00')
        assert triple.total == Decimal('7.00')

    def test_free_tier_short_circuits_to_zero_without_fee(self, resolver, paystack):
        # Act - GBP is not even accepted by this gateway
        quote = resolver.quote(unit_price=Decimal('0'), quantity=4, currency='GBP', gateway=paystack)

        # Assert
        assert quote.is_free
        assert quote.total == Decimal('0')
        assert quote.fee == Decimal('0')
        assert quote.total_settlement == Decimal('0')
        assert quote.quantity == 4

    def test_unknown_currency_is_rejected(self, resolver, flutterwave):
        with pytest.raises(UnsupportedCurrencyError) as exc_info:
            resolver.quote(
                unit_price=Decimal('3200'), quantity=1, currency='XYZ', gateway=flutterwave
            )

        assert exc_info.value.currency == 'XYZ'
        assert exc_info.value.gateway is None
        assert exc_info.value.status_code == 400

    def test_currency_the_gateway_cannot_charge_is_rejected(self, resolver, paystack):
        with pytest.raises(UnsupportedCurrencyError) as exc_info:
            resolver.quote(unit_price=Decimal('3200'), quantity=1, currency='USD', gateway=paystack)

        assert exc_info.value.gateway == 'Paystack'
        assert 'Paystack' in exc_info.value.message

    def test_display_amounts_use_currency_minor_units(self, resolver, flutterwave):
        # JPY has no minor unit, KWD has three
        yen = resolver.quote(
            unit_price=Decimal('1000'), quantity=1, currency='JPY', gateway=flutterwave
        )
        dinar = resolver.quote(
            unit_price=Decimal('1000'), quantity=1, currency='KWD', gateway=flutterwave
        )

        assert yen.subtotal == Decimal('95')  # 1000 / 10.5 = 95.238...
        assert yen.subtotal.as_tuple().exponent == 0
        assert dinar.subtotal == Decimal('0.200')
        assert dinar.total == Decimal('0.500')

    @pytest.mark.parametrize('currency', ['NGN', 'USD', 'GBP', 'JPY', 'KWD'])
    @pytest.mark.parametrize('amount', ['0.01', '3200', '12345.67', '999999.99'])
    def test_settlement_round_trip_stays_within_rounding_tolerance(self, rates, currency, amount):
        # Arrange
        settlement = Decimal(amount)

        # Act
        displayed = round_to_minor_units(rates.to_target(settlement, currency), currency)
        back = rates.to_settlement(displayed, currency)

        # Assert - error is at most half a target minor unit, expressed in settlement
        tolerance = Decimal(1).scaleb(-minor_units(currency)) / 2 * rates.rate(currency)
        assert abs(back - settlement) <= tolerance
