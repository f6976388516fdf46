"""Checkout Domain Value Objects"""

from src.service.checkout.domain.value_object.buyer_contact import BuyerContact
from src.service.checkout.domain.value_object.checkout_quote import CheckoutQuote
from src.service.checkout.domain.value_object.exchange_rate_table import ExchangeRateTable
from src.service.checkout.domain.value_object.fee_schedule import FeeKind, FeeSchedule
from src.service.checkout.domain.value_object.gateway_result import (
    GatewayCancelled,
    GatewayError,
    GatewayResult,
    GatewaySuccess,
)
from src.service.checkout.domain.value_object.payment_gateway_config import PaymentGatewayConfig
from src.service.checkout.domain.value_object.scan_payload import ScanPayload

__all__ = [
    'BuyerContact',
    'CheckoutQuote',
    'ExchangeRateTable',
    'FeeKind',
    'FeeSchedule',
    'GatewayCancelled',
    'GatewayError',
    'GatewayResult',
    'GatewaySuccess',
    'PaymentGatewayConfig',
    'ScanPayload',
]
