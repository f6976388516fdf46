from decimal import Decimal
from typing import Any, Iterable, Optional
from urllib.parse import urlencode

from src.service.checkout.domain.entity.order_entity import Order
from src.service.checkout.domain.enum.gateway_kind import GatewayKind
from src.service.checkout.domain.value_object.buyer_contact import BuyerContact
from src.service.checkout.domain.value_object.checkout_quote import CheckoutQuote
from src.service.checkout.domain.value_object.fee_schedule import FeeSchedule
from src.service.checkout.domain.value_object.gateway_result import (
    GatewayError,
    GatewayResult,
    GatewaySuccess,
)
from src.service.checkout.domain.value_object.money import to_minor_unit_integer
from src.service.checkout.domain.value_object.payment_gateway_config import PaymentGatewayConfig
from src.service.checkout.driven_adapter.gateway.http_payment_gateway import HttpPaymentGateway


# Statuses reported by /transaction/verify; anything else is still in flight.
# Paystack reports an unpaid session as "abandoned" until the buyer pays, so it is not terminal;
# a buyer closing the page is reported through the cancel_action redirect instead.
_FAILED_STATUSES = frozenset({'failed', 'reversed'})


def paystack_config(
    *, settlement_currency: str, flat_fee: Decimal, channels: Iterable[str]
) -> PaymentGatewayConfig:
    return PaymentGatewayConfig(
        kind=GatewayKind.PAYSTACK,
        display_name='Paystack',
        supported_currencies=frozenset({settlement_currency}),
        fee_schedule=FeeSchedule.flat(amount=flat_fee, currency=settlement_currency),
        payment_instruments=tuple(channels),
        amount_in_minor_units=True,
    )


class PaystackGatewayImpl(HttpPaymentGateway):
    """
    Gateway A: settlement currency only, integer minor-unit amounts (kobo).

    POST /transaction/initialize -> data.authorization_url
    GET  /transaction/verify/{reference} -> data.status
    POST /refund {transaction: reference}

    metadata.cancel_action sends a buyer who closes the hosted page to cancel_url with
    the reference, which ends the wait as a cancellation.
    """

    def __init__(self, *, cancel_url: str = '', **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.cancel_url = cancel_url

    def _cancel_action(self, reference: Optional[str]) -> Optional[str]:
        if not self.cancel_url or not reference:
            return None
        return f'{self.cancel_url}?{urlencode({"reference": reference})}'

    async def _open_session(
        self, *, order: Order, quote: CheckoutQuote, buyer: BuyerContact
    ) -> str:
        body = await self._request(
            'POST',
            '/transaction/initialize',
            json={
                'email': buyer.email,
                'amount': to_minor_unit_integer(quote.total, quote.currency),
                'currency': quote.currency,
                'reference': order.payment_reference,
                'callback_url': self.callback_url,
                'channels': list(self.config.payment_instruments),
                'metadata': {
                    'order_id': str(order.id),
                    'tier_id': str(order.tier_id),
                    'quantity': order.quantity,
                    'buyer_name': buyer.name,
                    'buyer_phone': buyer.phone,
                    'cancel_action': self._cancel_action(order.payment_reference),
                },
            },
        )
        return body['data']['authorization_url']

    async def _verify(self, *, reference: str) -> Optional[GatewayResult]:
        body = await self._request('GET', f'/transaction/verify/{reference}')
        data = body['data']
        status = data.get('status')
        if status == 'success':
            return GatewaySuccess(
                reference=data.get('reference') or reference,
                transaction_id=str(data['id']) if data.get('id') is not None else None,
            )
        if status in _FAILED_STATUSES:
            return GatewayError(cause=data.get('gateway_response') or f'payment {status}')
        return None

    async def _request_refund(self, *, reference: str) -> None:
        await self._request('POST', '/refund', json={'transaction': reference})
