from decimal import Decimal
from typing import Iterable, Mapping, Optional

import httpx

from src.service.checkout.domain.entity.order_entity import Order
from src.service.checkout.domain.enum.gateway_kind import GatewayKind
from src.service.checkout.domain.value_object.buyer_contact import BuyerContact
from src.service.checkout.domain.value_object.checkout_quote import CheckoutQuote
from src.service.checkout.domain.value_object.fee_schedule import FeeSchedule
from src.service.checkout.domain.value_object.gateway_result import (
    GatewayCancelled,
    GatewayError,
    GatewayResult,
    GatewaySuccess,
)
from src.service.checkout.domain.value_object.payment_gateway_config import PaymentGatewayConfig
from src.service.checkout.driven_adapter.gateway.http_payment_gateway import HttpPaymentGateway


def flutterwave_config(
    *, fees: Mapping[str, Decimal], payment_options: Iterable[str]
) -> PaymentGatewayConfig:
    return PaymentGatewayConfig(
        kind=GatewayKind.FLUTTERWAVE,
        display_name='Flutterwave',
        supported_currencies=frozenset(fees),
        fee_schedule=FeeSchedule.by_currency(fees=fees),
        payment_instruments=tuple(payment_options),
        amount_in_minor_units=False,
    )


class FlutterwaveGatewayImpl(HttpPaymentGateway):
    """
    Gateway B: multi-currency, decimal major-unit amounts.

    POST /v3/payments -> data.link
    GET  /v3/transactions/verify_by_reference?tx_ref= -> data.status, data.id
    POST /v3/transactions/{id}/refund

    The success reference is Flutterwave's transaction id, which is also what refunds take.
    """

    async def _open_session(
        self, *, order: Order, quote: CheckoutQuote, buyer: BuyerContact
    ) -> str:
        body = await self._request(
            'POST',
            '/v3/payments',
            json={
                'tx_ref': order.payment_reference,
                'amount': str(quote.total),
                'currency': quote.currency,
                'redirect_url': self.callback_url,
                'payment_options': ','.join(self.config.payment_instruments),
                'customer': {
                    'email': buyer.email,
                    'phonenumber': buyer.phone,
                    'name': buyer.name,
                },
                'meta': {
                    'order_id': str(order.id),
                    'tier_id': str(order.tier_id),
                    'quantity': order.quantity,
                },
            },
        )
        return body['data']['link']

    async def _verify(self, *, reference: str) -> Optional[GatewayResult]:
        response = await self.client.get(
            '/v3/transactions/verify_by_reference', params={'tx_ref': reference}
        )
        if response.status_code == httpx.codes.NOT_FOUND:
            # No charge attempt recorded for the tx_ref yet
            return None
        response.raise_for_status()
        data = response.json().get('data') or {}

        status = data.get('status')
        if status == 'successful':
            return GatewaySuccess(reference=str(data['id']), transaction_id=str(data['id']))
        if status == 'cancelled':
            return GatewayCancelled(reason='cancelled on the payment page')
        if status == 'failed':
            return GatewayError(cause=data.get('processor_response') or 'payment failed')
        return None

    async def _request_refund(self, *, reference: str) -> None:
        await self._request('POST', f'/v3/transactions/{reference}/refund', json={})
