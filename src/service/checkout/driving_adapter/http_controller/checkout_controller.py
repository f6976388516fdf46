from collections.abc import AsyncIterator
from typing import Any, Optional
from uuid import UUID

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream
from fastapi import APIRouter, Depends, Query, status
from opentelemetry import trace
import orjson
from sse_starlette.sse import EventSourceResponse

from src.platform.config.di import container
from src.platform.exception.exceptions import CustomBaseError
from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.command.cancel_checkout_use_case import CancelCheckoutUseCase
from src.service.checkout.app.command.checkout_use_case import CheckoutUseCase
from src.service.checkout.app.interface.i_checkout_listener import ICheckoutListener
from src.service.checkout.app.query.get_quote_use_case import GetQuoteUseCase
from src.service.checkout.app.query.list_payment_gateways_use_case import (
    ListPaymentGatewaysUseCase,
)
from src.service.checkout.domain.entity.order_entity import Order
from src.service.checkout.domain.enum.order_status import OrderStatus
from src.service.checkout.domain.value_object.buyer_contact import BuyerContact
from src.service.checkout.driving_adapter.schema.checkout_schema import (
    CancelCheckoutResponse,
    CheckoutRequest,
    PaymentGatewayListResponse,
    PaymentGatewayResponse,
    QuoteRequest,
    QuoteResponse,
)


router = APIRouter()
tracer = trace.get_tracer(__name__)

SSE_BUFFER_SIZE = 32


class StreamCheckoutListener(ICheckoutListener):
    """Pushes each transition into the SSE stream; drops events when the client lags"""

    def __init__(self, send_stream: MemoryObjectSendStream[dict[str, Any]]) -> None:
        self.send_stream = send_stream

    async def on_transition(
        self, *, state: OrderStatus, order: Optional[Order], detail: dict[str, Any]
    ) -> None:
        event = {
            'state': str(state),
            'order_id': str(order.id) if order else None,
            **{k: v for k, v in detail.items() if v is not None},
        }
        try:
            self.send_stream.send_nowait(event)
        except anyio.WouldBlock:
            Logger.base.warning(
                f'📡 [SSE] Buffer full, dropped {state} for order {event["order_id"]}'
            )
        except (anyio.ClosedResourceError, anyio.BrokenResourceError):
            Logger.base.debug(f'📡 [SSE] Client gone, dropped {state}')


async def run_checkout(
    use_case: CheckoutUseCase,
    request: CheckoutRequest,
    send_stream: MemoryObjectSendStream[dict[str, Any]],
) -> None:
    """Run one checkout and close the stream when it ends, whatever the outcome"""
    async with send_stream:
        try:
            await use_case.checkout(
                tier_id=request.tier_id,
                currency=request.currency,
                gateway=request.gateway,
                quantity=request.quantity,
                order_id=request.order_id,
                buyer=BuyerContact(
                    name=request.buyer.name,
                    email=str(request.buyer.email),
                    phone=request.buyer.phone,
                ),
                listener=StreamCheckoutListener(send_stream),
            )
        except CustomBaseError as e:
            # Rejected before an order could be priced (unknown tier, bad quantity, ...)
            await _send_failure(send_stream, message=e.message, status_code=e.status_code)
        except Exception as e:
            Logger.base.exception(f'💥 [CHECKOUT] Unexpected failure: {type(e).__name__}: {e}')
            await _send_failure(send_stream, message='Internal server error', status_code=500)


async def _send_failure(
    send_stream: MemoryObjectSendStream[dict[str, Any]], *, message: str, status_code: int
) -> None:
    try:
        send_stream.send_nowait(
            {
                'state': str(OrderStatus.FAILED),
                'order_id': None,
                'error': {'message': message, 'status_code': status_code, 'retryable': False},
            }
        )
    except (anyio.WouldBlock, anyio.ClosedResourceError, anyio.BrokenResourceError):
        Logger.base.warning(f'📡 [SSE] Could not deliver failure: {message}')


async def _drain(
    receive_stream: MemoryObjectReceiveStream[dict[str, Any]],
) -> AsyncIterator[dict[str, str]]:
    async with receive_stream:
        async for event in receive_stream:
            yield {'event': event['state'], 'data': orjson.dumps(event).decode()}


@router.post('', status_code=status.HTTP_200_OK)
@Logger.io
async def checkout(
    request: CheckoutRequest,
    use_case: CheckoutUseCase = Depends(CheckoutUseCase.depends),
) -> EventSourceResponse:
    """
    Start a checkout and stream its state transitions as server-sent events.

    Events: quoted, stock_checked, awaiting_gateway (authorization_url), gateway_confirmed,
    then exactly one of issued / cancelled / failed, after which the stream closes.

    The checkout runs in the app task group when one is available, so a buyer closing
    the stream after paying still gets their tickets issued.
    """
    with tracer.start_as_current_span('controller.checkout') as span:
        span.set_attribute('tier_id', str(request.tier_id))
        span.set_attribute('currency', request.currency)
        span.set_attribute('gateway', request.gateway)

        send_stream, receive_stream = anyio.create_memory_object_stream[dict[str, Any]](
            max_buffer_size=SSE_BUFFER_SIZE
        )
        task_group = container.task_group()

        if task_group is not None:
            task_group.start_soon(run_checkout, use_case, request, send_stream)
            return EventSourceResponse(_drain(receive_stream))

        async def inline_generator() -> AsyncIterator[dict[str, str]]:
            async with anyio.create_task_group() as tg:
                tg.start_soon(run_checkout, use_case, request, send_stream)
                async for event in _drain(receive_stream):
                    yield event

        return EventSourceResponse(inline_generator())


@router.post('/quote')
@Logger.io
async def quote(
    request: QuoteRequest,
    use_case: GetQuoteUseCase = Depends(GetQuoteUseCase.depends),
) -> QuoteResponse:
    with tracer.start_as_current_span('controller.quote'):
        tier, checkout_quote = await use_case.get_quote(
            tier_id=request.tier_id,
            currency=request.currency,
            gateway=request.gateway,
            quantity=request.quantity,
        )
        return QuoteResponse.from_quote(tier_id=tier.id, tier_name=tier.name, quote=checkout_quote)


@router.get('/gateways')
@Logger.io
async def list_gateways(
    use_case: ListPaymentGatewaysUseCase = Depends(ListPaymentGatewaysUseCase.depends),
) -> PaymentGatewayListResponse:
    configs, rates = use_case.list_gateways()
    return PaymentGatewayListResponse(
        settlement_currency=rates.settlement_currency,
        exchange_rates=dict(rates.rates),
        gateways=[PaymentGatewayResponse.from_config(config) for config in configs],
    )


@router.post('/{order_id}/cancel', status_code=status.HTTP_202_ACCEPTED)
@Logger.io
async def cancel_checkout(
    order_id: UUID,
    use_case: CancelCheckoutUseCase = Depends(CancelCheckoutUseCase.depends),
) -> CancelCheckoutResponse:
    """Storefront reports the buyer closed the payment page; the open stream ends cancelled"""
    with tracer.start_as_current_span('controller.cancel_checkout'):
        return CancelCheckoutResponse(order_id=use_case.cancel(order_id=order_id))


@router.get('/cancel', status_code=status.HTTP_202_ACCEPTED)
@Logger.io
async def cancel_checkout_redirect(
    reference: str = Query(min_length=1, max_length=128),
    use_case: CancelCheckoutUseCase = Depends(CancelCheckoutUseCase.depends),
) -> CancelCheckoutResponse:
    """Target of the provider's cancel redirect (Paystack metadata.cancel_action)"""
    with tracer.start_as_current_span('controller.cancel_checkout_redirect'):
        return CancelCheckoutResponse(order_id=use_case.cancel(reference=reference))
