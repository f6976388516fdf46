from uuid import UUID

from fastapi import APIRouter, Depends
from opentelemetry import trace

from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.query.get_order_tickets_use_case import GetOrderTicketsUseCase
from src.service.checkout.driving_adapter.schema.checkout_schema import OrderTicketsResponse


router = APIRouter()
tracer = trace.get_tracer(__name__)


@router.get('/{order_id}/tickets')
@Logger.io
async def get_order_tickets(
    order_id: UUID,
    use_case: GetOrderTicketsUseCase = Depends(GetOrderTicketsUseCase.depends),
) -> OrderTicketsResponse:
    with tracer.start_as_current_span('controller.get_order_tickets') as span:
        span.set_attribute('order.id', str(order_id))
        order, tickets = await use_case.get_order_tickets(order_id=order_id)
        return OrderTicketsResponse.from_entities(order=order, tickets=tickets)
