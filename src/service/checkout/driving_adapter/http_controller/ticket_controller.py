from fastapi import APIRouter, Depends
from opentelemetry import trace

from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.query.validate_ticket_use_case import ValidateTicketUseCase
from src.service.checkout.driving_adapter.schema.checkout_schema import (
    ValidateTicketRequest,
    ValidateTicketResponse,
)


router = APIRouter()
tracer = trace.get_tracer(__name__)


@router.post('/validate')
@Logger.io
async def validate_ticket(
    request: ValidateTicketRequest,
    use_case: ValidateTicketUseCase = Depends(ValidateTicketUseCase.depends),
) -> ValidateTicketResponse:
    with tracer.start_as_current_span('controller.validate_ticket'):
        result = await use_case.validate(scan_payload=request.scan_payload)
        return ValidateTicketResponse(
            valid=result.valid,
            reason=result.reason,
            ticket_id=result.ticket_id,
            order_id=result.order_id,
            event_title=result.event_title,
            tier_name=result.tier_name,
            is_used=result.is_used,
            scanned_at=result.scanned_at,
        )
