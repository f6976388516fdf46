from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID

import attrs
from uuid_utils.compat import uuid7

from src.service.checkout.domain.value_object.scan_payload import ScanPayload


@attrs.define(frozen=True)
class Ticket:
    id: UUID
    order_id: UUID
    event_id: UUID
    tier_id: UUID
    unit_index: int
    scan_payload: str
    price: Decimal  # settlement currency attributed to this unit
    is_used: bool = False
    scanned_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @classmethod
    def issue(
        cls,
        *,
        order_id: UUID,
        event_id: UUID,
        tier_id: UUID,
        reference: str,
        unit_index: int,
        price: Decimal,
    ) -> 'Ticket':
        payload = ScanPayload(
            event_id=event_id, tier_id=tier_id, reference=reference, index=unit_index
        )
        return cls(
            id=uuid7(),
            order_id=order_id,
            event_id=event_id,
            tier_id=tier_id,
            unit_index=unit_index,
            scan_payload=payload.encode(),
            price=price,
            is_used=False,
            created_at=datetime.now(timezone.utc),
        )
