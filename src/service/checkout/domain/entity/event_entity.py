from datetime import datetime
from typing import Optional
from uuid import UUID

import attrs


@attrs.define(frozen=True)
class Event:
    id: UUID
    title: str
    starts_at: datetime
    venue: str
    location: str
    created_at: Optional[datetime] = None
