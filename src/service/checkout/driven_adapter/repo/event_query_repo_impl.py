from uuid import UUID

from sqlalchemy import select

from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.interface.i_event_query_repo import IEventQueryRepo
from src.service.checkout.domain.entity.event_entity import Event
from src.service.checkout.driven_adapter.model.event_model import EventModel
from src.service.checkout.driven_adapter.repo.session_scoped_repo import SessionScopedRepo


class EventQueryRepoImpl(SessionScopedRepo, IEventQueryRepo):
    @staticmethod
    def _to_entity(db_event: EventModel) -> Event:
        return Event(
            id=db_event.id,
            title=db_event.title,
            starts_at=db_event.starts_at,
            venue=db_event.venue,
            location=db_event.location,
            created_at=db_event.created_at,
        )

    @Logger.io
    async def get_by_id(self, *, event_id: UUID) -> Event | None:
        async with self._get_session() as session:
            result = await session.execute(select(EventModel).where(EventModel.id == event_id))
            db_event = result.scalar_one_or_none()
            return self._to_entity(db_event) if db_event else None
