from contextlib import asynccontextmanager
from typing import AsyncContextManager, AsyncIterator, Callable

from sqlalchemy.ext.asyncio import AsyncSession


class SessionScopedRepo:
    """
    Session handling shared by the checkout repositories.

    Standalone: pass `session_factory` (Database.session) and each call opens its own session.
    UoW mode: pass the unit of work's `session` and every call joins its transaction.
    """

    def __init__(
        self,
        session_factory: Callable[..., AsyncContextManager[AsyncSession]] | None = None,
        *,
        session: AsyncSession | None = None,
    ):
        self.session_factory = session_factory
        self.session = session

    @property
    def in_unit_of_work(self) -> bool:
        return self.session is not None

    @asynccontextmanager
    async def _get_session(self) -> AsyncIterator[AsyncSession]:
        if self.session is not None:
            # Session injected by UoW - use directly (no context manager needed)
            yield self.session
        elif self.session_factory is not None:
            async with self.session_factory() as session:
                yield session
        else:
            raise RuntimeError('No session or session_factory available')
