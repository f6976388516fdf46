"""
Unit of Work Pattern - one database session and transaction shared by repositories

Architecture:
- UoW owns the session lifecycle
- UoW owns commit/rollback (exiting without commit rolls back)
- Repositories get the shared session from the UoW
- Use cases coordinate several repositories through the UoW
"""

from __future__ import annotations

import abc
from contextlib import AbstractAsyncContextManager
from typing import TYPE_CHECKING, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession


if TYPE_CHECKING:
    from src.service.checkout.app.interface.i_event_query_repo import IEventQueryRepo
    from src.service.checkout.app.interface.i_order_command_repo import IOrderCommandRepo
    from src.service.checkout.app.interface.i_order_query_repo import IOrderQueryRepo
    from src.service.checkout.app.interface.i_ticket_command_repo import ITicketCommandRepo
    from src.service.checkout.app.interface.i_ticket_query_repo import ITicketQueryRepo
    from src.service.checkout.app.interface.i_ticket_tier_repo import ITicketTierRepo


class AbstractUnitOfWork(abc.ABC):
    """
    Abstract Unit of Work for the Checkout Service

    Usage:
        async with uow:
            await uow.order_command_repo.create(order=...)
            await uow.commit()
    """

    # Order repositories
    order_command_repo: IOrderCommandRepo
    order_query_repo: IOrderQueryRepo

    # Ticket repositories
    ticket_command_repo: ITicketCommandRepo
    ticket_query_repo: ITicketQueryRepo

    # Inventory / catalog
    ticket_tier_repo: ITicketTierRepo
    event_query_repo: IEventQueryRepo

    async def __aenter__(self) -> AbstractUnitOfWork:
        return self

    async def __aexit__(self, *args):
        await self.rollback()

    async def commit(self):
        """Commit the transaction"""
        await self._commit()

    @abc.abstractmethod
    async def _commit(self) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    async def rollback(self) -> None:
        raise NotImplementedError


class SqlAlchemyUnitOfWork(AbstractUnitOfWork):
    """
    SQLAlchemy implementation of Unit of Work

    Opens a session from `session_factory` on enter and closes it on exit.
    """

    def __init__(self, session_factory: Callable[[], AbstractAsyncContextManager[AsyncSession]]):
        self.session_factory = session_factory
        self.session: Optional[AsyncSession] = None
        self._session_cm: Optional[AbstractAsyncContextManager[AsyncSession]] = None

    async def __aenter__(self):
        from src.service.checkout.driven_adapter.repo.event_query_repo_impl import (
            EventQueryRepoImpl,
        )
        from src.service.checkout.driven_adapter.repo.order_command_repo_impl import (
            OrderCommandRepoImpl,
        )
        from src.service.checkout.driven_adapter.repo.order_query_repo_impl import (
            OrderQueryRepoImpl,
        )
        from src.service.checkout.driven_adapter.repo.ticket_command_repo_impl import (
            TicketCommandRepoImpl,
        )
        from src.service.checkout.driven_adapter.repo.ticket_query_repo_impl import (
            TicketQueryRepoImpl,
        )
        from src.service.checkout.driven_adapter.repo.ticket_tier_repo_impl import (
            TicketTierRepoImpl,
        )

        self._session_cm = self.session_factory()
        self.session = await self._session_cm.__aenter__()

        # Create repositories with shared session
        self.order_command_repo = OrderCommandRepoImpl(session=self.session)
        self.order_query_repo = OrderQueryRepoImpl(session=self.session)
        self.ticket_command_repo = TicketCommandRepoImpl(session=self.session)
        self.ticket_query_repo = TicketQueryRepoImpl(session=self.session)
        self.ticket_tier_repo = TicketTierRepoImpl(session=self.session)
        self.event_query_repo = EventQueryRepoImpl(session=self.session)

        return await super().__aenter__()

    async def __aexit__(self, *args):
        try:
            await super().__aexit__(*args)
        finally:
            if self._session_cm is not None:
                await self._session_cm.__aexit__(*args)
            self.session = None
            self._session_cm = None

    async def _commit(self):
        await self.session.commit()  # type: ignore[union-attr]

    async def rollback(self) -> None:
        if self.session is not None:
            await self.session.rollback()
