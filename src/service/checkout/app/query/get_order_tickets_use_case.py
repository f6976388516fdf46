from typing import Self
from uuid import UUID

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.di import Container
from src.platform.exception.exceptions import NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.interface.i_order_query_repo import IOrderQueryRepo
from src.service.checkout.app.interface.i_ticket_query_repo import ITicketQueryRepo
from src.service.checkout.domain.entity.order_entity import Order
from src.service.checkout.domain.entity.ticket_entity import Ticket


class GetOrderTicketsUseCase:
    def __init__(
        self, *, order_query_repo: IOrderQueryRepo, ticket_query_repo: ITicketQueryRepo
    ) -> None:
        self.order_query_repo = order_query_repo
        self.ticket_query_repo = ticket_query_repo

    @classmethod
    @inject
    def depends(
        cls,
        order_query_repo: IOrderQueryRepo = Depends(Provide[Container.order_query_repo]),
        ticket_query_repo: ITicketQueryRepo = Depends(Provide[Container.ticket_query_repo]),
    ) -> Self:
        return cls(order_query_repo=order_query_repo, ticket_query_repo=ticket_query_repo)

    @Logger.io
    async def get_order_tickets(self, *, order_id: UUID) -> tuple[Order, list[Ticket]]:
        order = await self.order_query_repo.get_by_id(order_id=order_id)
        if not order:
            raise NotFoundError('Order not found')

        tickets = await self.ticket_query_repo.list_by_order_id(order_id=order_id)
        return order, tickets
