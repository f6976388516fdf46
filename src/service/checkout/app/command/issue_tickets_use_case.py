from functools import partial
from typing import Callable, Optional
from uuid import UUID

from anyio.abc import TaskGroup
from opentelemetry import trace

from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.exception.exceptions import ConflictError
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.checkout_metrics import metrics
from src.service.checkout.app.interface.i_ticket_notifier import ITicketNotifier
from src.service.checkout.app.service.inventory_guard import InventoryGuard
from src.service.checkout.domain.checkout_error import IssuanceVerificationFailedError
from src.service.checkout.domain.entity.event_entity import Event
from src.service.checkout.domain.entity.order_entity import Order
from src.service.checkout.domain.entity.ticket_entity import Ticket
from src.service.checkout.domain.entity.ticket_tier_entity import TicketTier
from src.service.checkout.domain.enum.order_status import OrderStatus


class IssueTicketsUseCase:
    """
    Order & Ticket Issuer

    Flow (one unit of work, all-or-nothing):
    1. Replay check: an order already stored returns its tickets, nothing is written
    2. Insert the order row
    3. Insert one ticket row per unit, scan payload keyed by reference + unit index
    4. Read tickets back by order id; a short read-back is IssuanceVerificationFailed,
       and the order is then stored FAILED with its payment reference for support
    5. Inventory guard commit (conditional update; SoldOut rolls everything back)
    6. Commit
    7. Fire-and-forget ticket email; failures are logged and counted only

    Dependencies:
    - uow_factory: builds a fresh unit of work per issuance
    - ticket_notifier: ticket email collaborator
    - task_group: background group for the email; None sends inline (still never raises)
    """

    def __init__(
        self,
        *,
        uow_factory: Callable[[], AbstractUnitOfWork],
        ticket_notifier: ITicketNotifier,
        task_group: Optional[TaskGroup] = None,
    ) -> None:
        self.uow_factory = uow_factory
        self.ticket_notifier = ticket_notifier
        self.task_group = task_group
        self.tracer = trace.get_tracer(__name__)

    @Logger.io
    async def issue(
        self,
        *,
        order: Order,
        gateway_reference: Optional[str],
        event: Event,
        tier: TicketTier,
    ) -> list[Ticket]:
        """
        Issue one ticket per purchased unit and consume the tier stock

        Args:
            order: GATEWAY_CONFIRMED (paid) or STOCK_CHECKED (free) order
            gateway_reference: Settlement reference; None for free orders (FREE-{order_id})
            event: Event the tier belongs to (for the ticket email)
            tier: Purchased tier

        Returns:
            Stored tickets ordered by unit index

        Raises:
            IssuanceVerificationFailedError: Tickets could not be read back after writing
            SoldOutError: Capacity was consumed by another checkout since the stock check
            TierInactiveError: Tier was taken off sale since the stock check
        """
        reference = gateway_reference or order.free_reference

        with self.tracer.start_as_current_span(
            'use_case.issue_tickets',
            attributes={'order.id': str(order.id), 'order.quantity': order.quantity},
        ):
            try:
                issued_order, tickets, replayed = await self._issue_in_transaction(
                    order=order, reference=reference, tier=tier
                )
            except IssuanceVerificationFailedError:
                await self._record_unverified(order=order, reference=reference)
                raise
            except ConflictError:
                # Concurrent replay of the same order id won the insert
                tickets = await self._load_existing_tickets(order=order)
                if not tickets:
                    raise
                Logger.base.info(f'🔁 [ISSUE] Order {order.id} already issued concurrently')
                return tickets

            if replayed:
                if issued_order.status != OrderStatus.ISSUED:
                    # Stored FAILED by an earlier attempt whose read-back came up short
                    raise IssuanceVerificationFailedError(order_id=order.id)
                return tickets

            metrics.record_tickets_issued(
                event_id=str(event.id), tier_id=str(tier.id), count=len(tickets)
            )
            Logger.base.info(
                f'✅ [ISSUE] Order {order.id}: issued {len(tickets)} ticket(s) ref={reference}'
            )

            await self._dispatch_notification(
                order=issued_order, event=event, tier=tier, tickets=tickets
            )
            return tickets

    async def _issue_in_transaction(
        self, *, order: Order, reference: str, tier: TicketTier
    ) -> tuple[Order, list[Ticket], bool]:
        async with self.uow_factory() as uow:
            stored_order = await uow.order_query_repo.get_by_id(order_id=order.id)
            if stored_order is not None:
                Logger.base.info(f'🔁 [ISSUE] Order {order.id} replayed, returning stored tickets')
                stored = await uow.ticket_query_repo.list_by_order_id(order_id=order.id)
                return stored_order, stored, True

            issued_order = order.mark_as_issued()
            await uow.order_command_repo.create(order=issued_order)

            for unit_index in range(order.quantity):
                await uow.ticket_command_repo.create(
                    ticket=Ticket.issue(
                        order_id=order.id,
                        event_id=order.event_id,
                        tier_id=order.tier_id,
                        reference=reference,
                        unit_index=unit_index,
                        price=tier.price,
                    )
                )

            stored = await uow.ticket_query_repo.list_by_order_id(order_id=order.id)
            if len(stored) != order.quantity:
                Logger.base.critical(
                    f'🚨 [ISSUE] Read-back for order {order.id} found {len(stored)} of '
                    f'{order.quantity} ticket(s), payment ref={reference}'
                )
                raise IssuanceVerificationFailedError(order_id=order.id)

            await InventoryGuard(ticket_tier_repo=uow.ticket_tier_repo).commit(
                tier_id=order.tier_id, quantity=order.quantity
            )
            await uow.commit()
            return issued_order, stored, False

    async def _load_existing_tickets(self, *, order: Order) -> list[Ticket]:
        async with self.uow_factory() as uow:
            return await uow.ticket_query_repo.list_by_order_id(order_id=order.id)

    async def _record_unverified(self, *, order: Order, reference: str) -> None:
        """Store the order FAILED with its payment reference so support can find the payment"""
        failed = order.mark_as_failed(payment_reference=reference)
        try:
            async with self.uow_factory() as uow:
                await uow.order_command_repo.create(order=failed)
                await uow.commit()
        except Exception as e:
            # The verification error still reaches the buyer; this log is the last trace
            Logger.base.critical(
                f'🚨 [ISSUE] Could not record failed order {order.id} ref={reference}: '
                f'{type(e).__name__}: {e}'
            )
            return
        Logger.base.warning(
            f'📝 [ISSUE] Order {order.id} stored FAILED for support, ref={reference}'
        )

    @Logger.io
    async def find_finalized(self, *, order_id: UUID) -> Optional[tuple[Order, list[Ticket]]]:
        """
        Stored order and tickets for an order id that already went through issuance

        Returns:
            (order, tickets) for an ISSUED order, or a FAILED one kept after a verification
            failure; None when the order id was never finalized
        """
        async with self.uow_factory() as uow:
            stored = await uow.order_query_repo.get_by_id(order_id=order_id)
            if stored is None:
                return None
            return stored, await uow.ticket_query_repo.list_by_order_id(order_id=order_id)

    async def _dispatch_notification(
        self, *, order: Order, event: Event, tier: TicketTier, tickets: list[Ticket]
    ) -> None:
        send = partial(self._send_tickets, order=order, event=event, tier=tier, tickets=tickets)
        if self.task_group is not None:
            self.task_group.start_soon(send)  # type: ignore[arg-type]
        else:
            await send()

    async def _send_tickets(
        self, *, order: Order, event: Event, tier: TicketTier, tickets: list[Ticket]
    ) -> None:
        try:
            await self.ticket_notifier.send_tickets(
                order=order, event=event, tier=tier, tickets=tickets
            )
        except Exception as e:
            # Issuance is final; delivery failures are only observable here
            metrics.record_notification_failure(notifier=type(self.ticket_notifier).__name__)
            Logger.base.error(
                f'📧 [ISSUE] Ticket email for order {order.id} failed: {type(e).__name__}: {e}'
            )
