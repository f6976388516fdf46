import time
from typing import Any, Optional, Self
from uuid import UUID

import anyio
import attrs
from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace
from uuid_utils.compat import uuid7

from src.platform.config.core_setting import Settings
from src.platform.config.di import Container
from src.platform.exception.exceptions import DomainError, NotFoundError
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.checkout_metrics import metrics
from src.service.checkout.app.command.issue_tickets_use_case import IssueTicketsUseCase
from src.service.checkout.app.dto.checkout_result import CheckoutResult
from src.service.checkout.app.interface.i_checkout_listener import ICheckoutListener
from src.service.checkout.app.interface.i_event_query_repo import IEventQueryRepo
from src.service.checkout.app.interface.i_payment_gateway import (
    IPaymentGateway,
    IPaymentGatewayRegistry,
    SessionOpenedCallback,
)
from src.service.checkout.app.interface.i_ticket_tier_repo import ITicketTierRepo
from src.service.checkout.app.service.inventory_guard import InventoryGuard
from src.service.checkout.app.service.pending_payment_registry import (
    PendingPayment,
    PendingPaymentRegistry,
)
from src.service.checkout.domain.checkout_error import (
    CheckoutError,
    GatewayCancelledError,
    InsufficientStockError,
    IssuanceVerificationFailedError,
    PaymentGatewayError,
    TierInactiveError,
)
from src.service.checkout.domain.currency_fee_resolver import CurrencyFeeResolver
from src.service.checkout.domain.entity.event_entity import Event
from src.service.checkout.domain.entity.order_entity import Order
from src.service.checkout.domain.entity.ticket_entity import Ticket
from src.service.checkout.domain.entity.ticket_tier_entity import TicketTier
from src.service.checkout.domain.enum.order_status import OrderStatus
from src.service.checkout.domain.value_object.buyer_contact import BuyerContact
from src.service.checkout.domain.value_object.checkout_quote import CheckoutQuote
from src.service.checkout.domain.value_object.gateway_result import (
    GatewayCancelled,
    GatewayError,
    GatewayResult,
    GatewaySuccess,
)
from src.service.checkout.domain.value_object.payment_reference import (
    generate_payment_reference,
)
from src.service.checkout.domain.value_object.scan_payload import ScanPayload


class CheckoutUseCase:
    """
    Checkout Orchestrator

    States:
        QUOTED -> STOCK_CHECKED -> ISSUED                                   (free)
        QUOTED -> STOCK_CHECKED -> AWAITING_GATEWAY -> GATEWAY_CONFIRMED -> ISSUED (paid)
        any -> FAILED | CANCELLED

    Stock is checked before any gateway interaction, re-read while the buyer is on the
    payment page and committed only by the issuer, so nothing is held across the gateway
    suspension. Checkout errors end the attempt as a CheckoutResult instead of raising.
    """

    def __init__(
        self,
        *,
        ticket_tier_repo: ITicketTierRepo,
        event_query_repo: IEventQueryRepo,
        gateway_registry: IPaymentGatewayRegistry,
        currency_fee_resolver: CurrencyFeeResolver,
        issue_tickets_use_case: IssueTicketsUseCase,
        pending_payments: PendingPaymentRegistry,
        config: Settings,
    ) -> None:
        self.ticket_tier_repo = ticket_tier_repo
        self.event_query_repo = event_query_repo
        self.gateway_registry = gateway_registry
        self.currency_fee_resolver = currency_fee_resolver
        self.issue_tickets_use_case = issue_tickets_use_case
        self.pending_payments = pending_payments
        self.inventory_guard = InventoryGuard(ticket_tier_repo=ticket_tier_repo)
        self.config = config
        self.tracer = trace.get_tracer(__name__)

    @classmethod
    @inject
    def depends(
        cls,
        ticket_tier_repo: ITicketTierRepo = Depends(Provide[Container.ticket_tier_repo]),
        event_query_repo: IEventQueryRepo = Depends(Provide[Container.event_query_repo]),
        gateway_registry: IPaymentGatewayRegistry = Depends(
            Provide[Container.payment_gateway_registry]
        ),
        currency_fee_resolver: CurrencyFeeResolver = Depends(
            Provide[Container.currency_fee_resolver]
        ),
        issue_tickets_use_case: IssueTicketsUseCase = Depends(
            Provide[Container.issue_tickets_use_case]
        ),
        pending_payments: PendingPaymentRegistry = Depends(
            Provide[Container.pending_payment_registry]
        ),
        config: Settings = Depends(Provide[Container.config_service]),
    ) -> Self:
        return cls(
            ticket_tier_repo=ticket_tier_repo,
            event_query_repo=event_query_repo,
            gateway_registry=gateway_registry,
            currency_fee_resolver=currency_fee_resolver,
            issue_tickets_use_case=issue_tickets_use_case,
            pending_payments=pending_payments,
            config=config,
        )

    @Logger.io
    async def checkout(
        self,
        *,
        tier_id: UUID,
        currency: str,
        gateway: str,
        buyer: BuyerContact,
        quantity: Optional[int] = None,
        order_id: Optional[UUID] = None,
        confirmation_timeout_seconds: Optional[float] = None,
        listener: Optional[ICheckoutListener] = None,
    ) -> CheckoutResult:
        """
        Run one checkout attempt end to end

        Args:
            tier_id: Tier being purchased
            currency: Currency the buyer pays in
            gateway: Gateway kind ('paystack' or 'flutterwave')
            buyer: Buyer contact
            quantity: Units; defaults to the tier's default quantity
            order_id: Client-generated order id (UUID7 generated when absent); an id that
                was already issued returns its stored tickets without a new charge
            confirmation_timeout_seconds: Gateway confirmation window (settings default)
            listener: Optional observer of state transitions

        Returns:
            CheckoutResult in ISSUED, FAILED or CANCELLED

        Raises:
            NotFoundError: Unknown tier or event
            DomainError: Invalid request (quantity bounds, buyer contact, unknown gateway)
        """
        started = time.perf_counter()
        client_order_id = order_id is not None
        order_id = order_id or uuid7()
        timeout = (
            confirmation_timeout_seconds or self.config.PAYMENT_CONFIRMATION_TIMEOUT_SECONDS
        )

        with self.tracer.start_as_current_span(
            'use_case.checkout',
            attributes={'order.id': str(order_id), 'gateway': gateway, 'currency': currency},
        ):
            if client_order_id:
                finalized = await self.issue_tickets_use_case.find_finalized(order_id=order_id)
                if finalized is not None:
                    stored_order, stored_tickets = finalized
                    return await self._replay(
                        listener, started, order=stored_order, tickets=stored_tickets
                    )

            tier = await self.ticket_tier_repo.get_by_id(tier_id=tier_id)
            if tier is None:
                raise NotFoundError('Ticket tier not found')
            event = await self.event_query_repo.get_by_id(event_id=tier.event_id)
            if event is None:
                raise NotFoundError('Event not found')

            gateway_adapter = self.gateway_registry.get(gateway)
            quantity = quantity or tier.default_quantity
            if quantity < 1 or quantity > self.config.MAX_TICKETS_PER_ORDER:
                raise DomainError(
                    f'quantity must be between 1 and {self.config.MAX_TICKETS_PER_ORDER}', 400
                )

            order: Optional[Order] = None
            quote: Optional[CheckoutQuote] = None
            try:
                # QUOTED
                quote = self.currency_fee_resolver.quote(
                    unit_price=tier.price,
                    quantity=quantity,
                    currency=currency,
                    gateway=gateway_adapter.config,
                )
                order = Order.create(
                    id=order_id,
                    event_id=tier.event_id,
                    tier_id=tier.id,
                    unit_price_settlement=tier.price,
                    buyer=buyer,
                    quote=quote,
                    max_quantity=self.config.MAX_TICKETS_PER_ORDER,
                )
                await self._emit(listener, order, quote=self._quote_detail(quote))

                # STOCK_CHECKED (mandatory before any gateway interaction)
                remaining = await self.inventory_guard.check_availability(
                    tier_id=tier.id, quantity=quantity
                )
                order = order.mark_as_stock_checked()
                await self._emit(listener, order, remaining=remaining)

                if order.is_free:
                    Logger.base.info(f'🆓 [CHECKOUT] Order {order.id} is free, skipping gateway')
                    tickets = await self.issue_tickets_use_case.issue(
                        order=order, gateway_reference=None, event=event, tier=tier
                    )
                    order = order.mark_as_issued()
                    return await self._finish(
                        listener, started, order=order, quote=quote, tickets=tickets
                    )

                return await self._run_paid_path(
                    listener,
                    started,
                    order=order,
                    quote=quote,
                    buyer=buyer,
                    gateway_adapter=gateway_adapter,
                    timeout=timeout,
                    event=event,
                    tier=tier,
                )
            except CheckoutError as e:
                if order is not None and not order.status.is_terminal:
                    order = order.mark_as_failed()
                return await self._finish(listener, started, order=order, quote=quote, error=e)

    async def _run_paid_path(
        self,
        listener: Optional[ICheckoutListener],
        started: float,
        *,
        order: Order,
        quote: CheckoutQuote,
        buyer: BuyerContact,
        gateway_adapter: IPaymentGateway,
        timeout: float,
        event: Event,
        tier: TicketTier,
    ) -> CheckoutResult:
        order = order.mark_as_awaiting_gateway(payment_reference=generate_payment_reference())
        awaiting_order = order

        async def on_session_opened(authorization_url: str) -> None:
            await self._emit(
                listener,
                awaiting_order,
                authorization_url=authorization_url,
                payment_reference=awaiting_order.payment_reference,
            )

        gateway_started = time.perf_counter()
        gateway_kind = str(gateway_adapter.config.kind)
        with self.tracer.start_as_current_span(
            'checkout.gateway_authorize', attributes={'gateway': gateway_kind}
        ):
            with self.pending_payments.track(
                order_id=order.id, reference=order.payment_reference
            ) as pending:
                result, stock_error = await self._authorize_while_in_stock(
                    gateway_adapter,
                    order=order,
                    quote=quote,
                    buyer=buyer,
                    timeout=timeout,
                    on_session_opened=on_session_opened,
                    pending=pending,
                )

        if stock_error is not None:
            metrics.record_gateway(
                gateway=gateway_kind,
                result='aborted',
                duration=time.perf_counter() - gateway_started,
            )
            Logger.base.info(
                f'🛑 [CHECKOUT] Order {order.id} lost its stock while awaiting payment'
            )
            return await self._finish(
                listener, started, order=order.mark_as_failed(), quote=quote, error=stock_error
            )

        if isinstance(result, GatewayCancelled):
            metrics.record_gateway(
                gateway=gateway_kind,
                result='cancelled',
                duration=time.perf_counter() - gateway_started,
            )
            Logger.base.info(f'🚫 [CHECKOUT] Order {order.id} cancelled: {result.reason}')
            return await self._finish(
                listener,
                started,
                order=order.mark_as_cancelled(),
                quote=quote,
                error=GatewayCancelledError(),
            )

        if isinstance(result, GatewayError):
            metrics.record_gateway(
                gateway=gateway_kind,
                result='error',
                duration=time.perf_counter() - gateway_started,
            )
            Logger.base.warning(f'⚠️ [CHECKOUT] Order {order.id} gateway error: {result.cause}')
            return await self._finish(
                listener,
                started,
                order=order.mark_as_failed(),
                quote=quote,
                error=PaymentGatewayError(result.cause),
            )

        metrics.record_gateway(
            gateway=gateway_kind,
            result='success',
            duration=time.perf_counter() - gateway_started,
        )

        # Payment is captured: finish issuance even if the caller goes away
        with anyio.CancelScope(shield=True):
            order = order.mark_as_gateway_confirmed(payment_reference=result.reference)
            await self._emit(listener, order, payment_reference=result.reference)
            try:
                tickets = await self.issue_tickets_use_case.issue(
                    order=order, gateway_reference=result.reference, event=event, tier=tier
                )
            except (InsufficientStockError, TierInactiveError) as e:
                await self._refund(
                    gateway_adapter,
                    order=order,
                    reference=result.reference,
                    reason='lost its stock after payment',
                )
                return await self._finish(
                    listener, started, order=order.mark_as_failed(), quote=quote, error=e
                )
            except CheckoutError as e:
                return await self._finish(
                    listener, started, order=order.mark_as_failed(), quote=quote, error=e
                )

            issued_reference = result.reference
            if tickets:
                issued_reference = ScanPayload.parse(tickets[0].scan_payload).reference
            if issued_reference != result.reference:
                # A concurrent attempt with the same order id was issued first
                await self._refund(
                    gateway_adapter,
                    order=order,
                    reference=result.reference,
                    reason=f'was already issued under {issued_reference}',
                )
                order = attrs.evolve(order, payment_reference=issued_reference)
            return await self._finish(
                listener, started, order=order.mark_as_issued(), quote=quote, tickets=tickets
            )

    async def _authorize_while_in_stock(
        self,
        gateway_adapter: IPaymentGateway,
        *,
        order: Order,
        quote: CheckoutQuote,
        buyer: BuyerContact,
        timeout: float,
        on_session_opened: SessionOpenedCallback,
        pending: PendingPayment,
    ) -> tuple[Optional[GatewayResult], Optional[CheckoutError]]:
        """
        Wait for the gateway while re-reading stock in the background.

        Nothing is reserved, so another buyer may take the last units meanwhile. When that
        happens the authorization is abandoned before payment instead of refunded after it.
        A buyer closing the payment page ends the wait as GatewayCancelled. Either way the
        reference is verified once more, and a payment that landed meanwhile is returned as
        the result so it is issued (or refunded) rather than dropped.
        Exactly one of the returned pair is set.
        """
        outcome: dict[str, Any] = {}

        async with anyio.create_task_group() as tg:

            async def authorize() -> None:
                outcome['result'] = await gateway_adapter.authorize(
                    order=order,
                    quote=quote,
                    buyer=buyer,
                    timeout_seconds=timeout,
                    on_session_opened=on_session_opened,
                )
                tg.cancel_scope.cancel()

            async def watch_stock() -> None:
                while True:
                    await anyio.sleep(self.config.STOCK_RECHECK_INTERVAL_SECONDS)
                    try:
                        await self.inventory_guard.check_availability(
                            tier_id=order.tier_id, quantity=order.quantity
                        )
                    except (InsufficientStockError, TierInactiveError) as e:
                        if outcome:
                            # Payment already settled; issuance re-validates and refunds
                            return
                        outcome['stock_error'] = e
                        tg.cancel_scope.cancel()
                        return
                    except Exception as e:
                        # The commit re-validates anyway; a failed re-read only skips one round
                        Logger.base.warning(
                            f'⚠️ [CHECKOUT] Stock re-check for order {order.id} failed: '
                            f'{type(e).__name__}: {e}'
                        )

            async def watch_cancel() -> None:
                await pending.cancel_requested.wait()
                if outcome:
                    return
                outcome['cancelled'] = GatewayCancelled(reason='payment page closed by the buyer')
                tg.cancel_scope.cancel()

            tg.start_soon(authorize)
            tg.start_soon(watch_stock)
            tg.start_soon(watch_cancel)

        if 'result' in outcome:
            return outcome['result'], None

        settled = await gateway_adapter.verify(reference=pending.reference)
        if isinstance(settled, GatewaySuccess):
            Logger.base.warning(
                f'💳 [CHECKOUT] Order {order.id} was paid before its wait ended, settling it'
            )
            return settled, None
        return outcome.get('cancelled'), outcome.get('stock_error')

    async def _refund(
        self, gateway_adapter: IPaymentGateway, *, order: Order, reference: str, reason: str
    ) -> None:
        gateway_kind = str(gateway_adapter.config.kind)
        Logger.base.warning(f'💸 [CHECKOUT] Order {order.id} {reason}, refunding {reference}')
        refunded = await gateway_adapter.refund(reference=reference)
        metrics.record_refund(gateway=gateway_kind, result='accepted' if refunded else 'rejected')
        if not refunded:
            Logger.base.critical(
                f'🚨 [CHECKOUT] Refund for order {order.id} ref={reference} was not accepted'
            )

    async def _replay(
        self,
        listener: Optional[ICheckoutListener],
        started: float,
        *,
        order: Order,
        tickets: list[Ticket],
    ) -> CheckoutResult:
        """Order id already went through issuance: report it again, never charge again"""
        Logger.base.info(
            f'🔁 [CHECKOUT] Order {order.id} already {order.status}, returning the stored outcome'
        )
        if order.status == OrderStatus.ISSUED:
            return await self._finish(listener, started, order=order, quote=None, tickets=tickets)
        return await self._finish(
            listener,
            started,
            order=order,
            quote=None,
            error=IssuanceVerificationFailedError(order_id=order.id),
        )

    async def _finish(
        self,
        listener: Optional[ICheckoutListener],
        started: float,
        *,
        order: Optional[Order],
        quote: Optional[CheckoutQuote],
        tickets: Optional[list[Ticket]] = None,
        error: Optional[CheckoutError] = None,
    ) -> CheckoutResult:
        state = order.status if order is not None else OrderStatus.FAILED
        result = CheckoutResult(
            state=state, order=order, quote=quote, tickets=tickets or [], error=error
        )
        metrics.record_checkout(
            gateway=str(order.gateway if order else quote.gateway if quote else 'unknown'),
            currency=order.currency if order else quote.currency if quote else 'unknown',
            state=str(state),
            error_code=str(error.code) if error else '',
            duration=time.perf_counter() - started,
        )
        await self._emit(
            listener,
            order,
            state=state,
            tickets=[t.scan_payload for t in result.tickets],
            error=self._error_detail(error),
        )
        return result

    async def _emit(
        self,
        listener: Optional[ICheckoutListener],
        order: Optional[Order],
        *,
        state: Optional[OrderStatus] = None,
        **detail: Any,
    ) -> None:
        if listener is None:
            return
        state = state or (order.status if order is not None else OrderStatus.FAILED)
        try:
            await listener.on_transition(state=state, order=order, detail=detail)
        except Exception as e:
            # A gone listener must not abort a checkout that may already be paid
            Logger.base.warning(
                f'📡 [CHECKOUT] Listener failed on {state}: {type(e).__name__}: {e}'
            )

    @staticmethod
    def _quote_detail(quote: CheckoutQuote) -> dict[str, Any]:
        return {
            'currency': quote.currency,
            'quantity': quote.quantity,
            'unit_price': str(quote.unit_price),
            'subtotal': str(quote.subtotal),
            'fee': str(quote.fee),
            'total': str(quote.total),
            'total_settlement': str(quote.total_settlement),
        }

    @staticmethod
    def _error_detail(error: Optional[CheckoutError]) -> Optional[dict[str, Any]]:
        if error is None:
            return None
        detail: dict[str, Any] = {
            'code': str(error.code),
            'message': error.message,
            'retryable': error.retryable,
        }
        if (order_id := getattr(error, 'order_id', None)) is not None:
            detail['order_id'] = str(order_id)
        return detail
