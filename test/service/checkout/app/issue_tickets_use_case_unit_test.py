"""
Unit tests for IssueTicketsUseCase

Covers the all-or-nothing issuance:
1. Order + one ticket per unit + stock commit land together
2. Replays return the stored tickets without writing
3. A short read-back or a lost stock race rolls everything back; an unverified
   payment is still kept on record as a FAILED order
4. Email failures never undo issuance
"""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from uuid_utils.compat import uuid7

from src.service.checkout.app.command.issue_tickets_use_case import IssueTicketsUseCase
from src.service.checkout.domain.checkout_error import (
    IssuanceVerificationFailedError,
    SoldOutError,
)
from src.service.checkout.domain.entity.order_entity import Order
from src.service.checkout.domain.entity.ticket_tier_entity import TicketTier
from src.service.checkout.domain.enum.gateway_kind import GatewayKind
from src.service.checkout.domain.enum.order_status import OrderStatus
from src.service.checkout.domain.value_object.checkout_quote import CheckoutQuote
from src.service.checkout.domain.value_object.scan_payload import ScanPayload
from test.service.checkout.fakes import (
    InMemoryCheckoutStore,
    InMemoryUnitOfWork,
    RecordingNotifier,
    make_buyer,
    make_event,
    make_tier,
)


def _confirmed_order(tier: TicketTier, *, quantity: int, reference: str = 'PSK-REF-1') -> Order:
    quote = CheckoutQuote(
        currency='NGN',
        gateway=GatewayKind.PAYSTACK,
        quantity=quantity,
        exchange_rate=Decimal('1'),
        unit_price=tier.price,
        subtotal=tier.price * quantity,
        fee=Decimal('100'),
        total=tier.price * quantity + Decimal('100'),
        settlement_currency='NGN',
        unit_price_settlement=tier.price,
        subtotal_settlement=tier.price * quantity,
        fee_settlement=Decimal('100'),
        total_settlement=tier.price * quantity + Decimal('100'),
    )
    return (
        Order.create(
            id=uuid7(),
            event_id=tier.event_id,
            tier_id=tier.id,
            unit_price_settlement=tier.price,
            buyer=make_buyer(),
            quote=quote,
            max_quantity=10,
        )
        .mark_as_stock_checked()
        .mark_as_awaiting_gateway(payment_reference='THUB-1-AAAAAA')
        .mark_as_gateway_confirmed(payment_reference=reference)
    )


def _free_order(tier: TicketTier) -> Order:
    quote = CheckoutQuote.free(
        currency='NGN', gateway=GatewayKind.PAYSTACK, quantity=1, settlement_currency='NGN'
    )
    return Order.create(
        id=uuid7(),
        event_id=tier.event_id,
        tier_id=tier.id,
        unit_price_settlement=tier.price,
        buyer=make_buyer(),
        quote=quote,
        max_quantity=10,
    ).mark_as_stock_checked()


@pytest.fixture
def store() -> InMemoryCheckoutStore:
    return InMemoryCheckoutStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def issuer(store: InMemoryCheckoutStore, notifier: RecordingNotifier) -> IssueTicketsUseCase:
    return IssueTicketsUseCase(
        uow_factory=lambda: InMemoryUnitOfWork(store), ticket_notifier=notifier
    )


@pytest.mark.unit
class TestIssueTickets:
    @pytest.mark.asyncio
    async def test_issues_one_ticket_per_unit_and_commits_stock(self, store, notifier, issuer):
        # Arrange
        event = store.add_event(make_event())
        tier = store.add_tier(make_tier(event_id=event.id, total=10, consumed=2))
        order = _confirmed_order(tier, quantity=3)

        # Act
        tickets = await issuer.issue(
            order=order, gateway_reference='PSK-REF-1', event=event, tier=tier
        )

        # Assert - tickets
        assert [t.unit_index for t in tickets] == [0, 1, 2]
        payloads = [ScanPayload.parse(t.scan_payload) for t in tickets]
        assert {p.reference for p in payloads} == {'PSK-REF-1'}
        assert all(t.price == tier.price for t in tickets)

        # Assert - store
        assert store.tiers[tier.id].consumed == 5
        assert store.orders[order.id].status == OrderStatus.ISSUED
        assert len(store.tickets) == 3
        assert store.commits == 1

        # Assert - email went out once
        assert len(notifier.sent) == 1
        assert notifier.sent[0]['tickets'] == tickets

    @pytest.mark.asyncio
    async def test_free_order_uses_the_free_reference(self, store, issuer):
        event = store.add_event(make_event())
        tier = store.add_tier(make_tier(event_id=event.id, price=0, total=5))
        order = _free_order(tier)

        tickets = await issuer.issue(order=order, gateway_reference=None, event=event, tier=tier)

        assert ScanPayload.parse(tickets[0].scan_payload).reference == f'FREE-{order.id}'

    @pytest.mark.asyncio
    async def test_replay_returns_stored_tickets_without_writing(self, store, notifier, issuer):
        # Arrange
        event = store.add_event(make_event())
        tier = store.add_tier(make_tier(event_id=event.id, total=10))
        order = _confirmed_order(tier, quantity=2)
        first = await issuer.issue(
            order=order, gateway_reference='PSK-REF-1', event=event, tier=tier
        )

        # Act
        second = await issuer.issue(
            order=order, gateway_reference='PSK-REF-1', event=event, tier=tier
        )

        # Assert
        assert [t.id for t in second] == [t.id for t in first]
        assert store.tiers[tier.id].consumed == 2
        assert store.commits == 1
        assert len(notifier.sent) == 1

    @pytest.mark.asyncio
    async def test_short_read_back_fails_verification_and_keeps_the_order_on_record(
        self, store, notifier
    ):
        # Arrange - the store swallows the ticket rows
        issuer = IssueTicketsUseCase(
            uow_factory=lambda: InMemoryUnitOfWork(store, hide_tickets=True),
            ticket_notifier=notifier,
        )
        event = store.add_event(make_event())
        tier = store.add_tier(make_tier(event_id=event.id, total=10))
        order = _confirmed_order(tier, quantity=2)

        # Act
        with pytest.raises(IssuanceVerificationFailedError) as exc_info:
            await issuer.issue(order=order, gateway_reference='PSK-REF-1', event=event, tier=tier)

        # Assert - tickets and stock rolled back
        assert exc_info.value.order_id == order.id
        assert store.tickets == {}
        assert store.tiers[tier.id].consumed == 0
        assert notifier.sent == []

        # Assert - the order survives the rollback, FAILED with its payment reference
        stored = store.orders[order.id]
        assert stored.status == OrderStatus.FAILED
        assert stored.payment_reference == 'PSK-REF-1'
        found = await issuer.find_finalized(order_id=order.id)
        assert found is not None and found[0].status == OrderStatus.FAILED

    @pytest.mark.asyncio
    async def test_replaying_an_unverified_order_raises_again_without_writes(
        self, store, notifier
    ):
        issuer = IssueTicketsUseCase(
            uow_factory=lambda: InMemoryUnitOfWork(store, hide_tickets=True),
            ticket_notifier=notifier,
        )
        event = store.add_event(make_event())
        tier = store.add_tier(make_tier(event_id=event.id, total=10))
        order = _confirmed_order(tier, quantity=1)
        with pytest.raises(IssuanceVerificationFailedError):
            await issuer.issue(order=order, gateway_reference='PSK-REF-1', event=event, tier=tier)
        commits = store.commits

        with pytest.raises(IssuanceVerificationFailedError):
            await issuer.issue(order=order, gateway_reference='PSK-REF-1', event=event, tier=tier)

        assert store.commits == commits
        assert store.orders[order.id].status == OrderStatus.FAILED

    @pytest.mark.asyncio
    async def test_find_finalized_is_none_for_an_unknown_order(self, issuer):
        assert await issuer.find_finalized(order_id=uuid7()) is None

    @pytest.mark.asyncio
    async def test_lost_stock_race_rolls_back_order_and_tickets(self, store, notifier, issuer):
        # Arrange - someone else took the last unit after our availability check
        event = store.add_event(make_event())
        tier = store.add_tier(make_tier(event_id=event.id, total=1, consumed=1))
        order = _confirmed_order(tier, quantity=1)

        # Act
        with pytest.raises(SoldOutError):
            await issuer.issue(order=order, gateway_reference='PSK-REF-1', event=event, tier=tier)

        # Assert
        assert store.orders == {}
        assert store.tickets == {}
        assert store.tiers[tier.id].consumed == 1
        assert store.rollbacks == 1
        assert notifier.sent == []

    @pytest.mark.asyncio
    async def test_email_failure_does_not_undo_issuance(self, store):
        issuer = IssueTicketsUseCase(
            uow_factory=lambda: InMemoryUnitOfWork(store),
            ticket_notifier=RecordingNotifier(fail=True),
        )
        event = store.add_event(make_event())
        tier = store.add_tier(make_tier(event_id=event.id, total=10))
        order = _confirmed_order(tier, quantity=1)

        tickets = await issuer.issue(
            order=order, gateway_reference='PSK-REF-1', event=event, tier=tier
        )

        assert len(tickets) == 1
        assert order.id in store.orders
        assert store.tiers[tier.id].consumed == 1

    @pytest.mark.asyncio
    async def test_email_is_dispatched_to_the_task_group_when_present(self, store, notifier):
        task_group = MagicMock()
        issuer = IssueTicketsUseCase(
            uow_factory=lambda: InMemoryUnitOfWork(store),
            ticket_notifier=notifier,
            task_group=task_group,
        )
        event = store.add_event(make_event())
        tier = store.add_tier(make_tier(event_id=event.id, total=10))
        order = _confirmed_order(tier, quantity=1)

        await issuer.issue(order=order, gateway_reference='PSK-REF-1', event=event, tier=tier)

        task_group.start_soon.assert_called_once()
        assert notifier.sent == []
