from decimal import Decimal

import pytest
from uuid_utils.compat import uuid7

from src.platform.exception.exceptions import DomainError
from src.service.checkout.domain.entity.order_entity import Order
from src.service.checkout.domain.entity.ticket_tier_entity import DEFAULT_TABLE_SEATS
from src.service.checkout.domain.enum.gateway_kind import GatewayKind
from src.service.checkout.domain.enum.order_status import OrderStatus
from src.service.checkout.domain.value_object.buyer_contact import BuyerContact
from src.service.checkout.domain.value_object.checkout_quote import CheckoutQuote
from test.service.checkout.fakes import make_buyer, make_tier


def _paid_quote(quantity: int = 1) -> CheckoutQuote:
    return CheckoutQuote(
        currency='NGN',
        gateway=GatewayKind.PAYSTACK,
        quantity=quantity,
        exchange_rate=Decimal('1'),
        unit_price=Decimal('10000.00'),
        subtotal=Decimal('10000.00') * quantity,
        fee=Decimal('100.00'),
        total=Decimal('10000.00') * quantity + Decimal('100.00'),
        settlement_currency='NGN',
        unit_price_settlement=Decimal('10000.00'),
        subtotal_settlement=Decimal('10000.00') * quantity,
        fee_settlement=Decimal('100.00'),
        total_settlement=Decimal('10000.00') * quantity + Decimal('100.00'),
    )


def _create(quote: CheckoutQuote, buyer: BuyerContact | None = None) -> Order:
    return Order.create(
        id=uuid7(),
        event_id=uuid7(),
        tier_id=uuid7(),
        unit_price_settlement=quote.unit_price_settlement,
        buyer=buyer or make_buyer(),
        quote=quote,
        max_quantity=10,
    )


@pytest.mark.unit
class TestOrderLifecycle:
    def test_paid_order_walks_the_full_path(self):
        # Arrange
        order = _create(_paid_quote())

        # Act
        order = order.mark_as_stock_checked()
        order = order.mark_as_awaiting_gateway(payment_reference='THUB-1-ABC')
        order = order.mark_as_gateway_confirmed(payment_reference='PSK-REF-9')
        order = order.mark_as_issued()

        # Assert
        assert order.status == OrderStatus.ISSUED
        assert order.status.is_terminal
        assert order.payment_reference == 'PSK-REF-9'
        assert order.issued_at is not None

    def test_free_order_is_issued_straight_from_stock_checked(self):
        quote = CheckoutQuote.free(
            currency='USD', gateway=GatewayKind.FLUTTERWAVE, quantity=2, settlement_currency='NGN'
        )
        order = _create(quote).mark_as_stock_checked()

        issued = order.mark_as_issued()

        assert issued.is_free
        assert issued.payment_reference == f'FREE-{order.id}'

    def test_free_order_never_awaits_a_gateway(self):
        quote = CheckoutQuote.free(
            currency='NGN', gateway=GatewayKind.PAYSTACK, quantity=1, settlement_currency='NGN'
        )
        order = _create(quote).mark_as_stock_checked()

        with pytest.raises(DomainError):
            order.mark_as_awaiting_gateway(payment_reference='THUB-1-ABC')

    def test_paid_order_cannot_skip_gateway_confirmation(self):
        order = _create(_paid_quote()).mark_as_stock_checked()

        with pytest.raises(DomainError, match='confirmed by the gateway'):
            order.mark_as_issued()

    def test_gateway_cannot_be_reached_before_stock_check(self):
        order = _create(_paid_quote())

        with pytest.raises(DomainError, match='Cannot move order'):
            order.mark_as_awaiting_gateway(payment_reference='THUB-1-ABC')

    @pytest.mark.parametrize('terminal', ['cancel', 'fail'])
    def test_terminal_states_accept_no_further_transition(self, terminal: str):
        order = (
            _create(_paid_quote())
            .mark_as_stock_checked()
            .mark_as_awaiting_gateway(payment_reference='THUB-1-ABC')
        )
        order = order.mark_as_cancelled() if terminal == 'cancel' else order.mark_as_failed()

        with pytest.raises(DomainError):
            order.mark_as_failed()

    def test_failed_order_keeps_the_confirmed_payment_reference(self):
        confirmed = (
            _create(_paid_quote())
            .mark_as_stock_checked()
            .mark_as_awaiting_gateway(payment_reference='THUB-1-A')
            .mark_as_gateway_confirmed(payment_reference='PSK-REF-1')
        )

        assert confirmed.mark_as_failed().payment_reference == 'PSK-REF-1'
        assert confirmed.mark_as_failed(payment_reference='PSK-REF-2').payment_reference == (
            'PSK-REF-2'
        )

    def test_transitions_return_new_instances(self):
        order = _create(_paid_quote())

        checked = order.mark_as_stock_checked()

        assert order.status == OrderStatus.QUOTED
        assert checked.status == OrderStatus.STOCK_CHECKED


@pytest.mark.unit
class TestOrderCreation:
    def test_quantity_above_limit_is_rejected(self):
        with pytest.raises(DomainError, match='between 1 and 10'):
            _create(_paid_quote(quantity=11))

    @pytest.mark.parametrize(
        'buyer',
        [
            BuyerContact(name='  ', email='ada@example.com', phone='+2348012345678'),
            BuyerContact(name='Ada', email='ada@example.com', phone=''),
            BuyerContact(name='Ada', email='not-an-email', phone='+2348012345678'),
        ],
    )
    def test_incomplete_buyer_contact_is_rejected(self, buyer: BuyerContact):
        with pytest.raises(DomainError):
            _create(_paid_quote(), buyer=buyer)

    def test_amounts_are_copied_from_the_quote(self):
        order = _create(_paid_quote(quantity=2))

        assert order.status == OrderStatus.QUOTED
        assert order.quantity == 2
        assert order.total == Decimal('20100.00')
        assert order.fee == Decimal('100.00')
        assert order.total_settlement == Decimal('20100.00')
        assert order.gateway == GatewayKind.PAYSTACK


@pytest.mark.unit
class TestTicketTierDefaults:
    @pytest.mark.parametrize(
        ('name', 'expected'),
        [
            ('Regular', 1),
            ('VIP', 1),
            ('Couple Pass', 2),
            ('Queen & Slim', 2),
            ('Table for 8', 8),
            ('VIP Table', DEFAULT_TABLE_SEATS),
        ],
    )
    def test_default_quantity_from_tier_name(self, name: str, expected: int):
        tier = make_tier(event_id=uuid7(), name=name)

        assert tier.default_quantity == expected

    def test_remaining_never_goes_negative(self):
        tier = make_tier(event_id=uuid7(), total=5, consumed=5)

        assert tier.remaining == 0

    @pytest.mark.parametrize('total', [None, -1])
    def test_capacity_must_be_a_finite_count(self, total):
        with pytest.raises((TypeError, ValueError)):
            make_tier(event_id=uuid7(), total=total)
