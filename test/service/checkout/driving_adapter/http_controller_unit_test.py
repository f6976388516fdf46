"""
HTTP surface tests

Use cases are real, wired to the in-memory store through dependency overrides;
the app runs without its production lifespan, so checkouts run inline in the SSE stream.
"""

from decimal import Decimal
from typing import Any, Iterator

from fastapi.testclient import TestClient
import orjson
import pytest
from uuid_utils.compat import uuid7

from src.platform.app_factory import create_app
from src.platform.config.core_setting import Settings
from src.service.checkout.app.command.cancel_checkout_use_case import CancelCheckoutUseCase
from src.service.checkout.app.command.checkout_use_case import CheckoutUseCase
from src.service.checkout.app.command.issue_tickets_use_case import IssueTicketsUseCase
from src.service.checkout.app.query.get_order_tickets_use_case import GetOrderTicketsUseCase
from src.service.checkout.app.query.get_quote_use_case import GetQuoteUseCase
from src.service.checkout.app.query.list_payment_gateways_use_case import (
    ListPaymentGatewaysUseCase,
)
from src.service.checkout.app.query.validate_ticket_use_case import ValidateTicketUseCase
from src.service.checkout.app.service.pending_payment_registry import PendingPaymentRegistry
from src.service.checkout.domain.currency_fee_resolver import CurrencyFeeResolver
from src.service.checkout.domain.value_object.exchange_rate_table import ExchangeRateTable
from src.service.checkout.domain.value_object.gateway_result import GatewayCancelled
from src.service.checkout.driven_adapter.gateway.flutterwave_gateway_impl import (
    flutterwave_config,
)
from src.service.checkout.driven_adapter.gateway.payment_gateway_registry_impl import (
    PaymentGatewayRegistryImpl,
)
from src.service.checkout.driven_adapter.gateway.paystack_gateway_impl import paystack_config
from test.service.checkout.fakes import (
    InMemoryCheckoutStore,
    InMemoryEventQueryRepo,
    InMemoryOrderQueryRepo,
    InMemoryTicketQueryRepo,
    InMemoryTicketTierRepo,
    InMemoryUnitOfWork,
    RecordingNotifier,
    StubPaymentGateway,
    make_event,
    make_tier,
)
from test.test_main import no_op_lifespan


RATES = ExchangeRateTable(settlement_currency='NGN', rates={'NGN': 1, 'USD': 1600})
BUYER = {'name': 'Ada Obi', 'email': 'ada@example.com', 'phone': '+2348012345678'}


def parse_sse_events(response: Any) -> list[dict[str, Any]]:
    events: list[dict[str, Any]] = []
    current_event: dict[str, Any] = {}
    for line in response.iter_lines():
        line = line.strip()
        if not line:
            if current_event:
                events.append(current_event)
                current_event = {}
            continue
        if line.startswith('event:'):
            current_event['event'] = line.split(':', 1)[1].strip()
        elif line.startswith('data:'):
            current_event['data'] = orjson.loads(line.split(':', 1)[1].strip())
    if current_event:
        events.append(current_event)
    return events


class _Harness:
    def __init__(self, *, flutterwave_result: Any = None) -> None:
        self.store = InMemoryCheckoutStore()
        self.notifier = RecordingNotifier()
        self.paystack = StubPaymentGateway(
            paystack_config(settlement_currency='NGN', flat_fee=Decimal('100'), channels=['card'])
        )
        self.flutterwave = StubPaymentGateway(
            flutterwave_config(fees={'NGN': 150, 'USD': 1}, payment_options=['card']),
            result=flutterwave_result,
        )
        self.registry = PaymentGatewayRegistryImpl([self.paystack, self.flutterwave])
        self.pending_payments = PendingPaymentRegistry()
        self.config = Settings(STOCK_RECHECK_INTERVAL_SECONDS=0.01)  # type: ignore[call-arg]

    def checkout_use_case(self) -> CheckoutUseCase:
        return CheckoutUseCase(
            ticket_tier_repo=InMemoryTicketTierRepo(self.store),
            event_query_repo=InMemoryEventQueryRepo(self.store),
            gateway_registry=self.registry,
            currency_fee_resolver=CurrencyFeeResolver(rates=RATES),
            issue_tickets_use_case=IssueTicketsUseCase(
                uow_factory=lambda: InMemoryUnitOfWork(self.store),
                ticket_notifier=self.notifier,
            ),
            pending_payments=self.pending_payments,
            config=self.config,
        )

    def cancel_use_case(self) -> CancelCheckoutUseCase:
        return CancelCheckoutUseCase(pending_payments=self.pending_payments)

    def quote_use_case(self) -> GetQuoteUseCase:
        return GetQuoteUseCase(
            ticket_tier_repo=InMemoryTicketTierRepo(self.store),
            gateway_registry=self.registry,
            currency_fee_resolver=CurrencyFeeResolver(rates=RATES),
            config=self.config,
        )

    def list_gateways_use_case(self) -> ListPaymentGatewaysUseCase:
        return ListPaymentGatewaysUseCase(gateway_registry=self.registry, exchange_rates=RATES)

    def order_tickets_use_case(self) -> GetOrderTicketsUseCase:
        return GetOrderTicketsUseCase(
            order_query_repo=InMemoryOrderQueryRepo(self.store),
            ticket_query_repo=InMemoryTicketQueryRepo(self.store),
        )

    def validate_use_case(self) -> ValidateTicketUseCase:
        return ValidateTicketUseCase(
            ticket_query_repo=InMemoryTicketQueryRepo(self.store),
            event_query_repo=InMemoryEventQueryRepo(self.store),
            ticket_tier_repo=InMemoryTicketTierRepo(self.store),
        )


def _client_for(harness: _Harness) -> Iterator[TestClient]:
    app = create_app(lifespan=no_op_lifespan, title_suffix=' (Test)')
    app.dependency_overrides[CheckoutUseCase.depends] = harness.checkout_use_case
    app.dependency_overrides[CancelCheckoutUseCase.depends] = harness.cancel_use_case
    app.dependency_overrides[GetQuoteUseCase.depends] = harness.quote_use_case
    app.dependency_overrides[ListPaymentGatewaysUseCase.depends] = harness.list_gateways_use_case
    app.dependency_overrides[GetOrderTicketsUseCase.depends] = harness.order_tickets_use_case
    app.dependency_overrides[ValidateTicketUseCase.depends] = harness.validate_use_case
    with TestClient(app) as client:
        yield client


@pytest.fixture
def harness() -> _Harness:
    return _Harness()


@pytest.fixture
def client(harness: _Harness) -> Iterator[TestClient]:
    yield from _client_for(harness)


def _checkout(client: TestClient, payload: dict[str, Any]) -> list[dict[str, Any]]:
    with client.stream('POST', '/api/checkout', json=payload) as response:
        assert response.status_code == 200
        assert response.headers['content-type'].startswith('text/event-stream')
        return parse_sse_events(response)


@pytest.mark.unit
class TestCheckoutStream:
    def test_paid_checkout_streams_every_transition(self, harness, client):
        # Arrange
        event = harness.store.add_event(make_event())
        tier = harness.store.add_tier(make_tier(event_id=event.id, price=3200, total=10))

        # Act
        events = _checkout(
            client,
            {
                'tier_id': str(tier.id),
                'currency': 'usd',
                'gateway': 'flutterwave',
                'quantity': 1,
                'buyer': BUYER,
            },
        )

        # Assert - event names
        assert [e['event'] for e in events] == [
            'quoted',
            'stock_checked',
            'awaiting_gateway',
            'gateway_confirmed',
            'issued',
        ]

        # Assert - payloads
        quoted = events[0]['data']
        assert quoted['currency'] == 'USD'
        assert quoted['total'] == '3.00'
        awaiting = events[2]['data']
        assert awaiting['authorization_url'].startswith('https://pay.test/THUB-')
        issued = events[-1]['data']
        assert len(issued['tickets']) == 1
        assert {e['data']['order_id'] for e in events} == {issued['order_id']}
        assert harness.store.tiers[tier.id].consumed == 1

    def test_cancelled_payment_ends_with_cancelled_event(self):
        harness = _Harness(flutterwave_result=GatewayCancelled())
        event = harness.store.add_event(make_event())
        tier = harness.store.add_tier(make_tier(event_id=event.id, price=3200, total=10))

        for client in _client_for(harness):
            events = _checkout(
                client,
                {
                    'tier_id': str(tier.id),
                    'currency': 'NGN',
                    'gateway': 'flutterwave',
                    'buyer': BUYER,
                },
            )

        final = events[-1]
        assert final['event'] == 'cancelled'
        assert final['data']['error']['code'] == 'GATEWAY_CANCELLED'
        assert harness.store.orders == {}

    def test_unknown_tier_streams_a_single_failure(self, client):
        events = _checkout(
            client,
            {
                'tier_id': str(uuid7()),
                'currency': 'NGN',
                'gateway': 'paystack',
                'buyer': BUYER,
            },
        )

        assert len(events) == 1
        assert events[0]['event'] == 'failed'
        assert events[0]['data']['order_id'] is None
        assert events[0]['data']['error']['status_code'] == 404

    def test_unsupported_currency_fails_with_code(self, harness, client):
        event = harness.store.add_event(make_event())
        tier = harness.store.add_tier(make_tier(event_id=event.id, price=3200))

        events = _checkout(
            client,
            {'tier_id': str(tier.id), 'currency': 'USD', 'gateway': 'paystack', 'buyer': BUYER},
        )

        assert events[-1]['event'] == 'failed'
        assert events[-1]['data']['error']['code'] == 'UNSUPPORTED_CURRENCY'
        assert harness.paystack.authorize_calls == []

    def test_invalid_email_is_rejected_before_streaming(self, client):
        response = client.post(
            '/api/checkout',
            json={
                'tier_id': str(uuid7()),
                'currency': 'NGN',
                'gateway': 'paystack',
                'buyer': {**BUYER, 'email': 'not-an-email'},
            },
        )

        assert response.status_code == 400
        assert 'detail' in response.json()


@pytest.mark.unit
class TestQuoteEndpoints:
    def test_quote_returns_buyer_and_settlement_amounts(self, harness, client):
        event = harness.store.add_event(make_event())
        tier = harness.store.add_tier(make_tier(event_id=event.id, price=3200))

        response = client.post(
            '/api/checkout/quote',
            json={'tier_id': str(tier.id), 'currency': 'USD', 'gateway': 'flutterwave'},
        )

        assert response.status_code == 200
        body = response.json()
        assert body['tier_name'] == 'Regular'
        assert Decimal(body['total']) == Decimal('3.00')
        assert Decimal(body['total_settlement']) == Decimal('4800.00')
        assert body['is_free'] is False

    def test_quote_in_unsupported_currency_is_400_with_code(self, harness, client):
        event = harness.store.add_event(make_event())
        tier = harness.store.add_tier(make_tier(event_id=event.id, price=3200))

        response = client.post(
            '/api/checkout/quote',
            json={'tier_id': str(tier.id), 'currency': 'USD', 'gateway': 'paystack'},
        )

        assert response.status_code == 400
        assert response.json()['code'] == 'UNSUPPORTED_CURRENCY'
        assert response.json()['retryable'] is False

    def test_quote_for_unknown_tier_is_404(self, client):
        response = client.post(
            '/api/checkout/quote',
            json={'tier_id': str(uuid7()), 'currency': 'NGN', 'gateway': 'paystack'},
        )

        assert response.status_code == 404

    def test_gateways_lists_fees_and_rates(self, client):
        response = client.get('/api/checkout/gateways')

        assert response.status_code == 200
        body = response.json()
        assert body['settlement_currency'] == 'NGN'
        gateways = {g['kind']: g for g in body['gateways']}
        assert gateways['paystack']['supported_currencies'] == ['NGN']
        assert gateways['paystack']['fee_kind'] == 'flat'
        assert Decimal(gateways['flutterwave']['fees_by_currency']['USD']) == Decimal('1')


@pytest.mark.unit
class TestCancelEndpoints:
    def test_cancel_for_a_waiting_order_is_accepted(self, harness, client, monkeypatch):
        order_id = uuid7()
        requested: list[dict[str, Any]] = []

        def request_cancel(**kwargs: Any) -> Any:
            requested.append(kwargs)
            return order_id

        monkeypatch.setattr(harness.pending_payments, 'request_cancel', request_cancel)

        response = client.post(f'/api/checkout/{order_id}/cancel')

        assert response.status_code == 202
        assert response.json() == {'order_id': str(order_id), 'state': 'cancelling'}
        assert requested == [{'order_id': order_id, 'reference': None}]

    def test_cancel_redirect_resolves_the_reference(self, harness, client, monkeypatch):
        order_id = uuid7()
        requested: list[dict[str, Any]] = []

        def request_cancel(**kwargs: Any) -> Any:
            requested.append(kwargs)
            return order_id

        monkeypatch.setattr(harness.pending_payments, 'request_cancel', request_cancel)

        response = client.get(
            '/api/checkout/cancel', params={'reference': 'THUB-1718000000000-ABC123'}
        )

        assert response.status_code == 202
        assert response.json()['order_id'] == str(order_id)
        assert requested == [{'order_id': None, 'reference': 'THUB-1718000000000-ABC123'}]

    def test_cancel_for_an_order_not_awaiting_payment_is_404(self, client):
        response = client.post(f'/api/checkout/{uuid7()}/cancel')

        assert response.status_code == 404

    def test_cancel_redirect_for_an_unknown_reference_is_404(self, client):
        response = client.get('/api/checkout/cancel', params={'reference': 'THUB-0-NOPE'})

        assert response.status_code == 404

    def test_cancel_redirect_requires_a_reference(self, client):
        response = client.get('/api/checkout/cancel')

        assert response.status_code == 422


@pytest.mark.unit
class TestOrderAndTicketEndpoints:
    def test_issued_order_tickets_and_validation(self, harness, client):
        # Arrange - a free checkout
        event = harness.store.add_event(make_event())
        tier = harness.store.add_tier(make_tier(event_id=event.id, price=0, name='Couple Pass'))
        events = _checkout(
            client,
            {'tier_id': str(tier.id), 'currency': 'NGN', 'gateway': 'paystack', 'buyer': BUYER},
        )
        order_id = events[-1]['data']['order_id']

        # Act
        tickets_response = client.get(f'/api/orders/{order_id}/tickets')

        # Assert - couple tiers default to two tickets
        assert tickets_response.status_code == 200
        body = tickets_response.json()
        assert body['status'] == 'issued'
        assert [t['unit_index'] for t in body['tickets']] == [0, 1]
        assert body['payment_reference'] == f'FREE-{order_id}'

        # Act - scan the first ticket
        validation = client.post(
            '/api/tickets/validate', json={'scan_payload': body['tickets'][0]['scan_payload']}
        )

        # Assert
        assert validation.status_code == 200
        assert validation.json()['valid'] is True
        assert validation.json()['tier_name'] == 'Couple Pass'

    def test_unknown_order_is_404(self, client):
        response = client.get(f'/api/orders/{uuid7()}/tickets')

        assert response.status_code == 404

    def test_malformed_scan_is_not_valid(self, client):
        response = client.post('/api/tickets/validate', json={'scan_payload': 'garbage'})

        assert response.status_code == 200
        assert response.json() == {
            'valid': False,
            'reason': 'malformed',
            'ticket_id': None,
            'order_id': None,
            'event_title': None,
            'tier_name': None,
            'is_used': False,
            'scanned_at': None,
        }


@pytest.mark.unit
class TestCommonEndpoints:
    def test_health(self, client):
        response = client.get('/health')

        assert response.status_code == 200
        assert response.json()['status'] == 'healthy'

    def test_metrics_exposes_prometheus_text(self, client):
        response = client.get('/metrics')

        assert response.status_code == 200
        assert response.headers['content-type'].startswith('text/plain')
