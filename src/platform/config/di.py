"""
https://python-dependency-injector.ets-labs.org/index.html
https://python-dependency-injector.ets-labs.org/examples/fastapi-sqlalchemy.html
"""

from dependency_injector import containers, providers

from src.platform.config.core_setting import Settings
from src.platform.database.db_setting import Database
from src.platform.database.unit_of_work import SqlAlchemyUnitOfWork
from src.service.checkout.app.command.issue_tickets_use_case import IssueTicketsUseCase
from src.service.checkout.app.interface.i_ticket_notifier import ITicketNotifier
from src.service.checkout.app.service.pending_payment_registry import PendingPaymentRegistry
from src.service.checkout.domain.currency_fee_resolver import CurrencyFeeResolver
from src.service.checkout.domain.value_object.exchange_rate_table import ExchangeRateTable
from src.service.checkout.driven_adapter.gateway.payment_gateway_registry_impl import (
    PaymentGatewayRegistryImpl,
)
from src.service.checkout.driven_adapter.notifier.http_ticket_notifier_impl import (
    HttpTicketNotifierImpl,
)
from src.service.checkout.driven_adapter.notifier.mock_ticket_notifier_impl import (
    MockTicketNotifierImpl,
)
from src.service.checkout.driven_adapter.repo.event_query_repo_impl import EventQueryRepoImpl
from src.service.checkout.driven_adapter.repo.order_query_repo_impl import OrderQueryRepoImpl
from src.service.checkout.driven_adapter.repo.ticket_query_repo_impl import TicketQueryRepoImpl
from src.service.checkout.driven_adapter.repo.ticket_tier_repo_impl import TicketTierRepoImpl


def build_ticket_notifier(settings: Settings) -> ITicketNotifier:
    if settings.TICKET_MAIL_API_URL:
        return HttpTicketNotifierImpl(
            api_url=settings.TICKET_MAIL_API_URL,
            timeout_seconds=settings.TICKET_MAIL_TIMEOUT_SECONDS,
        )
    return MockTicketNotifierImpl(debug=settings.DEBUG)


class Container(containers.DeclarativeContainer):
    # Configuration
    config_service = providers.Singleton(Settings)

    # Database (uses AsyncEngineManager with settings from core_setting)
    database = providers.Singleton(Database)

    # Background task group (set by main.py lifespan)
    # Used for fire-and-forget work: ticket emails, checkouts outliving their SSE client
    task_group = providers.Object(None)

    # Unit of work (one per issuance)
    unit_of_work = providers.Factory(
        SqlAlchemyUnitOfWork, session_factory=database.provided.session
    )

    # Repositories (stateless - use session_factory per-request)
    ticket_tier_repo = providers.Singleton(
        TicketTierRepoImpl, session_factory=database.provided.session
    )
    event_query_repo = providers.Singleton(
        EventQueryRepoImpl, session_factory=database.provided.session
    )
    order_query_repo = providers.Singleton(
        OrderQueryRepoImpl, session_factory=database.provided.session
    )
    ticket_query_repo = providers.Singleton(
        TicketQueryRepoImpl, session_factory=database.provided.session
    )

    # Currency & fees
    exchange_rate_table = providers.Singleton(
        ExchangeRateTable,
        settlement_currency=config_service.provided.SETTLEMENT_CURRENCY,
        rates=config_service.provided.EXCHANGE_RATES,
    )
    currency_fee_resolver = providers.Singleton(CurrencyFeeResolver, rates=exchange_rate_table)

    # External collaborators
    payment_gateway_registry = providers.Singleton(
        PaymentGatewayRegistryImpl.from_settings, settings=config_service
    )
    ticket_notifier = providers.Singleton(build_ticket_notifier, settings=config_service)

    # Checkouts waiting on a hosted payment page (in-process, per worker)
    pending_payment_registry = providers.Singleton(PendingPaymentRegistry)

    # Issuer (Factory: picks up the lifespan task group once it is set)
    issue_tickets_use_case = providers.Factory(
        IssueTicketsUseCase,
        uow_factory=unit_of_work.provider,
        ticket_notifier=ticket_notifier,
        task_group=task_group,
    )


container = Container()


def setup() -> None:
    container.config_service()
    container.exchange_rate_table()


async def cleanup() -> None:
    await container.payment_gateway_registry().aclose()
    notifier = container.ticket_notifier()
    if isinstance(notifier, HttpTicketNotifierImpl):
        await notifier.aclose()
    container.reset_singletons()
