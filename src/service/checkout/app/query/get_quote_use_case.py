from typing import Optional, Self
from uuid import UUID

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.core_setting import Settings
from src.platform.config.di import Container
from src.platform.exception.exceptions import DomainError, NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.interface.i_payment_gateway import IPaymentGatewayRegistry
from src.service.checkout.app.interface.i_ticket_tier_repo import ITicketTierRepo
from src.service.checkout.domain.currency_fee_resolver import CurrencyFeeResolver
from src.service.checkout.domain.entity.ticket_tier_entity import TicketTier
from src.service.checkout.domain.value_object.checkout_quote import CheckoutQuote


class GetQuoteUseCase:
    """Price a tier selection without touching stock or gateways."""

    def __init__(
        self,
        *,
        ticket_tier_repo: ITicketTierRepo,
        gateway_registry: IPaymentGatewayRegistry,
        currency_fee_resolver: CurrencyFeeResolver,
        config: Settings,
    ) -> None:
        self.ticket_tier_repo = ticket_tier_repo
        self.gateway_registry = gateway_registry
        self.currency_fee_resolver = currency_fee_resolver
        self.config = config

    @classmethod
    @inject
    def depends(
        cls,
        ticket_tier_repo: ITicketTierRepo = Depends(Provide[Container.ticket_tier_repo]),
        gateway_registry: IPaymentGatewayRegistry = Depends(
            Provide[Container.payment_gateway_registry]
        ),
        currency_fee_resolver: CurrencyFeeResolver = Depends(
            Provide[Container.currency_fee_resolver]
        ),
        config: Settings = Depends(Provide[Container.config_service]),
    ) -> Self:
        return cls(
            ticket_tier_repo=ticket_tier_repo,
            gateway_registry=gateway_registry,
            currency_fee_resolver=currency_fee_resolver,
            config=config,
        )

    @Logger.io
    async def get_quote(
        self, *, tier_id: UUID, currency: str, gateway: str, quantity: Optional[int] = None
    ) -> tuple[TicketTier, CheckoutQuote]:
        """
        Raises:
            NotFoundError: Unknown tier
            DomainError: Quantity out of bounds or unknown gateway
            UnsupportedCurrencyError: Currency unknown or not accepted by the gateway
        """
        tier = await self.ticket_tier_repo.get_by_id(tier_id=tier_id)
        if tier is None:
            raise NotFoundError('Ticket tier not found')

        quantity = quantity or tier.default_quantity
        if quantity < 1 or quantity > self.config.MAX_TICKETS_PER_ORDER:
            raise DomainError(
                f'quantity must be between 1 and {self.config.MAX_TICKETS_PER_ORDER}', 400
            )

        gateway_config = self.gateway_registry.get(gateway).config
        quote = self.currency_fee_resolver.quote(
            unit_price=tier.price, quantity=quantity, currency=currency, gateway=gateway_config
        )
        return tier, quote
