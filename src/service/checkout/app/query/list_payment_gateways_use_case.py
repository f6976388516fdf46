from typing import Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.di import Container
from src.service.checkout.app.interface.i_payment_gateway import IPaymentGatewayRegistry
from src.service.checkout.domain.value_object.exchange_rate_table import ExchangeRateTable
from src.service.checkout.domain.value_object.payment_gateway_config import PaymentGatewayConfig


class ListPaymentGatewaysUseCase:
    def __init__(
        self, *, gateway_registry: IPaymentGatewayRegistry, exchange_rates: ExchangeRateTable
    ) -> None:
        self.gateway_registry = gateway_registry
        self.exchange_rates = exchange_rates

    @classmethod
    @inject
    def depends(
        cls,
        gateway_registry: IPaymentGatewayRegistry = Depends(
            Provide[Container.payment_gateway_registry]
        ),
        exchange_rates: ExchangeRateTable = Depends(Provide[Container.exchange_rate_table]),
    ) -> Self:
        return cls(gateway_registry=gateway_registry, exchange_rates=exchange_rates)

    def list_gateways(self) -> tuple[list[PaymentGatewayConfig], ExchangeRateTable]:
        """Gateways with the rate table their display prices are converted with"""
        return self.gateway_registry.configs(), self.exchange_rates
