from typing import Iterable

from src.platform.config.core_setting import Settings
from src.platform.exception.exceptions import DomainError
from src.service.checkout.app.interface.i_payment_gateway import (
    IPaymentGateway,
    IPaymentGatewayRegistry,
)
from src.service.checkout.domain.value_object.payment_gateway_config import PaymentGatewayConfig
from src.service.checkout.driven_adapter.gateway.flutterwave_gateway_impl import (
    FlutterwaveGatewayImpl,
    flutterwave_config,
)
from src.service.checkout.driven_adapter.gateway.paystack_gateway_impl import (
    PaystackGatewayImpl,
    paystack_config,
)


class PaymentGatewayRegistryImpl(IPaymentGatewayRegistry):
    def __init__(self, gateways: Iterable[IPaymentGateway]) -> None:
        self._gateways: dict[str, IPaymentGateway] = {
            str(gateway.config.kind): gateway for gateway in gateways
        }

    @classmethod
    def from_settings(cls, settings: Settings) -> 'PaymentGatewayRegistryImpl':
        shared = {
            'callback_url': settings.PAYMENT_CALLBACK_URL,
            'poll_interval_seconds': settings.PAYMENT_POLL_INTERVAL_SECONDS,
            'http_timeout_seconds': settings.PAYMENT_HTTP_TIMEOUT_SECONDS,
        }
        return cls(
            [
                PaystackGatewayImpl(
                    config=paystack_config(
                        settlement_currency=settings.SETTLEMENT_CURRENCY,
                        flat_fee=settings.PAYSTACK_FLAT_FEE,
                        channels=settings.PAYSTACK_CHANNELS,
                    ),
                    base_url=settings.PAYSTACK_BASE_URL,
                    secret_key=settings.PAYSTACK_SECRET_KEY,
                    cancel_url=settings.PAYMENT_CANCEL_URL,
                    **shared,
                ),
                FlutterwaveGatewayImpl(
                    config=flutterwave_config(
                        fees=settings.FLUTTERWAVE_FEES,
                        payment_options=settings.FLUTTERWAVE_PAYMENT_OPTIONS,
                    ),
                    base_url=settings.FLUTTERWAVE_BASE_URL,
                    secret_key=settings.FLUTTERWAVE_SECRET_KEY,
                    **shared,
                ),
            ]
        )

    def get(self, kind: str) -> IPaymentGateway:
        gateway = self._gateways.get(str(kind).lower())
        if gateway is None:
            raise DomainError(
                f'Unknown payment gateway {kind!r}, expected one of {sorted(self._gateways)}', 400
            )
        return gateway

    def configs(self) -> list[PaymentGatewayConfig]:
        return [gateway.config for gateway in self._gateways.values()]

    async def aclose(self) -> None:
        for gateway in self._gateways.values():
            close = getattr(gateway, 'aclose', None)
            if close is not None:
                await close()
