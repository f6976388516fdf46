"""
Payment Gateway Port

One implementation per external processor. Implementations never raise for
provider outcomes; they return a tagged GatewayResult instead.
"""

from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional

from src.service.checkout.domain.entity.order_entity import Order
from src.service.checkout.domain.value_object.buyer_contact import BuyerContact
from src.service.checkout.domain.value_object.checkout_quote import CheckoutQuote
from src.service.checkout.domain.value_object.gateway_result import GatewayResult
from src.service.checkout.domain.value_object.payment_gateway_config import PaymentGatewayConfig


# Receives the hosted payment page URL once the provider session is open
SessionOpenedCallback = Callable[[str], Awaitable[None]]


class IPaymentGateway(ABC):
    @property
    @abstractmethod
    def config(self) -> PaymentGatewayConfig:
        pass

    @abstractmethod
    async def authorize(
        self,
        *,
        order: Order,
        quote: CheckoutQuote,
        buyer: BuyerContact,
        timeout_seconds: float,
        on_session_opened: Optional[SessionOpenedCallback] = None,
    ) -> GatewayResult:
        """
        Open a hosted payment session and wait for its terminal status

        Args:
            order: Order in AWAITING_GATEWAY carrying the caller-supplied payment reference
            quote: Priced checkout (amount and currency to charge)
            buyer: Buyer contact fields the provider requires
            timeout_seconds: Confirmation window; expiry is a GatewayError, not a cancellation
            on_session_opened: Optional callback receiving the authorization URL

        Returns:
            GatewaySuccess | GatewayCancelled | GatewayError
        """
        pass

    @abstractmethod
    async def verify(self, *, reference: str) -> Optional[GatewayResult]:
        """
        One status check for a reference whose wait was cut short

        Returns:
            Terminal GatewayResult, or None while the payment is still pending or the
            provider could not be reached
        """
        pass

    @abstractmethod
    async def refund(self, *, reference: str) -> bool:
        """Best-effort refund of a captured payment; True when the provider accepted it"""
        pass


class IPaymentGatewayRegistry(ABC):
    @abstractmethod
    def get(self, kind: str) -> IPaymentGateway:
        """
        Raises:
            DomainError: Unknown gateway
        """
        pass

    @abstractmethod
    def configs(self) -> list[PaymentGatewayConfig]:
        pass
