"""
Hosted-checkout gateway base

Both processors follow the same shape:
1. Open a hosted payment session for the caller's reference -> authorization URL
2. Hand the URL to the buyer (on_session_opened)
3. Poll the verify endpoint until a terminal status or the confirmation window closes
4. Verify once more when the window closes, so a late payment is not lost

Provider outcomes are returned as GatewayResult values; transport failures and
an expired window become GatewayError so the buyer can retry the whole checkout.
"""

import time
from abc import abstractmethod
from typing import Any, Optional

import anyio
import httpx
from pydantic import SecretStr

from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.interface.i_payment_gateway import (
    IPaymentGateway,
    SessionOpenedCallback,
)
from src.service.checkout.domain.entity.order_entity import Order
from src.service.checkout.domain.value_object.buyer_contact import BuyerContact
from src.service.checkout.domain.value_object.checkout_quote import CheckoutQuote
from src.service.checkout.domain.value_object.gateway_result import (
    GatewayError,
    GatewayResult,
)
from src.service.checkout.domain.value_object.payment_gateway_config import PaymentGatewayConfig


class ProviderResponseError(Exception):
    """Provider answered, but not with something we can act on"""


class HttpPaymentGateway(IPaymentGateway):
    def __init__(
        self,
        *,
        config: PaymentGatewayConfig,
        base_url: str,
        secret_key: SecretStr,
        callback_url: str,
        poll_interval_seconds: float = 3.0,
        http_timeout_seconds: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._config = config
        self.base_url = base_url.rstrip('/')
        self.secret_key = secret_key
        self.callback_url = callback_url
        self.poll_interval_seconds = poll_interval_seconds
        self.http_timeout_seconds = http_timeout_seconds
        self._client = client

    @property
    def config(self) -> PaymentGatewayConfig:
        return self._config

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.http_timeout_seconds,
                headers={'Authorization': f'Bearer {self.secret_key.get_secret_value()}'},
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @abstractmethod
    async def _open_session(
        self, *, order: Order, quote: CheckoutQuote, buyer: BuyerContact
    ) -> str:
        """Returns the hosted authorization URL"""

    @abstractmethod
    async def _verify(self, *, reference: str) -> Optional[GatewayResult]:
        """Terminal result for the reference, or None while the payment is still pending"""

    @abstractmethod
    async def _request_refund(self, *, reference: str) -> None:
        """Raises httpx.HTTPError or ProviderResponseError when the refund is rejected"""

    async def _request(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        response = await self.client.request(method, url, **kwargs)
        response.raise_for_status()
        body = response.json()
        if not isinstance(body, dict) or body.get('status') in (False, 'error'):
            raise ProviderResponseError(
                body.get('message', 'unexpected response') if isinstance(body, dict) else body
            )
        return body

    @Logger.io
    async def authorize(
        self,
        *,
        order: Order,
        quote: CheckoutQuote,
        buyer: BuyerContact,
        timeout_seconds: float,
        on_session_opened: Optional[SessionOpenedCallback] = None,
    ) -> GatewayResult:
        reference = order.payment_reference
        if not reference:
            return GatewayError(cause='order has no payment reference')

        try:
            authorization_url = await self._open_session(order=order, quote=quote, buyer=buyer)
        except (httpx.HTTPError, ProviderResponseError, KeyError) as e:
            Logger.base.warning(
                f'💳 [{self.config.kind}] Session for {reference} failed: {type(e).__name__}: {e}'
            )
            return GatewayError(cause=f'could not open payment session: {e}')

        Logger.base.info(f'💳 [{self.config.kind}] Session opened ref={reference}')
        if on_session_opened is not None:
            await on_session_opened(authorization_url)

        started = time.monotonic()
        with anyio.move_on_after(timeout_seconds):
            while True:
                try:
                    result = await self._verify(reference=reference)
                except (httpx.HTTPError, ProviderResponseError, KeyError) as e:
                    Logger.base.warning(
                        f'💳 [{self.config.kind}] Verify {reference} failed: {type(e).__name__}: {e}'
                    )
                    return GatewayError(cause=f'could not verify payment: {e}')
                if result is not None:
                    Logger.base.info(
                        f'💳 [{self.config.kind}] ref={reference} -> {type(result).__name__}'
                    )
                    return result
                await anyio.sleep(self.poll_interval_seconds)

        # The buyer may have paid after the last poll
        final = await self.verify(reference=reference)
        if final is not None:
            Logger.base.info(
                f'💳 [{self.config.kind}] ref={reference} -> '
                f'{type(final).__name__} at window close'
            )
            return final

        Logger.base.warning(
            f'⏰ [{self.config.kind}] No confirmation for {reference} '
            f'after {time.monotonic() - started:.0f}s'
        )
        return GatewayError(cause=f'no confirmation within {timeout_seconds:g}s')

    @Logger.io
    async def verify(self, *, reference: str) -> Optional[GatewayResult]:
        with anyio.move_on_after(self.http_timeout_seconds, shield=True):
            try:
                return await self._verify(reference=reference)
            except (httpx.HTTPError, ProviderResponseError, KeyError) as e:
                Logger.base.warning(
                    f'💳 [{self.config.kind}] Final verify {reference} failed: '
                    f'{type(e).__name__}: {e}'
                )
        return None

    @Logger.io
    async def refund(self, *, reference: str) -> bool:
        try:
            await self._request_refund(reference=reference)
        except (httpx.HTTPError, ProviderResponseError) as e:
            Logger.base.error(
                f'💸 [{self.config.kind}] Refund for {reference} rejected: {type(e).__name__}: {e}'
            )
            return False
        return True
