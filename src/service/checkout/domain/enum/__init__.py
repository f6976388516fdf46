"""Checkout Domain Enums"""

from src.service.checkout.domain.enum.gateway_kind import GatewayKind
from src.service.checkout.domain.enum.order_status import OrderStatus

__all__ = ['GatewayKind', 'OrderStatus']
