"""
Wire Modules Configuration

Defines the modules that need dependency injection wiring.
Shared between production and test environments.
"""

from types import ModuleType

from src.service.checkout.app.command import cancel_checkout_use_case, checkout_use_case
from src.service.checkout.app.query import (
    get_order_tickets_use_case,
    get_quote_use_case,
    list_payment_gateways_use_case,
    validate_ticket_use_case,
)
from src.service.checkout.driving_adapter.http_controller import checkout_controller


WIRE_MODULES: list[ModuleType] = [
    checkout_use_case,
    cancel_checkout_use_case,
    get_quote_use_case,
    list_payment_gateways_use_case,
    get_order_tickets_use_case,
    validate_ticket_use_case,
    checkout_controller,
]
