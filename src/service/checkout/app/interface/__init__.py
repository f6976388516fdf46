"""Application layer interfaces (Ports)"""

from src.service.checkout.app.interface.i_checkout_listener import ICheckoutListener
from src.service.checkout.app.interface.i_event_query_repo import IEventQueryRepo
from src.service.checkout.app.interface.i_order_command_repo import IOrderCommandRepo
from src.service.checkout.app.interface.i_order_query_repo import IOrderQueryRepo
from src.service.checkout.app.interface.i_payment_gateway import (
    IPaymentGateway,
    IPaymentGatewayRegistry,
)
from src.service.checkout.app.interface.i_ticket_command_repo import ITicketCommandRepo
from src.service.checkout.app.interface.i_ticket_notifier import ITicketNotifier
from src.service.checkout.app.interface.i_ticket_query_repo import ITicketQueryRepo
from src.service.checkout.app.interface.i_ticket_tier_repo import ITicketTierRepo

__all__ = [
    'ICheckoutListener',
    'IEventQueryRepo',
    'IOrderCommandRepo',
    'IOrderQueryRepo',
    'IPaymentGateway',
    'IPaymentGatewayRegistry',
    'ITicketCommandRepo',
    'ITicketNotifier',
    'ITicketQueryRepo',
    'ITicketTierRepo',
]
