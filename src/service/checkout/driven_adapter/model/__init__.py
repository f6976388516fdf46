"""
Database Models

Import all models here to ensure they are registered with SQLAlchemy
"""

from src.service.checkout.driven_adapter.model.event_model import EventModel
from src.service.checkout.driven_adapter.model.order_model import OrderModel
from src.service.checkout.driven_adapter.model.ticket_model import TicketModel
from src.service.checkout.driven_adapter.model.ticket_tier_model import TicketTierModel

__all__ = [
    'EventModel',
    'OrderModel',
    'TicketModel',
    'TicketTierModel',
]
