from enum import StrEnum


class OrderStatus(StrEnum):
    """Checkout lifecycle; ISSUED, FAILED and CANCELLED are terminal."""

    QUOTED = 'quoted'
    STOCK_CHECKED = 'stock_checked'
    AWAITING_GATEWAY = 'awaiting_gateway'
    GATEWAY_CONFIRMED = 'gateway_confirmed'
    ISSUED = 'issued'
    FAILED = 'failed'
    CANCELLED = 'cancelled'

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.ISSUED, OrderStatus.FAILED, OrderStatus.CANCELLED)
