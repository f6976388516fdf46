from sqlalchemy.exc import IntegrityError

from src.platform.exception.exceptions import ConflictError
from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.interface.i_order_command_repo import IOrderCommandRepo
from src.service.checkout.domain.entity.order_entity import Order
from src.service.checkout.driven_adapter.model.order_model import OrderModel
from src.service.checkout.driven_adapter.repo.session_scoped_repo import SessionScopedRepo


class OrderCommandRepoImpl(SessionScopedRepo, IOrderCommandRepo):
    @Logger.io
    async def create(self, *, order: Order) -> Order:
        db_order = OrderModel(
            id=order.id,
            event_id=order.event_id,
            tier_id=order.tier_id,
            quantity=order.quantity,
            currency=order.currency,
            gateway=str(order.gateway),
            buyer_name=order.buyer.name,
            buyer_email=order.buyer.email,
            buyer_phone=order.buyer.phone,
            unit_price_settlement=order.unit_price_settlement,
            total_amount=order.total,
            fee_amount=order.fee,
            total_settlement=order.total_settlement,
            payment_reference=order.payment_reference,
            status=str(order.status),
            issued_at=order.issued_at,
        )
        async with self._get_session() as session:
            session.add(db_order)
            try:
                await session.flush()
            except IntegrityError as e:
                raise ConflictError(f'Order {order.id} already exists') from e
            if not self.in_unit_of_work:
                await session.commit()
        return order
