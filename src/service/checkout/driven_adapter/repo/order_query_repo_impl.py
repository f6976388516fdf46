from uuid import UUID

from sqlalchemy import select

from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.interface.i_order_query_repo import IOrderQueryRepo
from src.service.checkout.domain.entity.order_entity import Order
from src.service.checkout.domain.enum.gateway_kind import GatewayKind
from src.service.checkout.domain.enum.order_status import OrderStatus
from src.service.checkout.domain.value_object.buyer_contact import BuyerContact
from src.service.checkout.driven_adapter.model.order_model import OrderModel
from src.service.checkout.driven_adapter.repo.session_scoped_repo import SessionScopedRepo


class OrderQueryRepoImpl(SessionScopedRepo, IOrderQueryRepo):
    @staticmethod
    def _to_entity(db_order: OrderModel) -> Order:
        return Order(
            id=db_order.id,
            event_id=db_order.event_id,
            tier_id=db_order.tier_id,
            quantity=db_order.quantity,
            currency=db_order.currency,
            gateway=GatewayKind(db_order.gateway),
            buyer=BuyerContact(
                name=db_order.buyer_name,
                email=db_order.buyer_email,
                phone=db_order.buyer_phone,
            ),
            unit_price_settlement=db_order.unit_price_settlement,
            total=db_order.total_amount,
            fee=db_order.fee_amount,
            total_settlement=db_order.total_settlement,
            status=OrderStatus(db_order.status),
            payment_reference=db_order.payment_reference,
            created_at=db_order.created_at,
            updated_at=db_order.issued_at,
            issued_at=db_order.issued_at,
        )

    @Logger.io
    async def get_by_id(self, *, order_id: UUID) -> Order | None:
        async with self._get_session() as session:
            result = await session.execute(select(OrderModel).where(OrderModel.id == order_id))
            db_order = result.scalar_one_or_none()
            return self._to_entity(db_order) if db_order else None
