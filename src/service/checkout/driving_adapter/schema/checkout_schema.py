from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from src.service.checkout.domain.entity.order_entity import Order
from src.service.checkout.domain.entity.ticket_entity import Ticket
from src.service.checkout.domain.value_object.checkout_quote import CheckoutQuote
from src.service.checkout.domain.value_object.payment_gateway_config import PaymentGatewayConfig


class BuyerContactSchema(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    phone: str = Field(min_length=5, max_length=32)


class QuoteRequest(BaseModel):
    tier_id: UUID
    currency: str = Field(min_length=3, max_length=3)
    gateway: str
    quantity: Optional[int] = Field(default=None, ge=1)

    @field_validator('currency')
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()

    model_config = {
        'json_schema_extra': {
            'example': {
                'tier_id': '01936d8f-5e73-7c4e-a9c5-123456789abc',
                'currency': 'USD',
                'gateway': 'flutterwave',
                'quantity': 2,
            }
        }
    }


class CheckoutRequest(QuoteRequest):
    buyer: BuyerContactSchema
    order_id: Optional[UUID] = None  # client-generated; UUID7 assigned when omitted

    model_config = {
        'json_schema_extra': {
            'examples': [
                {
                    'tier_id': '01936d8f-5e73-7c4e-a9c5-123456789abc',
                    'currency': 'NGN',
                    'gateway': 'paystack',
                    'quantity': 1,
                    'buyer': {
                        'name': 'Ada Obi',
                        'email': 'ada@example.com',
                        'phone': '+2348012345678',
                    },
                },
                {
                    'tier_id': '01936d8f-5e73-7c4e-a9c5-123456789abc',
                    'currency': 'GBP',
                    'gateway': 'flutterwave',
                    'buyer': {
                        'name': 'Tunde Bello',
                        'email': 'tunde@example.com',
                        'phone': '+447700900123',
                    },
                },
            ]
        }
    }


class QuoteResponse(BaseModel):
    tier_id: UUID
    tier_name: str
    currency: str
    gateway: str
    quantity: int
    exchange_rate: Decimal
    unit_price: Decimal
    subtotal: Decimal
    fee: Decimal
    total: Decimal
    settlement_currency: str
    total_settlement: Decimal
    is_free: bool

    model_config = {
        'json_schema_extra': {
            'example': {
                'tier_id': '01936d8f-5e73-7c4e-a9c5-123456789abc',
                'tier_name': 'Regular',
                'currency': 'USD',
                'gateway': 'flutterwave',
                'quantity': 1,
                'exchange_rate': '1600',
                'unit_price': '3.13',
                'subtotal': '3.13',
                'fee': '1.00',
                'total': '4.13',
                'settlement_currency': 'NGN',
                'total_settlement': '6608.00',
                'is_free': False,
            }
        }
    }

    @classmethod
    def from_quote(cls, *, tier_id: UUID, tier_name: str, quote: CheckoutQuote) -> 'QuoteResponse':
        return cls(
            tier_id=tier_id,
            tier_name=tier_name,
            currency=quote.currency,
            gateway=str(quote.gateway),
            quantity=quote.quantity,
            exchange_rate=quote.exchange_rate,
            unit_price=quote.unit_price,
            subtotal=quote.subtotal,
            fee=quote.fee,
            total=quote.total,
            settlement_currency=quote.settlement_currency,
            total_settlement=quote.total_settlement,
            is_free=quote.is_free,
        )


class PaymentGatewayResponse(BaseModel):
    kind: str
    display_name: str
    supported_currencies: List[str]
    fee_kind: str
    flat_fee: Optional[Decimal] = None
    flat_fee_currency: Optional[str] = None
    fees_by_currency: Dict[str, Decimal] = {}
    payment_instruments: List[str]

    @classmethod
    def from_config(cls, config: PaymentGatewayConfig) -> 'PaymentGatewayResponse':
        schedule = config.fee_schedule
        return cls(
            kind=str(config.kind),
            display_name=config.display_name,
            supported_currencies=sorted(config.supported_currencies),
            fee_kind=str(schedule.kind),
            flat_fee=schedule.flat_amount if schedule.flat_currency else None,
            flat_fee_currency=schedule.flat_currency,
            fees_by_currency=dict(schedule.per_currency),
            payment_instruments=list(config.payment_instruments),
        )


class PaymentGatewayListResponse(BaseModel):
    settlement_currency: str
    exchange_rates: Dict[str, Decimal]
    gateways: List[PaymentGatewayResponse]


class CancelCheckoutResponse(BaseModel):
    order_id: UUID
    state: str = 'cancelling'


class TicketResponse(BaseModel):
    id: UUID
    unit_index: int
    scan_payload: str
    price: Decimal
    is_used: bool
    scanned_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, ticket: Ticket) -> 'TicketResponse':
        return cls(
            id=ticket.id,
            unit_index=ticket.unit_index,
            scan_payload=ticket.scan_payload,
            price=ticket.price,
            is_used=ticket.is_used,
            scanned_at=ticket.scanned_at,
        )


class OrderTicketsResponse(BaseModel):
    order_id: UUID
    event_id: UUID
    tier_id: UUID
    status: str
    quantity: int
    currency: str
    total: Decimal
    total_settlement: Decimal
    payment_reference: Optional[str] = None
    issued_at: Optional[datetime] = None
    tickets: List[TicketResponse]

    @classmethod
    def from_entities(cls, *, order: Order, tickets: list[Ticket]) -> 'OrderTicketsResponse':
        return cls(
            order_id=order.id,
            event_id=order.event_id,
            tier_id=order.tier_id,
            status=str(order.status),
            quantity=order.quantity,
            currency=order.currency,
            total=order.total,
            total_settlement=order.total_settlement,
            payment_reference=order.payment_reference,
            issued_at=order.issued_at,
            tickets=[TicketResponse.from_entity(t) for t in tickets],
        )


class ValidateTicketRequest(BaseModel):
    scan_payload: str = Field(min_length=1, max_length=512)

    class Config:
        json_schema_extra = {
            'example': {
                'scan_payload': '01936d8f-5e73-7c4e-a9c5-123456789abc|'
                '01936d8f-6a01-7d2e-b1c3-abcdefabcdef|THUB-1736505000000-A1B2C3|0'
            }
        }


class ValidateTicketResponse(BaseModel):
    valid: bool
    reason: Optional[str] = None
    ticket_id: Optional[UUID] = None
    order_id: Optional[UUID] = None
    event_title: Optional[str] = None
    tier_name: Optional[str] = None
    is_used: bool = False
    scanned_at: Optional[datetime] = None
