#!/usr/bin/env python3
"""
Database Seed Script
Populate sample events and ticket tiers

Features:
1. Create Tables - ensure the checkout schema exists
2. Create Events - two events with paid, free, couple and table tiers

Notes:
- Prices are in the settlement currency (SETTLEMENT_CURRENCY)
- Run `python script/checkout_stream.py <tier_id>` afterwards to try a checkout
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import func, select
from uuid_utils.compat import uuid7

from src.platform.config.core_setting import settings
from src.platform.database.orm_db_setting import (
    create_db_and_tables,
    dispose_engine,
    get_session_maker,
)
from src.service.checkout.driven_adapter.model import (
    EventModel,
    OrderModel,
    TicketModel,
    TicketTierModel,
)


@dataclass
class TierConfig:
    name: str
    price: Decimal
    total: int


@dataclass
class EventConfig:
    title: str
    venue: str
    location: str
    days_from_now: int
    tiers: list[TierConfig] = field(default_factory=list)


SAMPLE_EVENTS = [
    EventConfig(
        title='Afrobeats Night',
        venue='Eko Convention Centre',
        location='Lagos',
        days_from_now=30,
        tiers=[
            TierConfig(name='Early Bird', price=Decimal('0'), total=50),
            TierConfig(name='Regular', price=Decimal('15000'), total=500),
            TierConfig(name='VIP', price=Decimal('50000'), total=100),
            TierConfig(name='Couple Pass', price=Decimal('25000'), total=80),
            TierConfig(name='VIP Table for 8', price=Decimal('400000'), total=10),
        ],
    ),
    EventConfig(
        title='Highlife Sundays',
        venue='Freedom Park',
        location='Lagos Island',
        days_from_now=45,
        tiers=[
            TierConfig(name='Regular', price=Decimal('5000'), total=300),
            TierConfig(name='Queen & Slim', price=Decimal('12000'), total=40),
        ],
    ),
]


async def _seed_events() -> None:
    async with get_session_maker()() as session:
        try:
            for config in SAMPLE_EVENTS:
                event = EventModel(
                    id=uuid7(),
                    title=config.title,
                    starts_at=datetime.now(timezone.utc) + timedelta(days=config.days_from_now),
                    venue=config.venue,
                    location=config.location,
                )
                session.add(event)
                await session.flush()
                print(f'   ✅ Event: {event.title} ID={event.id}')

                for tier_config in config.tiers:
                    tier = TicketTierModel(
                        id=uuid7(),
                        event_id=event.id,
                        name=tier_config.name,
                        price=tier_config.price,
                        total=tier_config.total,
                        consumed=0,
                        is_active=True,
                    )
                    session.add(tier)
                    print(
                        f'      🎟️  {tier.name}: {tier.price} {settings.SETTLEMENT_CURRENCY} '
                        f'x {tier.total} ID={tier.id}'
                    )

            await session.commit()
            print('✅ All data committed successfully!')

        except Exception as e:
            await session.rollback()
            print(f'❌ Rolling back: {e}')
            raise


async def verify_data() -> None:
    print('🔍 Verifying seeded data...')
    async with get_session_maker()() as session:
        for model in (EventModel, TicketTierModel, OrderModel, TicketModel):
            count = (await session.execute(select(func.count()).select_from(model))).scalar()
            print(f'   {model.__tablename__} count: {count}')


async def main() -> None:
    print('🌱 Starting data seeding...')
    print('=' * 50)

    try:
        await create_db_and_tables()
        print('🧱 Tables ensured')
        await _seed_events()
        await verify_data()

        print()
        print('=' * 50)
        print('🌱 Data seeding completed!')

    except Exception as e:
        print(f'❌ Seeding failed: {e}')
        exit(1)

    finally:
        await dispose_engine()


if __name__ == '__main__':
    asyncio.run(main())
