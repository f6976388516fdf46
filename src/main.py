"""
Production FastAPI Application

Checkout service with a background task group for ticket emails and
checkouts that outlive their SSE client.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import anyio
from dependency_injector import providers
from fastapi import FastAPI
from fastapi.responses import RedirectResponse

from src.platform.app_factory import create_app
from src.platform.config import di
from src.platform.config.core_setting import settings
from src.platform.config.di import container
from src.platform.config.wire_modules import WIRE_MODULES
from src.platform.database.orm_db_setting import (
    create_db_and_tables,
    dispose_engine,
    get_engine,
)
from src.platform.logging.loguru_io import Logger
from src.platform.observability.tracing import TracingConfig


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifespan: startup and shutdown."""
    Logger.base.info('🚀 [Checkout Service] Starting up...')

    tracing = TracingConfig(service_name='checkout-service')
    tracing.setup()
    Logger.base.info('📊 [Checkout Service] OpenTelemetry tracing configured')

    container.wire(modules=WIRE_MODULES)
    di.setup()
    Logger.base.info('🔌 [Checkout Service] Dependency injection wired')

    engine = get_engine()
    tracing.instrument_sqlalchemy(engine=engine)
    Logger.base.info('🗄️  [Checkout Service] Database engine ready + instrumented')

    if settings.AUTO_CREATE_TABLES:
        await create_db_and_tables()
        Logger.base.info('🧱 [Checkout Service] Tables ensured')

    async with anyio.create_task_group() as tg:
        container.task_group.override(providers.Object(tg))
        Logger.base.info('✅ [Checkout Service] Ready to serve requests')

        yield

        Logger.base.info('🛑 [Checkout Service] Shutting down...')
        container.task_group.reset_override()
        tg.cancel_scope.cancel()

    await di.cleanup()
    Logger.base.info('💳 [Checkout Service] Gateway clients closed')

    await dispose_engine()
    Logger.base.info('🗄️  [Checkout Service] Database engine disposed')

    tracing.shutdown()
    container.unwire()
    Logger.base.info('👋 [Checkout Service] Shutdown complete')


app = create_app(lifespan=lifespan)


@app.get('/')
async def root() -> RedirectResponse:
    """Root endpoint - redirect to docs."""
    return RedirectResponse(url='/docs')
