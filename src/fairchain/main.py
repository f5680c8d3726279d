"""FastAPI application factory."""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from fairchain.admin.router import router as admin_router
from fairchain.auth.router import router as auth_router
from fairchain.config import get_settings
from fairchain.database import close_db, init_db
from fairchain.health.router import router as health_router
from fairchain.kyc.router import router as kyc_router
from fairchain.ledger.config import seed_app_settings
from fairchain.middleware import setup_middleware
from fairchain.notifications.router import router as notifications_router
from fairchain.redis_client import close_redis, init_redis
from fairchain.referrals.router import router as referrals_router
from fairchain.rewards.router import router as rewards_router
from fairchain.users.router import router as users_router
from fairchain.wallet.router import router as wallet_router
from fairchain.ws.bridge import PubSubBridge
from fairchain.ws.router import router as ws_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await seed_app_settings()

    bridge: PubSubBridge | None = None
    bridge_task: asyncio.Task | None = None
    if settings.redis_url:
        redis = await init_redis(settings.redis_url, settings.redis_max_connections)
        bridge = PubSubBridge(redis)
        bridge_task = asyncio.create_task(bridge.start())
    else:
        logger.warning("redis_disabled", detail="live pushes and rate limiting are off")

    yield

    if bridge is not None and bridge_task is not None:
        await bridge.stop()
        bridge_task.cancel()
        try:
            await bridge_task
        except asyncio.CancelledError:
            pass
        await close_redis()
    await close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Fair Chain API",
        description="Reward ledger and settlement engine for the Fair Chain rewards platform",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(rewards_router)
    app.include_router(wallet_router)
    app.include_router(referrals_router)
    app.include_router(kyc_router)
    app.include_router(notifications_router)
    app.include_router(admin_router)
    app.include_router(ws_router)

    return app


app = create_app()
