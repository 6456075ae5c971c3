"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown (database tables, Redis,
the WebSocket hub). Middleware, CORS, and routers all registered here.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chathub import __version__
from chathub.api import api_router
from chathub.config import settings

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs at
    shutdown. The hub is created here so every connection shares one
    registry for the lifetime of the process.
    """
    logger.info(
        "chathub.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    from chathub.cache import close_redis, init_redis
    try:
        await init_redis()
        logger.info("chathub.redis_connected", url=settings.redis_url)
    except Exception as e:
        logger.warning("chathub.redis_unavailable", error=str(e))
        # Redis is optional; only rate limiting is lost without it

    from chathub.db.engine import async_session_factory, engine, init_models
    await init_models()

    from chathub.realtime.hub import ConnectionHub, init_hub
    from chathub.services.message_service import DatabaseMessageStore
    hub = init_hub(
        ConnectionHub(
            store=DatabaseMessageStore(async_session_factory),
            enforce_sender_identity=settings.enforce_sender_identity,
            max_message_size=settings.ws_max_message_size,
        )
    )
    logger.info(
        "chathub.hub_started",
        enforce_sender_identity=settings.enforce_sender_identity,
    )

    yield

    logger.info("chathub.shutdown")
    await hub.shutdown()
    await close_redis()
    await engine.dispose()


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="chathub",
        description="Minimal real-time chat backend — REST history plus WebSocket delivery",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Middleware stack ──────────────────────────────────────
    # Starlette middleware executes in reverse order of registration.
    # Request flow: CORS → RateLimit → Security → RequestId → handler

    from chathub.middleware.rate_limit import RateLimitMiddleware
    from chathub.middleware.request_id import RequestIdMiddleware
    from chathub.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        default_rpm=settings.rate_limit_rpm,
        auth_rpm=settings.rate_limit_auth_rpm,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    from chathub.realtime.websocket import router as ws_router
    app.include_router(ws_router)

    return app


# Default app instance (used by uvicorn: chathub.main:app)
app = create_app()
