# main.py
import asyncio
from concurrent.futures import Future
from contextlib import asynccontextmanager
from typing import Optional

import socketio
import structlog
import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mindfulness.api.endpoints import (
    achievements,
    analytics,
    auth,
    breathing,
    cache_stats,
    chat,
    export,
    friends,
    group_sessions,
    health,
    meditation_sessions,
    meditations,
    pmr,
    stress_management,
    stress_techniques,
    users,
)
from mindfulness.core.cache import CatalogCache
from mindfulness.core.config import Settings, get_settings
from mindfulness.core.errors import register_exception_handlers
from mindfulness.core.logging import (
    configure_logging,
    request_logging_middleware,
    security_headers_middleware,
)
from mindfulness.core.rate_limit import RateLimiter, rate_limit_middleware
from mindfulness.crud import breathing as breathing_crud
from mindfulness.crud import pmr as pmr_crud
from mindfulness.db.mongo import MongoDatabase
from mindfulness.realtime.gateway import SessionGateway

load_dotenv()

logger = structlog.get_logger(__name__)


# [Lifespan] DB connect / seed / graceful shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    mongo: MongoDatabase = app.state.mongo
    await mongo.connect()
    await mongo.ensure_indexes()
    await breathing_crud.seed_patterns(mongo.db)
    await pmr_crud.seed_muscle_groups(mongo.db)
    logger.info("Server started", environment=app.state.settings.ENVIRONMENT)
    yield
    logger.info("Shutting down")
    # normally already closed when the exit signal arrived
    await app.state.gateway.close()
    await mongo.close()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL, json_logs=settings.is_production)

    app = FastAPI(title="Mindfulness Backend", lifespan=lifespan)
    app.state.settings = settings
    app.state.mongo = MongoDatabase(settings)
    app.state.cache = CatalogCache(ttl_seconds=settings.CACHE_TTL_SECONDS)
    app.state.gateway = SessionGateway(settings, app.state.mongo)
    app.state.rate_limiter = RateLimiter(settings.RATE_LIMIT_REQUESTS, settings.RATE_LIMIT_WINDOW_SECONDS)

    # --- middlewares (last added runs first) ---
    app.middleware("http")(rate_limit_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.CLIENT_URL],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(security_headers_middleware)
    app.middleware("http")(request_logging_middleware)

    register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(meditations.router)
    app.include_router(meditation_sessions.router)
    app.include_router(breathing.router)
    app.include_router(pmr.router)
    app.include_router(stress_management.router)
    app.include_router(stress_techniques.router)
    app.include_router(achievements.router)
    app.include_router(group_sessions.router)
    app.include_router(chat.router)
    app.include_router(friends.router)
    app.include_router(analytics.router)
    app.include_router(cache_stats.router)
    app.include_router(export.router)
    return app


app = create_app()

# HTTP and Socket.IO share one port
asgi_app = socketio.ASGIApp(app.state.gateway.sio, other_asgi_app=app)


class GracefulServer(uvicorn.Server):
    """
    uvicorn server that closes the socket gateway as soon as the exit signal
    arrives, so open Socket.IO connections do not hold up the graceful wait.
    """

    def __init__(self, config: uvicorn.Config, gateway: SessionGateway):
        super().__init__(config)
        self.gateway = gateway
        self.gateway_closing: Optional[Future] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    async def serve(self, sockets=None) -> None:
        self._loop = asyncio.get_running_loop()
        await super().serve(sockets)

    def handle_exit(self, sig, frame) -> None:
        if self._loop is not None and self.gateway_closing is None:
            logger.info("Exit signal received, closing socket gateway", signal=sig)
            self.gateway_closing = asyncio.run_coroutine_threadsafe(self.gateway.close(), self._loop)
        super().handle_exit(sig, frame)


def run() -> None:
    settings = app.state.settings
    config = uvicorn.Config(
        asgi_app,
        host="0.0.0.0",
        port=settings.PORT,
        timeout_graceful_shutdown=settings.SHUTDOWN_TIMEOUT,
    )
    GracefulServer(config, app.state.gateway).run()


if __name__ == "__main__":
    run()
