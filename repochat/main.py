"""RepoChat Backend - FastAPI Entry Point."""
import sys

# asyncpg is incompatible with Windows ProactorEventLoop (default on Windows).
if sys.platform == "win32":
    import asyncio
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

import structlog
from fastapi import FastAPI

from repochat.config import settings
from repochat.database import engine
from repochat.middleware.cors import setup_cors
from repochat.middleware.error_handler import setup_error_handlers
from repochat.middleware.logging_middleware import LoggingMiddleware
from repochat.api.v1 import ai as ai_router
from repochat.api.v1 import auth as auth_router
from repochat.api.v1 import chat as chat_router
from repochat.api.v1 import github as github_router
from repochat.api.v1 import vector as vector_router
from repochat.api import websocket as ws_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    logger.info("startup", env=settings.APP_ENV, ai_provider=settings.AI_PROVIDER)
    if settings.SENTRY_DSN:
        import sentry_sdk
        from sentry_sdk.integrations.fastapi import FastApiIntegration

        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            integrations=[FastApiIntegration()],
            traces_sample_rate=0.1 if settings.APP_ENV == "production" else 1.0,
            environment=settings.APP_ENV,
        )
    # cross-instance delivery of chat events
    await ws_router.manager.start_redis_listener()

    yield

    await ws_router.manager.stop_redis_listener()
    from repochat.utils.redis_client import close_redis
    await close_redis()
    await engine.dispose()
    logger.info("shutdown")


def create_app() -> FastAPI:
    application = FastAPI(
        title="RepoChat API",
        description="Chat with your GitHub repositories",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    setup_cors(application)
    setup_error_handlers(application)
    application.add_middleware(LoggingMiddleware)

    application.include_router(auth_router.router, prefix="/api/v1/auth", tags=["Auth"])
    application.include_router(github_router.router, prefix="/api/v1/github", tags=["GitHub"])
    application.include_router(vector_router.router, prefix="/api/v1/vector", tags=["Vector"])
    application.include_router(chat_router.router, prefix="/api/v1/chat", tags=["Chat"])
    application.include_router(ai_router.router, prefix="/api/v1/ai", tags=["AI Tools"])
    application.include_router(ws_router.router, tags=["WebSocket"])

    @application.get("/health", tags=["health"])
    async def health_check() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()
