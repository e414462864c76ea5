"""Turnstile API - entry point for gate scanners"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from starlette.responses import JSONResponse

from services.event_registry.routes.events import router as events_router
from services.ticket_verification.routes.verification import router as verification_router
from shared.cache.redis_client import RedisCacheStore
from shared.cache.store import CacheStore
from shared.core.config import settings
from shared.utils.exceptions import StoreUnavailable, VerificationRejected
from shared.utils.rate_limiter import limiter, rate_limit_exceeded_handler

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

API_PREFIX = "/turnstile-callback"


async def verification_rejected_handler(request: Request, exc: VerificationRejected) -> JSONResponse:
    return JSONResponse(status_code=400, content={"success": False, **exc.to_dict()})


async def store_unavailable_handler(request: Request, exc: StoreUnavailable) -> JSONResponse:
    logger.error(f"Store unavailable while serving {request.url.path}: {exc}")
    return JSONResponse(
        status_code=503,
        content={
            "success": False,
            "kind": StoreUnavailable.kind,
            "message": "Ticket state store is unavailable",
        },
    )


def create_app(cache_store: Optional[CacheStore] = None) -> FastAPI:
    """Build the API; ``cache_store`` replaces the Redis store (tests)"""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting turnstile API...")
        store = cache_store or RedisCacheStore(settings)
        await store.connect()
        app.state.cache_store = store
        yield
        logger.info("Stopping turnstile API...")
        await store.close()

    app = FastAPI(
        title="Turnstile API",
        description="Ticket verification for event gates",
        version="1.0.0",
        lifespan=lifespan,
    )

    if settings.APP_ENV == "development":
        allow_origins = ["*"]
        allow_credentials = False
    else:
        allow_origins = settings.cors_origins
        allow_credentials = True

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=allow_credentials,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(VerificationRejected, verification_rejected_handler)
    app.add_exception_handler(StoreUnavailable, store_unavailable_handler)

    app.include_router(verification_router, prefix=API_PREFIX, tags=["verification"])
    app.include_router(events_router, prefix=API_PREFIX, tags=["events"])

    @app.get(f"{API_PREFIX}/health")
    async def health(request: Request):
        """Health check - reports whether Redis answers"""
        redis_live = await request.app.state.cache_store.ping()
        if redis_live:
            return {"status": "Ok", "redis": True}
        return JSONResponse(
            status_code=500,
            content={"status": "error", "message": "Redis is not active"},
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=9000,
        reload=settings.APP_ENV == "development"
    )
