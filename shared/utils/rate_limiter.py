"""
Rate limiting for scanner endpoints using slowapi + Redis
"""
import logging

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from shared.core.config import settings

logger = logging.getLogger(__name__)


def get_real_client_ip(request: Request) -> str:
    """
    Client IP behind proxies/load balancers.
    Turnstiles usually sit behind the venue gateway.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # client, proxy1, proxy2
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return get_remote_address(request)


# Redis storage lets every API instance share the same windows
limiter = Limiter(
    key_func=get_real_client_ip,
    storage_uri=settings.REDIS_URL,
    strategy="fixed-window",
    headers_enabled=False,
    enabled=settings.RATE_LIMIT_ENABLED,
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    retry_after = exc.detail.split(" ")[-1] if exc.detail else "60"

    logger.warning(
        f"Rate limit exceeded - IP: {get_real_client_ip(request)}, "
        f"Path: {request.url.path}, "
        f"Retry-After: {retry_after}"
    )

    return JSONResponse(
        status_code=429,
        content={
            "success": False,
            "kind": "RateLimitExceeded",
            "message": "Too many scans from this device, please wait",
        },
        headers={"Retry-After": str(retry_after)},
    )
