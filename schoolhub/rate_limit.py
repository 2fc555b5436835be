"""Shared rate limiting utilities using SlowAPI."""
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from .config import get_settings

LOGIN_LIMIT = "10/minute"
READ_LIMIT = "60/minute"
WRITE_LIMIT = "20/minute"
SWEEP_LIMIT = "10/minute"


def caller_key(request: Request) -> str:
    """Key limits on the bearer token when present, so users behind one address are counted apart."""
    authorization = request.headers.get("Authorization", "")
    if authorization.lower().startswith("bearer "):
        return "token:" + authorization[7:][-32:]
    return get_remote_address(request)


settings = get_settings()
limiter = Limiter(
    key_func=caller_key,
    default_limits=[settings.default_rate_limit],
    enabled=settings.rate_limiting_enabled,
)


def rate_limit_handler(_: Request, exc: RateLimitExceeded) -> JSONResponse:
    return JSONResponse(status_code=429, content={"detail": f"Rate limit exceeded: {exc.detail}"})


def apply_rate_limiter(app: FastAPI) -> None:
    """Attach the shared limiter, its middleware and the 429 handler to an app."""

    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
