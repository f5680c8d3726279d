"""Middleware registration."""

from fastapi import FastAPI

from fairchain.config import Settings
from fairchain.middleware.cors import setup_cors
from fairchain.middleware.error_handler import setup_error_handlers
from fairchain.middleware.logging import setup_logging
from fairchain.middleware.rate_limit import RateLimitMiddleware
from fairchain.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register all middleware.

    Starlette runs middleware in reverse-add order, so CORS is added last to
    wrap the 429 responses produced by the rate limiter.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
