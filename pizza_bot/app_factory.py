"""
Application factory for the pizza ordering API.

Usage:
    from pizza_bot.app_factory import create_app
    app = create_app()
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from . import __version__
from .config import CACHE_BACKEND, CORS_ORIGINS
from .routes import limiter, orders_router

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """
    Create the FastAPI application with CORS, rate limiting, the order
    routes and a health check.

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="Pizza Order Bot API",
        description="Conversational pizza ordering with remote validation, pricing and placement",
        version=__version__,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials="*" not in CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Configure rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.include_router(orders_router)

    @app.get("/health")
    def health_check():
        return {
            "status": "healthy",
            "cache_backend": CACHE_BACKEND,
        }

    logger.info("Application created with %s cache backend", CACHE_BACKEND)
    return app


def run(host: str = "0.0.0.0", port: int = 8000, reload: bool = False) -> None:
    """Serve the application with uvicorn."""
    import uvicorn

    logger.info("Starting server on %s:%d", host, port)
    uvicorn.run(
        "pizza_bot.main:app",
        host=host,
        port=port,
        reload=reload,
    )
