"""
Configuration Module for Pizza Bot
==================================

This module centralizes the environment variables and constants used by the
order lifecycle engine. Values are read once at import time; tests and
callers that need different values construct their own objects (RateLimiter,
OrderingConfig, MenuConfig) instead of mutating module state.

Configuration Categories:
-------------------------
- **Remote Order API**: Base URLs for the ordering and tracking endpoints and
  the timeout applied to every remote round trip.

- **Rate Limiting**: Sliding-window admission control for order submissions.
  That limiter is process-global and throttles aggregate throughput. The
  conversation endpoints also carry a per-client slowapi throttle.

- **Cache Store**: Which backend holds the per-user Order and Customer
  snapshots ("memory" or "database").

- **Ordering Rules**: Required customer fields and payment rules, exposed as
  the immutable OrderingConfig value.

Environment Variables:
----------------------
- ORDER_API_BASE_URL: Ordering API root (default: "https://order.dominos.com/power")
- TRACKER_BASE_URL: Tracking API root (default: "https://tracker.dominos.com/tracker-presentation-service/v2")
- REMOTE_TIMEOUT_SECONDS: Bound on each remote call (default: 15)
- ORDER_RATE_LIMIT_MAX_REQUESTS: Submissions per window (default: 10)
- ORDER_RATE_LIMIT_WINDOW_MS: Window length in milliseconds (default: 60000)
- RATE_LIMIT_CHAT: Conversation endpoint limit per client (default: "30 per minute")
- RATE_LIMIT_ENABLED: Enable the conversation throttle (default: "true")
- CACHE_BACKEND: "memory" or "database" (default: "memory")
- DATABASE_URL: SQLAlchemy URL for the database cache backend
  (default: "sqlite:///./pizza_bot.db")
- OPENAI_MODEL: Model used by the extraction oracle (default: "gpt-4o-mini")
- MAX_MESSAGE_LENGTH: Longest accepted chat message (default: 2000)
- CORS_ORIGINS: Comma-separated allowed origins (default: "*")

Usage:
------
    from pizza_bot.config import (
        DEFAULT_ORDERING_CONFIG,
        ORDER_RATE_LIMIT_MAX_REQUESTS,
        REMOTE_TIMEOUT_SECONDS,
    )
"""

import os
from pathlib import Path
from typing import List, Tuple

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(dotenv_path=BASE_DIR / ".env")


# =============================================================================
# Remote Order API
# =============================================================================

ORDER_API_BASE_URL: str = os.getenv(
    "ORDER_API_BASE_URL", "https://order.dominos.com/power"
).rstrip("/")

TRACKER_BASE_URL: str = os.getenv(
    "TRACKER_BASE_URL",
    "https://tracker.dominos.com/tracker-presentation-service/v2",
).rstrip("/")

# Applied both as the aiohttp client timeout and as the controller's bound
# on each awaited remote operation
REMOTE_TIMEOUT_SECONDS: float = float(os.getenv("REMOTE_TIMEOUT_SECONDS", "15"))

ORDER_API_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
    "Referer": "order.dominos.com",
}

TRACKER_HEADERS = {
    "dpz-language": "en",
    "dpz-market": "UNITED_STATES",
    "Accept": "application/json",
    "Content-Type": "application/json; charset=utf-8",
}


# =============================================================================
# Rate Limiting Configuration
# =============================================================================

ORDER_RATE_LIMIT_MAX_REQUESTS: int = int(os.getenv("ORDER_RATE_LIMIT_MAX_REQUESTS", "10"))
ORDER_RATE_LIMIT_WINDOW_MS: int = int(os.getenv("ORDER_RATE_LIMIT_WINDOW_MS", "60000"))

# Per-client throttle on the conversation endpoints (slowapi, in-memory).
# Format: "X per Y" where Y is second, minute, hour, or day
RATE_LIMIT_CHAT: str = os.getenv("RATE_LIMIT_CHAT", "30 per minute")
RATE_LIMIT_ENABLED: bool = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"


def get_rate_limit_chat() -> str:
    """Return the current chat rate limit, read at request time."""
    return RATE_LIMIT_CHAT


# =============================================================================
# Cache Store Configuration
# =============================================================================

CACHE_BACKEND: str = os.getenv("CACHE_BACKEND", "memory").lower()
DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./pizza_bot.db")


# =============================================================================
# Extraction Oracle
# =============================================================================

OPENAI_MODEL: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")

# Longer messages are rejected before reaching the model
MAX_MESSAGE_LENGTH: int = int(os.getenv("MAX_MESSAGE_LENGTH", "2000"))


# =============================================================================
# CORS Configuration
# =============================================================================

_cors_origins_env = os.getenv("CORS_ORIGINS", "")
CORS_ORIGINS: List[str] = [
    origin.strip()
    for origin in _cors_origins_env.split(",")
    if origin.strip()
] or ["*"]


# =============================================================================
# Ordering Rules
# =============================================================================

class OrderingConfig(BaseModel):
    """
    Required-field and payment rules applied by the validators.

    A customer field that is not required may be left empty; when it is
    provided it is still checked. After max_failed_attempts rejected cards
    an order stops accepting new payment methods.
    """

    model_config = ConfigDict(frozen=True)

    requires_customer_name: bool = True
    requires_phone: bool = True
    requires_email: bool = True
    requires_address: bool = True

    requires_cvv: bool = True
    requires_postal_code: bool = True
    max_failed_attempts: int = 3

    def required_customer_fields(self) -> Tuple[str, ...]:
        flags = (
            ("name", self.requires_customer_name),
            ("phone", self.requires_phone),
            ("email", self.requires_email),
            ("address", self.requires_address),
        )
        return tuple(field for field, required in flags if required)


DEFAULT_ORDERING_CONFIG = OrderingConfig()
