"""
Services Package for Pizza Bot
==============================

Business logic separated from the HTTP routes:

- order_manager.py: Order lifecycle controller and submission pipeline
- order_request.py: Conversion of orders into the remote API request shape
- order_api.py: aiohttp client for the remote ordering and tracking APIs
- cache.py: Per-user Order/Customer snapshots (memory or database backed)
"""

from .cache import (
    DatabaseCacheStore,
    InMemoryCacheStore,
    OrderRepository,
    customer_key,
    order_key,
)
from .order_api import OrderApiClient, OrderApiError, OrderService
from .order_manager import ORDER_RATE_LIMITER, OrderManager, StoreAvailability
from .order_request import build_order_request, convert_item_to_product, detect_card_type

__all__ = [
    "DatabaseCacheStore",
    "InMemoryCacheStore",
    "OrderRepository",
    "customer_key",
    "order_key",
    "OrderApiClient",
    "OrderApiError",
    "OrderService",
    "ORDER_RATE_LIMITER",
    "OrderManager",
    "StoreAvailability",
    "build_order_request",
    "convert_item_to_product",
    "detect_card_type",
]
