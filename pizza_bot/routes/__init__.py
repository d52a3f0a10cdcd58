"""
Routes Package for Pizza Bot
============================

- orders.py: Customer-facing order endpoints under /orders

Routers are registered by app_factory.create_app(). Common dependencies
(order manager, extractor, assistant) are provided through FastAPI's
Depends() and can be replaced with app.dependency_overrides in tests. The
slowapi limiter is exported so create_app() can attach it to app.state.
"""

from .orders import limiter, orders_router

__all__ = ["limiter", "orders_router"]
