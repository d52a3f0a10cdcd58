"""
Schemas Package for Pizza Bot
=============================

- orders.py: Order, Customer, PaymentMethod, OrderItem and the enums that
  drive the order lifecycle.
- remote.py: Response envelopes returned by the remote ordering API.
- api.py: Request and response bodies for the /orders endpoints.
"""

from .orders import (
    Customer,
    DeliveryAddress,
    ErrorType,
    NextAction,
    Order,
    OrderError,
    OrderItem,
    OrderProgress,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    PizzaCrust,
    PizzaSize,
    Topping,
    ToppingPortion,
)
from .remote import RemoteResponse, RemoteStore, TrackingStatus

__all__ = [
    "Customer",
    "DeliveryAddress",
    "ErrorType",
    "NextAction",
    "Order",
    "OrderError",
    "OrderItem",
    "OrderProgress",
    "OrderStatus",
    "PaymentMethod",
    "PaymentStatus",
    "PizzaCrust",
    "PizzaSize",
    "Topping",
    "ToppingPortion",
    "RemoteResponse",
    "RemoteStore",
    "TrackingStatus",
]
