"""
API Schemas for Pizza Bot
=========================

Request and response bodies for the /orders endpoints. Domain objects
(Order, Customer, OrderItem, PaymentMethod) are reused directly where the
wire shape matches; these models only cover what the routes add.

Endpoint Coverage:
------------------
- POST /orders/{user_id}: Start an order, optionally with a first message
- POST /orders/{user_id}/messages: Free-text conversation turn
- PUT  /orders/{user_id}/customer: Set customer details directly
- POST /orders/{user_id}/items: Add or amend a pizza
- GET  /orders/{user_id}: Current order state
"""

from typing import Optional

from pydantic import BaseModel, Field

from ..config import MAX_MESSAGE_LENGTH
from .orders import Customer, NextAction, OrderItem, Order


class MessageRequest(BaseModel):
    text: str = Field(default="", max_length=MAX_MESSAGE_LENGTH)


class MessageResponse(BaseModel):
    """Assistant reply plus the step the conversation needs next."""
    reply: str
    next_action: NextAction


class CustomerUpdateRequest(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None


class ItemRequest(BaseModel):
    item: OrderItem
    replace_last: bool = False


class OrderStateResponse(BaseModel):
    """
    Snapshot of one user's order.

    Attributes:
        order: Stored order, or None before one is started
        customer: Stored customer details, or None
        next_action: What the conversation needs next
        summary: Human-readable order summary
    """
    order: Optional[Order] = None
    customer: Optional[Customer] = None
    next_action: NextAction
    summary: str
