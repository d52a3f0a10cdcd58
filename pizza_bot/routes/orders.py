"""
Order Routes for Pizza Bot
==========================

Customer-facing endpoints for building and placing a pizza order. Every
endpoint is scoped to a user_id; the order and customer snapshots for that
user live in the configured cache store.

Endpoints:
----------
- POST /orders/{user_id}: Start a new order (optionally with a first message)
- POST /orders/{user_id}/messages: Free-text conversation turn
- PUT  /orders/{user_id}/customer: Set customer details
- POST /orders/{user_id}/items: Add a pizza or amend the last one
- PUT  /orders/{user_id}/payment: Attach a card
- POST /orders/{user_id}/submit: Validate, price and place the order
- POST /orders/{user_id}/cancel: Cancel the open order
- GET  /orders/{user_id}: Order, customer, next action and summary
- GET  /orders/{user_id}/tracking: Delivery status for the customer's phone

Error Handling:
---------------
OrderError results become HTTPException responses whose detail is the
serialized error (type, code, message):
- 400: Validation failures
- 402: Payment failures
- 404: No active order
- 409: Order already placed or cancelled
- 429: Submission rate limit exceeded
- 503: Remote system errors

Rate Limiting:
--------------
The two conversation endpoints are throttled per user_id with slowapi
(RATE_LIMIT_CHAT, disabled with RATE_LIMIT_ENABLED=false). Exceeding the
limit also returns 429, from slowapi's handler.
"""

import logging
from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from ..actions import PizzaOrderAssistant
from ..config import CACHE_BACKEND, RATE_LIMIT_ENABLED, get_rate_limit_chat
from ..db import make_session_factory
from ..parsing import Extractor, LLMExtractor
from ..schemas.api import (
    CustomerUpdateRequest,
    ItemRequest,
    MessageRequest,
    MessageResponse,
    OrderStateResponse,
)
from ..schemas.orders import ErrorType, OrderError, PaymentMethod
from ..schemas.remote import TrackingStatus
from ..services.cache import DatabaseCacheStore, InMemoryCacheStore, OrderRepository
from ..services.order_api import OrderApiClient
from ..services.order_manager import OrderManager

logger = logging.getLogger(__name__)

orders_router = APIRouter(prefix="/orders", tags=["Orders"])

ERROR_STATUS_BY_CODE = {
    "NO_ACTIVE_ORDER": 404,
    "ORDER_ALREADY_CONFIRMED": 409,
    "ORDER_CANCELLED": 409,
    "RATE_LIMIT_EXCEEDED": 429,
}

ERROR_STATUS_BY_TYPE = {
    ErrorType.VALIDATION_FAILED: 400,
    ErrorType.PAYMENT_FAILED: 402,
    ErrorType.SYSTEM_ERROR: 503,
}


# =============================================================================
# Rate Limiting Setup
# =============================================================================

def get_user_id_or_ip(request: Request) -> str:
    """Get rate limit key from the user_id path parameter or fall back to IP."""
    user_id = request.path_params.get("user_id")
    if user_id:
        return f"user:{user_id}"
    return get_remote_address(request)


limiter = Limiter(key_func=get_user_id_or_ip, enabled=RATE_LIMIT_ENABLED)


# =============================================================================
# Dependencies
# =============================================================================

@lru_cache(maxsize=1)
def get_repository() -> OrderRepository:
    if CACHE_BACKEND == "database":
        logger.info("Using database cache store")
        return OrderRepository(DatabaseCacheStore(make_session_factory()))
    return OrderRepository(InMemoryCacheStore())


def get_order_manager(repository: OrderRepository = Depends(get_repository)) -> OrderManager:
    return OrderManager(api=OrderApiClient(), repository=repository)


@lru_cache(maxsize=1)
def get_extractor() -> Extractor:
    return LLMExtractor()


def get_assistant(
    manager: OrderManager = Depends(get_order_manager),
    extractor: Extractor = Depends(get_extractor),
) -> PizzaOrderAssistant:
    return PizzaOrderAssistant(manager, extractor)


# =============================================================================
# Helper Functions
# =============================================================================

def raise_for_error(error: OrderError) -> None:
    status_code = ERROR_STATUS_BY_CODE.get(error.code, ERROR_STATUS_BY_TYPE[error.type])
    logger.info("Request failed with %s (%s)", error.code, status_code)
    raise HTTPException(status_code=status_code, detail=error.model_dump(mode="json"))


def _order_state(manager: OrderManager, user_id: str) -> OrderStateResponse:
    order = manager.get_order(user_id)
    customer = manager.get_customer(user_id)
    if order is not None and order.payment_method is not None:
        masked = order.payment_method.model_copy(
            update={"card_number": order.payment_method.masked_number(), "cvv": ""}
        )
        order = order.model_copy(update={"payment_method": masked})
    return OrderStateResponse(
        order=order,
        customer=customer,
        next_action=manager.get_next_required_action(order, customer, manager.ordering_config),
        summary=manager.get_order_summary(order, customer),
    )


def _reply(manager: OrderManager, user_id: str, text: str) -> MessageResponse:
    next_action = manager.get_next_required_action(
        manager.get_order(user_id), manager.get_customer(user_id), manager.ordering_config
    )
    return MessageResponse(reply=text, next_action=next_action)


# =============================================================================
# Conversation Endpoints
# =============================================================================

@orders_router.post("/{user_id}", response_model=MessageResponse)
@limiter.limit(get_rate_limit_chat)
async def start_order(
    request: Request,
    user_id: str,
    req: Optional[MessageRequest] = None,
    assistant: PizzaOrderAssistant = Depends(get_assistant),
) -> MessageResponse:
    """Start a fresh order. A first message may already carry customer details."""
    manager = assistant.manager
    if req is not None and req.text:
        manager.initialize_order(user_id)
        reply = await assistant.start_order(user_id, req.text)
    else:
        order = manager.initialize_order(user_id)
        reply = manager.get_next_required_action_dialogue(
            order, manager.get_customer(user_id), manager.ordering_config
        )
    return _reply(manager, user_id, reply)


@orders_router.post("/{user_id}/messages", response_model=MessageResponse)
@limiter.limit(get_rate_limit_chat)
async def post_message(
    request: Request,
    user_id: str,
    req: MessageRequest,
    assistant: PizzaOrderAssistant = Depends(get_assistant),
) -> MessageResponse:
    reply = await assistant.handle_message(user_id, req.text)
    return _reply(assistant.manager, user_id, reply)


# =============================================================================
# Structured Endpoints
# =============================================================================

@orders_router.get("/{user_id}", response_model=OrderStateResponse)
def get_order_state(
    user_id: str,
    manager: OrderManager = Depends(get_order_manager),
) -> OrderStateResponse:
    return _order_state(manager, user_id)


@orders_router.put("/{user_id}/customer", response_model=OrderStateResponse)
def update_customer(
    user_id: str,
    req: CustomerUpdateRequest,
    manager: OrderManager = Depends(get_order_manager),
) -> OrderStateResponse:
    result = manager.update_customer(user_id, **req.model_dump(exclude_none=True))
    if isinstance(result, OrderError):
        raise_for_error(result)
    return _order_state(manager, user_id)


@orders_router.post("/{user_id}/items", response_model=OrderStateResponse)
def add_item(
    user_id: str,
    req: ItemRequest,
    manager: OrderManager = Depends(get_order_manager),
) -> OrderStateResponse:
    result = manager.save_item(user_id, req.item, replace_last=req.replace_last)
    if isinstance(result, OrderError):
        raise_for_error(result)
    return _order_state(manager, user_id)


@orders_router.put("/{user_id}/payment", response_model=OrderStateResponse)
def update_payment(
    user_id: str,
    payment: PaymentMethod,
    manager: OrderManager = Depends(get_order_manager),
) -> OrderStateResponse:
    result = manager.update_payment(user_id, payment)
    if isinstance(result, OrderError):
        raise_for_error(result)
    return _order_state(manager, user_id)


@orders_router.post("/{user_id}/submit", response_model=OrderStateResponse)
async def submit_order(
    user_id: str,
    manager: OrderManager = Depends(get_order_manager),
) -> OrderStateResponse:
    result = await manager.submit_order(user_id)
    if isinstance(result, OrderError):
        raise_for_error(result)
    return _order_state(manager, user_id)


@orders_router.post("/{user_id}/cancel", response_model=OrderStateResponse)
def cancel_order(
    user_id: str,
    manager: OrderManager = Depends(get_order_manager),
) -> OrderStateResponse:
    result = manager.cancel_order(user_id)
    if isinstance(result, OrderError):
        raise_for_error(result)
    return _order_state(manager, user_id)


@orders_router.get("/{user_id}/tracking", response_model=TrackingStatus)
async def track_order(
    user_id: str,
    manager: OrderManager = Depends(get_order_manager),
) -> TrackingStatus:
    result = await manager.track_order(user_id)
    if isinstance(result, OrderError):
        raise_for_error(result)
    return result
