"""
Order Lifecycle Service for Pizza Bot
=====================================

OrderManager owns the order state machine. It holds no per-user state:
every persistence-aware operation loads the Order and Customer snapshots
from the repository, mutates them, and saves them back.

Order Lifecycle:
----------------
    NEW -> AWAITING_PAYMENT / PROCESSING -> CONFIRMED
    (any non-confirmed state) -> CANCELLED

1. initialize_order creates an empty NEW order
2. save_item validates an item locally and moves the order to
   AWAITING_PAYMENT (no valid payment yet) or PROCESSING
3. update_payment records a validated card
4. submit_order runs the submission pipeline (process_order)
5. A successful placement moves the order to CONFIRMED

Submission Pipeline (process_order):
------------------------------------
Strictly sequential; the first failure is returned as an OrderError:

1. Admission through the process-wide RateLimiter
2. Customer validation (sets progress.has_customer_info)
3. Item validation, in sequence order
4. Store resolution, bound to order.store_id
5. Remote validate
6. Remote price (overwrites order.total with the remote amount)
7. With a payment method: payment validation, then remote place
8. Without one: the priced, unconfirmed order is returned

Local validation always runs before any remote call. Remote calls are
bounded by remote_timeout. Unexpected exceptions are logged and returned as
a generic SYSTEM_ERROR; internal details never reach the caller.

Progress Flags:
---------------
has_customer_info, has_valid_payment and is_confirmed are set only by this
service when the matching step succeeds, and are never cleared within one
order's life. get_next_required_action() reads them.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Awaitable, Callable, List, Optional, Union

from ..address import AddressParseError, parse_address, resolve_delivery_address
from ..config import (
    DEFAULT_ORDERING_CONFIG,
    ORDER_RATE_LIMIT_MAX_REQUESTS,
    ORDER_RATE_LIMIT_WINDOW_MS,
    REMOTE_TIMEOUT_SECONDS,
    OrderingConfig,
)
from ..menu import MenuCatalog, UnknownToppingError, format_currency
from ..rate_limiter import RateLimiter
from ..schemas.orders import (
    Customer,
    NextAction,
    Order,
    OrderError,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)
from ..schemas.remote import RemoteResponse, RemoteStore, TrackingStatus
from ..validators import (
    validate_customer_info,
    validate_item,
    validate_items,
    validate_payment_method,
)
from .cache import OrderRepository
from .order_api import OrderService
from .order_request import build_order_request

logger = logging.getLogger(__name__)

# Shared by every OrderManager in the process: throttles aggregate
# submissions, not per-user ones
ORDER_RATE_LIMITER = RateLimiter(
    max_requests=ORDER_RATE_LIMIT_MAX_REQUESTS,
    time_window=ORDER_RATE_LIMIT_WINDOW_MS,
)

GENERIC_ERROR_MESSAGE = "An unexpected error occurred while processing your order"

OrderResult = Union[Order, OrderError]


@dataclass
class StoreAvailability:
    is_available: bool
    message: str
    store_id: Optional[str] = None


def select_delivery_store(stores: List[RemoteStore]) -> Optional[RemoteStore]:
    """Nearest store that is open and takes online delivery orders."""
    candidates = [store for store in stores if store.accepts_online_delivery()]
    if not candidates:
        return None
    return min(
        candidates,
        key=lambda store: store.min_distance if store.min_distance is not None else float("inf"),
    )


def _parse_wait_minutes(value: Optional[str]) -> Optional[int]:
    """Read "20-30" or "25" as the first whole number of minutes."""
    if not value:
        return None
    match = re.search(r"\d+", str(value))
    return int(match.group(0)) if match else None


class OrderManager:
    """Stateless controller for the order lifecycle."""

    def __init__(
        self,
        api: OrderService,
        repository: OrderRepository,
        catalog: Optional[MenuCatalog] = None,
        ordering_config: OrderingConfig = DEFAULT_ORDERING_CONFIG,
        rate_limiter: Optional[RateLimiter] = None,
        remote_timeout: float = REMOTE_TIMEOUT_SECONDS,
        today: Callable[[], date] = date.today,
    ):
        self.api = api
        self.repository = repository
        self.catalog = catalog or MenuCatalog()
        self.ordering_config = ordering_config
        self.rate_limiter = rate_limiter if rate_limiter is not None else ORDER_RATE_LIMITER
        self.remote_timeout = remote_timeout
        self._today = today

    async def _remote(self, call: Awaitable[Any]) -> Any:
        return await asyncio.wait_for(call, timeout=self.remote_timeout)

    # =========================================================================
    # Submission Pipeline
    # =========================================================================

    async def process_order(self, order: Order, customer: Customer) -> OrderResult:
        """
        Validate, price and (when a payment method is attached) place an order.

        The order is mutated in place. It is returned on success, including
        the priced-but-unconfirmed case when no payment method is present.

        Returns:
            The updated Order, or the first OrderError encountered
        """
        logger.info("Processing order with %d items", len(order.items))

        if order.status == OrderStatus.CANCELLED:
            return OrderError.validation("ORDER_CANCELLED", "This order has been cancelled")

        if order.progress.is_confirmed:
            logger.info("Order %s already placed, skipping submission", order.order_id)
            return order

        try:
            if not self.rate_limiter.try_acquire():
                return OrderError.validation(
                    "RATE_LIMIT_EXCEEDED",
                    "Too many orders. Please try again in a few minutes.",
                )

            customer_error = validate_customer_info(customer, self.ordering_config)
            if customer_error:
                return customer_error
            order.progress.has_customer_info = True

            item_error = validate_items(order.items, self.catalog)
            if item_error:
                return item_error

            if not order.store_id:
                store_error = await self._bind_store(order, customer)
                if store_error:
                    return store_error

            request = build_order_request(order, customer)

            logger.debug("Validating order with remote API")
            validated: RemoteResponse = await self._remote(self.api.validate_order(request))
            if not validated.is_success:
                logger.warning("Order validation failed: %s", validated.status_message())
                return OrderError.validation("API_VALIDATION_FAILED", validated.status_message())

            logger.debug("Pricing order with remote API")
            priced: RemoteResponse = await self._remote(self.api.price_order(request))
            if not priced.is_success:
                logger.warning("Order pricing failed: %s", priced.status_message())
                return OrderError.validation("API_PRICING_FAILED", priced.status_message())

            order.total = priced.customer_amount()
            logger.info("Order priced at %s", format_currency(order.total))

            if order.payment_method is None:
                return order

            payment_error = validate_payment_method(
                order.payment_method, self.ordering_config, self._today()
            )
            if payment_error:
                logger.info("Payment validation failed: %s", payment_error.code)
                order.payment_status = PaymentStatus.INVALID
                return payment_error
            order.progress.has_valid_payment = True
            order.payment_status = PaymentStatus.VALID

            # Rebuilt so the payment amount matches the remote total
            place_request = build_order_request(order, customer)

            logger.info("Placing order with store %s", order.store_id)
            placed: RemoteResponse = await self._remote(self.api.place_order(place_request))
            if not placed.is_success:
                logger.warning("Order placement failed: %s", placed.status_message())
                return OrderError.payment("API_ORDER_FAILED", placed.status_message())

            order.status = OrderStatus.CONFIRMED
            order.payment_status = PaymentStatus.PROCESSED
            order.progress.is_confirmed = True
            self._apply_placement(order, placed)
            logger.info("Order placed successfully: %s", order.order_id or "(no id)")
            return order

        except AddressParseError as e:
            logger.info("Could not parse delivery address: %s", e)
            return OrderError.validation(
                "UNPARSEABLE_ADDRESS",
                "Please provide your address as street, city, state and ZIP code",
            )
        except Exception:
            logger.exception("Error processing order")
            return OrderError.system("SYSTEM_ERROR", GENERIC_ERROR_MESSAGE)

    async def _bind_store(self, order: Order, customer: Customer) -> Optional[OrderError]:
        address = resolve_delivery_address(customer)
        logger.debug("Finding nearest store in %s, %s", address.city, address.region)
        stores = await self._remote(
            self.api.find_stores(address.street, address.city, address.region)
        )
        store = select_delivery_store(stores)
        if store is None:
            logger.warning("No open delivery store found for %s, %s", address.city, address.region)
            return OrderError.system(
                "NO_STORE_AVAILABLE",
                "No stores are currently available for delivery to your location.",
            )
        order.store_id = store.store_id
        logger.info("Bound order to store %s", store.store_id)
        return None

    @staticmethod
    def _apply_placement(order: Order, placed: RemoteResponse) -> None:
        if placed.order is None:
            return
        if placed.order.order_id:
            order.order_id = placed.order.order_id
        wait = _parse_wait_minutes(placed.order.estimated_wait_minutes)
        if wait is not None:
            order.estimated_wait_minutes = wait

    # =========================================================================
    # Conversation Guidance
    # =========================================================================

    @staticmethod
    def get_next_required_action(
        order: Optional[Order],
        customer: Optional[Customer],
        config: OrderingConfig = DEFAULT_ORDERING_CONFIG,
    ) -> NextAction:
        """
        Decide what the conversation needs next.

        Pure function of its arguments; evaluated fresh on every call. Only
        the customer fields the config requires must be present.
        """
        if order is None:
            return NextAction.START_ORDER

        if customer is None or not customer.has_all_fields(config.required_customer_fields()):
            return NextAction.PROVIDE_CUSTOMER_INFO

        if not order.items:
            return NextAction.ADD_ITEMS

        if order.payment_method is None or not order.progress.has_valid_payment:
            return NextAction.PROVIDE_PAYMENT

        if not order.progress.is_confirmed:
            return NextAction.CONFIRM_ORDER

        return NextAction.ORDER_COMPLETE

    @classmethod
    def get_next_required_action_dialogue(
        cls,
        order: Optional[Order],
        customer: Optional[Customer],
        config: OrderingConfig = DEFAULT_ORDERING_CONFIG,
    ) -> str:
        action = cls.get_next_required_action(order, customer, config)
        return NEXT_ACTION_PROMPTS[action]

    def get_order_summary(
        self,
        order: Optional[Order] = None,
        customer: Optional[Customer] = None,
    ) -> str:
        lines = []

        if customer and customer.name:
            lines.append(f"Order for: {customer.name}")
        if customer and customer.address:
            lines.append(f"Delivery to: {customer.address}")

        if order and order.items:
            lines.append("")
            lines.append("Items:")
            for index, item in enumerate(order.items, 1):
                lines.append(f"{index}. {item.get_description()}")
                for topping in item.toppings:
                    try:
                        description = self.catalog.format_topping(topping)
                    except UnknownToppingError:
                        description = topping.code
                    lines.append(f"   - {description}")

        if order and order.total:
            lines.append("")
            lines.append(f"Total: {format_currency(order.total)}")

        return "\n".join(lines) or "No order details available"

    def estimate_total(self, order: Order) -> Optional[float]:
        """Local quote for an order, or None if any item can't be priced."""
        try:
            return self.catalog.estimate_order_total(order)
        except (KeyError, UnknownToppingError):
            return None

    # =========================================================================
    # Store Lookup
    # =========================================================================

    async def check_store_availability(self, address: str) -> StoreAvailability:
        try:
            parsed = parse_address(address)
            stores = await self._remote(
                self.api.find_stores(parsed.street, parsed.city, parsed.region)
            )
        except Exception:
            logger.exception("Store availability check failed")
            return StoreAvailability(
                is_available=False,
                message="Unable to check store availability. Please try again later.",
            )

        store = select_delivery_store(stores)
        if store is None:
            return StoreAvailability(
                is_available=False,
                message="No stores are currently available for delivery to your location.",
            )

        if store.min_distance is not None:
            message = f"Found available store {store.store_id} ({store.min_distance:.1f} miles away)"
        else:
            message = f"Found available store {store.store_id}"
        return StoreAvailability(is_available=True, message=message, store_id=store.store_id)

    # =========================================================================
    # Persistence-Aware Operations
    # =========================================================================

    def get_order(self, user_id: str) -> Optional[Order]:
        return self.repository.get_order(user_id)

    def get_customer(self, user_id: str) -> Optional[Customer]:
        return self.repository.get_customer(user_id)

    def initialize_order(self, user_id: str) -> Order:
        """Start a fresh order, replacing any previous one for this user."""
        order = Order()
        self.repository.save_order(user_id, order)
        logger.info("Initialized new order")
        return order

    def _load_open_order(self, user_id: str) -> OrderResult:
        order = self.repository.get_order(user_id)
        if order is None:
            return OrderError.validation("NO_ACTIVE_ORDER", "There is no active order. Start a new order first.")
        if order.status == OrderStatus.CANCELLED:
            return OrderError.validation("ORDER_CANCELLED", "This order has been cancelled")
        if order.status == OrderStatus.CONFIRMED:
            return OrderError.validation("ORDER_ALREADY_CONFIRMED", "This order has already been placed")
        return order

    def update_customer(self, user_id: str, **fields: Any) -> Union[Customer, OrderError]:
        """
        Merge newly provided customer fields and save them.

        Empty values are ignored. A changed address unbinds the open order's
        store so the next submission finds one near the new location. Once
        every required field is present the customer is validated; on success
        the order's has_customer_info flag is set.
        """
        previous = self.repository.get_customer(user_id) or Customer()
        updates = {key: value for key, value in fields.items() if value}
        if updates.get("address", previous.address) != previous.address and "delivery_address" not in updates:
            # Structured address would otherwise shadow the new free text
            updates["delivery_address"] = None
        customer = previous.model_copy(update=updates) if updates else previous
        if updates:
            self.repository.save_customer(user_id, customer)

        order = self.repository.get_order(user_id)
        order_changed = False
        moved = (
            customer.address != previous.address
            or customer.delivery_address != previous.delivery_address
        )
        if order is not None and moved and order.store_id and not order.is_terminal():
            logger.info("Delivery address changed, releasing store %s", order.store_id)
            order.store_id = ""
            order_changed = True

        result: Union[Customer, OrderError] = customer
        if customer.has_all_fields(self.ordering_config.required_customer_fields()):
            error = validate_customer_info(customer, self.ordering_config)
            if error:
                result = error
            elif order is not None and not order.progress.has_customer_info:
                order.progress.has_customer_info = True
                order_changed = True

        if order_changed:
            self.repository.save_order(user_id, order)
        return result

    def save_item(self, user_id: str, item: OrderItem, replace_last: bool = False) -> OrderResult:
        """Validate an item locally and append it (or replace the last one)."""
        result = self._load_open_order(user_id)
        if isinstance(result, OrderError):
            return result
        order = result

        error = validate_item(item, self.catalog)
        if error:
            return error

        if replace_last and order.items:
            order.items[-1] = item
        else:
            order.items.append(item)

        if order.progress.has_valid_payment:
            order.status = OrderStatus.PROCESSING
        else:
            order.status = OrderStatus.AWAITING_PAYMENT

        self.repository.save_order(user_id, order)
        return order

    def update_payment(self, user_id: str, payment: PaymentMethod) -> OrderResult:
        """
        Validate and attach a payment method.

        A rejected card is never stored and counts as a failed attempt. When
        no valid card is on file the payment_status becomes INVALID; a valid
        card already on file stays attached and VALID. After
        max_failed_attempts rejections the order refuses further cards.
        """
        result = self._load_open_order(user_id)
        if isinstance(result, OrderError):
            return result
        order = result

        if order.failed_payment_attempts >= self.ordering_config.max_failed_attempts:
            logger.warning("Payment attempts exhausted after %d failures", order.failed_payment_attempts)
            return OrderError.payment(
                "PAYMENT_ATTEMPTS_EXCEEDED",
                "Too many invalid payment attempts. Please start a new order.",
            )

        error = validate_payment_method(payment, self.ordering_config, self._today())
        if error:
            logger.info("Rejected payment method %s: %s", payment.masked_number(), error.code)
            order.failed_payment_attempts += 1
            if not self.has_card_on_file(order):
                order.payment_status = PaymentStatus.INVALID
            self.repository.save_order(user_id, order)
            return error

        order.payment_method = payment
        order.payment_status = PaymentStatus.VALID
        order.progress.has_valid_payment = True
        order.failed_payment_attempts = 0
        if order.items:
            order.status = OrderStatus.PROCESSING
        self.repository.save_order(user_id, order)
        return order

    @staticmethod
    def has_card_on_file(order: Order) -> bool:
        return order.payment_method is not None and order.progress.has_valid_payment

    async def submit_order(self, user_id: str) -> OrderResult:
        """Load, run process_order, and persist the outcome."""
        order = self.repository.get_order(user_id)
        if order is None:
            return OrderError.validation("NO_ACTIVE_ORDER", "There is no active order. Start a new order first.")
        customer = self.repository.get_customer(user_id) or Customer()

        result = await self.process_order(order, customer)

        # Persist even on failure: payment status, store binding and
        # progress flags may have changed before the error
        self.repository.save_order(user_id, order)
        return result

    def cancel_order(self, user_id: str) -> OrderResult:
        order = self.repository.get_order(user_id)
        if order is None:
            return OrderError.validation("NO_ACTIVE_ORDER", "There is no active order to cancel.")
        if order.status == OrderStatus.CONFIRMED:
            return OrderError.validation(
                "ORDER_ALREADY_CONFIRMED",
                "This order has already been placed and can't be cancelled here",
            )
        order.status = OrderStatus.CANCELLED
        self.repository.save_order(user_id, order)
        logger.info("Order cancelled")
        return order

    async def track_order(self, user_id: str) -> Union[TrackingStatus, OrderError]:
        customer = self.repository.get_customer(user_id)
        if customer is None or not customer.phone:
            return OrderError.validation("MISSING_PHONE", "I need your phone number to track your order.")

        try:
            status = await self._remote(self.api.track_order(customer.phone))
        except Exception:
            logger.exception("Error tracking order")
            return OrderError.system(
                "TRACKING_UNAVAILABLE",
                "I'm having trouble tracking your order right now. Please try again in a few minutes.",
            )

        if status is None:
            return OrderError.validation(
                "NO_ACTIVE_TRACKING",
                "I couldn't find any active orders for tracking.",
            )
        return status


NEXT_ACTION_PROMPTS = {
    NextAction.START_ORDER: "Would you like to order a pizza? I can help you with that!",
    NextAction.PROVIDE_CUSTOMER_INFO: (
        "To continue with your order, I'll need your delivery information. "
        "Please provide your name, phone number, email, and delivery address."
    ),
    NextAction.ADD_ITEMS: (
        "What kind of pizza would you like to order? "
        "You can choose the size (Small, Medium, Large, XLarge) and crust type "
        "(Hand Tossed, Thin, Pan, Brooklyn, or Gluten Free)."
    ),
    NextAction.PROVIDE_PAYMENT: (
        "To complete your order, I'll need your payment information. "
        "Please provide your credit card details (number, expiration date, CVV, and postal code)."
    ),
    NextAction.CONFIRM_ORDER: "Your order is ready! Would you like to confirm and place this order?",
    NextAction.ORDER_COMPLETE: (
        "Your order has been confirmed and is being prepared. "
        "You can track your order status using your phone number."
    ),
}
