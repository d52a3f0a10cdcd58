"""
Conversation actions for pizza ordering.

Each action handles one conversational turn for a user: it asks the
extractor what the message contained, applies that to the stored order
through OrderManager, and returns the text to reply with.

Actions:
--------
- detect_order_intent: Is the customer asking to order a pizza?
- handle_message: Route a free-text turn to the right action
- start_order: Open an order and collect delivery/contact details
- update_order: Apply size/crust/topping/quantity changes
- update_payment: Attach a card
- confirm_order: Submit the order for validation, pricing and placement
- cancel_order: Abandon the current order
- track_order: Report delivery status for the customer's phone number
- order_context: Status block describing the order and the next step
"""

import logging
from typing import Optional

from .parsing import Extractor, PizzaUpdates
from .schemas.orders import (
    Order,
    OrderError,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    Topping,
)
from .services.order_manager import OrderManager

logger = logging.getLogger(__name__)

CUSTOMER_FIELDS = ("address", "name", "phone", "email")


class PizzaOrderAssistant:
    """Turn-level handlers that connect the extractor to OrderManager."""

    def __init__(self, manager: OrderManager, extractor: Extractor):
        self.manager = manager
        self.extractor = extractor

    async def detect_order_intent(self, text: str) -> bool:
        return await self.extractor.detect_order_intent(text)

    async def handle_message(self, user_id: str, text: str) -> str:
        """
        Route one free-text turn.

        With no open order the message must ask for a pizza before one is
        started. Customer details are collected first, then pizza details.
        """
        order = self.manager.get_order(user_id)
        if order is None or order.is_terminal():
            if not await self.detect_order_intent(text):
                return self.manager.get_next_required_action_dialogue(None, None)
            return await self.start_order(user_id, text)

        if not order.progress.has_customer_info:
            return await self.start_order(user_id, text)
        return await self.update_order(user_id, text)

    # =========================================================================
    # Customer Details
    # =========================================================================

    async def start_order(self, user_id: str, text: str) -> str:
        """Open an order if needed and record any customer details in text."""
        order = self.manager.get_order(user_id)
        if order is None or order.is_terminal():
            self.manager.initialize_order(user_id)

        customer = self.manager.get_customer(user_id)
        current = customer.model_dump(include=set(CUSTOMER_FIELDS)) if customer else {}

        try:
            extraction = await self.extractor.extract_customer_info(text, current)
        except Exception:
            logger.exception("Customer info extraction failed")
            return "I'm sorry, I had trouble processing that. Could you please provide your delivery address?"

        result = self.manager.update_customer(user_id, **extraction.provided.as_updates())
        if isinstance(result, OrderError):
            return result.message

        if result.has_all_fields(self.manager.ordering_config.required_customer_fields()):
            if result.address:
                availability = await self.manager.check_store_availability(result.address)
                if not availability.is_available:
                    return availability.message
            return (
                "Great! Now let's build your pizza. What size would you like? "
                "We have Small, Medium, Large, and Extra Large."
            )
        return extraction.next_prompt or self.manager.get_next_required_action_dialogue(
            self.manager.get_order(user_id), result, self.manager.ordering_config
        )

    # =========================================================================
    # Items
    # =========================================================================

    async def update_order(self, user_id: str, text: str) -> str:
        """
        Apply pizza details from text to the order.

        Changes amend the last pizza unless the customer asks for another
        one. A new pizza is only added once both size and crust are known.
        """
        order = self.manager.get_order(user_id)
        if order is None or order.is_terminal():
            return "There's no open order yet. Would you like to start one?"

        state = {
            "items": [item.model_dump() for item in order.items],
            "current_item": order.items[-1].model_dump() if order.items else {},
        }

        try:
            extraction = await self.extractor.extract_pizza_update(text, state)
        except Exception:
            logger.exception("Pizza update extraction failed")
            return "I had trouble understanding that. Could you please specify what you'd like for your pizza?"

        updates = extraction.updates
        amend_last = bool(order.items) and not extraction.new_item
        base = order.items[-1] if amend_last else OrderItem()
        item = _apply_updates(base, updates)

        if not amend_last and (item.size is None or item.crust is None):
            return extraction.next_prompt or "What size and crust would you like?"

        result = self.manager.save_item(user_id, item, replace_last=amend_last)
        if isinstance(result, OrderError):
            return result.message

        return extraction.next_prompt or "Would you like anything else on your order?"

    # =========================================================================
    # Payment & Submission
    # =========================================================================

    def update_payment(self, user_id: str, payment: PaymentMethod) -> str:
        result = self.manager.update_payment(user_id, payment)
        if isinstance(result, OrderError):
            order = self.manager.get_order(user_id)
            if order is not None and self.manager.has_card_on_file(order):
                previous = order.payment_method.masked_number()
                return f"{result.message.rstrip('.')}. Your previous card {previous} is still on file."
            return result.message
        return self.manager.get_next_required_action_dialogue(
            result, self.manager.get_customer(user_id), self.manager.ordering_config
        )

    async def confirm_order(self, user_id: str) -> str:
        order = self.manager.get_order(user_id)
        if order is None:
            return "There's no order to confirm yet. Would you like to start one?"

        result = await self.manager.submit_order(user_id)
        if isinstance(result, OrderError):
            return f"There was an issue placing your order: {result.message}"

        customer = self.manager.get_customer(user_id)
        summary = self.manager.get_order_summary(result, customer)

        if not result.progress.is_confirmed:
            prompt = self.manager.get_next_required_action_dialogue(
                result, customer, self.manager.ordering_config
            )
            return f"Your order has been priced.\n\n{summary}\n\n{prompt}"

        logger.info("Order %s confirmed", result.order_id)
        return (
            "Great news! Your order has been confirmed and is being prepared.\n\n"
            f"Order Number: {result.order_id}\n"
            f"Estimated Delivery Time: {result.estimated_wait_minutes} minutes\n\n"
            f"{summary}"
        )

    def cancel_order(self, user_id: str) -> str:
        result = self.manager.cancel_order(user_id)
        if isinstance(result, OrderError):
            return result.message
        return "Your order has been cancelled. Let me know if you'd like to start a new one."

    async def track_order(self, user_id: str) -> str:
        result = await self.manager.track_order(user_id)
        if isinstance(result, OrderError):
            return result.message

        lines = ["Here's your order status:", ""]
        if result.order_status:
            lines.append(f"Status: {result.order_status}")
        if result.store_status:
            lines.append(f"Store Status: {result.store_status}")
        if result.estimated_wait_minutes:
            lines.append(f"Estimated Wait: {result.estimated_wait_minutes} minutes")
        if result.delivery_status:
            lines.append("")
            lines.append(f"Delivery Status: {result.delivery_status}")
            if result.driver_name:
                lines.append(f"Driver: {result.driver_name}")
        return "\n".join(lines)

    # =========================================================================
    # Context
    # =========================================================================

    def order_context(self, user_id: str) -> str:
        """Status block describing payment state, the order and the next step."""
        order = self.manager.get_order(user_id)
        customer = self.manager.get_customer(user_id)
        if order is None:
            return "No active pizza order. The customer needs to start a new order."

        lines = ["PAYMENT STATUS:", f"Current Status: {order.payment_status.value}"]
        if order.payment_status == PaymentStatus.NOT_SET:
            lines.append("Payment information needed to complete order.")
        elif order.payment_status == PaymentStatus.INVALID:
            lines.append("Previous payment method was invalid. Please provide new payment information.")

        if order.status == OrderStatus.AWAITING_PAYMENT:
            lines.append("")
            lines.append("REQUIRED: Please provide credit card information to complete your order.")
        elif order.status == OrderStatus.PROCESSING:
            lines.append("")
            lines.append("REQUIRED: Please review your order and confirm to place it.")

        lines.append("")
        lines.append("=== PIZZA ORDER STATUS ===")
        lines.append("")
        lines.append(self.manager.get_order_summary(order, customer))

        estimate = _estimate_line(self.manager, order)
        if estimate:
            lines.append(estimate)

        lines.append("")
        lines.append("NEXT REQUIRED ACTION:")
        next_action = self.manager.get_next_required_action(order, customer, self.manager.ordering_config)
        lines.append(next_action.value)
        return "\n".join(lines)


def _apply_updates(base: OrderItem, updates: PizzaUpdates) -> OrderItem:
    changes = {}
    if updates.size:
        changes["size"] = updates.size
    if updates.crust:
        changes["crust"] = updates.crust
    if updates.toppings is not None:
        changes["toppings"] = [
            Topping(code=t.code, portion=t.portion, amount=t.amount)
            for t in updates.toppings
        ]
    if updates.quantity:
        changes["quantity"] = updates.quantity
    return base.model_copy(update=changes, deep=True)


def _estimate_line(manager: OrderManager, order: Order) -> Optional[str]:
    if order.total or not order.items:
        return None
    estimate = manager.estimate_total(order)
    if estimate is None:
        return None
    return f"Estimated Total: ${estimate:.2f} (final price confirmed at checkout)"
