"""
Input Validation Functions.

This module contains the local checks run before any remote call is made:
order items and toppings, customer contact details, and payment cards.

Every function is pure and short-circuits on the first problem it finds,
returning an OrderError, or None when the input is acceptable. Errors are
never aggregated.
"""

import logging
import re
from datetime import date
from typing import Iterable, Optional

from .config import DEFAULT_ORDERING_CONFIG, OrderingConfig
from .menu import MenuCatalog
from .schemas.orders import (
    Customer,
    OrderError,
    OrderItem,
    PaymentMethod,
    PizzaCrust,
    PizzaSize,
    Topping,
    ToppingPortion,
    is_member,
)

logger = logging.getLogger(__name__)

NAME_PATTERN = re.compile(r"^[A-Za-z0-9\s'-]{2,50}$")
PHONE_PATTERN = re.compile(r"^\d{3}[-.]?\d{3}[-.]?\d{4}$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_ADDRESS_LENGTH = 10

CARD_NUMBER_PATTERN = re.compile(r"^\d{16}$")
CVV_PATTERN = re.compile(r"^\d{3,4}$")
EXPIRY_PATTERN = re.compile(r"^(0[1-9]|1[0-2])/(\d{2})$")
POSTAL_PATTERN = re.compile(r"^\d{5}(-\d{4})?$")

VALID_TOPPING_AMOUNTS = (1, 2)


# =============================================================================
# Items
# =============================================================================

def validate_toppings(toppings: list[Topping], catalog: MenuCatalog) -> Optional[OrderError]:
    """Check topping codes, portions, amounts, count and compatibility."""
    for topping in toppings:
        if not catalog.is_known_topping(topping.code):
            return OrderError.validation(
                "INVALID_TOPPING",
                f"Invalid topping code: {topping.code}",
            )

        if not is_member(ToppingPortion, topping.portion):
            return OrderError.validation(
                "INVALID_PORTION",
                f"Invalid topping portion: {topping.portion}",
            )

        if topping.amount not in VALID_TOPPING_AMOUNTS:
            return OrderError.validation(
                "INVALID_AMOUNT",
                "Topping amount must be 1 (normal) or 2 (extra)",
            )

    max_toppings = catalog.config.max_toppings
    if len(toppings) > max_toppings:
        return OrderError.validation(
            "TOO_MANY_TOPPINGS",
            f"Maximum of {max_toppings} toppings per pizza",
        )

    pair = catalog.incompatible_pair(toppings)
    if pair:
        first, second = pair
        return OrderError.validation(
            "INCOMPATIBLE_TOPPINGS",
            f"{first} and {second} can't be combined on the same pizza",
        )

    return None


def validate_item(item: OrderItem, catalog: MenuCatalog) -> Optional[OrderError]:
    if not is_member(PizzaSize, item.size):
        return OrderError.validation("INVALID_SIZE", f"Invalid pizza size: {item.size}")

    if not is_member(PizzaCrust, item.crust):
        return OrderError.validation("INVALID_CRUST", f"Invalid crust type: {item.crust}")

    topping_error = validate_toppings(item.toppings, catalog)
    if topping_error:
        return topping_error

    max_quantity = catalog.config.max_quantity
    if item.quantity < 1 or item.quantity > max_quantity:
        return OrderError.validation(
            "INVALID_QUANTITY",
            f"Quantity must be between 1 and {max_quantity}",
        )

    return None


def validate_items(items: Iterable[OrderItem], catalog: MenuCatalog) -> Optional[OrderError]:
    """Validate items in order; the first failing item's error is returned."""
    for index, item in enumerate(items):
        error = validate_item(item, catalog)
        if error:
            logger.info("Item %d failed validation: %s", index, error.code)
            return error
    return None


# =============================================================================
# Customer
# =============================================================================

def validate_customer_info(
    customer: Customer,
    config: OrderingConfig = DEFAULT_ORDERING_CONFIG,
) -> Optional[OrderError]:
    """
    Check the four contact fields.

    A field the config does not require may be empty, but a provided value
    is still checked. The address check is only a length proxy for
    completeness; structural parsing happens when the remote request is built.
    """
    required = config.required_customer_fields()

    def skip(field: str) -> bool:
        return field not in required and not getattr(customer, field)

    if not skip("name") and (not customer.name or not NAME_PATTERN.match(customer.name)):
        return OrderError.validation(
            "INVALID_NAME",
            "Please provide a valid name (2-50 characters)",
        )

    if not skip("phone") and (not customer.phone or not PHONE_PATTERN.match(customer.phone)):
        return OrderError.validation(
            "INVALID_PHONE",
            "Please provide a valid 10-digit phone number",
        )

    if not skip("email") and (not customer.email or not EMAIL_PATTERN.match(customer.email)):
        return OrderError.validation(
            "INVALID_EMAIL",
            "Please provide a valid email address",
        )

    if not skip("address") and len(customer.address) < MIN_ADDRESS_LENGTH:
        return OrderError.validation(
            "INVALID_ADDRESS",
            "Please provide a complete delivery address",
        )

    return None


# =============================================================================
# Payment
# =============================================================================

def is_expired(expiry_date: str, today: Optional[date] = None) -> bool:
    """
    Check an MM/YY expiry against today.

    A card stays valid through the last day of its expiry month, so only
    months strictly before the current month count as expired.
    """
    match = EXPIRY_PATTERN.match(expiry_date)
    if not match:
        raise ValueError(f"Expiry must be MM/YY, got {expiry_date!r}")
    today = today or date.today()
    month, year = int(match.group(1)), 2000 + int(match.group(2))
    return (year, month) < (today.year, today.month)


def validate_payment_method(
    payment: PaymentMethod,
    config: OrderingConfig = DEFAULT_ORDERING_CONFIG,
    today: Optional[date] = None,
) -> Optional[OrderError]:
    if not payment.card_number or not CARD_NUMBER_PATTERN.match(payment.card_number):
        return OrderError.payment(
            "INVALID_CARD_NUMBER",
            "Please provide a valid 16-digit credit card number",
        )

    if not payment.expiry_date or not EXPIRY_PATTERN.match(payment.expiry_date):
        return OrderError.payment(
            "INVALID_EXPIRY",
            "Please provide a valid expiration date (MM/YY)",
        )

    if is_expired(payment.expiry_date, today):
        return OrderError.payment("CARD_EXPIRED", "The card has expired")

    if (config.requires_cvv or payment.cvv) and not CVV_PATTERN.match(payment.cvv or ""):
        return OrderError.payment(
            "INVALID_CVV",
            "Please provide a valid CVV (3-4 digits)",
        )

    if config.requires_postal_code and (
        not payment.postal_code or not POSTAL_PATTERN.match(payment.postal_code)
    ):
        return OrderError.payment(
            "INVALID_POSTAL",
            "Please provide a valid postal code",
        )

    return None
