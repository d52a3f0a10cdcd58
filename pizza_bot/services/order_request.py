"""
Conversion of orders into the remote ordering API's request shape.

Key Functions:
--------------
- build_order_request: Order + Customer + store -> request document
- convert_item_to_product: OrderItem -> product descriptor
- detect_card_type: coarse card brand from the leading digits

Product Codes:
--------------
Size and crust combine into a composite product code, e.g. LARGE + THIN ->
"14THIN". Every pizza carries the base cheese option C: {"1/1": "1"}; each
topping becomes an option keyed by coverage, "1/1" for the whole pizza and
"1/2" for either half, with the amount as a string.

Card Types:
-----------
detect_card_type() looks only at the leading digits. It is not a BIN table
and does not run a Luhn check.
"""

import logging
from typing import Any, Dict, Optional

from ..address import resolve_delivery_address
from ..schemas.orders import Customer, Order, OrderItem, ToppingPortion

logger = logging.getLogger(__name__)

SIZE_CODES = {
    "SMALL": "10",
    "MEDIUM": "12",
    "LARGE": "14",
    "XLARGE": "16",
}

CRUST_CODES = {
    "HAND_TOSSED": "HANDTOSS",
    "THIN": "THIN",
    "PAN": "PAN",
    "GLUTEN_FREE": "GLUTENF",
    "BROOKLYN": "BK",
}

WHOLE_COVERAGE = "1/1"
HALF_COVERAGE = "1/2"


def detect_card_type(card_number: str) -> str:
    if card_number.startswith("4"):
        return "VISA"
    if card_number.startswith("5"):
        return "MASTERCARD"
    if card_number.startswith(("34", "37")):
        return "AMEX"
    if card_number.startswith("6"):
        return "DISCOVER"
    return "UNKNOWN"


def split_name(name: str) -> tuple[str, str]:
    """Split "First Middle Last" into ("First", "Middle Last")."""
    first, _, last = name.strip().partition(" ")
    return first, last.strip()


def convert_item_to_product(item: OrderItem) -> Dict[str, Any]:
    code = f"{SIZE_CODES[item.size]}{CRUST_CODES[item.crust]}"
    options: Dict[str, Dict[str, str]] = {"C": {WHOLE_COVERAGE: "1"}}

    for topping in item.toppings:
        coverage = WHOLE_COVERAGE if topping.portion == ToppingPortion.ALL.value else HALF_COVERAGE
        options[topping.code] = {coverage: str(topping.amount)}

    return {
        "Code": code,
        "Qty": item.quantity,
        "Options": options,
    }


def build_order_request(
    order: Order,
    customer: Customer,
    store_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Build the request document posted to validate/price/place.

    Args:
        order: The order being submitted
        customer: Customer contact and delivery details
        store_id: Store to submit to (defaults to order.store_id)

    Returns:
        Dict in the remote API's PascalCase shape

    Raises:
        AddressParseError: If the free-text address cannot be split
    """
    first_name, last_name = split_name(customer.name)
    address = resolve_delivery_address(customer)

    request: Dict[str, Any] = {
        "Address": {
            "Street": address.street,
            "City": address.city,
            "Region": address.region,
            "PostalCode": address.postal_code,
        },
        "StoreID": store_id or order.store_id,
        "Products": [convert_item_to_product(item) for item in order.items],
        "OrderChannel": "OLO",
        "OrderMethod": "Web",
        "LanguageCode": "en",
        "ServiceMethod": "Delivery",
        "FirstName": first_name,
        "LastName": last_name,
        "Email": customer.email,
        "Phone": customer.phone,
    }

    payment = order.payment_method
    if payment and payment.card_number:
        request["Payments"] = [{
            "Type": "CreditCard",
            "Amount": order.total,
            "CardType": detect_card_type(payment.card_number),
            "Number": payment.card_number,
            "Expiration": payment.expiry_date.replace("/", ""),
            "SecurityCode": payment.cvv,
            "PostalCode": payment.postal_code,
            "TipAmount": 0,
        }]

    logger.debug(
        "Built order request for store %s with %d products",
        request["StoreID"],
        len(request["Products"]),
    )
    return request
