"""
Best-effort parsing of free-text delivery addresses.

Addresses should be collected field-by-field upstream as a DeliveryAddress.
When only the free-text form is available, parse_address() splits it at the
remote-request boundary using these assumptions:

1. A comma separates the street from the rest ("12 A St, Springfield IL").
2. An optional second comma separates the city from "Region Postal"
   ("12 A St, Springfield, IL 62701").
3. The trailing whitespace tokens are the region and, if it looks like a
   ZIP or ZIP+4, the postal code.

When an input does not fit, AddressParseError is raised instead of returning
a silently mis-split address.
"""

import logging
import re

from .schemas.orders import Customer, DeliveryAddress

logger = logging.getLogger(__name__)

ZIP_PATTERN = re.compile(r"^\d{5}(?:-\d{4})?$")


class AddressParseError(ValueError):
    """Raised when a free-text address does not match the expected shape."""


def parse_address(address: str) -> DeliveryAddress:
    """
    Split a free-text address into street, city, region and postal code.

    Args:
        address: e.g. "12 A St, Springfield IL 62701"

    Returns:
        DeliveryAddress with the parsed parts. postal_code is empty when the
        input has no ZIP.

    Raises:
        AddressParseError: If the address cannot be split reliably
    """
    if not address or not address.strip():
        raise AddressParseError("Address is empty")

    parts = [part.strip() for part in address.split(",")]
    if len(parts) < 2 or len(parts) > 3 or not all(parts):
        raise AddressParseError(
            f"Expected 'street, city region [zip]', got {len(parts) - 1} comma(s)"
        )

    street = parts[0]
    tokens = parts[-1].split()

    postal_code = ""
    if tokens and ZIP_PATTERN.match(tokens[-1]):
        postal_code = tokens.pop()

    if not tokens:
        raise AddressParseError("Address is missing a region")
    region = tokens.pop()

    if len(parts) == 3:
        city = parts[1]
        if tokens:
            raise AddressParseError("Unexpected text between city and region")
    else:
        city = " ".join(tokens)

    if not city:
        raise AddressParseError("Address is missing a city")

    return DeliveryAddress(
        street=street,
        city=city,
        region=region,
        postal_code=postal_code,
    )


def resolve_delivery_address(customer: Customer) -> DeliveryAddress:
    """Prefer the structured address; fall back to parsing the free text."""
    if customer.delivery_address is not None:
        return customer.delivery_address
    logger.debug("No structured address on file, parsing free text")
    return parse_address(customer.address)

