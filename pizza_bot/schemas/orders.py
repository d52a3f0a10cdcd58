"""
Pydantic models for the pizza order lifecycle.

These are plain data records. All behaviour (validation, pricing, remote
submission) lives in the stateless services that operate on them, so the
models can be cached as JSON and rebuilt with model_validate().

Size, crust and topping portion are stored as plain strings rather than
enum-typed fields: values extracted from conversation can be malformed, and
the validators report them as structured OrderErrors instead of failing at
construction time.
"""

from enum import Enum
from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Enumerations
# =============================================================================

class PizzaSize(str, Enum):
    SMALL = "SMALL"
    MEDIUM = "MEDIUM"
    LARGE = "LARGE"
    XLARGE = "XLARGE"


class PizzaCrust(str, Enum):
    HAND_TOSSED = "HAND_TOSSED"
    THIN = "THIN"
    PAN = "PAN"
    GLUTEN_FREE = "GLUTEN_FREE"
    BROOKLYN = "BROOKLYN"


class ToppingPortion(str, Enum):
    LEFT = "LEFT"
    RIGHT = "RIGHT"
    ALL = "ALL"


class OrderStatus(str, Enum):
    """Lifecycle states of an order."""
    NEW = "NEW"
    AWAITING_PAYMENT = "AWAITING_PAYMENT"
    PROCESSING = "PROCESSING"
    CONFIRMED = "CONFIRMED"  # Terminal: placed with the store
    CANCELLED = "CANCELLED"  # Terminal: abandoned by the customer


class PaymentStatus(str, Enum):
    NOT_SET = "NOT_SET"
    VALID = "VALID"
    INVALID = "INVALID"
    PROCESSED = "PROCESSED"


class ErrorType(str, Enum):
    VALIDATION_FAILED = "VALIDATION_FAILED"
    PAYMENT_FAILED = "PAYMENT_FAILED"
    SYSTEM_ERROR = "SYSTEM_ERROR"


class NextAction(str, Enum):
    """What the conversation should ask for next."""
    START_ORDER = "START_ORDER"
    PROVIDE_CUSTOMER_INFO = "PROVIDE_CUSTOMER_INFO"
    ADD_ITEMS = "ADD_ITEMS"
    PROVIDE_PAYMENT = "PROVIDE_PAYMENT"
    CONFIRM_ORDER = "CONFIRM_ORDER"
    ORDER_COMPLETE = "ORDER_COMPLETE"


def is_member(enum_cls: type[Enum], value) -> bool:
    """Check whether value is one of enum_cls's values."""
    return value in enum_cls._value2member_map_


# =============================================================================
# Customer
# =============================================================================

class DeliveryAddress(BaseModel):
    """Delivery address collected field-by-field."""

    street: str
    city: str
    region: str
    postal_code: str = ""

    def format_full(self) -> str:
        city_line = f"{self.city} {self.region} {self.postal_code}".strip()
        return f"{self.street}, {city_line}"


CUSTOMER_FIELDS = ("name", "phone", "email", "address")


class Customer(BaseModel):
    """Contact and delivery details for the person placing the order."""

    name: str = ""
    phone: str = ""
    email: str = ""
    address: str = ""  # Free text, e.g. "12 A St, Springfield IL 62701"
    delivery_address: Optional[DeliveryAddress] = None

    def missing_fields(self, required: Iterable[str] = CUSTOMER_FIELDS) -> list[str]:
        return [field for field in required if not getattr(self, field)]

    def has_all_fields(self, required: Iterable[str] = CUSTOMER_FIELDS) -> bool:
        return not self.missing_fields(required)


# =============================================================================
# Payment
# =============================================================================

class PaymentMethod(BaseModel):
    card_number: str = ""
    expiry_date: str = ""  # MM/YY
    cvv: str = ""
    postal_code: str = ""

    def masked_number(self) -> str:
        """Card number with everything but the last four digits hidden."""
        if len(self.card_number) < 4:
            return "****"
        return f"****{self.card_number[-4:]}"


# =============================================================================
# Items
# =============================================================================

class Topping(BaseModel):
    code: str
    portion: str = ToppingPortion.ALL.value
    amount: int = 1  # 1 = normal, 2 = extra


class OrderItem(BaseModel):
    product_code: str = "PIZZA"
    size: Optional[str] = None
    crust: Optional[str] = None
    toppings: list[Topping] = Field(default_factory=list)
    quantity: int = 1

    def get_description(self) -> str:
        size = (self.size or "?").replace("_", " ").title()
        crust = (self.crust or "?").replace("_", " ").title()
        prefix = f"{self.quantity}x " if self.quantity > 1 else ""
        return f"{prefix}{size} {crust} Pizza"


# =============================================================================
# Order
# =============================================================================

class OrderProgress(BaseModel):
    """
    Completion flags for an order.

    The flags are independent and are set explicitly by the order manager
    when the corresponding step succeeds. They are never reset within the
    life of one order.
    """

    has_customer_info: bool = False
    has_valid_payment: bool = False
    is_confirmed: bool = False


class Order(BaseModel):
    status: OrderStatus = OrderStatus.NEW
    items: list[OrderItem] = Field(default_factory=list)
    order_id: str = ""
    store_id: str = ""
    total: float = 0.0
    payment_status: PaymentStatus = PaymentStatus.NOT_SET
    payment_method: Optional[PaymentMethod] = None
    estimated_wait_minutes: int = 0
    failed_payment_attempts: int = 0
    progress: OrderProgress = Field(default_factory=OrderProgress)

    def is_terminal(self) -> bool:
        return self.status in (OrderStatus.CONFIRMED, OrderStatus.CANCELLED)


# =============================================================================
# Errors
# =============================================================================

class OrderError(BaseModel):
    """
    A failure returned (never raised) by the order engine.

    `code` is machine-readable for caller-side branching; `message` is safe
    to show to the end user.
    """

    model_config = ConfigDict(frozen=True)

    type: ErrorType
    message: str
    code: str

    @classmethod
    def validation(cls, code: str, message: str) -> "OrderError":
        return cls(type=ErrorType.VALIDATION_FAILED, code=code, message=message)

    @classmethod
    def payment(cls, code: str, message: str) -> "OrderError":
        return cls(type=ErrorType.PAYMENT_FAILED, code=code, message=message)

    @classmethod
    def system(cls, code: str, message: str) -> "OrderError":
        return cls(type=ErrorType.SYSTEM_ERROR, code=code, message=message)
