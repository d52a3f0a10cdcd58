"""
LLM Extraction for Pizza Orders.

This module uses instructor for structured LLM outputs. It turns free text
into the fields the order engine understands; the engine treats it as an
opaque oracle and only consumes the structured results.

Anything implementing the Extractor protocol can be passed to the
conversation actions, which is how tests substitute a deterministic fake.
"""

import logging
import os
from typing import Any, Literal, Optional, Protocol

import instructor
from pydantic import BaseModel, Field

from .config import OPENAI_MODEL

logger = logging.getLogger(__name__)


# =============================================================================
# Extraction Schemas
# =============================================================================

class OrderIntent(BaseModel):
    answer: Literal["YES", "NO"] = Field(
        description="YES only if the customer explicitly asks to order a pizza"
    )


class ProvidedCustomerInfo(BaseModel):
    address: Optional[str] = Field(default=None, description="Full delivery address, street, city, state and ZIP")
    name: Optional[str] = Field(default=None, description="Customer's name")
    phone: Optional[str] = Field(default=None, description="10-digit phone number")
    email: Optional[str] = Field(default=None, description="Email address")

    def as_updates(self) -> dict[str, str]:
        return {key: value for key, value in self.model_dump().items() if value}


class CustomerInfoExtraction(BaseModel):
    provided: ProvidedCustomerInfo = Field(default_factory=ProvidedCustomerInfo)
    next_prompt: str = Field(default="", description="What to ask the customer next")


class ParsedTopping(BaseModel):
    code: str = Field(description="Topping code in UPPER_SNAKE_CASE, e.g. PEPPERONI, GREEN_PEPPERS")
    portion: Literal["LEFT", "RIGHT", "ALL"] = "ALL"
    amount: Literal[1, 2] = Field(default=1, description="1 for normal, 2 for extra")


class PizzaUpdates(BaseModel):
    size: Optional[Literal["SMALL", "MEDIUM", "LARGE", "XLARGE"]] = None
    crust: Optional[Literal["HAND_TOSSED", "THIN", "PAN", "GLUTEN_FREE", "BROOKLYN"]] = None
    toppings: Optional[list[ParsedTopping]] = None
    quantity: Optional[int] = None


class PizzaUpdateExtraction(BaseModel):
    updates: PizzaUpdates = Field(default_factory=PizzaUpdates)
    new_item: bool = Field(
        default=False,
        description="True if the customer is asking for an additional pizza rather than changing the current one",
    )
    next_prompt: str = Field(default="", description="What to ask the customer next")


class Extractor(Protocol):
    async def detect_order_intent(self, text: str) -> bool:
        ...

    async def extract_customer_info(self, text: str, current: dict[str, Any]) -> CustomerInfoExtraction:
        ...

    async def extract_pizza_update(self, text: str, order_state: dict[str, Any]) -> PizzaUpdateExtraction:
        ...


# =============================================================================
# Prompts
# =============================================================================

PIZZA_INTENT_PROMPT = """
You are checking to see if someone is asking you to order a pizza.
They should explicitly ask for a pizza order.
Answer YES or NO.
"""

COLLECT_INFO_PROMPT = """
You are collecting information for a pizza delivery order. Based on the
customer's message and the information already on file, extract any of:
address, name, phone, email. Leave a field null if it was not provided in
this message. Then write the next short question to ask the customer for
whatever is still missing.
"""

PIZZA_BUILD_PROMPT = """
Based on the conversation and current order state, determine which pizza
details the customer specified: size, crust, toppings (with LEFT/RIGHT/ALL
portion and amount 1 or 2) and quantity. Leave anything not mentioned null.
Set new_item when they ask for another pizza. Then write the next short
question to ask.
"""


# =============================================================================
# LLM Extractor
# =============================================================================

def create_async_instructor_client() -> instructor.AsyncInstructor:
    """Create an instructor-wrapped async OpenAI client."""
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise ValueError("OPENAI_API_KEY environment variable not set")

    from openai import AsyncOpenAI
    return instructor.from_openai(AsyncOpenAI(api_key=api_key))


class LLMExtractor:
    """Extractor backed by an OpenAI model through instructor."""

    def __init__(
        self,
        client: Optional[instructor.AsyncInstructor] = None,
        model: str = OPENAI_MODEL,
    ):
        self._client = client
        self.model = model

    @property
    def client(self) -> instructor.AsyncInstructor:
        if self._client is None:
            self._client = create_async_instructor_client()
        return self._client

    async def _extract(self, response_model: type[BaseModel], system_prompt: str, user_prompt: str) -> Any:
        return await self.client.chat.completions.create(
            model=self.model,
            response_model=response_model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            max_retries=2,
        )

    async def detect_order_intent(self, text: str) -> bool:
        result = await self._extract(OrderIntent, PIZZA_INTENT_PROMPT, f"Customer message: {text}")
        logger.debug("Order intent: %s", result.answer)
        return result.answer == "YES"

    async def extract_customer_info(self, text: str, current: dict[str, Any]) -> CustomerInfoExtraction:
        user_prompt = f"Customer message: {text}\n\nCurrent information: {current}"
        return await self._extract(CustomerInfoExtraction, COLLECT_INFO_PROMPT, user_prompt)

    async def extract_pizza_update(self, text: str, order_state: dict[str, Any]) -> PizzaUpdateExtraction:
        user_prompt = f"Customer message: {text}\n\nCurrent order state: {order_state}"
        return await self._extract(PizzaUpdateExtraction, PIZZA_BUILD_PROMPT, user_prompt)
