"""
Menu and Pricing Catalog.

The catalog is an immutable MenuConfig value passed into MenuCatalog, so
tests and alternate stores can supply their own price tables without
touching module state.

Prices computed here are local estimates used for quoting. The
authoritative order total always comes from the remote price call.
"""

import logging
from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict

from .schemas.orders import (
    Order,
    OrderItem,
    PizzaCrust,
    PizzaSize,
    Topping,
    ToppingPortion,
)

logger = logging.getLogger(__name__)


class UnknownToppingError(ValueError):
    """Raised when a topping code is not in any topping category."""

    def __init__(self, code: str):
        super().__init__(f"Invalid topping code: {code}")
        self.code = code


class Combo(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    discount: float
    required_toppings: frozenset[str]


class ToppingInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: str
    price: float


class MenuConfig(BaseModel):
    """Static price and compatibility tables for one menu."""

    model_config = ConfigDict(frozen=True)

    default_product_code: str = "PIZZA"
    base_prices: dict[str, float]
    crust_prices: dict[str, float]
    topping_prices: dict[str, float]
    topping_categories: dict[str, tuple[str, ...]]
    topping_names: dict[str, str]
    combos: dict[str, Combo]
    incompatible_toppings: tuple[tuple[str, str], ...] = ()
    max_toppings: int = 10
    max_quantity: int = 10


DEFAULT_MENU = MenuConfig(
    base_prices={
        PizzaSize.SMALL.value: 9.99,
        PizzaSize.MEDIUM.value: 11.99,
        PizzaSize.LARGE.value: 13.99,
        PizzaSize.XLARGE.value: 15.99,
    },
    crust_prices={
        PizzaCrust.HAND_TOSSED.value: 0.0,
        PizzaCrust.THIN.value: 0.0,
        PizzaCrust.PAN.value: 1.0,
        PizzaCrust.GLUTEN_FREE.value: 2.5,
        PizzaCrust.BROOKLYN.value: 1.5,
    },
    topping_prices={
        "STANDARD": 1.5,
        "PREMIUM": 2.5,
        "SPECIALTY": 3.5,
    },
    topping_categories={
        "STANDARD": (
            "PEPPERONI",
            "MUSHROOMS",
            "ONIONS",
            "GREEN_PEPPERS",
            "BLACK_OLIVES",
            "TOMATOES",
        ),
        "PREMIUM": (
            "ITALIAN_SAUSAGE",
            "BACON",
            "EXTRA_CHEESE",
            "GROUND_BEEF",
            "HAM",
            "PINEAPPLE",
            "JALAPENOS",
        ),
        "SPECIALTY": (
            "GRILLED_CHICKEN",
            "PHILLY_STEAK",
            "FETA_CHEESE",
            "SPINACH",
            "ANCHOVIES",
            "ARTICHOKE_HEARTS",
        ),
    },
    topping_names={
        "PEPPERONI": "Pepperoni",
        "MUSHROOMS": "Fresh Mushrooms",
        "ONIONS": "Fresh Onions",
        "GREEN_PEPPERS": "Green Peppers",
        "BLACK_OLIVES": "Black Olives",
        "TOMATOES": "Diced Tomatoes",
        "ITALIAN_SAUSAGE": "Italian Sausage",
        "BACON": "Applewood Smoked Bacon",
        "EXTRA_CHEESE": "Extra Cheese Blend",
        "GROUND_BEEF": "Seasoned Ground Beef",
        "HAM": "Premium Ham",
        "PINEAPPLE": "Sweet Pineapple",
        "JALAPENOS": "Fresh Jalapeños",
        "GRILLED_CHICKEN": "Grilled Chicken Breast",
        "PHILLY_STEAK": "Premium Philly Steak",
        "FETA_CHEESE": "Feta Cheese",
        "SPINACH": "Fresh Baby Spinach",
        "ANCHOVIES": "Premium Anchovies",
        "ARTICHOKE_HEARTS": "Artichoke Hearts",
    },
    combos={
        "MEAT_LOVERS": Combo(
            name="Meat Lovers",
            discount=2.0,
            required_toppings=frozenset({"PEPPERONI", "ITALIAN_SAUSAGE", "BACON", "HAM"}),
        ),
        "VEGGIE_SUPREME": Combo(
            name="Veggie Supreme",
            discount=2.0,
            required_toppings=frozenset(
                {"MUSHROOMS", "GREEN_PEPPERS", "ONIONS", "BLACK_OLIVES", "TOMATOES"}
            ),
        ),
        "HAWAIIAN": Combo(
            name="Hawaiian",
            discount=1.5,
            required_toppings=frozenset({"HAM", "PINEAPPLE"}),
        ),
        "SUPREME": Combo(
            name="Supreme",
            discount=3.0,
            required_toppings=frozenset(
                {"PEPPERONI", "ITALIAN_SAUSAGE", "MUSHROOMS", "ONIONS", "GREEN_PEPPERS"}
            ),
        ),
    },
    # "CHICKEN" is not a catalog code, so that pair can never match.
    incompatible_toppings=(
        ("ANCHOVIES", "CHICKEN"),
        ("PINEAPPLE", "ANCHOVIES"),
        ("ARTICHOKE_HEARTS", "GROUND_BEEF"),
    ),
)


def format_currency(amount: Optional[float]) -> str:
    if amount is None:
        return "$?"
    return f"${amount:.2f}"


class MenuCatalog:
    """
    Price lookups and topping rules for a single MenuConfig.

    Operations never mutate the config; all prices are estimates.
    """

    def __init__(self, config: MenuConfig = DEFAULT_MENU):
        self._config = config

    @property
    def config(self) -> MenuConfig:
        return self._config

    # =========================================================================
    # Toppings
    # =========================================================================

    def is_known_topping(self, code: str) -> bool:
        return any(code in codes for codes in self._config.topping_categories.values())

    def topping_info(self, code: str) -> ToppingInfo:
        """
        Look up the price category of a topping.

        Raises:
            UnknownToppingError: If the code is not in any category
        """
        for category, codes in self._config.topping_categories.items():
            if code in codes:
                return ToppingInfo(
                    category=category,
                    price=self._config.topping_prices[category],
                )
        raise UnknownToppingError(code)

    def incompatible_pair(self, toppings: Iterable[Topping]) -> Optional[tuple[str, str]]:
        """Return the first configured incompatible pair present, if any."""
        codes = {t.code for t in toppings}
        for first, second in self._config.incompatible_toppings:
            if first in codes and second in codes:
                return (first, second)
        return None

    def format_topping(self, topping: Topping) -> str:
        """
        Render a topping for order summaries.

        Example: "Extra Pepperoni (Whole Pizza) - Standard Topping"
        """
        info = self.topping_info(topping.code)
        amount = "Extra " if topping.amount > 1 else ""
        if topping.portion == ToppingPortion.ALL.value:
            portion = "Whole Pizza"
        else:
            portion = f"{topping.portion} Half"
        category = info.category.capitalize()
        name = self._config.topping_names.get(topping.code, topping.code)
        return f"{amount}{name} ({portion}) - {category} Topping"

    # =========================================================================
    # Combos
    # =========================================================================

    def applicable_combos(self, toppings: Iterable[Topping]) -> list[Combo]:
        codes = {t.code for t in toppings}
        return [
            combo
            for combo in self._config.combos.values()
            if combo.required_toppings <= codes
        ]

    def best_combo(self, toppings: Iterable[Topping]) -> Optional[Combo]:
        """The single combo with the largest discount; ties keep config order."""
        best = None
        for combo in self.applicable_combos(toppings):
            if best is None or combo.discount > best.discount:
                best = combo
        return best

    def combo_discount(self, toppings: Iterable[Topping]) -> float:
        """Maximum single combo discount. Discounts are never summed."""
        combo = self.best_combo(toppings)
        return combo.discount if combo else 0.0

    # =========================================================================
    # Estimates
    # =========================================================================

    def estimate_item_price(self, item: OrderItem) -> float:
        """
        Estimate the price of one order line, quantity included.

        Raises:
            KeyError: If the size or crust is not on the menu
            UnknownToppingError: If a topping code is not on the menu
        """
        unit = self._config.base_prices[item.size] + self._config.crust_prices[item.crust]
        for topping in item.toppings:
            unit += self.topping_info(topping.code).price * topping.amount
        unit -= self.combo_discount(item.toppings)
        return round(max(unit, 0.0) * item.quantity, 2)

    def estimate_order_total(self, order: Order) -> float:
        total = sum(self.estimate_item_price(item) for item in order.items)
        logger.debug("Estimated total for %d items: %.2f", len(order.items), total)
        return round(total, 2)
