"""Static restaurant menu used by the storefront."""

from decimal import Decimal
from typing import Optional

from storefront.models import (
    CustomizationChoice,
    CustomizationGroup,
    CustomizationKind,
    Dish,
)

RESTAURANT_ID = "gourmet-place-123"
RESTAURANT_SLUG = "the-gourmet-place"

SINGLE = CustomizationKind.SINGLE_SELECT
MULTI = CustomizationKind.MULTI_SELECT


def _choice(choice_id: str, label: str, price_delta: str = "0.00") -> CustomizationChoice:
    return CustomizationChoice(choice_id, label, Decimal(price_delta))


MENU: tuple[Dish, ...] = (
    # Appetizers
    Dish(
        dish_id="d1",
        name="Crispy Calamari Rings",
        description="Lightly battered calamari served with a zesty lemon aioli.",
        price=Decimal("12.99"),
        category="Appetizers",
    ),
    Dish(
        dish_id="d2",
        name="Caprese Skewers",
        description="Cherry tomatoes, fresh mozzarella, and basil, drizzled with balsamic glaze.",
        price=Decimal("9.50"),
        category="Appetizers",
    ),
    # Main courses
    Dish(
        dish_id="d3",
        name="Signature Steak Frites",
        description="Grilled 8oz sirloin steak with hand-cut fries and peppercorn sauce.",
        price=Decimal("28.00"),
        category="Main Courses",
        customization_groups=(
            CustomizationGroup(
                group_id="c1",
                title="Steak Doneness",
                kind=SINGLE,
                required=True,
                choices=(
                    _choice("c1o1", "Rare"),
                    _choice("c1o2", "Medium Rare"),
                    _choice("c1o3", "Medium"),
                    _choice("c1o4", "Well Done"),
                ),
            ),
            CustomizationGroup(
                group_id="c2",
                title="Sauce Choice",
                kind=SINGLE,
                required=True,
                choices=(
                    _choice("c2o1", "Peppercorn"),
                    _choice("c2o2", "Mushroom"),
                    _choice("c2o3", "Bearnaise", "2.00"),
                ),
            ),
            CustomizationGroup(
                group_id="c3",
                title="Add Ons",
                kind=MULTI,
                choices=(
                    _choice("c3o1", "Grilled Onions", "1.50"),
                    _choice("c3o2", "Fried Egg", "2.00"),
                ),
            ),
        ),
    ),
    Dish(
        dish_id="d4",
        name="Pan-Seared Salmon",
        description="With asparagus and lemon-butter sauce.",
        price=Decimal("24.50"),
        category="Main Courses",
    ),
    Dish(
        dish_id="d5",
        name="Truffle Risotto",
        description="Creamy Arborio rice with black truffle and Parmesan.",
        price=Decimal("22.00"),
        category="Main Courses",
        customization_groups=(
            CustomizationGroup(
                group_id="c4",
                title="Add Protein",
                kind=SINGLE,
                choices=(
                    _choice("c4o1", "No Protein"),
                    _choice("c4o2", "Chicken", "4.00"),
                    _choice("c4o3", "Shrimp", "6.00"),
                ),
            ),
        ),
    ),
    # Desserts
    Dish(
        dish_id="d6",
        name="Chocolate Lava Cake",
        description="Molten chocolate cake with a scoop of vanilla ice cream.",
        price=Decimal("10.00"),
        category="Desserts",
    ),
    Dish(
        dish_id="d7",
        name="Classic Tiramisu",
        description="Ladyfingers, mascarpone, espresso, and cocoa.",
        price=Decimal("9.00"),
        category="Desserts",
    ),
)

_DISHES_BY_ID: dict[str, Dish] = {dish.dish_id: dish for dish in MENU}


def get_dish(dish_id: str) -> Optional[Dish]:
    """Look up a dish by id."""
    return _DISHES_BY_ID.get(dish_id)


def all_dishes() -> list[Dish]:
    return list(MENU)


def dishes_by_category() -> dict[str, list[Dish]]:
    """Group the menu by category, keeping menu order."""
    grouped: dict[str, list[Dish]] = {}
    for dish in MENU:
        grouped.setdefault(dish.category, []).append(dish)
    return grouped
