"""
Cart Store

The one piece of shared mutable state in the storefront. Every surface that
shows the cart (header badge, cart page, menu page) gets the same CartStore
instance injected and mutates it only through its operations:

    - add_item: resolve customization, then create or merge a line item
    - set_quantity: change a quantity (clamped to >= 1)
    - remove_item / clear
    - snapshot: immutable copy for pricing

Subscribers are notified once per operation that changed the cart.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
import uuid
from dataclasses import dataclass, replace
from typing import Callable, Optional

from storefront.models import (
    CartChangeKind,
    Dish,
    LineItem,
    ValidationError,
)
from storefront.services.customization import CustomizationResolver, Selections

logger = logging.getLogger(__name__)

BADGE_LIMIT = 99


@dataclass(frozen=True)
class CartResult:
    """Result of adding a dish to the cart."""
    success: bool
    line_item: Optional[LineItem] = None
    merged: bool = False
    error: Optional[ValidationError] = None


@dataclass(frozen=True)
class CartChange:
    """
    Notification sent to cart subscribers.

    Attributes:
        kind: What happened
        line_item_id: Affected line item (None for CLEARED)
        item_count: Total quantity in the cart after the change
        animate_trigger: Counter that only moves on additions (badge animation)
    """
    kind: CartChangeKind
    line_item_id: Optional[str]
    item_count: int
    animate_trigger: int


CartListener = Callable[[CartChange], None]


def badge_label(count: int) -> str:
    """Text of the cart badge: empty when the cart is empty, capped at 99+."""
    if count <= 0:
        return ""
    if count > BADGE_LIMIT:
        return f"{BADGE_LIMIT}+"
    return str(count)


def _clamp_quantity(quantity: int) -> int:
    return max(1, int(quantity))


class CartStore:
    """
    In-memory cart for the active storefront session.

    Line items with the same dish and the same customization snapshot are
    merged; a different customization of the same dish is a separate entry.

    Example:
        >>> cart = CartStore()
        >>> result = cart.add_item(dish, quantity=2, selections={"c1": "c1o2"})
        >>> cart.set_quantity(result.line_item.line_item_id, 3)
    """

    def __init__(self, resolver: Optional[CustomizationResolver] = None):
        self._resolver = resolver or CustomizationResolver()
        self._items: dict[str, LineItem] = {}
        self._listeners: list[CartListener] = []
        self._animate_trigger = 0

    # =========================================================================
    # QUERIES
    # =========================================================================

    def snapshot(self) -> tuple[LineItem, ...]:
        """Immutable copy of the current line items, in insertion order."""
        return tuple(self._items.values())

    def get(self, line_item_id: str) -> Optional[LineItem]:
        return self._items.get(line_item_id)

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self._items.values())

    @property
    def is_empty(self) -> bool:
        return not self._items

    @property
    def animate_trigger(self) -> int:
        return self._animate_trigger

    def __len__(self) -> int:
        return len(self._items)

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def add_item(
        self,
        dish: Dish,
        quantity: int = 1,
        selections: Optional[Selections] = None,
    ) -> CartResult:
        """
        Add a dish, merging with an identical line item if one exists.

        Args:
            dish: Dish being added
            quantity: How many (clamped to >= 1)
            selections: Customization choices by group id

        Returns:
            CartResult: The created or merged line item, or the
            customization error (cart unchanged)
        """
        resolution = self._resolver.resolve(dish.customization_groups, selections)
        if not resolution.success:
            logger.info(f"Cannot add {dish.name}: {resolution.error.message}")
            return CartResult(success=False, error=resolution.error)

        quantity = _clamp_quantity(quantity)
        selection_key = tuple((s.group_id, s.choice_id) for s in resolution.selections)

        existing = self._find(dish.dish_id, selection_key)
        if existing is not None:
            item = replace(existing, quantity=existing.quantity + quantity)
            self._items[item.line_item_id] = item
            merged = True
        else:
            item = LineItem(
                line_item_id=uuid.uuid4().hex[:12],
                dish_id=dish.dish_id,
                name=dish.name,
                unit_price=dish.price,
                quantity=quantity,
                customization_delta=resolution.delta,
                customization_selections=resolution.selections,
            )
            self._items[item.line_item_id] = item
            merged = False

        self._animate_trigger += 1
        logger.info(
            f"Cart: {'merged' if merged else 'added'} {quantity} x {dish.name} "
            f"(line {item.line_item_id}, qty={item.quantity})"
        )
        self._notify(CartChangeKind.ADDED, item.line_item_id)
        return CartResult(success=True, line_item=item, merged=merged)

    def set_quantity(self, line_item_id: str, new_quantity: int) -> Optional[LineItem]:
        """
        Change the quantity of a line item.

        Values below 1 are clamped to 1 (the item is never removed here).

        Returns:
            The updated line item, or None if the id is not in the cart
        """
        item = self._items.get(line_item_id)
        if item is None:
            return None

        quantity = _clamp_quantity(new_quantity)
        if quantity == item.quantity:
            return item

        item = replace(item, quantity=quantity)
        self._items[line_item_id] = item
        logger.debug(f"Cart: line {line_item_id} quantity -> {quantity}")
        self._notify(CartChangeKind.UPDATED, line_item_id)
        return item

    def remove_item(self, line_item_id: str) -> bool:
        """Remove a line item. Absent ids are ignored."""
        item = self._items.pop(line_item_id, None)
        if item is None:
            return False

        logger.info(f"Cart: removed {item.name} (line {line_item_id})")
        self._notify(CartChangeKind.REMOVED, line_item_id)
        return True

    def clear(self) -> None:
        if not self._items:
            return
        self._items.clear()
        logger.info("Cart cleared")
        self._notify(CartChangeKind.CLEARED, None)

    # =========================================================================
    # SUBSCRIPTIONS
    # =========================================================================

    def subscribe(self, listener: CartListener) -> Callable[[], None]:
        """
        Register a change listener.

        Returns:
            A callable that unsubscribes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, kind: CartChangeKind, line_item_id: Optional[str]) -> None:
        change = CartChange(
            kind=kind,
            line_item_id=line_item_id,
            item_count=self.item_count,
            animate_trigger=self._animate_trigger,
        )
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                logger.exception(f"Cart listener failed on {kind.value}")

    def _find(self, dish_id: str, selection_key: tuple) -> Optional[LineItem]:
        for item in self._items.values():
            if item.dish_id == dish_id and item.selection_key == selection_key:
                return item
        return None
