"""
Domain Models

In-memory data model of the order lifecycle:
- Dishes and their customization schema
- Cart line items and price breakdowns
- Order tracking stages and state

All monetary amounts are Decimal values with 2 decimal places.

Author: Khalil Bannouri
Version: 1.0.0
"""

import enum
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional, Union


# =============================================================================
# MONEY
# =============================================================================

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

Amount = Union[Decimal, float, int, str]


def round2(value: Decimal) -> Decimal:
    """Round to cents, half away from zero."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_money(value: Amount) -> Decimal:
    """
    Convert a caller-supplied amount to a 2-decimal Decimal.

    Floats go through ``str()`` so that 15.99 stays exactly 15.99.
    """
    if isinstance(value, Decimal):
        return round2(value)
    return round2(Decimal(str(value)))


def format_money(value: Decimal) -> str:
    return f"${value:.2f}"


# =============================================================================
# ENUMS
# =============================================================================

class CustomizationKind(str, enum.Enum):
    """How many choices a customization group accepts."""
    SINGLE_SELECT = "single_select"
    MULTI_SELECT = "multi_select"


class PaymentMethod(str, enum.Enum):
    CREDIT_CARD = "credit_card"
    PAYPAL = "paypal"
    GOOGLE_PAY = "google_pay"


class CheckoutStep(enum.IntEnum):
    """Checkout wizard steps, in order."""
    ADDRESS = 1
    PAYMENT = 2
    REVIEW = 3


class WizardState(str, enum.Enum):
    """Submission sub-state of the checkout wizard."""
    EDITING = "editing"
    SUBMITTING = "submitting"
    SUBMIT_FAILED = "submit_failed"
    SUBMITTED = "submitted"


class TrackerStatus(str, enum.Enum):
    """Order tracker lifecycle."""
    IDLE = "idle"
    LOADING = "loading"
    TRACKING = "tracking"
    DELIVERED = "delivered"
    NOT_FOUND = "not_found"
    FAILED = "failed"
    CANCELLED = "cancelled"
    CLOSED = "closed"


class CartChangeKind(str, enum.Enum):
    ADDED = "added"
    UPDATED = "updated"
    REMOVED = "removed"
    CLEARED = "cleared"


# =============================================================================
# ERRORS
# =============================================================================

@dataclass(frozen=True)
class ValidationError:
    """
    A recoverable, field-scoped validation failure.

    Never raised: returned inside result objects and shown next to the
    offending control.

    Attributes:
        field: Name of the offending field (or customization group id)
        message: Human readable message
        code: Machine-readable error code
    """
    field: str
    message: str
    code: str = "invalid"

    def to_dict(self) -> dict:
        return {"field": self.field, "message": self.message, "code": self.code}


@dataclass(frozen=True)
class MissingRequiredSelection(ValidationError):
    """A required single-select customization group has no choice."""
    code: str = "missing_required_selection"

    @property
    def group_id(self) -> str:
        return self.field


# =============================================================================
# CATALOG
# =============================================================================

@dataclass(frozen=True)
class CustomizationChoice:
    choice_id: str
    label: str
    price_delta: Decimal = ZERO


@dataclass(frozen=True)
class CustomizationGroup:
    """
    A named set of related choices attached to a dish (e.g. "Steak Doneness").

    Attributes:
        group_id: Unique id within the dish
        title: Display title
        kind: SINGLE_SELECT (radio) or MULTI_SELECT (checkbox)
        required: Whether a single-select group needs a choice
        choices: Available choices, in display order
    """
    group_id: str
    title: str
    kind: CustomizationKind
    required: bool = False
    choices: tuple[CustomizationChoice, ...] = ()

    def get_choice(self, choice_id: str) -> Optional[CustomizationChoice]:
        for choice in self.choices:
            if choice.choice_id == choice_id:
                return choice
        return None


@dataclass(frozen=True)
class Dish:
    dish_id: str
    name: str
    price: Decimal
    description: str = ""
    category: str = ""
    customization_groups: tuple[CustomizationGroup, ...] = ()

    @property
    def customizable(self) -> bool:
        return bool(self.customization_groups)

    def to_dict(self) -> dict[str, Any]:
        return {
            "dish_id": self.dish_id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "price": str(self.price),
            "customizable": self.customizable,
            "customization_groups": [
                {
                    "group_id": group.group_id,
                    "title": group.title,
                    "kind": group.kind.value,
                    "required": group.required,
                    "choices": [
                        {
                            "choice_id": choice.choice_id,
                            "label": choice.label,
                            "price_delta": str(choice.price_delta),
                        }
                        for choice in group.choices
                    ],
                }
                for group in self.customization_groups
            ],
        }


# =============================================================================
# CART
# =============================================================================

@dataclass(frozen=True)
class SelectedChoice:
    """One resolved customization choice, as stored on a line item."""
    group_id: str
    choice_id: str
    label: str
    price_delta: Decimal


@dataclass(frozen=True)
class LineItem:
    """
    One distinct purchasable entry in the cart.

    Line items are immutable; the cart replaces them when the quantity
    changes. Identity for merging is ``dish_id`` plus ``selection_key``.
    """
    line_item_id: str
    dish_id: str
    name: str
    unit_price: Decimal
    quantity: int = 1
    customization_delta: Decimal = ZERO
    customization_selections: tuple[SelectedChoice, ...] = ()

    @property
    def selection_key(self) -> tuple[tuple[str, str], ...]:
        return tuple((s.group_id, s.choice_id) for s in self.customization_selections)

    @property
    def unit_total(self) -> Decimal:
        return self.unit_price + self.customization_delta

    @property
    def line_total(self) -> Decimal:
        return round2(self.unit_total * self.quantity)

    def to_dict(self) -> dict[str, Any]:
        return {
            "line_item_id": self.line_item_id,
            "dish_id": self.dish_id,
            "name": self.name,
            "unit_price": str(self.unit_price),
            "quantity": self.quantity,
            "customization_delta": str(self.customization_delta),
            "customizations": [
                {"group_id": s.group_id, "choice_id": s.choice_id, "label": s.label}
                for s in self.customization_selections
            ],
            "line_total": str(self.line_total),
        }


@dataclass(frozen=True)
class PriceBreakdown:
    """
    Priced summary of a cart snapshot.

    Invariants:
        tax_amount == round2(subtotal * tax_rate)
        total == max(0, subtotal - discount + delivery_fee + tax_amount)
    """
    subtotal: Decimal
    discount: Decimal
    delivery_fee: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total: Decimal
    item_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "subtotal": str(self.subtotal),
            "discount": str(self.discount),
            "delivery_fee": str(self.delivery_fee),
            "tax_rate": str(self.tax_rate),
            "tax_amount": str(self.tax_amount),
            "total": str(self.total),
            "item_count": self.item_count,
        }


# =============================================================================
# ORDER TRACKING
# =============================================================================

@dataclass(frozen=True)
class Stage:
    name: str
    description: str
    progress_percent: int


DEFAULT_STAGES: tuple[Stage, ...] = (
    Stage("Order Placed", "We have received your order.", 25),
    Stage("Preparing Your Meal", "The restaurant is working on your order.", 50),
    Stage("Out for Delivery", "Your rider is on the way with your meal!", 75),
    Stage("Delivered", "Enjoy your food!", 100),
)


@dataclass(frozen=True)
class OrderDetails:
    """Static order information shown next to the tracking progress."""
    order_id: str
    restaurant_name: str
    estimated_delivery: str
    delivery_address: str
    items: tuple[tuple[str, int], ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "order_id": self.order_id,
            "restaurant_name": self.restaurant_name,
            "estimated_delivery": self.estimated_delivery,
            "delivery_address": self.delivery_address,
            "items": [{"name": name, "quantity": qty} for name, qty in self.items],
        }


@dataclass
class OrderTrackingState:
    """
    Progress of one order through its delivery stages.

    Owned and mutated only by OrderTracker.
    """
    order_id: str
    details: OrderDetails
    stages: tuple[Stage, ...] = DEFAULT_STAGES
    current_stage_index: int = 0
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancel_reason: Optional[str] = None
    history: list[tuple[int, datetime]] = field(default_factory=list)

    @property
    def last_index(self) -> int:
        return len(self.stages) - 1

    @property
    def current_stage(self) -> Stage:
        return self.stages[self.current_stage_index]

    @property
    def progress_percent(self) -> int:
        return self.current_stage.progress_percent

    def to_dict(self) -> dict[str, Any]:
        return {
            "order_id": self.order_id,
            "details": self.details.to_dict(),
            "current_stage_index": self.current_stage_index,
            "current_stage": self.current_stage.name,
            "progress_percent": self.progress_percent,
            "delivered_at": self.delivered_at.isoformat() if self.delivered_at else None,
            "cancelled_at": self.cancelled_at.isoformat() if self.cancelled_at else None,
            "cancel_reason": self.cancel_reason,
        }
