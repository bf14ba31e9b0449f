"""
                        Services Module

Contains the storefront business logic. Services that talk to the outside
world (order submission, order lookup) sit behind an abstract base class with
a mock implementation and a cached factory.

Services:
    - pricing: Order totals from a cart snapshot
    - customization: Dish customization validation and pricing
    - cart: The shared cart store
    - checkout: Three-step checkout wizard
    - tracking: Timed order tracker
    - submission: Order submission (mock)
    - orders: Order lookup for tracking (mock)
"""

from storefront.services.cart import CartStore, badge_label
from storefront.services.checkout import CheckoutWizard
from storefront.services.customization import CustomizationResolver
from storefront.services.pricing import PricingEngine
from storefront.services.tracking import OrderTracker

__all__ = [
    "CartStore",
    "CheckoutWizard",
    "CustomizationResolver",
    "OrderTracker",
    "PricingEngine",
    "badge_label",
]
