"""
Pricing Engine

Turns a cart snapshot plus fee, discount and tax parameters into a
PriceBreakdown. Pure computation: no state, no side effects, and the same
input always yields the same Decimal amounts.

Rules:
    subtotal   = Σ (unit_price + customization_delta) * quantity
    tax_amount = round2(subtotal * tax_rate)
    total      = max(0, subtotal - discount + delivery_fee + tax_amount)

The discount only ever reduces the total; the subtotal is shown as-is.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from decimal import Decimal
from typing import Iterable

from storefront.models import (
    Amount,
    LineItem,
    PriceBreakdown,
    ZERO,
    round2,
    to_money,
)

logger = logging.getLogger(__name__)


class PricingEngine:
    """
    Stateless price calculator.

    Example:
        >>> engine = PricingEngine()
        >>> breakdown = engine.compute(cart.snapshot(), "5.00", "3.99", "0.10")
        >>> print(breakdown.total)
    """

    def line_total(self, item: LineItem) -> Decimal:
        """Price of one cart row (unit price plus customizations, times quantity)."""
        return round2((item.unit_price + item.customization_delta) * item.quantity)

    def compute(
        self,
        line_items: Iterable[LineItem],
        discount: Amount = ZERO,
        delivery_fee: Amount = ZERO,
        tax_rate: Amount = ZERO,
    ) -> PriceBreakdown:
        """
        Price a snapshot of line items.

        Args:
            line_items: Cart snapshot (may be empty)
            discount: Non-negative discount amount
            delivery_fee: Non-negative delivery fee
            tax_rate: Tax rate between 0 and 1

        Returns:
            PriceBreakdown: Subtotal, tax and clamped total

        Raises:
            ValueError: If an amount is negative or the tax rate is outside [0, 1]
        """
        discount = to_money(discount)
        delivery_fee = to_money(delivery_fee)
        rate = tax_rate if isinstance(tax_rate, Decimal) else Decimal(str(tax_rate))

        if discount < 0:
            raise ValueError("discount must not be negative")
        if delivery_fee < 0:
            raise ValueError("delivery_fee must not be negative")
        if not Decimal("0") <= rate <= Decimal("1"):
            raise ValueError("tax_rate must be between 0 and 1")

        subtotal = ZERO
        item_count = 0
        for item in line_items:
            subtotal += self.line_total(item)
            item_count += item.quantity

        tax_amount = round2(subtotal * rate)
        total = round2(max(ZERO, subtotal - discount + delivery_fee + tax_amount))

        logger.debug(f"Priced {item_count} items: subtotal={subtotal} total={total}")

        return PriceBreakdown(
            subtotal=subtotal,
            discount=discount,
            delivery_fee=delivery_fee,
            tax_rate=rate,
            tax_amount=tax_amount,
            total=total,
            item_count=item_count,
        )
