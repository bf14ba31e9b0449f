"""
Order Lifecycle Simulation Script

Runs a full storefront lifecycle in-process:
cart -> checkout wizard -> order submission -> live tracking.

Run from project root: python scripts/simulate.py
Track an existing order only: python scripts/simulate.py --order-id FD12345XYZ

Author: Khalil_Bannouri
Version: 1.0.0
"""

import argparse
import asyncio
import os
import sys
import time
from datetime import datetime
from typing import Optional

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from storefront.catalog import get_dish
from storefront.core.clock import AsyncioScheduler
from storefront.core.config import get_settings, setup_logging
from storefront.models import PaymentMethod, TrackerStatus, format_money
from storefront.services.cart import CartStore, badge_label
from storefront.services.checkout import CheckoutWizard
from storefront.services.orders import MockOrderSource
from storefront.services.submission import MockOrderSubmissionService
from storefront.services.tracking import OrderTracker

MAX_SUBMIT_ATTEMPTS = 5

# Sample order
CART_ADDITIONS = [
    ("d3", 1, {"c1": "c1o2", "c2": "c2o3", "c3": ["c3o1"]}),
    ("d5", 1, {"c4": "c4o2"}),
    ("d1", 2, {}),
]
CHECKOUT_STEPS = [
    {
        "full_name": "Jane Doe",
        "address_line1": "123 Main Street",
        "city": "Foodville",
        "postal_code": "F00D4P",
        "country": "US",
        "phone_number": "+1 (555) 123-4567",
    },
    {
        "payment_method": PaymentMethod.CREDIT_CARD,
        "card_name": "Jane Doe",
        "card_number": "4242 4242 4242 4242",
        "card_expiry": "12/29",
        "card_cvc": "123",
    },
    {"agree_to_terms": True},
]


def fill_cart(cart: CartStore) -> None:
    print("\n🛒 Filling cart...\n")
    for dish_id, quantity, selections in CART_ADDITIONS:
        dish = get_dish(dish_id)
        result = cart.add_item(dish, quantity, selections)
        if result.success:
            item = result.line_item
            print(f"   ✅ {item.quantity} x {item.name} @ {format_money(item.unit_total)}")
        else:
            print(f"   ❌ {dish.name}: {result.error.message}")
    print(f"   🔔 Badge: {badge_label(cart.item_count)}")


async def run_checkout(wizard: CheckoutWizard) -> Optional[str]:
    """Walk the wizard through its steps and place the order, retrying failures."""
    print("\n📝 Checkout...\n")
    for values in CHECKOUT_STEPS:
        wizard.update(**values)
        title = wizard.step_definition.title
        if wizard.current_step < 3:
            result = wizard.next()
            if not result.success:
                print(f"   ❌ {title}: {result.message}")
                return None
        print(f"   ✅ {title}")

    summary = wizard.order_summary()
    print(f"\n   Subtotal:     {format_money(summary.subtotal)}")
    print(f"   Discount:    -{format_money(summary.discount)}")
    print(f"   Delivery:     {format_money(summary.delivery_fee)}")
    print(f"   Tax:          {format_money(summary.tax_amount)}")
    print(f"   💰 Total:     {format_money(summary.total)}")

    for attempt in range(1, MAX_SUBMIT_ATTEMPTS + 1):
        start = time.time()
        outcome = await wizard.submit()
        elapsed = round(time.time() - start, 2)

        if not outcome.accepted:
            print(f"\n   ❌ Cannot submit: {outcome.blockers[0].message}")
            return None
        if outcome.success:
            print(f"\n   ✅ Order placed: {outcome.order_id} ({elapsed}s, attempt {attempt})")
            return outcome.order_id
        print(f"   ⚠️  Attempt {attempt} failed: {outcome.error_message}")

    print(f"\n   ❌ Giving up after {MAX_SUBMIT_ATTEMPTS} attempts")
    return None


async def run_tracking(tracker: OrderTracker, order_id: str) -> TrackerStatus:
    print(f"\n🚚 Tracking {order_id} (stage every {tracker.interval}s)...\n")

    status = await tracker.start(order_id)
    while status == TrackerStatus.FAILED:
        print(f"   ⚠️  {tracker.error_message} - retrying")
        status = await tracker.retry()

    if status == TrackerStatus.NOT_FOUND:
        print(f"   ❌ Order {order_id} not found")
        return status

    details = tracker.state.details
    print(f"   🍽️  {details.restaurant_name} → {details.delivery_address}")
    print(f"   ⏰ {details.estimated_delivery}")

    last_index = -1
    try:
        while True:
            index = tracker.state.current_stage_index
            if index != last_index:
                stage = tracker.current_stage
                print(f"   [{stage.progress_percent:>3}%] {stage.name} - {stage.description}")
                last_index = index
            if tracker.is_terminal:
                break
            await asyncio.sleep(min(tracker.interval / 4, 0.25))
    finally:
        tracker.close()

    return TrackerStatus.DELIVERED if tracker.state.delivered_at else tracker.status


async def run_simulation(interval: float, fail_rate: float, order_id: Optional[str]) -> bool:
    settings = get_settings()
    started = time.time()

    print("=" * 70)
    print("🍕 ORDER LIFECYCLE SIMULATION")
    print("=" * 70)
    print(f"🏪 Restaurant: {settings.restaurant_name}")
    print(f"⏱️  Stage interval: {interval}s")
    print(f"🎲 Submission failure rate: {fail_rate:.0%}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    order_source = MockOrderSource(latency=0.2)
    tracker = OrderTracker(order_source, AsyncioScheduler(), interval=interval)

    if order_id is None:
        cart = CartStore()
        submission = MockOrderSubmissionService(
            failure_rate=fail_rate,
            latency=0.2,
            order_source=order_source,
        )
        wizard = CheckoutWizard.from_settings(cart, submission, settings)
        fill_cart(cart)
        order_id = await run_checkout(wizard)
        if order_id is None:
            return False

    final_status = await run_tracking(tracker, order_id)

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)
    print(f"   Order: {order_id}")
    print(f"   Final status: {final_status.value}")
    if tracker.state is not None:
        print(f"   Stages visited: {len(tracker.state.history)}/{len(tracker.stages)}")
    print(f"   ⏱️  Total Time: {round(time.time() - started, 2)}s")
    print("=" * 70)

    return final_status == TrackerStatus.DELIVERED


def main() -> None:
    parser = argparse.ArgumentParser(description="Order Lifecycle Simulation")
    parser.add_argument("--interval", type=float, default=1.0, help="Seconds between stages")
    parser.add_argument("--fail-rate", type=float, default=0.0, help="Submission failure rate (0-1)")
    parser.add_argument("--order-id", default=None, help="Track an existing order instead")
    args = parser.parse_args()

    if args.interval <= 0:
        parser.error("--interval must be positive")
    if not 0 <= args.fail_rate <= 1:
        parser.error("--fail-rate must be between 0 and 1")

    setup_logging()
    success = asyncio.run(run_simulation(args.interval, args.fail_rate, args.order_id))
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
