"""
Mock Order Source Implementation

Simulates the order lookup API with an in-memory order book.
Used in every environment of the storefront demo.

Behavior:
    - Fixed simulated latency (1.5s by default) before answering
    - Seeded with the demo order FD12345XYZ from Pizza Palace
    - Orders accepted by the submission service are added at runtime
    - Optional failure rate to exercise the tracker's retry path

Author: Khalil Bannouri
Version: 1.0.0
"""

import asyncio
import logging
import random
from dataclasses import replace
from typing import Optional

from storefront.models import OrderDetails, OrderTrackingState
from storefront.services.orders.base import BaseOrderSource

logger = logging.getLogger(__name__)


class OrderLookupError(Exception):
    """Raised when the (simulated) order API is unavailable."""
    pass


DEMO_ORDER = OrderDetails(
    order_id="FD12345XYZ",
    restaurant_name="Pizza Palace",
    estimated_delivery="Approximately 35-45 minutes",
    delivery_address="123 Main Street, Anytown, USA 12345",
    items=(
        ("Pepperoni Pizza", 1),
        ("Garlic Knots", 1),
        ("Soda", 2),
    ),
)


class MockOrderSource(BaseOrderSource):
    """
    Mock implementation of the order source.

    Attributes:
        latency: Simulated response time in seconds
        failure_rate: Probability of a simulated lookup failure (0.0-1.0)

    Example:
        >>> source = MockOrderSource(latency=0)
        >>> state = await source.fetch_order("FD12345XYZ")
        >>> print(state.current_stage.name)
        'Order Placed'
    """

    def __init__(
        self,
        latency: float = 1.5,
        failure_rate: float = 0.0,
        seed_demo_order: bool = True,
    ):
        """
        Initialize the mock order source.

        Args:
            latency: Fixed response time in seconds
            failure_rate: Probability of a lookup failure
            seed_demo_order: Pre-load the demo order
        """
        self.latency = latency
        self.failure_rate = failure_rate
        self._orders: dict[str, OrderDetails] = {}

        if seed_demo_order:
            self.add_order(DEMO_ORDER)

        logger.info(
            f"MockOrderSource initialized "
            f"(latency={latency}s, failure_rate={failure_rate:.0%}, "
            f"orders={len(self._orders)})"
        )

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "mock"

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

    def add_order(self, details: OrderDetails) -> None:
        self._orders[details.order_id] = details
        logger.debug(f"Mock: Order {details.order_id} available for tracking")

    async def fetch_order(self, order_id: str) -> Optional[OrderTrackingState]:
        """
        Fetch an order after the simulated latency.

        Raises:
            OrderLookupError: On a simulated service failure
        """
        logger.debug(f"Mock: Fetching order {order_id}")

        if self.latency > 0:
            await asyncio.sleep(self.latency)

        if self._should_fail():
            logger.warning(f"Mock: Simulated lookup failure for {order_id}")
            raise OrderLookupError("Order service temporarily unavailable")

        details = self._orders.get(order_id)
        if details is None:
            logger.info(f"Mock: Order {order_id} not found")
            return None

        return OrderTrackingState(order_id=order_id, details=replace(details))

    async def health_check(self) -> bool:
        """Mock health check always returns True."""
        logger.debug("Mock: Order source health check passed")
        return True
