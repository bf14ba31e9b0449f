"""
Mock Order Submission Service Implementation

Simulates placing an order without any network call.

Behavior:
    - Simulates a fixed response time (2s by default)
    - Fails a configurable share of submissions with decline-style reasons
    - Generates order IDs (ORD-XXXXXXXX) and refund IDs (re_mock_xxx)
    - Publishes accepted orders to the order source so they can be tracked

Author: Khalil Bannouri
Version: 1.0.0
"""

import asyncio
import logging
import random
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from storefront.models import OrderDetails
from storefront.services.orders.base import BaseOrderSource
from storefront.services.submission.base import (
    BaseOrderSubmissionService,
    CancellationResult,
    OrderSubmission,
    SubmissionResult,
)

logger = logging.getLogger(__name__)


class MockOrderSubmissionService(BaseOrderSubmissionService):
    """
    Mock implementation of the order submission service.

    Attributes:
        failure_rate: Probability of simulated submission failure (0.0-1.0)
        latency: Simulated response time in seconds
        order_source: Where accepted orders are published for tracking
        estimated_delivery: ETA text attached to accepted orders

    Example:
        >>> service = MockOrderSubmissionService(latency=0)
        >>> result = await service.submit_order(submission)
        >>> print(result.success)
        True
    """

    # Simulated failure reasons
    DECLINE_REASONS = [
        ("card_declined", "Your card was declined."),
        ("insufficient_funds", "Your card has insufficient funds."),
        ("restaurant_closed", "The restaurant is not accepting orders right now."),
        ("processing_error", "An error occurred while placing your order."),
    ]

    def __init__(
        self,
        failure_rate: float = 0.0,
        latency: float = 2.0,
        order_source: Optional[BaseOrderSource] = None,
        estimated_delivery: str = "Approximately 35-45 minutes",
    ):
        self.failure_rate = failure_rate
        self.latency = latency
        self.order_source = order_source
        self.estimated_delivery = estimated_delivery
        self._placed: dict[str, Decimal] = {}
        self._cancelled: set[str] = set()

        logger.info(
            f"MockOrderSubmissionService initialized "
            f"(failure_rate={failure_rate:.0%}, latency={latency}s)"
        )

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "mock"

    def _generate_order_id(self) -> str:
        return f"ORD-{uuid.uuid4().hex[:8].upper()}"

    def _generate_refund_id(self) -> str:
        return f"re_mock_{uuid.uuid4().hex[:24]}"

    async def _simulate_latency(self) -> float:
        """
        Simulate network latency.

        Returns:
            float: Latency in milliseconds
        """
        if self.latency > 0:
            await asyncio.sleep(self.latency)
        return self.latency * 1000

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

    async def submit_order(self, submission: OrderSubmission) -> SubmissionResult:
        """
        Simulate placing an order.

        Behavior:
            - Rejects empty orders
            - Simulates latency
            - Randomly fails based on failure_rate
            - Publishes accepted orders to the order source
        """
        amount = submission.breakdown.total
        logger.debug(
            f"Mock: Submitting order for {submission.customer_name} "
            f"(${amount:.2f}, {submission.payment_method.value})"
        )

        if not submission.items:
            return SubmissionResult(
                success=False,
                error_message="Cannot place an empty order.",
                error_code="empty_order",
            )

        latency_ms = await self._simulate_latency()

        if self._should_fail():
            error_code, error_message = random.choice(self.DECLINE_REASONS)
            logger.info(f"Mock: Order declined - {error_code}")
            return SubmissionResult(
                success=False,
                amount=amount,
                error_message=error_message,
                error_code=error_code,
                response_time_ms=latency_ms,
            )

        order_id = self._generate_order_id()
        self._placed[order_id] = amount

        if self.order_source is not None:
            self.order_source.add_order(OrderDetails(
                order_id=order_id,
                restaurant_name=submission.restaurant_name,
                estimated_delivery=self.estimated_delivery,
                delivery_address=submission.delivery_address,
                items=submission.items,
            ))

        logger.info(f"Mock: Order placed - {order_id} - ${amount:.2f}")

        return SubmissionResult(
            success=True,
            order_id=order_id,
            amount=amount,
            response_time_ms=latency_ms,
            metadata={
                "placed_at": datetime.now().isoformat(),
                "payment_method": submission.payment_method.value,
                "mock": True,
            },
        )

    async def cancel_order(
        self,
        order_id: str,
        reason: Optional[str] = None,
    ) -> CancellationResult:
        """Simulate cancelling and refunding an order."""
        await self._simulate_latency()

        if order_id not in self._placed:
            return CancellationResult(
                success=False,
                order_id=order_id,
                status="failed",
                error_message=f"Order {order_id} was not placed here",
            )

        if order_id in self._cancelled:
            return CancellationResult(
                success=False,
                order_id=order_id,
                status="failed",
                error_message=f"Order {order_id} is already cancelled",
            )

        self._cancelled.add(order_id)
        refund_id = self._generate_refund_id()
        logger.info(f"Mock: Order {order_id} cancelled ({reason or 'no reason'}) - {refund_id}")

        return CancellationResult(
            success=True,
            order_id=order_id,
            refund_id=refund_id,
            refunded_amount=self._placed[order_id],
            status="succeeded",
        )

    async def health_check(self) -> bool:
        """Mock health check always returns True."""
        logger.debug("Mock: Submission health check passed")
        return True
