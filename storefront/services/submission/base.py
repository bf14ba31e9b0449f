"""
Order Submission Service Abstract Base Class

Defines the interface contract for placing an order at the end of checkout
and for cancelling it afterwards. The checkout wizard works against this
interface only.

Design Pattern: Strategy Pattern
    - The wizard does not know whether submission is simulated or real
    - Tests inject scripted implementations

Author: Khalil Bannouri
Version: 1.0.0
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from storefront.models import PaymentMethod, PriceBreakdown


@dataclass(frozen=True)
class OrderSubmission:
    """
    Everything needed to place an order.

    Attributes:
        customer_name: Full name from the address step
        delivery_address: Single-line formatted address
        phone_number: Contact number
        payment_method: Chosen payment method
        items: (name, quantity) pairs from the cart snapshot
        breakdown: Priced order summary
        restaurant_name: Restaurant fulfilling the order
    """
    customer_name: str
    delivery_address: str
    phone_number: str
    payment_method: PaymentMethod
    items: tuple[tuple[str, int], ...]
    breakdown: PriceBreakdown
    restaurant_name: str = ""
    card_last_four: Optional[str] = None


@dataclass
class SubmissionResult:
    """
    Standardized result from order submission.

    Attributes:
        success: Whether the order was accepted
        order_id: Identifier to track the order with
        amount: Amount charged
        error_message: Error description if submission failed
        error_code: Machine-readable error code
        response_time_ms: Time taken by the service
        metadata: Additional provider data
    """
    success: bool
    order_id: Optional[str] = None
    amount: Optional[Decimal] = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    response_time_ms: float = 0.0
    metadata: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "success": self.success,
            "order_id": self.order_id,
            "amount": str(self.amount) if self.amount is not None else None,
            "error_message": self.error_message,
            "error_code": self.error_code,
            "response_time_ms": self.response_time_ms,
        }


@dataclass
class CancellationResult:
    """
    Standardized result from cancelling an order.

    Attributes:
        success: Whether the cancellation went through
        order_id: Cancelled order
        refund_id: Identifier of the refund, if any
        refunded_amount: Amount refunded
        status: Refund status (pending, succeeded, failed)
        error_message: Error description if cancellation failed
    """
    success: bool
    order_id: Optional[str] = None
    refund_id: Optional[str] = None
    refunded_amount: Optional[Decimal] = None
    status: str = "pending"
    error_message: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "order_id": self.order_id,
            "refund_id": self.refund_id,
            "refunded_amount": (
                str(self.refunded_amount) if self.refunded_amount is not None else None
            ),
            "status": self.status,
            "error_message": self.error_message,
        }


class BaseOrderSubmissionService(ABC):
    """
    Abstract base class for order submission services.

    Example:
        >>> service = get_submission_service()
        >>> result = await service.submit_order(submission)
        >>> if result.success:
        ...     print(f"Order ID: {result.order_id}")
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """
        Return the name of the submission provider.

        Returns:
            str: Provider name (e.g., "mock")
        """
        pass

    @abstractmethod
    async def submit_order(self, submission: OrderSubmission) -> SubmissionResult:
        """
        Place an order.

        Args:
            submission: Customer, payment and priced cart data

        Returns:
            SubmissionResult: Standardized result object
        """
        pass

    @abstractmethod
    async def cancel_order(
        self,
        order_id: str,
        reason: Optional[str] = None,
    ) -> CancellationResult:
        """
        Cancel a placed order and refund it.

        Args:
            order_id: Order to cancel
            reason: Reason for the cancellation

        Returns:
            CancellationResult: Standardized cancellation result
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Verify connectivity to the submission service.

        Returns:
            bool: True if service is reachable and operational
        """
        pass
