"""
Order Source Abstract Base Class

Defines the interface contract for looking up an order so it can be tracked.
The tracker only ever calls ``fetch_order``; where the order comes from
(in-memory mock, a real order API) is an implementation detail.

Lookup contract:
    - Known order: a fresh OrderTrackingState positioned at the first stage
    - Unknown order: None (the tracker shows its "not found" view)
    - Lookup failure: any exception (the tracker enters FAILED, retry allowed)

Author: Khalil Bannouri
Version: 1.0.0
"""

from abc import ABC, abstractmethod
from typing import Optional

from storefront.models import OrderDetails, OrderTrackingState


class BaseOrderSource(ABC):
    """
    Abstract base class for order sources.

    Example:
        >>> source = get_order_source()
        >>> state = await source.fetch_order("FD12345XYZ")
        >>> if state is None:
        ...     print("No order found")
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """
        Return the name of the order source.

        Returns:
            str: Provider name (e.g., "mock")
        """
        pass

    @abstractmethod
    async def fetch_order(self, order_id: str) -> Optional[OrderTrackingState]:
        """
        Look up an order for tracking.

        Args:
            order_id: Order identifier (e.g., "FD12345XYZ")

        Returns:
            OrderTrackingState: Fresh tracking state at stage 0,
            or None if the order does not exist
        """
        pass

    @abstractmethod
    def add_order(self, details: OrderDetails) -> None:
        """
        Make a newly placed order available for tracking.

        Args:
            details: Order information shown on the tracking page
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Verify the order source is reachable.

        Returns:
            bool: True if operational
        """
        pass
