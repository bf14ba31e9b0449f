"""
Order Source Factory

Provides a single entry point for obtaining the order source used by
order tracking.

Usage:
    from storefront.services.orders import get_order_source

    source = get_order_source()
    state = await source.fetch_order("FD12345XYZ")

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from functools import lru_cache

from storefront.core.config import get_settings
from storefront.services.orders.base import BaseOrderSource
from storefront.services.orders.mock import DEMO_ORDER, MockOrderSource, OrderLookupError

logger = logging.getLogger(__name__)


@lru_cache()
def get_order_source() -> BaseOrderSource:
    """
    Get the configured order source instance.

    The instance is cached so every component sees the same order book.

    Returns:
        BaseOrderSource: Configured order source
    """
    settings = get_settings()

    logger.info(f"Order Source: Using MockOrderSource ({settings.env_mode.value} mode)")
    return MockOrderSource(latency=settings.order_fetch_latency_seconds)


def reset_order_source() -> None:
    """
    Clear the cached order source instance.

    Useful for testing or when configuration changes at runtime.
    """
    get_order_source.cache_clear()
    logger.debug("Order source cache cleared")


__all__ = [
    "get_order_source",
    "reset_order_source",
    "BaseOrderSource",
    "MockOrderSource",
    "OrderLookupError",
    "DEMO_ORDER",
]
