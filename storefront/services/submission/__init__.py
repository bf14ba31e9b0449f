"""
Order Submission Service Factory

Provides a single entry point for obtaining a submission service instance.
The rest of the application stays agnostic about which implementation is
being used.

Usage:
    from storefront.services.submission import get_submission_service

    service = get_submission_service()
    result = await service.submit_order(submission)

Environment Switching:
    - ENV_MODE=development → MockOrderSubmissionService with configured failures
    - ENV_MODE=staging/production → MockOrderSubmissionService, no failures

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from functools import lru_cache

from storefront.core.config import get_settings
from storefront.services.orders import get_order_source
from storefront.services.submission.base import (
    BaseOrderSubmissionService,
    CancellationResult,
    OrderSubmission,
    SubmissionResult,
)
from storefront.services.submission.mock import MockOrderSubmissionService

logger = logging.getLogger(__name__)


@lru_cache()
def get_submission_service() -> BaseOrderSubmissionService:
    """
    Get the configured submission service instance.

    The instance is cached (singleton pattern) and publishes accepted
    orders to the shared order source.

    Returns:
        BaseOrderSubmissionService: Configured submission service
    """
    settings = get_settings()

    failure_rate = settings.submission_failure_rate if settings.is_development else 0.0
    logger.info(
        f"Submission Service: Using MockOrderSubmissionService "
        f"({settings.env_mode.value} mode, failure_rate={failure_rate:.0%})"
    )
    return MockOrderSubmissionService(
        failure_rate=failure_rate,
        latency=settings.submission_latency_seconds,
        order_source=get_order_source(),
    )


def reset_submission_service() -> None:
    """
    Clear the cached submission service instance.

    The next call to get_submission_service() will create a new instance.
    """
    get_submission_service.cache_clear()
    logger.debug("Submission service cache cleared")


__all__ = [
    "get_submission_service",
    "reset_submission_service",
    "BaseOrderSubmissionService",
    "OrderSubmission",
    "SubmissionResult",
    "CancellationResult",
    "MockOrderSubmissionService",
]
