"""
Order Tracker

Drives one order through its delivery stages on a fixed interval:

    IDLE -> LOADING -> TRACKING -> DELIVERED
                    -> NOT_FOUND
                    -> FAILED -> LOADING (retry)
    TRACKING -> CANCELLED
    TRACKING -> pause() / resume() (stage held, status unchanged)
    any -> CLOSED (teardown)

Exactly one stage is advanced per tick and at most one timer is pending at
any time. Timers come from the injected Scheduler, so tests drive the tracker
with virtual time.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from typing import Any, Optional

from storefront.core.clock import Scheduler, TimerHandle
from storefront.models import DEFAULT_STAGES, OrderTrackingState, Stage, TrackerStatus
from storefront.services.orders.base import BaseOrderSource

logger = logging.getLogger(__name__)


TERMINAL_STATUSES = {
    TrackerStatus.DELIVERED,
    TrackerStatus.NOT_FOUND,
    TrackerStatus.CANCELLED,
    TrackerStatus.CLOSED,
}


def validate_stages(stages: tuple[Stage, ...]) -> tuple[Stage, ...]:
    """
    Check a stage list: non-empty, progress between 0 and 100 and never decreasing.

    Raises:
        ValueError: If the list breaks any of these rules
    """
    stages = tuple(stages)
    if not stages:
        raise ValueError("At least one stage is required")

    previous = 0
    for stage in stages:
        if not 0 <= stage.progress_percent <= 100:
            raise ValueError(f"Stage '{stage.name}' progress must be between 0 and 100")
        if stage.progress_percent < previous:
            raise ValueError(f"Stage '{stage.name}' progress decreases")
        previous = stage.progress_percent
    return stages


class OrderTracker:
    """
    Timed state machine advancing an order through its stages.

    Attributes:
        order_source: Where the order is looked up
        scheduler: Time source and timer factory
        stages: Stage list the order moves through
        interval: Seconds between stage advances

    Example:
        >>> tracker = OrderTracker(source, ManualScheduler(), interval=7.0)
        >>> await tracker.start("FD12345XYZ")
        >>> scheduler.advance(21.0)
        >>> tracker.status
        <TrackerStatus.DELIVERED: 'delivered'>
    """

    def __init__(
        self,
        order_source: BaseOrderSource,
        scheduler: Scheduler,
        stages: tuple[Stage, ...] = DEFAULT_STAGES,
        interval: float = 7.0,
    ):
        if interval <= 0:
            raise ValueError("interval must be positive")

        self.order_source = order_source
        self.scheduler = scheduler
        self.stages = validate_stages(stages)
        self.interval = interval

        self.order_id: Optional[str] = None
        self.state: Optional[OrderTrackingState] = None
        self.error_message: Optional[str] = None
        self._status = TrackerStatus.IDLE
        self._timer: Optional[TimerHandle] = None

    # =========================================================================
    # DERIVED STATE
    # =========================================================================

    @property
    def status(self) -> TrackerStatus:
        return self._status

    @property
    def is_terminal(self) -> bool:
        return self._status in TERMINAL_STATUSES

    @property
    def has_pending_timer(self) -> bool:
        return self._timer is not None and not self._timer.cancelled

    @property
    def current_stage(self) -> Optional[Stage]:
        return self.state.current_stage if self.state else None

    @property
    def progress_percent(self) -> int:
        return self.state.progress_percent if self.state else 0

    def stage_views(self) -> list[dict[str, Any]]:
        """Every stage with its completed/current flags for display."""
        if self.state is None:
            return []

        current = self.state.current_stage_index
        delivered = self.state.delivered_at is not None
        return [
            {
                "index": index,
                "name": stage.name,
                "description": stage.description,
                "progress_percent": stage.progress_percent,
                "completed": index < current or (delivered and index == current),
                "current": index == current,
            }
            for index, stage in enumerate(self.state.stages)
        ]

    def snapshot(self) -> dict[str, Any]:
        return {
            "order_id": self.order_id,
            "status": self._status.value,
            "error_message": self.error_message,
            "is_terminal": self.is_terminal,
            "progress_percent": self.progress_percent,
            "current_stage": self.current_stage.name if self.current_stage else None,
            "stages": self.stage_views(),
            "order": self.state.to_dict() if self.state else None,
        }

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def start(self, order_id: str) -> TrackerStatus:
        """
        Look the order up and begin tracking it.

        Returns:
            TrackerStatus: TRACKING (or DELIVERED for a single-stage order),
            NOT_FOUND or FAILED
        """
        if self._status not in (TrackerStatus.IDLE, TrackerStatus.FAILED):
            raise RuntimeError(f"Tracker already {self._status.value}")

        self.order_id = order_id
        self.error_message = None
        self._status = TrackerStatus.LOADING
        logger.info(f"Tracker: Loading order {order_id}")

        try:
            state = await self.order_source.fetch_order(order_id)
        except Exception as e:
            if self._status == TrackerStatus.CLOSED:
                return self._status
            self.error_message = str(e) or "Failed to load order details."
            self._status = TrackerStatus.FAILED
            logger.warning(f"Tracker: Lookup of {order_id} failed: {self.error_message}")
            return self._status

        # Closed while the lookup was in flight.
        if self._status == TrackerStatus.CLOSED:
            return self._status

        if state is None:
            self._status = TrackerStatus.NOT_FOUND
            logger.info(f"Tracker: Order {order_id} not found")
            return self._status

        state.stages = self.stages
        state.current_stage_index = 0
        state.history.append((0, self.scheduler.now()))
        self.state = state
        self._status = TrackerStatus.TRACKING
        logger.info(f"Tracker: Tracking {order_id} at '{state.current_stage.name}'")

        if state.current_stage_index == state.last_index:
            self._mark_delivered()
        else:
            self._schedule_tick()
        return self._status

    async def retry(self) -> TrackerStatus:
        """Repeat the lookup after a failure."""
        if self._status != TrackerStatus.FAILED:
            raise RuntimeError(f"Cannot retry while {self._status.value}")
        return await self.start(self.order_id)

    def cancel(self, reason: Optional[str] = None) -> bool:
        """
        Stop tracking an order that was cancelled.

        Returns:
            bool: True if the tracker moved to CANCELLED
        """
        if self._status != TrackerStatus.TRACKING:
            return False

        self._cancel_timer()
        self.state.cancelled_at = self.scheduler.now()
        self.state.cancel_reason = reason
        self._status = TrackerStatus.CANCELLED
        logger.info(f"Tracker: Order {self.order_id} cancelled ({reason or 'no reason'})")
        return True

    def pause(self) -> bool:
        """
        Hold the order on its current stage (no ticks) while it stays TRACKING.

        Returns:
            bool: True if the tracker was tracking and is now held
        """
        if self._status != TrackerStatus.TRACKING:
            return False
        self._cancel_timer()
        logger.debug(f"Tracker: Paused {self.order_id}")
        return True

    def resume(self) -> None:
        """Restart the stage timer after ``pause()``. No-op unless still tracking."""
        if self._status == TrackerStatus.TRACKING and self._timer is None:
            self._schedule_tick()
            logger.debug(f"Tracker: Resumed {self.order_id}")

    def close(self) -> None:
        """Tear the tracker down. Safe to call more than once."""
        if self._status == TrackerStatus.CLOSED:
            return
        self._cancel_timer()
        self._status = TrackerStatus.CLOSED
        logger.debug(f"Tracker: Closed ({self.order_id})")

    # =========================================================================
    # TIMERS
    # =========================================================================

    def _schedule_tick(self) -> None:
        self._cancel_timer()
        self._timer = self.scheduler.call_later(self.interval, self._tick)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _tick(self) -> None:
        self._timer = None
        if self._status != TrackerStatus.TRACKING:
            return

        state = self.state
        if state.current_stage_index >= state.last_index:
            return

        state.current_stage_index += 1
        state.history.append((state.current_stage_index, self.scheduler.now()))
        logger.info(
            f"Tracker: {self.order_id} -> '{state.current_stage.name}' "
            f"({state.progress_percent}%)"
        )

        if state.current_stage_index == state.last_index:
            self._mark_delivered()
        else:
            self._schedule_tick()

    def _mark_delivered(self) -> None:
        if self.state.delivered_at is None:
            self.state.delivered_at = self.scheduler.now()
        self._cancel_timer()
        self._status = TrackerStatus.DELIVERED
        logger.info(f"Tracker: Order {self.order_id} delivered")
