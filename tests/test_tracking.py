from typing import Optional

import pytest

from storefront.models import DEFAULT_STAGES, OrderDetails, OrderTrackingState, Stage, TrackerStatus
from storefront.services.orders import MockOrderSource
from storefront.services.orders.base import BaseOrderSource
from storefront.services.tracking import OrderTracker

INTERVAL = 7.0


class FlakyOrderSource(BaseOrderSource):
    """Order source failing a given number of lookups before delegating."""

    def __init__(self, inner: BaseOrderSource, failures: int):
        self.inner = inner
        self.failures = failures
        self.calls = 0

    @property
    def provider_name(self) -> str:
        return "flaky"

    async def fetch_order(self, order_id: str) -> Optional[OrderTrackingState]:
        self.calls += 1
        if self.failures:
            self.failures -= 1
            raise ConnectionError("Order service temporarily unavailable")
        return await self.inner.fetch_order(order_id)

    def add_order(self, details: OrderDetails) -> None:
        self.inner.add_order(details)

    async def health_check(self) -> bool:
        return True


@pytest.fixture
def tracker(order_source, scheduler) -> OrderTracker:
    return OrderTracker(order_source, scheduler, interval=INTERVAL)


@pytest.mark.anyio
async def test_start_tracks_demo_order(tracker, scheduler):
    status = await tracker.start("FD12345XYZ")

    assert status == TrackerStatus.TRACKING
    assert tracker.current_stage.name == "Order Placed"
    assert tracker.progress_percent == 25
    assert tracker.state.details.restaurant_name == "Pizza Palace"
    assert scheduler.pending == 1


@pytest.mark.anyio
async def test_reaches_delivered_after_one_tick_per_stage(tracker, scheduler):
    await tracker.start("FD12345XYZ")

    seen = [tracker.current_stage.name]
    for _ in range(len(DEFAULT_STAGES) - 1):
        assert scheduler.advance(INTERVAL) == 1
        seen.append(tracker.current_stage.name)

    assert seen == [stage.name for stage in DEFAULT_STAGES]
    assert tracker.status == TrackerStatus.DELIVERED
    assert tracker.progress_percent == 100
    assert tracker.is_terminal
    assert scheduler.pending == 0


@pytest.mark.anyio
async def test_delivered_at_recorded_once(tracker, scheduler):
    await tracker.start("FD12345XYZ")
    scheduler.advance(INTERVAL * 3)
    delivered_at = tracker.state.delivered_at

    assert delivered_at == scheduler.now()
    scheduler.advance(INTERVAL * 10)

    assert tracker.state.delivered_at == delivered_at
    assert tracker.state.current_stage_index == len(DEFAULT_STAGES) - 1


@pytest.mark.anyio
async def test_stages_advance_one_at_a_time(tracker, scheduler):
    await tracker.start("FD12345XYZ")

    scheduler.advance(INTERVAL - 1)
    assert tracker.state.current_stage_index == 0

    scheduler.advance(1)
    assert tracker.state.current_stage_index == 1
    assert [index for index, _ in tracker.state.history] == [0, 1]


@pytest.mark.anyio
async def test_unknown_order_is_not_found(tracker, scheduler):
    status = await tracker.start("NOPE")

    assert status == TrackerStatus.NOT_FOUND
    assert tracker.is_terminal
    assert tracker.state is None
    assert scheduler.pending == 0


@pytest.mark.anyio
async def test_failed_lookup_can_be_retried(order_source, scheduler):
    source = FlakyOrderSource(order_source, failures=1)
    tracker = OrderTracker(source, scheduler, interval=INTERVAL)

    assert await tracker.start("FD12345XYZ") == TrackerStatus.FAILED
    assert tracker.error_message == "Order service temporarily unavailable"
    assert not tracker.is_terminal

    assert await tracker.retry() == TrackerStatus.TRACKING
    assert tracker.error_message is None
    assert source.calls == 2


@pytest.mark.anyio
async def test_retry_only_after_failure(tracker):
    await tracker.start("FD12345XYZ")
    with pytest.raises(RuntimeError):
        await tracker.retry()


@pytest.mark.anyio
async def test_close_stops_ticks(tracker, scheduler):
    await tracker.start("FD12345XYZ")
    scheduler.advance(INTERVAL)

    tracker.close()
    tracker.close()
    scheduler.advance(INTERVAL * 5)

    assert tracker.status == TrackerStatus.CLOSED
    assert tracker.state.current_stage_index == 1
    assert scheduler.pending == 0


@pytest.mark.anyio
async def test_cancel_while_tracking(tracker, scheduler):
    await tracker.start("FD12345XYZ")
    scheduler.advance(INTERVAL)

    assert tracker.cancel("Changed my mind")
    scheduler.advance(INTERVAL * 5)

    assert tracker.status == TrackerStatus.CANCELLED
    assert tracker.state.cancel_reason == "Changed my mind"
    assert tracker.state.cancelled_at is not None
    assert tracker.state.current_stage_index == 1
    assert tracker.state.delivered_at is None


@pytest.mark.anyio
async def test_cannot_cancel_delivered_order(tracker, scheduler):
    await tracker.start("FD12345XYZ")
    scheduler.advance(INTERVAL * 3)
    assert not tracker.cancel()


@pytest.mark.anyio
async def test_single_stage_order_is_delivered_immediately(order_source, scheduler):
    tracker = OrderTracker(order_source, scheduler, stages=(Stage("Done", "All set.", 100),))

    assert await tracker.start("FD12345XYZ") == TrackerStatus.DELIVERED
    assert tracker.state.delivered_at is not None
    assert scheduler.pending == 0


@pytest.mark.anyio
async def test_tracks_orders_added_at_runtime(tracker, order_source, sample_order):
    order_source.add_order(sample_order)
    assert await tracker.start(sample_order.order_id) == TrackerStatus.TRACKING


@pytest.mark.anyio
async def test_stage_views(tracker, scheduler):
    await tracker.start("FD12345XYZ")
    scheduler.advance(INTERVAL)

    views = tracker.stage_views()

    assert [v["completed"] for v in views] == [True, False, False, False]
    assert [v["current"] for v in views] == [False, True, False, False]


@pytest.mark.anyio
async def test_stage_views_all_completed_when_delivered(tracker, scheduler):
    await tracker.start("FD12345XYZ")
    scheduler.advance(INTERVAL * 3)
    assert all(v["completed"] for v in tracker.stage_views())


@pytest.mark.anyio
async def test_snapshot(tracker):
    await tracker.start("FD12345XYZ")
    snapshot = tracker.snapshot()

    assert snapshot["status"] == "tracking"
    assert snapshot["current_stage"] == "Order Placed"
    assert snapshot["order"]["details"]["delivery_address"] == (
        "123 Main Street, Anytown, USA 12345"
    )


@pytest.mark.parametrize(
    "stages",
    [
        (),
        (Stage("A", "", 50), Stage("B", "", 25)),
        (Stage("A", "", 120),),
    ],
)
def test_invalid_stage_lists_rejected(stages, scheduler):
    with pytest.raises(ValueError):
        OrderTracker(MockOrderSource(latency=0), scheduler, stages=stages)


def test_interval_must_be_positive(scheduler):
    with pytest.raises(ValueError):
        OrderTracker(MockOrderSource(latency=0), scheduler, interval=0)


@pytest.mark.anyio
async def test_pause_holds_stage_until_resumed(tracker, scheduler):
    await tracker.start("FD12345XYZ")

    assert tracker.pause()
    scheduler.advance(INTERVAL * 5)
    assert tracker.status == TrackerStatus.TRACKING
    assert tracker.state.current_stage_index == 0
    assert not tracker.has_pending_timer

    tracker.resume()
    tracker.resume()
    assert scheduler.pending == 1
    scheduler.advance(INTERVAL)
    assert tracker.state.current_stage_index == 1


@pytest.mark.anyio
async def test_pause_and_resume_ignored_when_finished(tracker, scheduler):
    await tracker.start("FD12345XYZ")
    scheduler.advance(INTERVAL * 3)

    assert not tracker.pause()
    tracker.resume()
    assert scheduler.pending == 0
