from decimal import Decimal
from typing import Optional

import pytest

import storefront.main as main
from storefront.core.config import Settings
from storefront.main import StorefrontSession
from storefront.models import PaymentMethod, PriceBreakdown, TrackerStatus
from storefront.services.submission.base import CancellationResult, OrderSubmission
from storefront.services.submission.mock import MockOrderSubmissionService

INTERVAL = 7.0


class SlowRefundService(MockOrderSubmissionService):
    """Mock service whose refund takes long enough for several stages to fall due."""

    def __init__(self, scheduler, order_source):
        super().__init__(latency=0, order_source=order_source)
        self.scheduler = scheduler

    async def cancel_order(self, order_id: str, reason: Optional[str] = None) -> CancellationResult:
        self.scheduler.advance(INTERVAL * 5)
        return await super().cancel_order(order_id, reason)


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, tracking_interval_seconds=INTERVAL, **overrides)


def _session(service, order_source, scheduler, **overrides) -> StorefrontSession:
    return StorefrontSession(
        settings=_settings(**overrides),
        submission_service=service,
        order_source=order_source,
        scheduler=scheduler,
    )


async def _place(service) -> str:
    result = await service.submit_order(
        OrderSubmission(
            customer_name="Jane Doe",
            delivery_address="123 Main Street, Foodville, F00D4P, US",
            phone_number="+1 555 123 4567",
            payment_method=PaymentMethod.PAYPAL,
            items=(("Truffle Risotto", 1),),
            breakdown=PriceBreakdown(
                subtotal=Decimal("24.00"),
                discount=Decimal("5.00"),
                delivery_fee=Decimal("3.99"),
                tax_rate=Decimal("0.10"),
                tax_amount=Decimal("2.40"),
                total=Decimal("25.39"),
                item_count=1,
            ),
        )
    )
    assert result.success
    return result.order_id


# =============================================================================
# CANCELLATION
# =============================================================================

@pytest.mark.anyio
async def test_no_delivery_while_refund_in_flight(order_source, scheduler):
    service = SlowRefundService(scheduler, order_source)
    session = _session(service, order_source, scheduler)
    order_id = await _place(service)

    tracker = session.add_tracker(order_id)
    await tracker.start(order_id)
    scheduler.advance(INTERVAL * 2)
    assert tracker.current_stage.name == "Out for Delivery"

    refund = await session.cancel_order(order_id, "Too slow")

    assert refund.success
    assert tracker.status == TrackerStatus.CANCELLED
    assert tracker.current_stage.name == "Out for Delivery"
    assert tracker.state.delivered_at is None
    assert scheduler.pending == 0


@pytest.mark.anyio
async def test_failed_refund_resumes_tracking(order_source, submission_service, scheduler):
    session = _session(submission_service, order_source, scheduler)
    tracker = session.add_tracker("FD12345XYZ")
    await tracker.start("FD12345XYZ")

    refund = await session.cancel_order("FD12345XYZ")

    assert not refund.success
    assert tracker.status == TrackerStatus.TRACKING
    assert tracker.has_pending_timer
    scheduler.advance(INTERVAL)
    assert tracker.state.current_stage_index == 1


@pytest.mark.anyio
async def test_delivered_order_is_not_refunded(order_source, submission_service, scheduler):
    session = _session(submission_service, order_source, scheduler)
    order_id = await _place(submission_service)
    tracker = session.add_tracker(order_id)
    await tracker.start(order_id)
    scheduler.advance(INTERVAL * 3)

    refund = await session.cancel_order(order_id)

    assert not refund.success
    assert "delivered" in refund.error_message
    assert tracker.status == TrackerStatus.DELIVERED
    # The order was never refunded, so the service still accepts a cancellation.
    assert (await submission_service.cancel_order(order_id)).success


# =============================================================================
# TRACKER BOOKKEEPING
# =============================================================================

@pytest.mark.anyio
async def test_oldest_finished_trackers_evicted(order_source, submission_service, scheduler):
    session = _session(submission_service, order_source, scheduler, max_finished_trackers=1)
    live = session.add_tracker("FD12345XYZ")
    await live.start("FD12345XYZ")

    for order_id in ("A", "B", "C"):
        session.add_tracker(order_id).close()
    session.add_tracker("D")

    assert list(session.trackers) == ["FD12345XYZ", "C", "D"]
    assert live.status == TrackerStatus.TRACKING


def test_close_releases_every_tracker(order_source, submission_service, scheduler):
    session = _session(submission_service, order_source, scheduler)
    tracker = session.add_tracker("FD12345XYZ")

    session.close()

    assert session.trackers == {}
    assert tracker.status == TrackerStatus.CLOSED


# =============================================================================
# SERVER ENTRY POINT
# =============================================================================

def test_run_uses_configured_host_and_port(monkeypatch):
    called = {}

    def fake_uvicorn_run(app, **kwargs):
        called["app"] = app
        called.update(kwargs)

    monkeypatch.setattr(main, "uvicorn", type("U", (), {"run": fake_uvicorn_run}))
    main.run()

    assert called["app"] == "storefront.main:app"
    assert called["host"] == main.settings.api_host
    assert called["port"] == main.settings.api_port
