import asyncio
from datetime import timedelta

import pytest

from storefront.core.clock import AsyncioScheduler, ManualScheduler


def test_manual_scheduler_fires_in_due_order():
    scheduler = ManualScheduler()
    fired = []
    scheduler.call_later(3, lambda: fired.append("c"))
    scheduler.call_later(1, lambda: fired.append("a"))
    scheduler.call_later(1, lambda: fired.append("b"))

    assert scheduler.advance(2) == 2
    assert fired == ["a", "b"]
    assert scheduler.advance(1) == 1
    assert fired == ["a", "b", "c"]


def test_manual_scheduler_time_moves_with_advance():
    scheduler = ManualScheduler()
    start = scheduler.now()
    scheduler.advance(90)
    assert scheduler.now() - start == timedelta(seconds=90)


def test_callbacks_scheduled_while_advancing_fire_in_same_call():
    scheduler = ManualScheduler()
    fired = []

    def chain():
        fired.append(scheduler.elapsed)
        if len(fired) < 3:
            scheduler.call_later(2, chain)

    scheduler.call_later(2, chain)

    assert scheduler.advance(10) == 3
    assert fired == [2, 4, 6]


def test_cancelled_callback_never_fires():
    scheduler = ManualScheduler()
    fired = []
    handle = scheduler.call_later(1, lambda: fired.append(1))
    handle.cancel()

    assert handle.cancelled
    assert scheduler.pending == 0
    assert scheduler.advance(5) == 0
    assert fired == []


def test_negative_values_rejected():
    scheduler = ManualScheduler()
    with pytest.raises(ValueError):
        scheduler.call_later(-1, lambda: None)
    with pytest.raises(ValueError):
        scheduler.advance(-1)


@pytest.mark.anyio
async def test_asyncio_scheduler_runs_callback():
    scheduler = AsyncioScheduler()
    done = asyncio.Event()

    scheduler.call_later(0.01, done.set)

    await asyncio.wait_for(done.wait(), timeout=1)
    assert scheduler.now().tzinfo is not None


@pytest.mark.anyio
async def test_asyncio_scheduler_cancel():
    scheduler = AsyncioScheduler()
    fired = []

    handle = scheduler.call_later(0.01, lambda: fired.append(1))
    handle.cancel()
    await asyncio.sleep(0.05)

    assert handle.cancelled
    assert fired == []
