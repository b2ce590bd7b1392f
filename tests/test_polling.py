from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import List
from unittest.mock import AsyncMock

import pytest

from trendline.config import PollingConfig
from trendline.models.results import FeedResult
from trendline.scheduler import (
    BACKGROUND,
    AppLifecycle,
    PollingScheduler,
    Subscription,
    SubscriptionState,
    default_status,
)
from trendline.scheduler.polling import DISPOSED, PAUSED, SCHEDULED

UPDATED = datetime(2024, 1, 10, 18, 0, tzinfo=timezone.utc)


class ManualSleep:
    """Records every requested interval and blocks until released with ``tick``."""

    def __init__(self):
        self.intervals: List[float] = []
        self._waiters: List[asyncio.Future] = []

    async def __call__(self, seconds: float) -> None:
        self.intervals.append(seconds)
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        await waiter

    async def tick(self) -> None:
        while self._waiters:
            waiter = self._waiters.pop(0)
            if not waiter.done():
                waiter.set_result(None)
                break
        await settle()


async def settle() -> None:
    for _ in range(10):
        await asyncio.sleep(0)


def feed(live: int = 0, error=None, upcoming: int = 0, final: int = 0) -> FeedResult:
    return FeedResult(
        items=("x",),
        last_updated=UPDATED,
        live_games_count=live,
        upcoming_games_count=upcoming,
        final_games_count=final,
        error=error,
    )


@pytest.fixture
def sleep():
    return ManualSleep()


@pytest.fixture
def lifecycle():
    return AppLifecycle()


def make_subscription(fetch, sleep, lifecycle=None, **kwargs) -> Subscription:
    return Subscription(fetch, PollingConfig(), lifecycle=lifecycle, sleep=sleep, **kwargs)


def test_default_status() -> None:
    assert default_status(feed(live=2)) == "live"
    assert default_status(feed(live=0)) == "scheduled"
    assert default_status(object()) == "scheduled"


def test_default_status_final_only_when_whole_slate_is_over() -> None:
    assert default_status(feed(final=3)) == "final"
    assert default_status(feed(upcoming=1, final=3)) == "scheduled"
    assert default_status(feed(live=1, final=3)) == "live"


def test_lifecycle_notifies_only_on_change() -> None:
    lifecycle = AppLifecycle()
    seen = []
    remove = lifecycle.add_listener(seen.append)

    lifecycle.to_foreground()
    lifecycle.to_background()
    lifecycle.to_background()
    remove()
    lifecycle.to_foreground()

    assert seen == [BACKGROUND]
    with pytest.raises(ValueError):
        lifecycle.set_state("sleeping")


@pytest.mark.asyncio
async def test_initial_fetch_then_live_cadence(sleep, lifecycle) -> None:
    fetch = AsyncMock(return_value=feed(live=1))
    states: List[SubscriptionState] = []
    sub = make_subscription(fetch, sleep, lifecycle, listener=states.append)

    await sub.start()
    await settle()

    fetch.assert_awaited_once_with("initial")
    assert states[0].loading is True
    assert sub.state.loading is False
    assert sub.state.status == SCHEDULED
    assert sub.state.data == feed(live=1)
    assert sub.state.last_updated == UPDATED
    assert sleep.intervals == [12]
    sub.dispose()


@pytest.mark.asyncio
async def test_cadence_follows_latest_result(sleep) -> None:
    fetch = AsyncMock(side_effect=[feed(live=0), feed(live=3), feed(live=0)])
    sub = make_subscription(fetch, sleep)

    await sub.start()
    await settle()
    await sleep.tick()
    await sleep.tick()

    assert [c.args[0] for c in fetch.await_args_list] == ["initial", "background", "background"]
    assert sleep.intervals == [30, 12, 30]
    assert sub.intervals == [30, 12, 30]
    sub.dispose()


@pytest.mark.asyncio
async def test_final_status_uses_slow_cadence(sleep) -> None:
    sub = make_subscription(AsyncMock(return_value=feed()), sleep, status_fn=lambda data: "final")

    await sub.start()
    await settle()

    assert sleep.intervals == [300]
    assert sub.current_interval() == 300
    sub.dispose()


@pytest.mark.asyncio
async def test_finished_slate_polls_at_final_interval_by_default(sleep) -> None:
    sub = make_subscription(AsyncMock(return_value=feed(final=2)), sleep)

    await sub.start()
    await settle()

    assert sleep.intervals == [300]
    sub.dispose()


@pytest.mark.asyncio
async def test_failing_status_function_falls_back_to_scheduled_interval(sleep) -> None:
    def broken(data):
        raise KeyError("state")

    fetch = AsyncMock(return_value=feed(live=1))
    sub = make_subscription(fetch, sleep, status_fn=broken)

    await sub.start()
    await settle()
    await sleep.tick()

    assert sleep.intervals == [30, 30]
    assert sub.timer_running
    assert fetch.await_count == 2
    sub.dispose()


@pytest.mark.asyncio
async def test_background_then_foreground_refreshes_exactly_once(sleep, lifecycle) -> None:
    fetch = AsyncMock(return_value=feed(live=1))
    sub = make_subscription(fetch, sleep, lifecycle)
    await sub.start()
    await settle()

    lifecycle.to_background()
    await settle()
    assert sub.state.status == PAUSED
    assert not sub.timer_running
    assert fetch.await_count == 1

    lifecycle.to_foreground()
    await settle()
    lifecycle.to_foreground()
    await settle()

    assert [c.args[0] for c in fetch.await_args_list] == ["initial", "force"]
    assert sub.timer_running
    assert sub.state.status == SCHEDULED
    sub.dispose()


@pytest.mark.asyncio
async def test_start_while_backgrounded_fetches_but_stays_paused(sleep) -> None:
    lifecycle = AppLifecycle(BACKGROUND)
    fetch = AsyncMock(return_value=feed())
    sub = make_subscription(fetch, sleep, lifecycle)

    await sub.start()
    await settle()

    fetch.assert_awaited_once_with("initial")
    assert sub.state.status == PAUSED
    assert sleep.intervals == []
    sub.dispose()


@pytest.mark.asyncio
async def test_manual_refresh_marks_refreshing(sleep) -> None:
    fetch = AsyncMock(return_value=feed())
    states: List[SubscriptionState] = []
    sub = make_subscription(fetch, sleep, listener=states.append)
    await sub.start()

    state = await sub.refresh()

    assert fetch.await_args.args[0] == "force"
    assert any(s.refreshing for s in states)
    assert state.refreshing is False
    assert state.refresh_mode == "force"
    sub.dispose()


@pytest.mark.asyncio
async def test_initial_failure_is_surfaced(sleep) -> None:
    sub = make_subscription(AsyncMock(side_effect=RuntimeError("provider down")), sleep)

    await sub.start()

    assert sub.state.error == "provider down"
    assert sub.state.data is None
    assert sub.state.loading is False
    sub.dispose()


@pytest.mark.asyncio
async def test_background_failures_keep_previous_data(sleep) -> None:
    good = feed(live=1)
    fetch = AsyncMock(side_effect=[good, RuntimeError("timeout"), feed(error="All sources failed")])
    sub = make_subscription(fetch, sleep)

    await sub.start()
    await settle()
    await sleep.tick()
    await sleep.tick()

    assert fetch.await_count == 3
    assert sub.state.data is good
    assert sub.state.error is None
    assert sub.state.refreshing is False
    sub.dispose()


@pytest.mark.asyncio
async def test_dispose_stops_everything(sleep, lifecycle) -> None:
    fetch = AsyncMock(return_value=feed())
    states: List[SubscriptionState] = []
    sub = make_subscription(fetch, sleep, lifecycle, listener=states.append)
    await sub.start()
    await settle()

    sub.dispose()
    await settle()
    calls_after_dispose = len(states)

    assert sub.disposed
    assert sub.state.status == DISPOSED
    assert not sub.timer_running

    lifecycle.to_background()
    lifecycle.to_foreground()
    await sleep.tick()
    assert await sub.refresh() is sub.state

    assert fetch.await_count == 1
    assert len(states) == calls_after_dispose
    with pytest.raises(RuntimeError):
        await sub.start()


@pytest.mark.asyncio
async def test_dispose_cancels_in_flight_fetch(sleep) -> None:
    release = asyncio.Event()
    calls = []

    async def fetch(mode):
        calls.append(mode)
        if mode == "background":
            await release.wait()
        return feed()

    sub = make_subscription(fetch, sleep)
    await sub.start()
    await settle()
    await sleep.tick()

    assert calls == ["initial", "background"]
    sub.dispose()
    await settle()

    assert sub.state.status == DISPOSED
    assert not sub.timer_running


@pytest.mark.asyncio
async def test_scheduler_shares_lifecycle_and_disposes_all(sleep, lifecycle) -> None:
    scheduler = PollingScheduler(PollingConfig(), lifecycle, sleep=sleep)
    fetch_a = AsyncMock(return_value=feed(live=1))
    fetch_b = AsyncMock(return_value=feed())

    a = await scheduler.subscribe(fetch_a, name="trends")
    b = await scheduler.subscribe(fetch_b, name="news")
    await settle()
    assert scheduler.subscriptions == [a, b]

    lifecycle.to_background()
    assert a.state.status == PAUSED and b.state.status == PAUSED

    scheduler.dispose_all()
    assert a.disposed and b.disposed
    assert scheduler.subscriptions == []
