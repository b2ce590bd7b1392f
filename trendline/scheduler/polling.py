"""
Adaptive polling subscriptions.

One ``Subscription`` per view: an immediate first fetch, then a timer whose
interval follows the liveness of the last good result (live / scheduled /
final). Backgrounding the app pauses the timer; foregrounding refreshes once
and restarts it. Disposal cancels everything and freezes the state.

State machine::

    idle -> fetching -> scheduled -> fetching -> ... -> disposed
                 \\-> paused (backgrounded) -> fetching (foregrounded)
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, List, Optional

from trendline.config import PollingConfig

from .lifecycle import BACKGROUND, FOREGROUND, AppLifecycle

logger = logging.getLogger(__name__)

IDLE = "idle"
FETCHING = "fetching"
SCHEDULED = "scheduled"
PAUSED = "paused"
DISPOSED = "disposed"

FetchFn = Callable[[str], Awaitable[Any]]
StatusFn = Callable[[Any], str]
StateListener = Callable[["SubscriptionState"], None]


def default_status(result: Any) -> str:
    """
    Liveness of a feed result from its game counts.

    Live while any game is in progress; final once every game on the slate
    has finished; scheduled otherwise (including an empty slate).
    """
    if getattr(result, "live_games_count", 0) > 0:
        return "live"
    if getattr(result, "upcoming_games_count", 0) == 0 and getattr(result, "final_games_count", 0) > 0:
        return "final"
    return "scheduled"


@dataclass(frozen=True)
class SubscriptionState:
    status: str = IDLE
    data: Any = None
    error: Optional[str] = None
    loading: bool = False
    refreshing: bool = False
    last_updated: Optional[datetime] = None
    refresh_mode: Optional[str] = None


class Subscription:
    """
    Handle for one polling loop: ``start``, ``pause``, ``resume``, ``refresh``, ``dispose``.

    ``fetch`` is called with the refresh mode (``initial``, ``background`` or
    ``force``). Only the first fetch's failure is surfaced in ``state.error``;
    later failures are logged and the previous data is kept.
    """

    def __init__(
        self,
        fetch: FetchFn,
        polling: PollingConfig,
        status_fn: Optional[StatusFn] = None,
        listener: Optional[StateListener] = None,
        lifecycle: Optional[AppLifecycle] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        name: str = "subscription",
    ):
        self.fetch = fetch
        self.polling = polling
        self.status_fn = status_fn or default_status
        self.listener = listener
        self.lifecycle = lifecycle
        self.name = name
        self._sleep = sleep

        self._state = SubscriptionState()
        self._started = False
        self._paused = False
        self._disposed = False
        self._timer: Optional[asyncio.Task] = None
        self._resume_task: Optional[asyncio.Task] = None
        self._inflight: Optional[asyncio.Future] = None
        self._remove_lifecycle_listener: Optional[Callable[[], None]] = None
        self.intervals: List[float] = []

    # ========================================================================
    # STATE
    # ========================================================================

    @property
    def state(self) -> SubscriptionState:
        return self._state

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def timer_running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def _set(self, **changes: Any) -> None:
        if self._disposed:
            return
        self._state = replace(self._state, **changes)
        if self.listener is not None:
            try:
                self.listener(self._state)
            except Exception as e:
                logger.warning(f"[{self.name}] state listener failed: {e}")

    def _resting_status(self) -> str:
        return PAUSED if self._paused else SCHEDULED

    def current_interval(self) -> float:
        data = self._state.data
        try:
            status = self.status_fn(data) if data is not None else "scheduled"
            return self.polling.interval_for(status)
        except Exception as e:
            logger.warning(f"[{self.name}] status lookup failed, using scheduled interval: {e}")
            return self.polling.scheduled_interval

    # ========================================================================
    # CONTROL
    # ========================================================================

    async def start(self) -> "Subscription":
        """Initial fetch (``loading=True``), then start the timer if the app is foregrounded."""
        if self._disposed:
            raise RuntimeError(f"[{self.name}] cannot start a disposed subscription")
        if self._started:
            return self
        self._started = True

        if self.lifecycle is not None:
            self._remove_lifecycle_listener = self.lifecycle.add_listener(self._on_lifecycle)
            self._paused = not self.lifecycle.is_foreground

        await self._run_fetch("initial")
        if not self._disposed and not self._paused:
            self._schedule()
        return self

    def pause(self) -> None:
        if self._disposed or self._paused:
            return
        self._paused = True
        self._cancel_timer()
        logger.debug(f"[{self.name}] paused")
        self._set(status=PAUSED, refreshing=False)

    def resume(self) -> Optional[asyncio.Task]:
        """One immediate refresh, then restart the timer. Returns the refresh task."""
        if self._disposed or not self._paused:
            return None
        self._paused = False
        logger.debug(f"[{self.name}] resumed")
        self._resume_task = asyncio.ensure_future(self._resume())
        return self._resume_task

    async def _resume(self) -> None:
        await self._run_fetch("force")
        if not self._disposed and not self._paused:
            self._schedule()

    async def refresh(self) -> SubscriptionState:
        """Manual refresh (``refreshing=True``); restarts the timer cadence."""
        if self._disposed:
            return self._state
        await self._run_fetch("force")
        if not self._disposed and not self._paused and self._started:
            self._schedule()
        return self._state

    def dispose(self) -> None:
        if self._disposed:
            return
        self._cancel_timer()
        for task in (self._resume_task, self._inflight):
            if task is not None and not task.done():
                task.cancel()
        if self._remove_lifecycle_listener is not None:
            self._remove_lifecycle_listener()
            self._remove_lifecycle_listener = None
        self._set(status=DISPOSED, loading=False, refreshing=False)
        self._disposed = True
        logger.debug(f"[{self.name}] disposed")

    def _on_lifecycle(self, state: str) -> None:
        if state == BACKGROUND:
            self.pause()
        elif state == FOREGROUND:
            self.resume()

    # ========================================================================
    # TIMER / FETCH
    # ========================================================================

    def _schedule(self) -> None:
        self._cancel_timer()
        self._timer = asyncio.ensure_future(self._timer_loop())

    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done() and self._timer is not asyncio.current_task():
            self._timer.cancel()
        self._timer = None

    async def _timer_loop(self) -> None:
        while not self._disposed and not self._paused:
            interval = self.current_interval()
            self.intervals.append(interval)
            await self._sleep(interval)
            if self._disposed or self._paused:
                return
            await self._run_fetch("background")

    async def _run_fetch(self, mode: str) -> None:
        if self._disposed:
            return
        initial = mode == "initial"
        self._set(status=FETCHING, loading=initial, refreshing=not initial, refresh_mode=mode)

        self._inflight = asyncio.ensure_future(self.fetch(mode))
        try:
            result = await self._inflight
        except asyncio.CancelledError:
            if self._disposed:
                return
            raise
        except Exception as e:
            self._on_failure(mode, str(e) or type(e).__name__)
            return
        finally:
            self._inflight = None

        if self._disposed:
            return

        error = getattr(result, "error", None)
        if error and self._state.data is not None and not initial:
            self._on_failure(mode, error)
            return

        self._set(
            status=self._resting_status(),
            data=result,
            error=error if initial or self._state.data is None else None,
            loading=False,
            refreshing=False,
            last_updated=getattr(result, "last_updated", None) or datetime.now(timezone.utc),
        )

    def _on_failure(self, mode: str, message: str) -> None:
        if mode == "initial" or self._state.data is None:
            logger.warning(f"[{self.name}] {mode} fetch failed: {message}")
            self._set(status=self._resting_status(), error=message, loading=False, refreshing=False)
        else:
            logger.warning(f"[{self.name}] {mode} refresh failed, keeping previous data: {message}")
            self._set(status=self._resting_status(), loading=False, refreshing=False)


class PollingScheduler:
    """Creates subscriptions that share one polling table and one app lifecycle."""

    def __init__(
        self,
        polling_config: Optional[PollingConfig] = None,
        lifecycle: Optional[AppLifecycle] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.polling = polling_config or PollingConfig()
        self.lifecycle = lifecycle or AppLifecycle()
        self._sleep = sleep
        self._subscriptions: List[Subscription] = []

    async def subscribe(
        self,
        fetch: FetchFn,
        status_fn: Optional[StatusFn] = None,
        listener: Optional[StateListener] = None,
        name: str = "subscription",
    ) -> Subscription:
        """Create a subscription and perform its initial fetch."""
        subscription = Subscription(
            fetch,
            self.polling,
            status_fn=status_fn,
            listener=listener,
            lifecycle=self.lifecycle,
            sleep=self._sleep,
            name=name,
        )
        self._subscriptions.append(subscription)
        await subscription.start()
        return subscription

    @property
    def subscriptions(self) -> List[Subscription]:
        return [s for s in self._subscriptions if not s.disposed]

    def dispose_all(self) -> None:
        for subscription in self._subscriptions:
            subscription.dispose()
        self._subscriptions.clear()
