"""Settle-all fan-out and cooperative cancellation helpers."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Generic, List, Optional, Sequence, Tuple, TypeVar

from .errors import OperationCancelled

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Settled(Generic[T]):
    """Outcome of one branch of a fan-out."""

    name: str
    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def gather_settled(
    branches: Sequence[Tuple[str, Awaitable[T]]],
    *,
    label: str = "fan-out",
) -> List[Settled[T]]:
    """
    Await every branch concurrently, keep successes, log failures.

    Results come back in the same order as ``branches`` regardless of
    completion order, so downstream merging stays deterministic.
    Cancellation of the caller still propagates.
    """
    if not branches:
        return []

    names = [name for name, _ in branches]
    results = await asyncio.gather(*(aw for _, aw in branches), return_exceptions=True)

    settled: List[Settled[T]] = []
    for name, result in zip(names, results):
        if isinstance(result, asyncio.CancelledError):
            raise result
        if isinstance(result, BaseException):
            logger.warning(f"[{label}] {name} failed: {result}")
            settled.append(Settled(name=name, error=result))
        else:
            settled.append(Settled(name=name, value=result))

    failures = sum(1 for s in settled if not s.ok)
    if failures:
        logger.debug(f"[{label}] {len(settled) - failures}/{len(settled)} branches succeeded")
    return settled


class CancelToken:
    """
    Cancellation handle handed to the facade by its caller.

    Firing the token cancels any fetch currently racing against it and makes
    later fetches fail fast with ``OperationCancelled``.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self, operation: str = "") -> None:
        if self.cancelled:
            raise OperationCancelled(operation)


async def run_cancellable(
    aw: Awaitable[T],
    token: Optional[CancelToken],
    operation: str = "",
) -> T:
    """Run ``aw`` until it finishes or ``token`` fires, whichever is first."""
    if token is None:
        return await aw

    if token.cancelled:
        if asyncio.iscoroutine(aw):
            aw.close()
        raise OperationCancelled(operation)

    work: asyncio.Future[Any] = asyncio.ensure_future(aw)
    waiter = asyncio.ensure_future(token.wait())
    try:
        done, _ = await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        work.cancel()
        waiter.cancel()
        raise

    if work in done:
        waiter.cancel()
        return work.result()

    work.cancel()
    try:
        await work
    except (asyncio.CancelledError, Exception):
        pass
    raise OperationCancelled(operation)
