"""Subscribe to the result of a read query and get called back when it changes.

Subscriptions are tracked in an explicit registry. After every committed write
that changed rows, the writer asks the registry to re-run each active query; a
subscription is notified only when its result differs from the last value it
saw. Notifications are queued and delivered by a single task, one at a time,
so a slow subscriber never holds up the writer.
"""

import asyncio
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from inspect import isawaitable
from typing import (
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    Generic,
    List,
    Optional,
    Tuple,
    TypeVar,
)

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")

Query = Callable[[AsyncSession], Awaitable[T]]
OnChange = Callable[[T], Any]
OnError = Callable[[Exception], Any]
Reader = Callable[[], AbstractAsyncContextManager[AsyncSession]]

_UNSET: Any = object()


class Subscription(Generic[T]):
    """Handle for one observed query. Call ``cancel()`` to stop delivery."""

    def __init__(
        self,
        registry: "ObservationRegistry",
        query: Query,
        on_change: OnChange,
        on_error: Optional[OnError] = None,
    ):
        self._registry = registry
        self.query = query
        self.on_change = on_change
        self.on_error = on_error
        self.last_value: Any = _UNSET
        self._cancelled = False

    @property
    def active(self) -> bool:
        return not self._cancelled

    def cancel(self) -> None:
        """Stop future deliveries. Safe to call repeatedly or after shutdown."""
        if self._cancelled:
            return
        self._cancelled = True
        self._registry._discard(self)


class ObservationRegistry:
    """Registry of active subscriptions plus the task that delivers to them."""

    def __init__(self, reader: Reader, write_lock: Optional[asyncio.Lock] = None):
        self._reader = reader
        self._write_lock = write_lock
        self._subscriptions: List[Subscription] = []
        self._queue: "asyncio.Queue[Tuple[Subscription, Any, bool]]" = asyncio.Queue()
        self._delivery_task: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def subscriptions(self) -> List[Subscription]:
        return list(self._subscriptions)

    async def observe(
        self,
        query: Query,
        on_change: OnChange,
        on_error: Optional[OnError] = None,
        emit_initial: bool = True,
    ) -> Subscription:
        """Start tracking ``query``.

        Waits for the writer role when the registry was given one, so it must not
        be called from inside a write or a commit hook.

        Args:
            query: Coroutine function reading the value from a session
            on_change: Called with each new value (may be async)
            on_error: Called when re-running the query fails (may be async)
            emit_initial: Deliver the current value right away

        Raises:
            RuntimeError: If the registry has been closed
        """
        if self._closed:
            raise RuntimeError("Observation registry is closed")

        subscription = Subscription(self, query, on_change, on_error)
        # No write may commit between the snapshot and registration, or on_commit
        # would run without this subscription and the change would be missed
        async with self._registering():
            subscription.last_value = await self._fetch(subscription)
            self._subscriptions.append(subscription)
            if emit_initial:
                self._enqueue(subscription, subscription.last_value)
        return subscription

    async def on_commit(self) -> None:
        """Re-run every active query and queue the ones whose value changed."""
        for subscription in list(self._subscriptions):
            if not subscription.active:
                continue
            try:
                value = await self._fetch(subscription)
            except Exception as e:
                logger.error(f"Observed query failed: {e}")
                self._enqueue(subscription, e, failed=True)
                continue

            if value != subscription.last_value:
                subscription.last_value = value
                self._enqueue(subscription, value)

    async def drain(self) -> None:
        """Wait until every queued notification has been delivered."""
        if self._closed:
            return
        await self._queue.join()

    async def close(self) -> None:
        """Cancel all subscriptions and stop the delivery task."""
        if self._closed:
            return
        self._closed = True

        for subscription in list(self._subscriptions):
            subscription.cancel()

        if self._delivery_task is not None:
            self._delivery_task.cancel()
            try:
                await self._delivery_task
            except asyncio.CancelledError:
                pass
            self._delivery_task = None

    @asynccontextmanager
    async def _registering(self) -> AsyncIterator[None]:
        if self._write_lock is None:
            yield
            return
        async with self._write_lock:
            yield

    async def _fetch(self, subscription: Subscription) -> Any:
        async with self._reader() as session:
            return await subscription.query(session)

    def _discard(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def _enqueue(self, subscription: Subscription, payload: Any, failed: bool = False) -> None:
        if self._closed:
            return
        self._queue.put_nowait((subscription, payload, failed))
        if self._delivery_task is None or self._delivery_task.done():
            self._delivery_task = asyncio.create_task(self._deliver())

    async def _deliver(self) -> None:
        while True:
            subscription, payload, failed = await self._queue.get()
            try:
                if not subscription.active:
                    continue
                if failed:
                    if subscription.on_error is None:
                        continue
                    result = subscription.on_error(payload)
                else:
                    result = subscription.on_change(payload)
                if isawaitable(result):
                    await result
            except Exception:
                logger.exception("Observer callback raised")
            finally:
                self._queue.task_done()
