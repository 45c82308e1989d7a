"""Trailing-edge debounce for coroutine calls on the running event loop."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional

logger = logging.getLogger(__name__)


class Debouncer:
    """Coalesce bursts of calls into one trailing call.

    Each call() restarts the timer with its own arguments. When the timer
    fires, only the last arguments are used, and every caller of the burst
    receives that call's result (or exception).

    Args:
        delay: Quiet period in seconds.
    """

    def __init__(self, delay: float):
        self.delay = max(0.0, float(delay))
        self._handle: Optional[asyncio.TimerHandle] = None
        self._waiters: List[asyncio.Future] = []
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def call(self, func: Callable[..., Awaitable[Any]], *args: Any) -> "asyncio.Future":
        """Schedule ``func(*args)`` after the quiet period and return a future for its result."""
        loop = asyncio.get_running_loop()
        if self._handle is not None:
            self._handle.cancel()
            logger.debug("Debounce: superseded a pending call")
        waiter = loop.create_future()
        self._waiters.append(waiter)
        self._handle = loop.call_later(self.delay, self._fire, func, args)
        return waiter

    def _fire(self, func, args) -> None:
        self._handle = None
        waiters, self._waiters = self._waiters, []
        task = asyncio.ensure_future(func(*args))
        self._task = task

        def deliver(done: asyncio.Task) -> None:
            for waiter in waiters:
                if waiter.done():
                    continue
                if done.cancelled():
                    waiter.cancel()
                elif done.exception() is not None:
                    waiter.set_exception(done.exception())
                else:
                    waiter.set_result(done.result())

        task.add_done_callback(deliver)

    def cancel(self) -> None:
        """Drop the pending call; its waiters are cancelled."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        waiters, self._waiters = self._waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.cancel()
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
