"""Rate-limited background dispatcher.

Runs side effects (backend posts, permission changes) one at a time on a
dedicated asyncio task, in the order they were submitted, so the sync loop never
waits on them. A token bucket bounds how many tasks start per minute.
"""

import asyncio
import contextlib
import inspect
import logging
import threading
import time

from .constants import (
    DEFAULT_DISPATCH_BURST,
    DEFAULT_DISPATCH_RATE_PER_MINUTE,
    LOGGER_NAME,
    SECONDS_PER_MINUTE,
)

logger = logging.getLogger(f"{LOGGER_NAME}.dispatcher")

# Queued by close() behind every pending task
_STOP = object()


class TokenBucket:
    """
    Token bucket refilled continuously at `rate_per_minute`, holding at most
    `burst` tokens. Starts full.

    `clock` and `sleep` default to `time.monotonic` and `asyncio.sleep`.
    """

    def __init__(
        self,
        rate_per_minute: float = DEFAULT_DISPATCH_RATE_PER_MINUTE,
        burst: int = DEFAULT_DISPATCH_BURST,
        clock=time.monotonic,
        sleep=asyncio.sleep,
    ):
        if rate_per_minute <= 0:
            raise ValueError(f"rate_per_minute must be positive, got {rate_per_minute}")
        if burst < 1:
            raise ValueError(f"burst must be at least 1, got {burst}")
        self.rate_per_second = rate_per_minute / SECONDS_PER_MINUTE
        self.capacity = float(burst)
        self._clock = clock
        self._sleep = sleep
        self.tokens = self.capacity
        self.last_refill = clock()

    def __repr__(self):
        return (
            f"TokenBucket(rate_per_minute={self.rate_per_second * SECONDS_PER_MINUTE:g}, "
            f"burst={self.capacity:g})"
        )

    def _refill(self):
        now = self._clock()
        elapsed = max(0.0, now - self.last_refill)
        self.tokens = min(self.capacity, self.tokens + elapsed * self.rate_per_second)
        self.last_refill = now

    def try_acquire(self) -> bool:
        """Take a token if one is available, without waiting."""
        self._refill()
        if self.tokens < 1.0:
            return False
        self.tokens -= 1.0
        return True

    async def until_ready(self):
        """Suspend until a token is available, then take it."""
        while not self.try_acquire():
            await self._sleep((1.0 - self.tokens) / self.rate_per_second)


class RateLimitedDispatcher:
    """
    Single-consumer FIFO executor for deferred tasks.

    A task is a zero-argument callable (its result is awaited when awaitable) or
    an awaitable. Tasks run strictly one after another in submission order;
    failures are logged and never stop the consumer. Construct it once at
    startup, `start()` it inside the running loop and pass it to whoever needs
    background execution.
    """

    def __init__(
        self,
        rate_per_minute: float = DEFAULT_DISPATCH_RATE_PER_MINUTE,
        burst: int = DEFAULT_DISPATCH_BURST,
        limiter: TokenBucket = None,
    ):
        self.limiter = limiter or TokenBucket(rate_per_minute, burst)
        self._loop = None
        self._queue = None
        self._worker = None
        self._closed = False
        self._lock = threading.Lock()
        self.submitted = 0
        self.executed = 0
        self.failed = 0
        self.dropped = 0

    def __repr__(self):
        return (
            f"RateLimitedDispatcher(limiter={self.limiter!r}, running={self.is_running}, "
            f"submitted={self.submitted}, executed={self.executed}, failed={self.failed})"
        )

    async def __aenter__(self):
        return self.start()

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    @property
    def is_running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def start(self):
        """Start the consumer task on the running event loop."""
        if self._worker is not None:
            return self
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._worker = self._loop.create_task(self._consume())
        logger.debug("Dispatcher started")
        return self

    def _drop(self, task, reason):
        self.dropped += 1
        logger.warning(f"Failed to launch a task on the queue ({reason}). Discarding task.")
        if inspect.iscoroutine(task):
            task.close()
        return False

    def submit(self, task) -> bool:
        """
        Enqueue `task` without blocking. Safe to call from any thread.

        Every hand-off goes through the loop's callback queue, so tasks keep
        their submission order whichever thread submitted them. Never raises: if
        the dispatcher is not running the task is dropped and a warning is
        logged.

        Returns:
            bool: True if the task was queued.
        """
        with self._lock:
            if self._closed or not self.is_running:
                return self._drop(task, "dispatcher is not running")
            try:
                self._loop.call_soon_threadsafe(self._queue.put_nowait, task)
            except RuntimeError:
                return self._drop(task, "event loop is closed")
            self.submitted += 1
        return True

    async def _execute(self, task):
        try:
            result = task if inspect.isawaitable(task) else task()
            if inspect.isawaitable(result):
                await result
        except asyncio.CancelledError:
            raise
        except Exception:
            self.failed += 1
            logger.exception("Dispatched task failed")
        else:
            self.executed += 1

    async def _consume(self):
        while True:
            task = await self._queue.get()
            if task is _STOP:
                logger.debug("The task producer was disconnected. Dispatcher will exit.")
                return
            await self.limiter.until_ready()
            await self._execute(task)

    def close(self):
        """Stop accepting tasks. Already queued tasks still run."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            if self._queue is None or not self.is_running:
                return
            try:
                self._loop.call_soon_threadsafe(self._queue.put_nowait, _STOP)
            except RuntimeError:
                logger.debug("Event loop already closed; dispatcher not drained")

    async def aclose(self, timeout: float = None):
        """
        Close and wait until every queued task has run.

        With a `timeout`, tasks still queued when it expires are discarded and the
        consumer is cancelled.
        """
        self.close()
        if self._worker is None:
            return
        try:
            await asyncio.wait_for(asyncio.shield(self._worker), timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"Dispatcher did not drain within {timeout}s; "
                f"discarding {self._queue.qsize()} queued task(s)"
            )
            self._worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._worker
