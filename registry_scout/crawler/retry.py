# registry_scout/crawler/retry.py
"""
Bounded retry for operations that fail transiently (navigation, selector
waits, element interaction). Operations must be safe to repeat: nothing is
rolled back between attempts.
"""
from __future__ import annotations

import asyncio
import functools
from typing import Any, Awaitable, Callable, Optional, Tuple, Type, TypeVar

from registry_scout.errors import ExhaustedRetries
from registry_scout.logger import get_logger

__all__ = ("RetryExecutor", "retrying")

T = TypeVar("T")

log = get_logger("retry")

Sleep = Callable[[float], Awaitable[Any]]


class RetryExecutor:
    """Run an async operation up to ``max_attempts`` times.

    The pause between attempts is ``delay`` and is multiplied by ``backoff``
    after every failure (``backoff=1.0`` keeps it fixed), capped at
    ``max_delay``. Only exceptions listed in ``retry_on`` are retried; any
    other exception propagates at once.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        delay: float = 1.0,
        *,
        backoff: float = 1.0,
        max_delay: float = 60.0,
        retry_on: Tuple[Type[BaseException], ...] = (Exception,),
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if delay < 0:
            raise ValueError("delay must be >= 0")
        self.max_attempts = max_attempts
        self.delay = delay
        self.backoff = backoff
        self.max_delay = max_delay
        self.retry_on = retry_on
        self._sleep = sleep

    @classmethod
    def from_config(cls, config, **kwargs: Any) -> RetryExecutor:
        return cls(config.attempts, config.delay, backoff=config.backoff, **kwargs)

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        label: str = "operation",
        max_attempts: Optional[int] = None,
        delay: Optional[float] = None,
    ) -> T:
        attempts = max_attempts if max_attempts is not None else self.max_attempts
        pause = self.delay if delay is None else delay
        if attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if pause < 0:
            raise ValueError("delay must be >= 0")
        last: Optional[BaseException] = None
        for attempt in range(1, attempts + 1):
            try:
                return await operation()
            except self.retry_on as exc:
                last = exc
                if attempt >= attempts:
                    break
                log.debug("Retry %d/%d for %s after %.2f s: %s", attempt, attempts - 1, label, pause, exc)
                if pause > 0:
                    await self._sleep(pause)
                pause = min(pause * self.backoff, self.max_delay)
        log.warning("%s failed after %d attempt(s): %s", label, attempts, last)
        raise ExhaustedRetries(last, attempts) from last  # type: ignore[arg-type]


def retrying(label: Optional[str] = None) -> Callable:
    """Decorate an async method so it runs through ``self.retry`` (a RetryExecutor)."""

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        name = label or func.__name__

        @functools.wraps(func)
        async def wrapper(self, *args: Any, **kwargs: Any) -> T:
            return await self.retry.run(lambda: func(self, *args, **kwargs), label=name)

        return wrapper

    return decorator
