"""Retrying vendor calls (OpenAI, HeyGen) with exponential backoff."""
from __future__ import annotations

import functools
import random
import time
from typing import Any, Callable, Iterator, Optional, Tuple, Type

from career_agent.log import get_logger

log = get_logger(__name__)


def backoff_delays(
    max_attempts: int,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    backoff_factor: float = 2.0,
    jitter: bool = True,
) -> Iterator[float]:
    """Seconds to wait before each retry; ``max_attempts - 1`` values in total.

    With jitter each wait is scaled by a random factor in [0.5, 1.5).
    """
    for n in range(max_attempts - 1):
        delay = min(base_delay * backoff_factor ** n, max_delay)
        yield delay * (0.5 + random.random()) if jitter else delay


def retry(
    *,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    backoff_factor: float = 2.0,
    jitter: bool = True,
    retryable: Tuple[Type[BaseException], ...] = (Exception,),
    giveup: Optional[Callable[[BaseException], bool]] = None,
    sleep: Optional[Callable[[float], None]] = None,
) -> Callable:
    """Decorator: call again on *retryable* errors until the delays run out.

    ``giveup(exc)`` returning True re-raises at once, e.g. for a 4xx that
    another attempt will not fix. ``sleep`` defaults to ``time.sleep``,
    resolved per call.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

    def decorator(fn: Callable) -> Callable:
        name = getattr(fn, "__qualname__", repr(fn))

        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            delays = backoff_delays(max_attempts, base_delay, max_delay, backoff_factor, jitter)
            attempt = 0
            while True:
                attempt += 1
                try:
                    return fn(*args, **kwargs)
                except retryable as exc:
                    if giveup is not None and giveup(exc):
                        log.debug("%s: not retrying %s", name, type(exc).__name__)
                        raise
                    delay = next(delays, None)
                    if delay is None:
                        log.error("%s failed after %d attempts: %s", name, attempt, exc)
                        raise
                    log.warning(
                        "%s attempt %d/%d failed (%s), retrying in %.1fs",
                        name, attempt, max_attempts, exc, delay,
                    )
                    (sleep or time.sleep)(delay)

        return wrapper

    return decorator
