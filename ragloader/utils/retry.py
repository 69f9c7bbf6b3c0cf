"""Bounded exponential-backoff retry for transient remote-provider errors.

Only errors that indicate a transient condition (connection drops,
timeouts, rate limiting, provider 5xx) are retried.  Everything else
propagates on the first attempt so a bad request never burns the retry
budget.  With ``attempts=1`` the wrapped call runs exactly once.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, TypeVar

import openai
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

logger = structlog.get_logger(logger_name=__name__)

_T = TypeVar("_T")

TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    openai.APIConnectionError,  # APITimeoutError subclasses this
    openai.RateLimitError,
    openai.InternalServerError,
)


async def call_with_retry(
    fn: Callable[..., Awaitable[_T]],
    *args: Any,
    attempts: int = 3,
    operation: str = "remote_call",
    initial_wait: float = 1.0,
    max_wait: float = 20.0,
    **kwargs: Any,
) -> _T:
    """Await ``fn(*args, **kwargs)``, retrying transient provider errors.

    Parameters
    ----------
    attempts:
        Total number of attempts (``1`` disables retrying).
    operation:
        Label used in the ``remote_call_retry`` log event.
    """

    def _log_retry(retry_state: Any) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "remote_call_retry",
            operation=operation,
            attempt=retry_state.attempt_number,
            max_attempts=attempts,
            error=str(exc),
        )

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max(1, attempts)),
        wait=wait_exponential_jitter(initial=initial_wait, max=max_wait),
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        before_sleep=_log_retry,
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            return await fn(*args, **kwargs)
    raise AssertionError("unreachable")  # pragma: no cover
