"""
Retry utilities with exponential backoff.

Provides bounded retry logic for unreliable operations like LLM calls.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_retries: int = 3
    base_delay: float = 0.5  # Base delay in seconds
    max_delay: float = 10.0  # Maximum delay in seconds
    exponential_base: float = 2.0
    retryable_exceptions: tuple = field(
        default_factory=lambda: (TimeoutError, ConnectionError)
    )

    def delay_for(self, attempt: int) -> float:
        return min(self.base_delay * (self.exponential_base**attempt), self.max_delay)


DEFAULT_RETRY_CONFIG = RetryConfig()


async def execute_with_retry(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    config: RetryConfig | None = None,
    fallback_response: T | None = None,
    on_retry: Callable[[int, Exception], None] | None = None,
    **kwargs: Any,
) -> T:
    """
    Await a coroutine function with retry logic and exponential backoff.

    Args:
        func: Coroutine function to execute
        *args: Positional arguments for the function
        config: Retry configuration (uses defaults if None)
        fallback_response: Value to return if all retries fail (if None, raises exception)
        on_retry: Optional callback called on each retry (receives attempt number and exception)
        **kwargs: Keyword arguments for the function

    Returns:
        The function result or fallback_response

    Raises:
        The last exception if all retries fail and no fallback is provided
    """
    config = config or DEFAULT_RETRY_CONFIG
    last_exception: Exception | None = None
    name = getattr(func, "__name__", repr(func))

    for attempt in range(config.max_retries):
        try:
            return await func(*args, **kwargs)
        except config.retryable_exceptions as exc:
            last_exception = exc
            if attempt >= config.max_retries - 1:
                logger.error(
                    "All %d attempts failed for %s. Last error: %s",
                    config.max_retries,
                    name,
                    exc,
                )
                break

            delay = config.delay_for(attempt)
            logger.warning(
                "Attempt %d/%d failed for %s: %s. Retrying in %.1fs...",
                attempt + 1,
                config.max_retries,
                name,
                exc,
                delay,
            )
            if on_retry:
                on_retry(attempt + 1, exc)
            if delay > 0:
                await asyncio.sleep(delay)

    if fallback_response is not None:
        logger.info("Using fallback response for %s", name)
        return fallback_response

    if last_exception:
        raise last_exception

    raise RuntimeError(f"Unexpected state in retry logic for {name}")
