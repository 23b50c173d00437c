"""
Retry for outbound calls that own their retry policy.

Only the model runner retries, and only on transport errors; the
orchestrator itself never retries. Backoff doubles per attempt, is capped at
``max_delay`` and carries proportional jitter.
"""

import asyncio
import functools
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, Type

from shared.logging import get_logger


LogContext = Callable[..., Dict[str, Any]]


@dataclass
class RetryConfig:
    """Attempt budget and backoff shape."""

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 60.0
    jitter: float = 0.1

    def __post_init__(self):
        self.max_attempts = max(1, self.max_attempts)

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after failed ``attempt`` (1-based)."""
        delay = min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)
        if self.jitter:
            spread = delay * self.jitter
            delay += random.uniform(-spread, spread)
        return max(0.0, delay)


class RetryError(Exception):
    """Raised when every attempt failed."""

    def __init__(self, message: str, last_exception: Exception, attempts: int):
        super().__init__(message)
        self.last_exception = last_exception
        self.attempts = attempts


def retry_on_exception(
    exceptions: Tuple[Type[BaseException], ...] = (Exception,),
    config: Optional[RetryConfig] = None,
    operation: Optional[str] = None,
    log_context: Optional[LogContext] = None,
) -> Callable:
    """Retry an async callable on ``exceptions``.

    ``log_context`` receives the call's arguments and returns extra fields
    (for example the model name) for every retry log line. Exceptions not in
    ``exceptions`` propagate on the first attempt.
    """
    config = config or RetryConfig()

    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        name = operation or func.__name__
        logger = get_logger(f"workflow.retry.{name}")

        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            context = log_context(*args, **kwargs) if log_context else {}

            for attempt in range(1, config.max_attempts + 1):
                try:
                    result = await func(*args, **kwargs)
                except exceptions as e:
                    if attempt == config.max_attempts:
                        logger.error(
                            "Retries exhausted",
                            operation=name,
                            attempts=attempt,
                            error=str(e),
                            **context
                        )
                        raise RetryError(
                            f"{name} failed after {attempt} attempts",
                            last_exception=e,
                            attempts=attempt
                        ) from e

                    delay = config.delay_for(attempt)
                    logger.warning(
                        "Attempt failed, retrying",
                        operation=name,
                        attempt=attempt,
                        max_attempts=config.max_attempts,
                        delay=round(delay, 3),
                        error=str(e),
                        **context
                    )
                    await asyncio.sleep(delay)
                else:
                    if attempt > 1:
                        logger.info("Retry succeeded", operation=name, attempt=attempt, **context)
                    return result

        return wrapper

    return decorator
