from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TransientCompletionError(RuntimeError):
    """Upstream hiccup worth retrying: malformed JSON or an overloaded model."""


class RetriesExhaustedError(RuntimeError):
    def __init__(self, *, attempts: int, last_error: BaseException) -> None:
        super().__init__(f"Completion failed after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


@dataclass(frozen=True)
class RetryConfig:
    max_attempts: int = 3
    initial_delay_ms: float = 1000.0
    max_delay_ms: float = 10_000.0


def is_transient(error: BaseException) -> bool:
    return isinstance(error, (TransientCompletionError, json.JSONDecodeError))


def backoff_delays_ms(config: RetryConfig) -> list[float]:
    """Sleep lengths between consecutive attempts: d1 = initial, d(n+1) = min(2*dn, max)."""
    delays: list[float] = []
    delay = config.initial_delay_ms
    for _ in range(config.max_attempts - 1):
        delays.append(delay)
        delay = min(delay * 2, config.max_delay_ms)
    return delays


def retry_with_backoff(
    operation: Callable[[], T],
    config: RetryConfig = RetryConfig(),
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Run `operation`, retrying transient failures with exponential backoff.

    Non-transient errors propagate immediately. After `max_attempts`
    transient failures a RetriesExhaustedError is raised.
    """
    if config.max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    delays = backoff_delays_ms(config)
    for attempt in range(1, config.max_attempts + 1):
        try:
            return operation()
        except Exception as e:
            if not is_transient(e):
                raise
            if attempt == config.max_attempts:
                raise RetriesExhaustedError(attempts=attempt, last_error=e) from e
            delay_ms = delays[attempt - 1]
            logger.warning(
                "[backoff] attempt %d/%d failed (%s); retrying in %.0fms",
                attempt,
                config.max_attempts,
                e,
                delay_ms,
            )
            sleep(delay_ms / 1000.0)

    # Unreachable: the loop either returns or raises.
    raise AssertionError("retry_with_backoff fell through")
