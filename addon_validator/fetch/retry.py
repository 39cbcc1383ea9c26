"""
Deterministic retry policy for the fetch collaborator.

Backoff grows by a fixed multiplier up to a ceiling and carries no jitter, so
a run against the same failures always waits the same amount of time.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

import requests

from ..exceptions import FetchError

logger = logging.getLogger(__name__)

T = TypeVar('T')

_TRANSIENT_MARKERS = (
    'timeout',
    'timed out',
    'temporarily unavailable',
    'connection refused',
    'connection reset',
    'unexpected eof',
    'service unavailable',
)


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt budget and backoff schedule."""
    attempts: int = 3
    initial_delay: float = 0.5
    max_delay: float = 1.0
    multiplier: float = 2.0

    @classmethod
    def from_config(cls, fetch_config) -> 'RetryPolicy':
        return cls(
            attempts=fetch_config.retry_attempts,
            initial_delay=fetch_config.retry_initial_delay,
            max_delay=fetch_config.retry_max_delay,
            multiplier=fetch_config.retry_multiplier,
        )

    def backoff(self, attempt: int) -> float:
        """Delay after the given failed attempt (1-based)."""
        if attempt <= 0 or self.initial_delay <= 0:
            return 0.0
        multiplier = self.multiplier if self.multiplier > 0 else 2.0
        delay = self.initial_delay * (multiplier ** (attempt - 1))
        if self.max_delay > 0 and delay > self.max_delay:
            return self.max_delay
        return delay


class RetryableStatusError(FetchError):
    """An HTTP 429/5xx response on an attempt that still has retries left."""
    pass


def is_retryable_http_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


def is_retryable_network_error(error: Optional[BaseException]) -> bool:
    """
    True for transport failures that are usually transient.

    Timeouts and connection errors from requests always qualify; other errors
    qualify when their message names a transient condition.
    """
    if error is None:
        return False
    if isinstance(error, RetryableStatusError):
        return True
    if isinstance(error, (requests.exceptions.Timeout, requests.exceptions.ConnectionError,
                          EOFError, TimeoutError, ConnectionResetError)):
        return True
    message = str(error).lower()
    return any(marker in message for marker in _TRANSIENT_MARKERS)


def retry_call(func: Callable[[int], T], policy: RetryPolicy,
               is_retryable: Callable[[BaseException], bool] = is_retryable_network_error,
               sleep: Callable[[float], None] = time.sleep) -> T:
    """
    Call func until it succeeds, fails terminally or the attempt budget runs out.

    Args:
        func: Callable receiving the 1-based attempt number
        policy: Retry policy
        is_retryable: Classifier for errors worth another attempt
        sleep: Sleep function, replaceable in tests

    Returns:
        The first successful result

    Raises:
        The last error raised by func
    """
    attempts = max(policy.attempts, 1)
    for attempt in range(1, attempts + 1):
        try:
            return func(attempt)
        except Exception as e:
            if attempt == attempts or not is_retryable(e):
                raise
            delay = policy.backoff(attempt)
            logger.debug(f"Attempt {attempt}/{attempts} failed ({e}); retrying in {delay:.2f}s")
            if delay > 0:
                sleep(delay)
