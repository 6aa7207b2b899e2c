"""Retry policy: backoff schedule and retryability classification.

Delay computation is pure; the orchestrator owns the actual sleep.  The
retryability predicate is a plain function so callers can swap it when
the provider changes its error wording.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable

RetryPredicate = Callable[[int, str], bool]

RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({429, 502, 503, 504})

_RATE_LIMIT_PATTERN = re.compile(
    r"rate[\s_-]?limit|too many requests|quota|throttl|resource[\s_-]?exhausted",
    re.IGNORECASE,
)


def compute_backoff_delay(
    attempt_index: int,
    base_delay: float,
    backoff_multiplier: float,
    max_delay: float,
) -> float:
    """Return ``min(base_delay * backoff_multiplier ** attempt_index, max_delay)``."""
    if attempt_index < 0:
        raise ValueError(f"attempt_index must be >= 0, got {attempt_index}")
    return min(base_delay * backoff_multiplier**attempt_index, max_delay)


def is_rate_limit_error(status_code: int, message: str) -> bool:
    """Default predicate: is this HTTP failure transient or a throttle?"""
    if status_code in RETRYABLE_STATUS_CODES:
        return True
    return bool(message) and _RATE_LIMIT_PATTERN.search(message) is not None


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt budget and exponential backoff with a ceiling.

    Attributes:
        max_retries: Retries after the first attempt (``attempts = max_retries + 1``).
        base_delay: Seconds to wait after the first failed attempt.
        backoff_multiplier: Growth factor per attempt (>= 1 keeps delays
            non-decreasing).
        max_delay: Upper bound on any single delay, in seconds.
    """

    max_retries: int = 3
    base_delay: float = 1.0
    backoff_multiplier: float = 2.0
    max_delay: float = 10.0

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("base_delay and max_delay must be >= 0")
        if self.backoff_multiplier < 1:
            raise ValueError(
                f"backoff_multiplier must be >= 1, got {self.backoff_multiplier}"
            )

    @property
    def attempts(self) -> int:
        return self.max_retries + 1

    def delay_for(self, attempt_index: int) -> float:
        return compute_backoff_delay(
            attempt_index, self.base_delay, self.backoff_multiplier, self.max_delay
        )
