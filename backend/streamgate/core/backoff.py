"""Backoff — exponential delay with jitter shared by storage connect and job restarts."""

import random
from typing import Callable


def backoff_delay_ms(
    attempt: int,
    base_delay_ms: int,
    max_delay_ms: int,
    jitter: Callable[[float, float], float] = random.uniform,
) -> int:
    """Exponential backoff with ±25% jitter. attempt is 0-based."""
    delay = min(max_delay_ms, (2 ** attempt) * base_delay_ms)
    return int(delay * jitter(0.75, 1.25))  # nosec B311
