"""Reconnect delay policy for streaming connections."""

from __future__ import annotations

import random
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class BackoffPolicy:
    """Exponential backoff with a cap and symmetric jitter.

    The delay before attempt ``n`` (n >= 2) is::

        min(base_delay * 2 ** (n - 1), max_delay) * (1 + U(-jitter, +jitter))

    so after a failed first attempt the second one waits about ``2 * base_delay``.
    All values are in seconds.
    """

    base_delay: float = 1.0
    max_delay: float = 30.0
    max_attempts: int = 5
    jitter: float = 0.1

    def __post_init__(self) -> None:
        if self.base_delay <= 0 or self.max_delay <= 0:
            raise ValueError("backoff delays must be positive")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if not 0 <= self.jitter < 1:
            raise ValueError("jitter must be in [0, 1)")

    def raw_delay(self, attempt: int) -> float:
        """Delay before ``attempt`` without jitter."""
        if attempt < 1:
            raise ValueError("attempt numbers start at 1")
        # Clamp the exponent so large attempt numbers cannot overflow.
        exponent = min(attempt - 1, 62)
        return min(self.base_delay * 2**exponent, self.max_delay)

    def delay(self, attempt: int, rng: random.Random | None = None) -> float:
        """Delay before ``attempt`` with jitter applied."""
        uniform = rng.uniform if rng is not None else random.uniform
        return self.raw_delay(attempt) * (1 + uniform(-self.jitter, self.jitter))

    def exhausted(self, attempt: int) -> bool:
        """True once ``attempt`` attempts have been used up."""
        return attempt >= self.max_attempts

    @classmethod
    def from_millis(cls, base_ms: int, max_ms: int, max_attempts: int) -> BackoffPolicy:
        return cls(base_delay=base_ms / 1000.0, max_delay=max_ms / 1000.0, max_attempts=max_attempts)
