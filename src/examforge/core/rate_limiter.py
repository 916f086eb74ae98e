"""Call budget tracking for the generation provider.

Two fixed-window counters, one per minute and one per UTC day, guard calls
to the external generation service. Windows reset lazily when checked;
there is no background timer.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

logger = logging.getLogger(__name__)

MINUTE_WINDOW_MS = 60_000

# Groq allows 30/min and 14,400/day; keep a safety margin below both.
DEFAULT_MAX_PER_MINUTE = 25
DEFAULT_MAX_PER_DAY = 14_000


@dataclass(frozen=True)
class RateLimitDecision:
    """Result of a budget check.

    Attributes:
        allowed: Whether a call may be made now.
        retry_after_ms: Milliseconds until the blocking window resets.
        reason: Human-readable explanation when not allowed.
    """

    allowed: bool
    retry_after_ms: int | None = None
    reason: str | None = None


@dataclass(frozen=True)
class RateLimiterStats:
    """Snapshot of current usage."""

    requests_this_minute: int
    max_per_minute: int
    requests_today: int
    max_per_day: int
    minute_reset_in_ms: int
    day_reset_in_ms: int


def _now_ms() -> float:
    return time.time() * 1000


def _next_utc_midnight_ms(now_ms: float) -> float:
    now = datetime.fromtimestamp(now_ms / 1000, tz=timezone.utc)
    tomorrow = (now + timedelta(days=1)).replace(hour=0, minute=0, second=0, microsecond=0)
    return tomorrow.timestamp() * 1000


class RateLimiter:
    """Per-minute and per-day call budget for one provider.

    One instance is the shared resource: construct it once and hand the same
    instance to every generator drawing on the same budget. `record_call()`
    must only follow a call that was actually dispatched, so a rejected
    `can_proceed()` never consumes budget.

    Example:
        >>> limiter = RateLimiter(max_per_minute=25)
        >>> decision = limiter.can_proceed()
        >>> if decision.allowed:
        ...     response = await llm.generate(prompt)
        ...     limiter.record_call()
    """

    def __init__(
        self,
        max_per_minute: int = DEFAULT_MAX_PER_MINUTE,
        max_per_day: int = DEFAULT_MAX_PER_DAY,
    ) -> None:
        """Initialize RateLimiter.

        Args:
            max_per_minute: Calls allowed per minute window.
            max_per_day: Calls allowed per UTC day.

        Raises:
            ValueError: If a limit is not positive.
        """
        if max_per_minute < 1 or max_per_day < 1:
            msg = "Rate limits must be positive"
            raise ValueError(msg)

        self.max_per_minute = max_per_minute
        self.max_per_day = max_per_day
        self._lock = threading.Lock()

        self._minute_count = 0
        self._minute_reset_at: float | None = None
        self._day_count = 0
        self._day_reset_at = _next_utc_midnight_ms(_now_ms())

    def can_proceed(self) -> RateLimitDecision:
        """Check whether a call fits in the current budget.

        Returns:
            RateLimitDecision, with retry_after_ms set when not allowed.
        """
        with self._lock:
            return self._check(_now_ms())

    def record_call(self) -> None:
        """Count one dispatched call against both windows."""
        with self._lock:
            self._record(_now_ms())

    def try_acquire(self) -> RateLimitDecision:
        """Check and record in one atomic step.

        Use this when the call is dispatched immediately after a successful
        check and multiple threads share the limiter.
        """
        with self._lock:
            now = _now_ms()
            decision = self._check(now)
            if decision.allowed:
                self._record(now)
            return decision

    def stats(self) -> RateLimiterStats:
        """Get current usage counts and time until each window resets."""
        with self._lock:
            now = _now_ms()
            self._reset_expired(now)
            minute_reset_in = 0 if self._minute_reset_at is None else max(0, self._minute_reset_at - now)
            return RateLimiterStats(
                requests_this_minute=self._minute_count,
                max_per_minute=self.max_per_minute,
                requests_today=self._day_count,
                max_per_day=self.max_per_day,
                minute_reset_in_ms=math.ceil(minute_reset_in),
                day_reset_in_ms=math.ceil(max(0, self._day_reset_at - now)),
            )

    def _reset_expired(self, now: float) -> None:
        if self._minute_reset_at is not None and now >= self._minute_reset_at:
            self._minute_count = 0
            self._minute_reset_at = None
            logger.debug("Minute window reset")

        if now >= self._day_reset_at:
            self._day_count = 0
            self._day_reset_at = _next_utc_midnight_ms(now)
            logger.debug("Day window reset")

    def _check(self, now: float) -> RateLimitDecision:
        self._reset_expired(now)

        if self._minute_count >= self.max_per_minute and self._minute_reset_at is not None:
            retry_after = max(1, math.ceil(self._minute_reset_at - now))
            return RateLimitDecision(
                allowed=False,
                retry_after_ms=retry_after,
                reason=f"Too many requests this minute. Try again in {math.ceil(retry_after / 1000)} seconds.",
            )

        if self._day_count >= self.max_per_day:
            retry_after = max(1, math.ceil(self._day_reset_at - now))
            return RateLimitDecision(
                allowed=False,
                retry_after_ms=retry_after,
                reason=(
                    f"Daily limit reached ({self.max_per_day} requests). "
                    f"Resets in {math.ceil(retry_after / 3_600_000)} hours."
                ),
            )

        return RateLimitDecision(allowed=True)

    def _record(self, now: float) -> None:
        self._reset_expired(now)
        if self._minute_reset_at is None:
            self._minute_reset_at = now + MINUTE_WINDOW_MS
        self._minute_count += 1
        self._day_count += 1
        logger.debug(
            f"Call recorded: {self._minute_count}/{self.max_per_minute} this minute, "
            f"{self._day_count}/{self.max_per_day} today"
        )
