import logging
import time
from collections import deque
from dataclasses import dataclass
from threading import Lock
from typing import Optional

from finbot.core.config import get_settings

logger = logging.getLogger(__name__)

_DAY_SECONDS = 24 * 60 * 60
_MINUTE_SECONDS = 60


@dataclass(frozen=True)
class BudgetStats:
    daily_used: int
    daily_limit: int
    percent_used: float
    can_proceed: bool


class AIRequestBudget:
    """Daily + per-minute caps on outbound model calls.

    ``can_proceed()`` and ``record()`` are separate calls, so two callers can
    both pass the check before either records. The caps are soft.
    """

    def __init__(self, *, max_daily: int, max_per_minute: int) -> None:
        self._max_daily = max(0, int(max_daily))
        self._max_per_minute = max(0, int(max_per_minute))
        self._lock = Lock()
        self._daily_count = 0
        self._daily_window_start = time.monotonic()
        self._minute_timestamps: deque[float] = deque()

    @property
    def max_daily(self) -> int:
        return self._max_daily

    @property
    def max_per_minute(self) -> int:
        return self._max_per_minute

    def can_proceed(self) -> bool:
        now = time.monotonic()
        with self._lock:
            self._maybe_reset_daily(now)

            if self._daily_count >= self._max_daily:
                logger.warning(
                    "Daily AI request limit reached (%d/%d)",
                    self._daily_count,
                    self._max_daily,
                )
                return False

            cutoff = now - _MINUTE_SECONDS
            while self._minute_timestamps and self._minute_timestamps[0] <= cutoff:
                self._minute_timestamps.popleft()
            if len(self._minute_timestamps) >= self._max_per_minute:
                logger.warning(
                    "Per-minute AI request limit reached (%d/%d)",
                    len(self._minute_timestamps),
                    self._max_per_minute,
                )
                return False
            return True

    def record(self) -> None:
        now = time.monotonic()
        with self._lock:
            self._daily_count += 1
            self._minute_timestamps.append(now)
            daily_count = self._daily_count
        logger.info("AI requests today: %d/%d", daily_count, self._max_daily)

    def stats(self) -> BudgetStats:
        allowed = self.can_proceed()
        with self._lock:
            used = self._daily_count
        percent = (used / self._max_daily * 100) if self._max_daily else 100.0
        return BudgetStats(
            daily_used=used,
            daily_limit=self._max_daily,
            percent_used=round(percent, 2),
            can_proceed=allowed,
        )

    def reset(self) -> None:
        with self._lock:
            self._daily_count = 0
            self._daily_window_start = time.monotonic()
            self._minute_timestamps.clear()

    def _maybe_reset_daily(self, now: float) -> None:
        """Roll the daily window over (called under lock)."""
        if now - self._daily_window_start > _DAY_SECONDS:
            self._daily_count = 0
            self._daily_window_start = now
            logger.info("AI request budget reset (daily)")


_budget: Optional[AIRequestBudget] = None
_budget_lock = Lock()


def get_ai_request_budget() -> AIRequestBudget:
    """Return the process-wide budget, building it from settings on first use."""
    global _budget
    with _budget_lock:
        if _budget is None:
            settings = get_settings()
            _budget = AIRequestBudget(
                max_daily=settings.ai_max_daily_requests,
                max_per_minute=settings.ai_max_requests_per_minute,
            )
        return _budget


def reset_ai_request_budget() -> None:
    """Drop the process-wide budget so the next call rebuilds it from settings."""
    global _budget
    with _budget_lock:
        _budget = None
