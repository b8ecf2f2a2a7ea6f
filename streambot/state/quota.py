"""
Approximate YouTube Data API quota usage for the current Pacific-time day.

Google resets quota at midnight America/Los_Angeles, so usage is keyed by
that calendar date and starts over when the date changes.
"""

import json
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable
from zoneinfo import ZoneInfo

from loguru import logger


QUOTA_TIMEZONE = ZoneInfo("America/Los_Angeles")
DEFAULT_DAILY_LIMIT = 10_000


@dataclass
class QuotaInfo:
    """Usage snapshot for status views and the ``{quota_percent}`` variable."""
    daily_limit: int
    used: int
    day: str  # YYYY-MM-DD in Pacific time

    @property
    def remaining(self) -> int:
        return max(0, self.daily_limit - self.used)

    @property
    def percent_used(self) -> int:
        if self.daily_limit <= 0:
            return 0
        return min(100, round(self.used / self.daily_limit * 100))

    def to_dict(self) -> dict:
        return {
            "daily_limit": self.daily_limit,
            "used": self.used,
            "remaining": self.remaining,
            "percent_used": self.percent_used,
            "day": self.day,
        }


class QuotaTracker:
    """
    Persists today's unit count to a small JSON file.

    Tracking is best effort: an unreadable file starts the day over and a
    failed write is logged, never raised.
    """

    def __init__(
        self,
        path: Path,
        daily_limit: int = DEFAULT_DAILY_LIMIT,
        clock: Callable[[], datetime] | None = None,
    ):
        self.path = path
        self.daily_limit = daily_limit
        self.clock = clock or (lambda: datetime.now(QUOTA_TIMEZONE))

    def _today(self) -> str:
        return self.clock().astimezone(QUOTA_TIMEZONE).strftime("%Y-%m-%d")

    def _load_used(self, today: str) -> int:
        if not self.path.exists():
            return 0
        try:
            data = json.loads(self.path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Unreadable quota state {self.path}: {e}")
            return 0
        if data.get("day") != today:
            return 0
        return max(0, int(data.get("used") or 0))

    def _save(self, today: str, used: int) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps({"day": today, "used": used}, indent=2))
        except OSError as e:
            logger.warning(f"Failed to save quota state {self.path}: {e}")

    def info(self) -> QuotaInfo:
        today = self._today()
        return QuotaInfo(daily_limit=self.daily_limit, used=self._load_used(today), day=today)

    def add(self, units: int) -> QuotaInfo:
        """Charge ``units`` against today's tally."""
        if units <= 0:
            return self.info()
        today = self._today()
        used = self._load_used(today) + units
        self._save(today, used)
        return QuotaInfo(daily_limit=self.daily_limit, used=used, day=today)

    def reset(self) -> QuotaInfo:
        today = self._today()
        self._save(today, 0)
        return QuotaInfo(daily_limit=self.daily_limit, used=0, day=today)
