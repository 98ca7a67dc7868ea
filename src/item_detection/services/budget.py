"""Usage budget tracking for the vision model."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from item_detection.domain.budget import BudgetStats
from item_detection.services.cache import KeyValueStore

HOUR_SECONDS = 3600
DAY_SECONDS = 86400
WARNING_RATIO = 0.8

_logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class BudgetService:
    """Hourly and daily usage counters with a derived cost estimate.

    Limits are observational: crossing 80% of a limit logs a warning but
    requests are never denied.
    """

    store: KeyValueStore
    max_requests_per_hour: int = 300
    max_requests_per_day: int = 3000
    max_cost_per_day: float = 150.0
    cost_per_image: float = 0.01
    clock: Callable[[], datetime] = field(default=_utc_now)

    async def record_usage(self, image_count: int) -> None:
        """Add a batch of analysed images to the hour and day buckets."""
        if image_count <= 0:
            return

        hourly_count = await self._increment(
            self.hourly_key(), image_count, HOUR_SECONDS
        )
        daily_count = await self._increment(self.daily_key(), image_count, DAY_SECONDS)
        hourly_cost = hourly_count * self.cost_per_image
        daily_cost = daily_count * self.cost_per_image

        _logger.info(
            "Vision usage recorded: hour=%s images ($%.2f) day=%s images ($%.2f)",
            hourly_count,
            hourly_cost,
            daily_count,
            daily_cost,
        )

        if daily_cost >= self.max_cost_per_day * WARNING_RATIO:
            _logger.warning(
                "Vision daily cost approaching limit: $%.2f / $%.2f",
                daily_cost,
                self.max_cost_per_day,
            )
        if daily_count >= self.max_requests_per_day * WARNING_RATIO:
            _logger.warning(
                "Vision daily request volume approaching limit: %s / %s",
                daily_count,
                self.max_requests_per_day,
            )
        if hourly_count >= self.max_requests_per_hour * WARNING_RATIO:
            _logger.warning(
                "Vision hourly request volume approaching limit: %s / %s",
                hourly_count,
                self.max_requests_per_hour,
            )

    async def get_stats(self) -> BudgetStats:
        """Return the current usage snapshot."""
        hourly = await self._read_count(self.hourly_key())
        daily = await self._read_count(self.daily_key())
        return BudgetStats(
            hourly_requests=hourly,
            daily_requests=daily,
            hourly_cost=hourly * self.cost_per_image,
            daily_cost=daily * self.cost_per_image,
            hourly_limit=self.max_requests_per_hour,
            daily_limit=self.max_requests_per_day,
            daily_cost_limit=self.max_cost_per_day,
        )

    async def reset_hourly(self) -> None:
        """Clear the current hour bucket."""
        await self.store.delete(self.hourly_key())
        _logger.info("Reset vision hourly usage counter")

    async def reset_daily(self) -> None:
        """Clear the current day bucket."""
        await self.store.delete(self.daily_key())
        _logger.info("Reset vision daily usage counter")

    def hourly_key(self) -> str:
        now = self.clock()
        return f"openai:usage:hour:{now.date().isoformat()}:{now.hour}"

    def daily_key(self) -> str:
        return f"openai:usage:day:{self.clock().date().isoformat()}"

    async def _increment(self, key: str, amount: int, ttl_seconds: int) -> int:
        # A bucket whose counter equals the amount was just created by this
        # write, so it gets its window TTL exactly once.
        try:
            new_value = await self.store.increment(key, amount)
        except Exception:
            _logger.exception("Failed to increment counter %s by %s", key, amount)
            return 0
        if new_value == amount:
            try:
                await self.store.expire(key, ttl_seconds)
            except Exception:
                _logger.exception("Failed to set expiry on counter %s", key)
        return new_value

    async def _read_count(self, key: str) -> int:
        try:
            value = await self.store.get(key)
            return int(value) if value is not None else 0
        except Exception:
            _logger.exception("Failed to read counter %s", key)
            return 0
