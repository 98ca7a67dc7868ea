"""Domain models for AI usage budgets."""

from dataclasses import dataclass


@dataclass(frozen=True)
class BudgetStats:
    """Snapshot of vision usage against configured limits."""

    hourly_requests: int
    daily_requests: int
    hourly_cost: float
    daily_cost: float
    hourly_limit: int
    daily_limit: int
    daily_cost_limit: float

    @property
    def hourly_limit_reached(self) -> bool:
        return self.hourly_requests >= self.hourly_limit

    @property
    def daily_limit_reached(self) -> bool:
        return self.daily_requests >= self.daily_limit

    @property
    def daily_cost_limit_reached(self) -> bool:
        return self.daily_cost >= self.daily_cost_limit

    @property
    def remaining_hourly_requests(self) -> int:
        return max(0, self.hourly_limit - self.hourly_requests)

    @property
    def remaining_daily_requests(self) -> int:
        return max(0, self.daily_limit - self.daily_requests)

    @property
    def remaining_daily_budget(self) -> float:
        return max(0.0, self.daily_cost_limit - self.daily_cost)

    def to_dict(self) -> dict[str, object]:
        """Return counters, limits and derived capacity as a flat mapping."""
        return {
            "hourly_requests": self.hourly_requests,
            "daily_requests": self.daily_requests,
            "hourly_cost": round(self.hourly_cost, 4),
            "daily_cost": round(self.daily_cost, 4),
            "hourly_limit": self.hourly_limit,
            "daily_limit": self.daily_limit,
            "daily_cost_limit": self.daily_cost_limit,
            "remaining_hourly_requests": self.remaining_hourly_requests,
            "remaining_daily_requests": self.remaining_daily_requests,
            "remaining_daily_budget": round(self.remaining_daily_budget, 4),
            "hourly_limit_reached": self.hourly_limit_reached,
            "daily_limit_reached": self.daily_limit_reached,
            "daily_cost_limit_reached": self.daily_cost_limit_reached,
        }
