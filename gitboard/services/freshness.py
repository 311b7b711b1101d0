import math
from dataclasses import dataclass
from datetime import UTC
from datetime import datetime

SECONDS_PER_HOUR = 3600


@dataclass(frozen=True)
class FreshnessDecision:
    allowed: bool
    wait_hours: float | None = None


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (as returned by SQLite) as UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def check_freshness(
    last_update: datetime | None,
    now: datetime,
    window_hours: float = 24.0,
) -> FreshnessDecision:
    """Decide whether a user's stored contributions may be refreshed.

    A refresh is allowed once `window_hours` have elapsed since the last
    successful one, or when nothing has been stored yet.
    """

    if last_update is None:
        return FreshnessDecision(allowed=True)

    elapsed = as_utc(now) - as_utc(last_update)
    elapsed_hours = elapsed.total_seconds() / SECONDS_PER_HOUR
    if elapsed_hours >= window_hours:
        return FreshnessDecision(allowed=True)

    return FreshnessDecision(allowed=False, wait_hours=window_hours - elapsed_hours)


def format_wait(wait_hours: float) -> str:
    """Render a wait as hours and minutes, rounding minutes up."""

    total_minutes = max(1, math.ceil(round(wait_hours * 60, 6)))
    hours, minutes = divmod(total_minutes, 60)

    parts: list[str] = []
    if hours:
        parts.append(f"{hours} hour{'' if hours == 1 else 's'}")
    if minutes:
        parts.append(f"{minutes} minute{'' if minutes == 1 else 's'}")
    return " and ".join(parts)
