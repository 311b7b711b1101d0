from collections.abc import Iterable
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from datetime import timedelta
from enum import IntEnum


@dataclass(frozen=True)
class ContributionDay:
    """Contribution count recorded for one UTC calendar day."""

    date: date
    count: int

    def to_dict(self) -> dict[str, str | int]:
        return {"date": self.date.isoformat(), "count": self.count}


@dataclass(frozen=True)
class YearContributions:
    """Dense, date-ordered contribution days of a single year."""

    year: int
    days: tuple[ContributionDay, ...]

    @property
    def total(self) -> int:
        return sum(day.count for day in self.days)

    @property
    def max_count(self) -> int:
        return max((day.count for day in self.days), default=0)


class Band(IntEnum):
    """Heatmap intensity bands, ordered from empty to most active."""

    ZERO = 0
    LOW = 1
    MID_LOW = 2
    MID_HIGH = 3
    HIGH = 4


def contribution_band(count: int, max_count: int) -> Band:
    """Map a daily count to a band relative to the maximum of its window."""

    if count <= 0 or max_count <= 0:
        return Band.ZERO

    ratio = count / max_count
    if ratio <= 0.2:
        return Band.LOW
    if ratio <= 0.4:
        return Band.MID_LOW
    if ratio <= 0.7:
        return Band.MID_HIGH
    return Band.HIGH


def year_end(year: int, today: date) -> date:
    """Last day shown for a year: Dec 31, or today for the current year."""

    last_day = date(year, 12, 31)
    if year == today.year:
        return min(last_day, today)
    return last_day


def normalize_year(
    year: int,
    days: Iterable[ContributionDay],
    today: date,
) -> YearContributions:
    """Expand sparse contribution days into one entry per day of the year.

    Days outside the year window are dropped and missing days count as zero.
    """

    counts_by_date = {day.date: day.count for day in days}

    dense_days: list[ContributionDay] = []
    current_day = date(year, 1, 1)
    last_day = year_end(year, today)
    while current_day <= last_day:
        dense_days.append(
            ContributionDay(date=current_day, count=counts_by_date.get(current_day, 0))
        )
        current_day += timedelta(days=1)

    return YearContributions(year=year, days=tuple(dense_days))


def chunk_weeks(
    days: Sequence[ContributionDay], size: int = 7
) -> list[list[ContributionDay]]:
    return [list(days[index : index + size]) for index in range(0, len(days), size)]


def parse_days(raw_days: Iterable[dict[str, object]]) -> list[ContributionDay]:
    """Parse stored `{date, count}` items, skipping malformed entries."""

    parsed: list[ContributionDay] = []
    for item in raw_days:
        raw_day = item.get("date")
        raw_count = item.get("count")
        if not isinstance(raw_day, str) or not isinstance(raw_count, int):
            continue

        try:
            parsed_day = date.fromisoformat(raw_day)
        except ValueError:
            continue

        parsed.append(ContributionDay(date=parsed_day, count=max(0, raw_count)))

    return parsed
