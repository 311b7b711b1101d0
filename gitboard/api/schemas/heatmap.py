from datetime import date
from typing import Literal

from pydantic import BaseModel

from gitboard.services.calendar import YearContributions
from gitboard.services.calendar import chunk_weeks
from gitboard.services.calendar import contribution_band
from gitboard.services.contributions import HeatmapResult
from gitboard.services.freshness import format_wait


class HeatmapDay(BaseModel):
    """Single day item used in the heatmap response."""

    date: date
    count: int
    level: int


class HeatmapYear(BaseModel):
    """One year of contributions grouped into chunks of seven days."""

    year: int
    total: int
    max_count: int
    weeks: list[list[HeatmapDay]]

    @classmethod
    def from_year(cls, year_data: YearContributions) -> "HeatmapYear":
        max_count = year_data.max_count
        return cls(
            year=year_data.year,
            total=year_data.total,
            max_count=max_count,
            weeks=[
                [
                    HeatmapDay(
                        date=day.date,
                        count=day.count,
                        level=int(contribution_band(day.count, max_count)),
                    )
                    for day in week
                ]
                for week in chunk_weeks(year_data.days)
            ],
        )


class HeatmapResponse(BaseModel):
    """Contribution heatmap of a user, all years most recent first."""

    username: str
    status: Literal["refreshed", "already_fresh"]
    wait_hours: float | None = None
    wait_message: str | None = None
    total: int
    years: list[HeatmapYear]

    @classmethod
    def from_result(cls, result: HeatmapResult) -> "HeatmapResponse":
        wait_message = None
        if result.wait_hours is not None:
            wait_message = (
                "Contributions were refreshed recently. "
                f"You can update again in {format_wait(result.wait_hours)}."
            )
        return cls(
            username=result.username,
            status=result.status,
            wait_hours=result.wait_hours,
            wait_message=wait_message,
            total=result.total,
            years=[HeatmapYear.from_year(year) for year in result.years],
        )
