from pydantic import BaseModel

from gitboard.api.schemas.heatmap import HeatmapDay
from gitboard.api.schemas.heatmap import HeatmapYear
from gitboard.services.leaderboard import LeaderboardEntry


class LeaderboardItem(BaseModel):
    """Leaderboard row with its yearly calendars and a 7x7 recent grid."""

    rank: int
    username: str
    avatar_url: str | None
    total_contributions: int
    recent: list[HeatmapDay]
    years: list[HeatmapYear]

    @classmethod
    def from_entry(cls, rank: int, entry: LeaderboardEntry) -> "LeaderboardItem":
        return cls(
            rank=rank,
            username=entry.username,
            avatar_url=entry.avatar_url,
            total_contributions=entry.total_contributions,
            recent=[
                HeatmapDay(
                    date=item.day.date, count=item.day.count, level=int(item.band)
                )
                for item in entry.recent
            ],
            years=[HeatmapYear.from_year(year) for year in entry.years],
        )


class LeaderboardResponse(BaseModel):
    entries: list[LeaderboardItem]

    @classmethod
    def from_entries(cls, entries: list[LeaderboardEntry]) -> "LeaderboardResponse":
        return cls(
            entries=[
                LeaderboardItem.from_entry(rank, entry)
                for rank, entry in enumerate(entries, start=1)
            ]
        )
