import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from dataclasses import field

from starlette.concurrency import run_in_threadpool

from gitboard.services.calendar import Band
from gitboard.services.calendar import ContributionDay
from gitboard.services.calendar import YearContributions
from gitboard.services.calendar import contribution_band
from gitboard.services.storage import ContributionStore

logger = logging.getLogger(__name__)

RECENT_DAYS = 49


@dataclass(frozen=True)
class RecentDay:
    day: ContributionDay
    band: Band


@dataclass(frozen=True)
class LeaderboardEntry:
    username: str
    avatar_url: str | None
    total_contributions: int
    years: list[YearContributions] = field(default_factory=list)
    recent: list[RecentDay] = field(default_factory=list)


def recent_heatmap(
    years: list[YearContributions], size: int = RECENT_DAYS
) -> list[RecentDay]:
    """Band the last `size` stored days against their own max.

    Early in a year the window continues into the tail of the previous one.
    """

    days: list[ContributionDay] = []
    for year_data in sorted(years, key=lambda year: year.year, reverse=True):
        days[:0] = year_data.days[-(size - len(days)):]
        if len(days) >= size:
            break

    max_count = max((day.count for day in days), default=0)
    return [
        RecentDay(day=day, band=contribution_band(day.count, max_count))
        for day in days
    ]


LeaderboardSnapshot = list[LeaderboardEntry]


class LeaderboardAssembler:
    """Builds leaderboard entries from stored users and their yearly records."""

    def __init__(self, store: ContributionStore, default_limit: int = 10) -> None:
        self._store = store
        self._default_limit = default_limit

    def list(self, limit: int | None = None) -> LeaderboardSnapshot:
        entries: list[LeaderboardEntry] = []
        for user in self._store.top_users(limit or self._default_limit):
            years = self._store.get_years(user.username)
            entries.append(
                LeaderboardEntry(
                    username=user.username,
                    avatar_url=user.avatar_url,
                    total_contributions=user.total_contributions,
                    years=years,
                    recent=recent_heatmap(years),
                )
            )
        return entries

    async def watch(
        self, limit: int | None = None
    ) -> AsyncIterator[LeaderboardSnapshot]:
        """Yield the leaderboard now and again after every user table change.

        Notifications that arrive while a snapshot is being consumed collapse
        into a single re-run.
        """

        loop = asyncio.get_running_loop()
        changed = asyncio.Event()

        def on_change() -> None:
            loop.call_soon_threadsafe(changed.set)

        subscription = self._store.subscribe(on_change)
        try:
            yield await run_in_threadpool(self.list, limit)
            while True:
                await changed.wait()
                changed.clear()
                logger.debug("github_users changed, rebuilding leaderboard")
                yield await run_in_threadpool(self.list, limit)
        finally:
            subscription.cancel()
