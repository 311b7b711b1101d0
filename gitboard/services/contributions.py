import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from dataclasses import field
from datetime import UTC
from datetime import datetime
from typing import Literal

from starlette.concurrency import run_in_threadpool

from gitboard.clients.github_client import GitHubClient
from gitboard.services.calendar import YearContributions
from gitboard.services.calendar import normalize_year
from gitboard.services.errors import InvalidCredentialError
from gitboard.services.errors import NoActivityError
from gitboard.services.freshness import check_freshness
from gitboard.services.storage import ContributionStore

logger = logging.getLogger(__name__)

GitHubClientFactory = Callable[[str], GitHubClient]


@dataclass(frozen=True)
class HeatmapResult:
    """Contributions returned to the caller, with refresh gate metadata."""

    username: str
    status: Literal["refreshed", "already_fresh"]
    years: list[YearContributions] = field(default_factory=list)
    wait_hours: float | None = None

    @property
    def total(self) -> int:
        return sum(year.total for year in self.years)


def validate_token(token: str, prefixes: tuple[str, ...]) -> str:
    """Pre-flight check of the token format; not an authentication step."""

    token = token.strip()
    if not token or not token.startswith(prefixes):
        expected = " or ".join(prefixes)
        raise InvalidCredentialError(
            "Please provide a valid GitHub personal access token "
            f"(starts with {expected})"
        )
    return token


class ContributionAggregator:
    """Fetches a user's lifetime contributions and keeps the store in sync."""

    def __init__(
        self,
        store: ContributionStore,
        client_factory: GitHubClientFactory,
        fallback_creation_year: int = 2008,
        refresh_window_hours: float = 24.0,
        token_prefixes: tuple[str, ...] = ("ghp_", "github_pat_"),
    ) -> None:
        self._store = store
        self._client_factory = client_factory
        self._fallback_creation_year = fallback_creation_year
        self._refresh_window_hours = refresh_window_hours
        self._token_prefixes = token_prefixes

    async def load(
        self, token: str, username: str, now: datetime | None = None
    ) -> HeatmapResult:
        """Return stored contributions while fresh, otherwise refresh them."""

        now = now or datetime.now(UTC)
        username = username.strip()
        token = validate_token(token, self._token_prefixes)

        user = await run_in_threadpool(self._store.get_user, username)
        if user is not None:
            decision = check_freshness(
                user.last_contribution_update, now, self._refresh_window_hours
            )
            if not decision.allowed:
                stored = await run_in_threadpool(self._store.get_years, username)
                stored_years = [year for year in stored if year.total > 0]
                if stored_years:
                    logger.info(
                        "Serving stored contributions for %s, refresh in %.2fh",
                        username,
                        decision.wait_hours,
                    )
                    return HeatmapResult(
                        username=username,
                        status="already_fresh",
                        years=stored_years,
                        wait_hours=decision.wait_hours,
                    )

        years = await self.refresh(token, username, now=now)
        return HeatmapResult(username=username, status="refreshed", years=years)

    async def refresh(
        self, token: str, username: str, now: datetime | None = None
    ) -> list[YearContributions]:
        """Fetch every year since account creation and persist the results.

        Returns the years with any activity, most recent first.
        """

        now = now or datetime.now(UTC)
        client = self._client_factory(token)

        start_year = await self._resolve_creation_year(client, username)
        current_year = now.astimezone(UTC).year
        years = range(current_year, min(start_year, current_year) - 1, -1)

        # Fetches run concurrently; their writes go to the store one at a time.
        write_lock = asyncio.Lock()
        tasks = [
            asyncio.create_task(
                self._refresh_year(client, username, year, now, write_lock)
            )
            for year in years
        ]
        try:
            fetched = await asyncio.gather(*tasks)
        except Exception:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        active_years = sorted(
            (year for year in fetched if year.total > 0),
            key=lambda year: year.year,
            reverse=True,
        )
        if not active_years:
            raise NoActivityError(username)

        stored = await run_in_threadpool(self._store.get_years, username)
        total = sum(year.total for year in stored)
        await run_in_threadpool(self._store.update_totals, username, total, now)
        logger.info(
            "Refreshed %s: %d active years, %d contributions",
            username,
            len(active_years),
            total,
        )
        return active_years

    async def _resolve_creation_year(self, client: GitHubClient, username: str) -> int:
        try:
            account = await client.fetch_account(username)
        except Exception:
            logger.warning(
                "Error fetching creation date of %s, falling back to %d",
                username,
                self._fallback_creation_year,
                exc_info=True,
            )
            return self._fallback_creation_year

        await run_in_threadpool(self._store.upsert_user, username, account.avatar_url)
        return account.created_at.astimezone(UTC).year

    async def _refresh_year(
        self,
        client: GitHubClient,
        username: str,
        year: int,
        now: datetime,
        write_lock: asyncio.Lock,
    ) -> YearContributions:
        raw_days = await client.fetch_contribution_days(username, year)
        normalized = normalize_year(year, raw_days, today=now.astimezone(UTC).date())
        async with write_lock:
            await run_in_threadpool(
                self._store.upsert_year, username, year, normalized.days
            )
        return normalized
