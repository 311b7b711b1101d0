import asyncio
import threading
from datetime import UTC
from datetime import datetime
from datetime import timedelta

import pytest

from gitboard.services.contributions import ContributionAggregator
from gitboard.services.errors import InvalidCredentialError
from gitboard.services.errors import NoActivityError
from gitboard.services.errors import RateLimitedError
from gitboard.services.errors import UpstreamUnavailableError
from gitboard.services.errors import UserNotFoundError
from gitboard.services.freshness import as_utc
from gitboard.services.leaderboard import LeaderboardAssembler
from gitboard.services.storage import ContributionStore
from tests.fakes import FakeGitHubClient

TOKEN = "ghp_testtoken"
NOW = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)
ALICE_DAYS = {
    2021: [("2021-03-01", 5), ("2021-03-02", 2)],
    2024: [("2024-02-29", 4)],
}


def test_refresh_returns_active_years_most_recent_first(
    store: ContributionStore,
    fake_github: FakeGitHubClient,
    aggregator: ContributionAggregator,
) -> None:
    fake_github.days_by_year = ALICE_DAYS

    years = asyncio.run(aggregator.refresh(TOKEN, "alice", now=NOW))

    assert [year.year for year in years] == [2024, 2021]
    assert sum(year.total for year in years) == 11
    assert sorted(fake_github.requested_years) == list(range(2020, 2026))

    user = store.get_user("alice")
    assert user is not None
    assert user.total_contributions == 11
    assert user.avatar_url == "https://avatars.example/u.png"
    assert as_utc(user.last_contribution_update) == NOW


def test_refresh_persists_every_year_normalized(
    store: ContributionStore,
    fake_github: FakeGitHubClient,
    aggregator: ContributionAggregator,
) -> None:
    fake_github.days_by_year = ALICE_DAYS

    asyncio.run(aggregator.refresh(TOKEN, "alice", now=NOW))

    stored = {year.year: year for year in store.get_years("alice")}
    assert sorted(stored) == [2020, 2021, 2022, 2023, 2024, 2025]
    assert len(stored[2020].days) == 366
    assert len(stored[2023].days) == 365
    assert stored[2025].days[-1].date == NOW.date()


def test_load_within_window_returns_stored_data(
    store: ContributionStore,
    fake_github: FakeGitHubClient,
    aggregator: ContributionAggregator,
) -> None:
    fake_github.days_by_year = ALICE_DAYS
    first = asyncio.run(aggregator.load(TOKEN, "alice", now=NOW))
    fake_github.year_errors = {2025: UpstreamUnavailableError("should not be called")}
    fake_github.requested_years.clear()

    second = asyncio.run(aggregator.load(TOKEN, "alice", now=NOW + timedelta(hours=1)))

    assert first.status == "refreshed"
    assert second.status == "already_fresh"
    assert second.wait_hours == pytest.approx(23)
    assert second.years == first.years
    assert second.total == 11
    assert fake_github.requested_years == []


def test_load_after_window_refreshes_again(
    fake_github: FakeGitHubClient,
    aggregator: ContributionAggregator,
) -> None:
    fake_github.days_by_year = ALICE_DAYS
    asyncio.run(aggregator.load(TOKEN, "alice", now=NOW))
    fake_github.days_by_year = {2024: [("2024-02-29", 10)]}

    result = asyncio.run(aggregator.load(TOKEN, "alice", now=NOW + timedelta(hours=24)))

    assert result.status == "refreshed"
    assert [year.year for year in result.years] == [2024]
    assert result.total == 10


def test_lookup_failure_falls_back_to_founding_year(
    store: ContributionStore,
    fake_github: FakeGitHubClient,
    aggregator: ContributionAggregator,
) -> None:
    fake_github.account_error = UpstreamUnavailableError("lookup failed")
    fake_github.days_by_year = ALICE_DAYS

    asyncio.run(aggregator.refresh(TOKEN, "alice", now=NOW))

    assert min(fake_github.requested_years) == 2008
    user = store.get_user("alice")
    assert user is not None
    assert user.avatar_url is None
    assert user.total_contributions == 11


def test_single_year_failure_aborts_refresh(
    store: ContributionStore,
    fake_github: FakeGitHubClient,
    aggregator: ContributionAggregator,
) -> None:
    fake_github.days_by_year = ALICE_DAYS
    fake_github.year_errors = {2022: RateLimitedError()}

    with pytest.raises(RateLimitedError):
        asyncio.run(aggregator.refresh(TOKEN, "alice", now=NOW))

    user = store.get_user("alice")
    assert user is not None
    assert user.total_contributions == 0
    assert user.last_contribution_update is None


def test_refresh_without_activity_raises(
    fake_github: FakeGitHubClient,
    aggregator: ContributionAggregator,
) -> None:
    with pytest.raises(NoActivityError) as exc_info:
        asyncio.run(aggregator.refresh(TOKEN, "ghost", now=NOW))

    assert exc_info.value.message == 'No contributions found for user "ghost"'


def test_load_rejects_token_with_unknown_prefix(
    fake_github: FakeGitHubClient,
    aggregator: ContributionAggregator,
) -> None:
    with pytest.raises(InvalidCredentialError):
        asyncio.run(aggregator.load("not-a-token", "alice", now=NOW))

    assert fake_github.requested_years == []


def test_user_without_stored_years_is_treated_as_new(
    store: ContributionStore,
    fake_github: FakeGitHubClient,
    aggregator: ContributionAggregator,
) -> None:
    store.upsert_user("alice", None)
    store.update_totals("alice", 0, NOW)
    fake_github.days_by_year = ALICE_DAYS

    result = asyncio.run(aggregator.load(TOKEN, "alice", now=NOW + timedelta(hours=1)))

    assert result.status == "refreshed"
    assert result.total == 11


def test_unknown_user_leaves_no_row_behind(
    store: ContributionStore,
    fake_github: FakeGitHubClient,
    aggregator: ContributionAggregator,
) -> None:
    fake_github.account_error = UserNotFoundError("nosuchuser")
    fake_github.year_errors = {
        year: UserNotFoundError("nosuchuser") for year in range(2008, 2026)
    }

    with pytest.raises(UserNotFoundError):
        asyncio.run(aggregator.load(TOKEN, "nosuchuser", now=NOW))

    assert store.get_user("nosuchuser") is None
    assert LeaderboardAssembler(store).list() == []


def test_store_writes_run_off_the_event_loop_thread(
    store: ContributionStore,
    fake_github: FakeGitHubClient,
    aggregator: ContributionAggregator,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    fake_github.days_by_year = ALICE_DAYS
    write_threads: set[int] = set()
    upsert_year = store.upsert_year

    def recording_upsert_year(*args, **kwargs) -> None:
        write_threads.add(threading.get_ident())
        upsert_year(*args, **kwargs)

    monkeypatch.setattr(store, "upsert_year", recording_upsert_year)

    async def scenario() -> int:
        await aggregator.refresh(TOKEN, "alice", now=NOW)
        return threading.get_ident()

    loop_thread = asyncio.run(scenario())

    assert write_threads
    assert loop_thread not in write_threads
