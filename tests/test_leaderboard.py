import asyncio
from datetime import UTC
from datetime import date
from datetime import datetime
from datetime import timedelta

from gitboard.services.calendar import Band
from gitboard.services.calendar import ContributionDay
from gitboard.services.calendar import normalize_year
from gitboard.services.leaderboard import LeaderboardAssembler
from gitboard.services.leaderboard import LeaderboardEntry
from gitboard.services.leaderboard import LeaderboardSnapshot
from gitboard.services.leaderboard import recent_heatmap
from gitboard.services.storage import ContributionStore

NOW = datetime(2025, 6, 1, tzinfo=UTC)


def seed_user(
    store: ContributionStore, username: str, counts_by_year: dict[int, int]
) -> None:
    store.upsert_user(username, f"https://avatars.example/{username}.png")
    for year, count in counts_by_year.items():
        days = [ContributionDay(date=date(year, 12, 31), count=count)]
        store.upsert_year(
            username, year, normalize_year(year, days, today=date(2025, 12, 31)).days
        )
    store.update_totals(username, sum(counts_by_year.values()), NOW)


def test_list_returns_top_users_with_years(store: ContributionStore) -> None:
    seed_user(store, "alice", {2023: 4, 2024: 6})
    seed_user(store, "bob", {2024: 30})
    seed_user(store, "carol", {2022: 1})

    entries = LeaderboardAssembler(store).list(limit=2)

    assert [entry.username for entry in entries] == ["bob", "alice"]
    assert entries[1].total_contributions == 10
    assert entries[1].avatar_url == "https://avatars.example/alice.png"
    assert [year.year for year in entries[1].years] == [2024, 2023]


def test_list_defaults_to_ten_entries(store: ContributionStore) -> None:
    for index in range(12):
        seed_user(store, f"user{index:02d}", {2024: index + 1})

    entries = LeaderboardAssembler(store).list()

    assert len(entries) == 10
    assert entries[0].username == "user11"


def test_recent_heatmap_uses_last_49_days_of_latest_year() -> None:
    older = normalize_year(2023, [], today=date(2025, 1, 1))
    latest = normalize_year(
        2024,
        [
            ContributionDay(date=date(2024, 12, 31), count=10),
            ContributionDay(date=date(2024, 12, 30), count=1),
        ],
        today=date(2025, 1, 1),
    )

    recent = recent_heatmap([older, latest])

    assert len(recent) == 49
    assert recent[0].day.date == date(2024, 12, 31) - timedelta(days=48)
    assert recent[-1].band == Band.HIGH
    assert recent[-2].band == Band.LOW


def test_recent_heatmap_all_zero_window_stays_zero() -> None:
    year = normalize_year(2024, [], today=date(2025, 1, 1))

    recent = recent_heatmap([year])

    assert {item.band for item in recent} == {Band.ZERO}


def test_recent_heatmap_without_years_is_empty() -> None:
    assert recent_heatmap([]) == []


def test_watch_reruns_after_user_changes(store: ContributionStore) -> None:
    seed_user(store, "alice", {2024: 4})
    assembler = LeaderboardAssembler(store)

    async def scenario() -> tuple[list[str], list[str]]:
        snapshots = assembler.watch()
        first = await anext(snapshots)
        seed_user(store, "bob", {2024: 9})
        second = await asyncio.wait_for(anext(snapshots), timeout=1)
        await snapshots.aclose()
        return (
            [entry.username for entry in first],
            [entry.username for entry in second],
        )

    first, second = asyncio.run(scenario())

    assert first == ["alice"]
    assert second == ["bob", "alice"]
    assert store.subscriber_count == 0


def test_recent_heatmap_early_in_year_continues_into_previous_year() -> None:
    previous = normalize_year(
        2024,
        [ContributionDay(date=date(2024, 12, 20), count=6)],
        today=date(2025, 1, 3),
    )
    current = normalize_year(
        2025,
        [ContributionDay(date=date(2025, 1, 2), count=3)],
        today=date(2025, 1, 3),
    )

    recent = recent_heatmap([current, previous])

    assert len(recent) == 49
    assert recent[0].day.date == date(2024, 11, 16)
    assert recent[-1].day.date == date(2025, 1, 3)
    dates = [item.day.date for item in recent]
    assert dates == sorted(dates)
    bands = {item.day.date: item.band for item in recent}
    assert bands[date(2024, 12, 20)] == Band.HIGH
    assert bands[date(2025, 1, 2)] == Band.MID_HIGH


def test_snapshot_alias_is_a_builtin_list() -> None:
    assert LeaderboardSnapshot == list[LeaderboardEntry]
