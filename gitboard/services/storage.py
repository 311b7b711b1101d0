import logging
from collections.abc import Callable
from collections.abc import Iterable
from datetime import UTC
from datetime import datetime
from threading import RLock

from sqlalchemy import event
from sqlalchemy import select
from sqlalchemy import text
from sqlalchemy.orm import Session
from sqlalchemy.orm import sessionmaker

from gitboard.models import GitHubUser
from gitboard.models import YearlyContribution
from gitboard.services.calendar import ContributionDay
from gitboard.services.calendar import YearContributions
from gitboard.services.calendar import parse_days
from gitboard.services.freshness import as_utc

logger = logging.getLogger(__name__)

USERS_CHANGED_KEY = "github_users_changed"

ChangeCallback = Callable[[], None]


class Subscription:
    """Handle returned by `ContributionStore.subscribe`."""

    def __init__(self, store: "ContributionStore", callback: ChangeCallback) -> None:
        self._store = store
        self._callback = callback
        self.active = True

    def cancel(self) -> None:
        if self.active:
            self._store._unsubscribe(self._callback)
            self.active = False


class ContributionStore:
    """Persistence of users and their yearly contribution calendars.

    Every write runs in its own transaction. Subscribers are notified after
    each committed transaction that touched `github_users` rows.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory
        self._subscribers: list[ChangeCallback] = []
        self._lock = RLock()
        event.listen(session_factory, "after_flush", self._track_user_changes)
        event.listen(session_factory, "after_commit", self._notify_after_commit)
        event.listen(session_factory, "after_rollback", self._discard_changes)

    def subscribe(self, callback: ChangeCallback) -> Subscription:
        with self._lock:
            self._subscribers.append(callback)
        return Subscription(self, callback)

    def _unsubscribe(self, callback: ChangeCallback) -> None:
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    @staticmethod
    def _track_user_changes(session: Session, flush_context: object) -> None:
        changed = (*session.new, *session.dirty, *session.deleted)
        if any(isinstance(instance, GitHubUser) for instance in changed):
            session.info[USERS_CHANGED_KEY] = True

    def _notify_after_commit(self, session: Session) -> None:
        if not session.info.pop(USERS_CHANGED_KEY, False):
            return

        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback()
            except Exception:
                logger.exception("github_users change subscriber failed")

    @staticmethod
    def _discard_changes(session: Session) -> None:
        session.info.pop(USERS_CHANGED_KEY, None)

    def upsert_user(self, username: str, avatar_url: str | None) -> None:
        """Create the user row or refresh its avatar, keyed by username."""

        with self._session_factory() as session, session.begin():
            user = session.scalar(
                select(GitHubUser).where(GitHubUser.username == username)
            )
            now = datetime.now(UTC)
            if user is None:
                session.add(
                    GitHubUser(
                        username=username, avatar_url=avatar_url, last_updated=now
                    )
                )
                return

            if avatar_url is not None:
                user.avatar_url = avatar_url
            user.last_updated = now

    def upsert_year(
        self, username: str, year: int, days: Iterable[ContributionDay]
    ) -> None:
        """Replace the stored calendar of one year, keyed by username and year.

        The owning user row is created when it does not exist yet.
        """

        contributions = [day.to_dict() for day in days]
        with self._session_factory() as session, session.begin():
            if session.scalar(
                select(GitHubUser.id).where(GitHubUser.username == username)
            ) is None:
                session.add(GitHubUser(username=username))

            record = session.scalar(
                select(YearlyContribution).where(
                    YearlyContribution.username == username,
                    YearlyContribution.year == year,
                )
            )
            if record is None:
                session.add(
                    YearlyContribution(
                        username=username, year=year, contributions=contributions
                    )
                )
            else:
                record.contributions = contributions

    def update_totals(
        self, username: str, total_contributions: int, updated_at: datetime
    ) -> None:
        """Store the lifetime total; the update instant never moves backwards."""

        with self._session_factory() as session, session.begin():
            user = session.scalar(
                select(GitHubUser).where(GitHubUser.username == username)
            )
            if user is None:
                user = GitHubUser(username=username)
                session.add(user)

            user.total_contributions = total_contributions
            previous = user.last_contribution_update
            if previous is None or as_utc(updated_at) > as_utc(previous):
                user.last_contribution_update = updated_at

    def get_user(self, username: str) -> GitHubUser | None:
        with self._session_factory() as session:
            return session.scalar(
                select(GitHubUser).where(GitHubUser.username == username)
            )

    def get_years(self, username: str) -> list[YearContributions]:
        """Return all stored years of a user, most recent first."""

        with self._session_factory() as session:
            records = session.scalars(
                select(YearlyContribution)
                .where(YearlyContribution.username == username)
                .order_by(YearlyContribution.year.desc())
            ).all()
            return [
                YearContributions(
                    year=record.year,
                    days=tuple(
                        sorted(
                            parse_days(record.contributions),
                            key=lambda day: day.date,
                        )
                    ),
                )
                for record in records
            ]

    def top_users(self, limit: int) -> list[GitHubUser]:
        with self._session_factory() as session:
            return list(
                session.scalars(
                    select(GitHubUser)
                    .order_by(
                        GitHubUser.total_contributions.desc(),
                        GitHubUser.username.asc(),
                    )
                    .limit(limit)
                ).all()
            )

    def ping(self) -> None:
        with self._session_factory() as session:
            session.execute(text("SELECT 1"))

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)
