import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from datetime import datetime
from typing import Any

import httpx

from gitboard.services.calendar import ContributionDay
from gitboard.services.errors import GitboardError
from gitboard.services.errors import InvalidCredentialError
from gitboard.services.errors import RateLimitedError
from gitboard.services.errors import UpstreamUnavailableError
from gitboard.services.errors import UserNotFoundError

logger = logging.getLogger(__name__)

USER_AGENT = "gitboard"

ACCOUNT_QUERY = """
query($login: String!) {
  user(login: $login) {
    createdAt
    avatarUrl
  }
}
"""

CONTRIBUTIONS_QUERY = """
query($login: String!, $from: DateTime!, $to: DateTime!) {
  user(login: $login) {
    contributionsCollection(from: $from, to: $to) {
      contributionCalendar {
        totalContributions
        weeks {
          contributionDays {
            date
            contributionCount
          }
        }
      }
    }
  }
}
"""


@dataclass(frozen=True)
class AccountInfo:
    created_at: datetime
    avatar_url: str | None


def classify_http_error(response: httpx.Response, username: str) -> GitboardError:
    """Translate a failed GitHub HTTP response into a domain error."""

    message = _response_message(response)
    lowered = message.lower()
    if response.status_code == 401 or "bad credentials" in lowered:
        return InvalidCredentialError()
    if response.status_code == 429 or "rate limit" in lowered:
        return RateLimitedError()
    if response.status_code == 403:
        return InvalidCredentialError()
    if response.status_code == 404:
        return UserNotFoundError(username)
    return UpstreamUnavailableError(message or None)


def classify_graphql_errors(errors: list[Any], username: str) -> GitboardError:
    """Translate the `errors` list of a GraphQL payload into a domain error."""

    messages: list[str] = []
    for error in errors:
        if not isinstance(error, Mapping):
            continue
        error_type = str(error.get("type") or "")
        error_message = str(error.get("message") or "")
        lowered = error_message.lower()
        if error_type == "RATE_LIMITED" or "rate limit" in lowered:
            return RateLimitedError()
        if error_type == "NOT_FOUND" or "could not resolve to a user" in lowered:
            return UserNotFoundError(username)
        if "bad credentials" in lowered:
            return InvalidCredentialError()
        if error_message:
            messages.append(error_message)

    return UpstreamUnavailableError("; ".join(messages) or None)


def _response_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text.strip()
    if isinstance(payload, Mapping) and isinstance(payload.get("message"), str):
        return payload["message"]
    return ""


class GitHubClient:
    """Thin async client for the GitHub GraphQL queries used by gitboard."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        token: str,
        graphql_url: str,
    ) -> None:
        self._http = http_client
        self._token = token
        self._graphql_url = graphql_url

    async def _query(
        self, query: str, variables: dict[str, str], username: str
    ) -> Mapping[str, Any]:
        headers = {
            "Authorization": f"Bearer {self._token}",
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
        }

        try:
            response = await self._http.post(
                self._graphql_url,
                json={"query": query, "variables": variables},
                headers=headers,
            )
        except httpx.HTTPError as exc:
            raise UpstreamUnavailableError(f"GitHub request failed: {exc}") from exc

        if response.is_error:
            raise classify_http_error(response, username)

        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamUnavailableError(
                "GitHub GraphQL response is invalid"
            ) from exc

        if not isinstance(payload, Mapping):
            raise UpstreamUnavailableError("GitHub GraphQL response is invalid")

        errors = payload.get("errors")
        if errors:
            raise classify_graphql_errors(list(errors), username)

        data = payload.get("data")
        if not isinstance(data, Mapping):
            raise UpstreamUnavailableError("GitHub GraphQL data is missing")

        user = data.get("user")
        if not isinstance(user, Mapping):
            raise UserNotFoundError(username)

        return user

    async def fetch_account(self, username: str) -> AccountInfo:
        """Fetch the account creation instant and avatar of a user."""

        user = await self._query(ACCOUNT_QUERY, {"login": username}, username)

        raw_created_at = user.get("createdAt")
        if not isinstance(raw_created_at, str):
            raise UpstreamUnavailableError("GitHub user createdAt is missing")
        raw_avatar_url = user.get("avatarUrl")

        return AccountInfo(
            created_at=datetime.fromisoformat(raw_created_at.replace("Z", "+00:00")),
            avatar_url=raw_avatar_url if isinstance(raw_avatar_url, str) else None,
        )

    async def fetch_contribution_days(
        self, username: str, year: int
    ) -> list[ContributionDay]:
        """Fetch the contribution calendar of one year for a user."""

        variables = {
            "login": username,
            "from": f"{year}-01-01T00:00:00Z",
            "to": f"{year}-12-31T23:59:59Z",
        }
        logger.info("Fetching contributions for %s - %s", username, year)
        user = await self._query(CONTRIBUTIONS_QUERY, variables, username)

        collection = user.get("contributionsCollection")
        if not isinstance(collection, Mapping):
            raise UpstreamUnavailableError("GitHub contributionsCollection is missing")

        calendar = collection.get("contributionCalendar")
        if not isinstance(calendar, Mapping):
            raise UpstreamUnavailableError("GitHub contributionCalendar is missing")

        weeks = calendar.get("weeks")
        if not isinstance(weeks, list):
            raise UpstreamUnavailableError("GitHub contribution weeks are missing")

        days: list[ContributionDay] = []
        for week in weeks:
            if not isinstance(week, Mapping):
                continue
            contribution_days = week.get("contributionDays")
            if not isinstance(contribution_days, list):
                continue
            for item in contribution_days:
                if not isinstance(item, Mapping):
                    continue
                raw_date = item.get("date")
                raw_count = item.get("contributionCount")
                if not isinstance(raw_date, str) or not isinstance(raw_count, int):
                    continue
                try:
                    parsed_day = date.fromisoformat(raw_date)
                except ValueError:
                    continue
                days.append(ContributionDay(date=parsed_day, count=max(0, raw_count)))

        return days
