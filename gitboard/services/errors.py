class GitboardError(Exception):
    """Base class for errors that are shown to the caller as-is."""

    default_message = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidCredentialError(GitboardError):
    """Raised when GitHub rejects the token or it is malformed."""

    default_message = "Invalid GitHub token. Please check your token and try again."


class RateLimitedError(GitboardError):
    """Raised when GitHub reports that the API rate limit is exhausted."""

    default_message = "GitHub API rate limit exceeded. Please try again later."


class UserNotFoundError(GitboardError):
    """Raised when the username does not resolve to a GitHub account."""

    def __init__(self, username: str) -> None:
        self.username = username
        super().__init__(f'User "{username}" not found on GitHub.')


class UpstreamUnavailableError(GitboardError):
    """Raised when GitHub requests fail for any other reason."""

    default_message = "Failed to fetch GitHub contributions"


class NoActivityError(GitboardError):
    """Raised when a user has no contributions in any year."""

    def __init__(self, username: str) -> None:
        self.username = username
        super().__init__(f'No contributions found for user "{username}"')
