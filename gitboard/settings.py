from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Values are read from process environment and optionally from `.env`.
    """

    database_url: str | None = None
    auto_create_tables: bool = False
    github_graphql_url: str = "https://api.github.com/graphql"
    github_timeout_seconds: float = 20.0
    refresh_window_hours: float = 24.0
    fallback_creation_year: int = 2008
    token_prefixes: tuple[str, ...] = ("ghp_", "github_pat_")
    leaderboard_limit: int = 10
    sentry_dsn: str | None = None
    environment: str = "development"
    release: str | None = None
    sentry_traces_sample_rate: float = 0.1
    rate_limit_per_minute: int = 30
    rate_limit_window_seconds: int = 60
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")
