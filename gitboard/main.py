import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from gitboard.api.routes.health import router as health_router
from gitboard.api.routes.heatmap import router as heatmap_router
from gitboard.api.routes.leaderboard import router as leaderboard_router
from gitboard.clients.github_client import GitHubClient
from gitboard.core.middleware import HeatmapRateLimitMiddleware
from gitboard.core.observability import configure_logging
from gitboard.core.observability import init_sentry
from gitboard.db import Base
from gitboard.db import create_db_engine
from gitboard.db import create_session_factory
from gitboard.db import get_database_url
from gitboard.services.contributions import ContributionAggregator
from gitboard.services.leaderboard import LeaderboardAssembler
from gitboard.services.storage import ContributionStore
from gitboard.settings import Settings

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application and wire its store, GitHub client and services."""

    settings = settings or Settings()
    configure_logging(settings)
    init_sentry(settings)

    engine = create_db_engine(get_database_url(settings))
    if settings.auto_create_tables:
        Base.metadata.create_all(bind=engine)
    store = ContributionStore(create_session_factory(engine))

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        async with httpx.AsyncClient(
            timeout=settings.github_timeout_seconds
        ) as http_client:
            app.state.http_client = http_client
            yield
        engine.dispose()

    app = FastAPI(title="gitboard", lifespan=lifespan)

    def github_client_factory(token: str) -> GitHubClient:
        return GitHubClient(
            http_client=app.state.http_client,
            token=token,
            graphql_url=settings.github_graphql_url,
        )

    app.state.settings = settings
    app.state.store = store
    app.state.aggregator = ContributionAggregator(
        store=store,
        client_factory=github_client_factory,
        fallback_creation_year=settings.fallback_creation_year,
        refresh_window_hours=settings.refresh_window_hours,
        token_prefixes=settings.token_prefixes,
    )
    app.state.assembler = LeaderboardAssembler(
        store=store, default_limit=settings.leaderboard_limit
    )

    app.add_middleware(
        HeatmapRateLimitMiddleware,
        requests_per_window=settings.rate_limit_per_minute,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.include_router(health_router)
    app.include_router(heatmap_router)
    app.include_router(leaderboard_router)

    logger.info("gitboard started in %s environment", settings.environment)
    return app
