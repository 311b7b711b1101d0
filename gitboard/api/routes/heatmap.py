import logging

from fastapi import APIRouter
from fastapi import Depends
from fastapi import HTTPException
from fastapi import Response
from fastapi import Security
from fastapi.security import HTTPAuthorizationCredentials

from gitboard.api.deps import get_aggregator
from gitboard.api.deps import get_settings
from gitboard.api.deps import get_store
from gitboard.api.schemas.heatmap import HeatmapResponse
from gitboard.core.security import bearer_scheme
from gitboard.core.security import extract_github_token
from gitboard.services.contributions import ContributionAggregator
from gitboard.services.errors import GitboardError
from gitboard.services.errors import InvalidCredentialError
from gitboard.services.errors import NoActivityError
from gitboard.services.errors import RateLimitedError
from gitboard.services.errors import UserNotFoundError
from gitboard.services.export import render_contributions_svg
from gitboard.services.storage import ContributionStore
from gitboard.settings import Settings

logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_STATUS_CODES: dict[type[GitboardError], int] = {
    InvalidCredentialError: 401,
    RateLimitedError: 429,
    UserNotFoundError: 404,
    NoActivityError: 404,
}


def error_status_code(exc: GitboardError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES.items():
        if isinstance(exc, error_type):
            return status_code
    return 502


@router.get("/heatmap/{username}", response_model=HeatmapResponse)
async def get_user_heatmap(
    username: str,
    credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),
    settings: Settings = Depends(get_settings),
    aggregator: ContributionAggregator = Depends(get_aggregator),
) -> HeatmapResponse:
    """Return all contribution years of a user, refreshing them when allowed."""

    token = extract_github_token(credentials, settings.token_prefixes)

    try:
        result = await aggregator.load(token=token, username=username)
    except GitboardError as exc:
        logger.warning("Heatmap request for %s failed: %s", username, exc.message)
        raise HTTPException(
            status_code=error_status_code(exc), detail=exc.message
        ) from exc

    return HeatmapResponse.from_result(result)


@router.get("/heatmap/{username}/svg")
def get_user_heatmap_svg(
    username: str, store: ContributionStore = Depends(get_store)
) -> Response:
    """Export the stored contribution years of a user as an SVG document."""

    years = [year for year in store.get_years(username.strip()) if year.total > 0]
    if not years:
        raise HTTPException(status_code=404, detail="contributions not found")

    filename = f"{username}-contributions.svg"
    return Response(
        content=render_contributions_svg(years),
        media_type="image/svg+xml",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
