import logging

from fastapi import APIRouter
from fastapi import Depends
from fastapi import HTTPException

from gitboard.api.deps import get_store
from gitboard.services.storage import ContributionStore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/")
async def root() -> dict[str, str]:
    """Return a basic service greeting."""

    return {"message": "Hello World"}


@router.get("/health/live")
def health_live() -> dict[str, str]:
    """Return liveness probe response for health checks."""

    return {"status": "ok"}


@router.get("/health/db")
def health_db(store: ContributionStore = Depends(get_store)) -> dict[str, str]:
    """Check that the database answers a trivial query."""

    try:
        store.ping()
    except Exception as exc:
        logger.exception("Database health check failed")
        raise HTTPException(
            status_code=500, detail="Database connection failed"
        ) from exc

    return {"status": "ok"}
