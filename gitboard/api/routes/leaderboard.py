from collections.abc import AsyncIterator

from fastapi import APIRouter
from fastapi import Depends
from fastapi import Query
from fastapi.responses import StreamingResponse

from gitboard.api.deps import get_assembler
from gitboard.api.schemas.leaderboard import LeaderboardResponse
from gitboard.services.leaderboard import LeaderboardAssembler

router = APIRouter()


@router.get("/leaderboard", response_model=LeaderboardResponse)
def get_leaderboard(
    limit: int | None = Query(default=None, ge=1, le=50),
    assembler: LeaderboardAssembler = Depends(get_assembler),
) -> LeaderboardResponse:
    """Return the users with the most lifetime contributions."""

    return LeaderboardResponse.from_entries(assembler.list(limit))


async def leaderboard_events(
    assembler: LeaderboardAssembler, limit: int | None
) -> AsyncIterator[str]:
    async for entries in assembler.watch(limit):
        payload = LeaderboardResponse.from_entries(entries).model_dump_json()
        yield f"event: leaderboard\ndata: {payload}\n\n"


@router.get("/leaderboard/stream")
async def stream_leaderboard(
    limit: int | None = Query(default=None, ge=1, le=50),
    assembler: LeaderboardAssembler = Depends(get_assembler),
) -> StreamingResponse:
    """Stream leaderboard snapshots as server-sent events on every change."""

    return StreamingResponse(
        leaderboard_events(assembler, limit),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )
