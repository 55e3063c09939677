"""Ranked play endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Header, Request

from ranked_sessions.api.models import (
    LeaderboardEntryModel,
    MatchResultRequest,
    MatchResultResponse,
)

if TYPE_CHECKING:
    from ranked_sessions.containers import AppContainer

router = APIRouter(tags=["rankings"])


@router.post("/sessions/{session_id}/result")
async def submit_match_result(
    session_id: UUID,
    body: MatchResultRequest,
    request: Request,
    x_user_id: UUID = Header(),
) -> MatchResultResponse:
    """Submit the result of a ranked session.

    The authenticated principal arrives in ``X-User-Id`` from the auth layer.
    """
    container: AppContainer = request.app.state.container
    result = container.ranking_service.submit_match_result(
        session_id=session_id,
        winner_id=body.winner_id,
        loser_id=body.loser_id,
        submitted_by=x_user_id,
    )
    return MatchResultResponse.from_result(result)


@router.get("/leaderboard")
async def leaderboard(
    request: Request,
    limit: int = 10,
    include_tier: bool = False,
    period: str = "all-time",
) -> dict[str, object]:
    """Return the top of the ranked ladder."""
    container: AppContainer = request.app.state.container
    entries = container.leaderboard_service.get_leaderboard(
        limit=limit, include_tier=include_tier, period=period
    )
    return {
        "period": period,
        "entries": [
            LeaderboardEntryModel.from_entry(entry).model_dump(mode="json")
            for entry in entries
        ],
    }
