"""
Game session API endpoints.

Mounted under /api/auth/games/session. All endpoints act on the
authenticated user's own session.
"""

from fastapi import APIRouter, Depends

from api.dependencies import get_game_service
from api.middleware.auth import get_current_principal
from api.models.responses import ApiResponse
from shared.models import Principal

from .interfaces import IGameSessionService
from .models import GameSessionStatus

router = APIRouter()


@router.get("/status", response_model=ApiResponse[GameSessionStatus])
async def get_status(
    principal: Principal = Depends(get_current_principal),
    service: IGameSessionService = Depends(get_game_service),
) -> ApiResponse[GameSessionStatus]:
    """Current state plus seconds left in the session or cooldown."""
    status = await service.get_status(principal.id)
    return ApiResponse(message="Game session status", data=status)


@router.post("/start", response_model=ApiResponse[GameSessionStatus])
async def start_session(
    principal: Principal = Depends(get_current_principal),
    service: IGameSessionService = Depends(get_game_service),
) -> ApiResponse[GameSessionStatus]:
    """
    Start a 15-minute session.

    Rejected with 409 while a session is running and 403 during cooldown.
    """
    status = await service.start_session(principal.id)
    return ApiResponse(message="Game session started", data=status)


@router.post("/end", response_model=ApiResponse[GameSessionStatus])
async def end_session(
    principal: Principal = Depends(get_current_principal),
    service: IGameSessionService = Depends(get_game_service),
) -> ApiResponse[GameSessionStatus]:
    """End the running session early; the cooldown starts now."""
    status = await service.end_session(principal.id)
    return ApiResponse(message="Game session ended", data=status)
