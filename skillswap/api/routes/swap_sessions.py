"""
Swap Session API Endpoints

GET /api/swap-sessions - Current user's sessions, one per partner
GET /api/swap-sessions/:id - Session with learning sessions, resources and messages
POST /api/swap-sessions/:id/complete - Participant marks the swap completed
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from skillswap.api.auth import get_current_user
from skillswap.database import get_db
from skillswap.models.user import User
from skillswap.services.guards import to_dict
from skillswap.services.swap_lifecycle import get_swap_lifecycle

router = APIRouter(prefix="/api/swap-sessions", tags=["swap-sessions"])


@router.get("")
async def list_swap_sessions(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db, scope="function"),
) -> Dict[str, Any]:
    return {"swap_sessions": await get_swap_lifecycle().list_sessions(db, current_user.id)}


@router.get("/{swap_session_id}")
async def get_swap_session(
    swap_session_id: int = Path(..., description="Swap session id"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db, scope="function"),
) -> Dict[str, Any]:
    detail = await get_swap_lifecycle().get_session_detail(db, swap_session_id, current_user.id)
    return {"swap_session": detail}


@router.post("/{swap_session_id}/complete")
async def complete_swap_session(
    swap_session_id: int = Path(..., description="Swap session id"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db, scope="function"),
) -> Dict[str, Any]:
    """
    Complete an ACTIVE swap; both participants' total_swaps go up by one.

    Raises:
        403: Current user is not a participant
        404: Session not found
        409: Session is not ACTIVE
    """
    swap_session = await get_swap_lifecycle().complete_session(db, swap_session_id, current_user.id)
    return {"message": "Swap session completed", "swap_session": to_dict(swap_session)}
