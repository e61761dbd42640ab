"""
Matching API Endpoints

GET /api/matching/matches - Users with a skill overlap in either direction
GET /api/matching/details/:other_id - Skill pairing view for one user pair
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from skillswap.api.auth import get_current_user
from skillswap.database import get_db
from skillswap.models.user import User
from skillswap.services.matching_engine import get_matching_engine

router = APIRouter(prefix="/api/matching", tags=["matching"])


@router.get("/matches")
async def list_matches(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db, scope="function"),
) -> Dict[str, Any]:
    """
    Candidate matches for the current user.

    Each entry has the matched user, both direction lists of skill names and
    the current relationship (pending request, active or completed swap).
    Ordered by rating descending, then username.
    """
    return {"matches": await get_matching_engine().compute_matches(db, current_user.id)}


@router.get("/details/{other_id}")
async def match_detail(
    other_id: int = Path(..., description="Matched user id"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db, scope="function"),
) -> Dict[str, Any]:
    return await get_matching_engine().compute_match_detail(db, current_user.id, other_id)
