"""
Learning Session API Endpoints

POST /api/learning-sessions - Schedule a lesson in an ACTIVE swap
PUT /api/learning-sessions/:id - Update status and/or notes
GET /api/learning-sessions/swap/:swap_session_id - Lessons of a swap, earliest first
"""
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Path, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from skillswap.api.auth import get_current_user
from skillswap.database import get_db
from skillswap.models.user import User
from skillswap.services.guards import to_dict
from skillswap.services.session_activity import get_session_activity

router = APIRouter(prefix="/api/learning-sessions", tags=["learning-sessions"])


class LearningSessionCreate(BaseModel):
    swap_session_id: int
    teacher_id: int
    student_id: int
    topic: str
    session_type: str
    scheduled_date: datetime
    duration_hours: Optional[float] = None
    notes: Optional[str] = None
    meeting_link: Optional[str] = None
    place: Optional[str] = None


class LearningSessionUpdate(BaseModel):
    status: Optional[str] = None
    notes: Optional[str] = None


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_learning_session(
    body: LearningSessionCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db, scope="function"),
) -> Dict[str, Any]:
    """
    Raises:
        400: Invalid session_type, missing meeting_link/place, or a
             teacher/student who is not part of the swap
        403: Current user is not a participant
        409: Swap session is not ACTIVE
    """
    learning_session = await get_session_activity().create_learning_session(
        db,
        actor_id=current_user.id,
        **body.model_dump(),
    )
    return {"message": "Learning session created successfully", "session": to_dict(learning_session)}


@router.put("/{learning_session_id}")
async def update_learning_session(
    body: LearningSessionUpdate,
    learning_session_id: int = Path(..., description="Learning session id"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db, scope="function"),
) -> Dict[str, Any]:
    changes = body.model_dump(exclude_unset=True)
    learning_session = await get_session_activity().update_learning_session(
        db, current_user.id, learning_session_id, **changes
    )
    return {"message": "Session updated successfully", "session": to_dict(learning_session)}


@router.get("/swap/{swap_session_id}")
async def list_learning_sessions(
    swap_session_id: int = Path(..., description="Swap session id"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db, scope="function"),
) -> Dict[str, Any]:
    sessions = await get_session_activity().list_learning_sessions_detailed(db, swap_session_id, current_user.id)
    return {"sessions": sessions}
