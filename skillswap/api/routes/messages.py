"""
Message API Endpoints

POST /api/messages - Send a chat message (ACTIVE or COMPLETED swap)
GET /api/messages/swap/:swap_session_id - Chat history, oldest first
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends, Path, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from skillswap.api.auth import get_current_user
from skillswap.database import get_db
from skillswap.models.user import User
from skillswap.services.guards import to_dict
from skillswap.services.session_activity import get_session_activity

router = APIRouter(prefix="/api/messages", tags=["messages"])


class MessageCreate(BaseModel):
    swap_session_id: int
    message_text: str


@router.post("", status_code=status.HTTP_201_CREATED)
async def send_message(
    body: MessageCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db, scope="function"),
) -> Dict[str, Any]:
    message = await get_session_activity().create_message(
        db, current_user.id, body.swap_session_id, body.message_text
    )
    row = to_dict(message)
    row.update(sender_username=current_user.username, sender_name=current_user.full_name)
    return {"message": row}


@router.get("/swap/{swap_session_id}")
async def list_messages(
    swap_session_id: int = Path(..., description="Swap session id"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db, scope="function"),
) -> Dict[str, Any]:
    """Polled by clients; there is no push channel"""
    return {"messages": await get_session_activity().list_messages(db, swap_session_id, current_user.id)}
