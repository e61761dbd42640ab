"""
Resource API Endpoints

POST /api/resources - Share a resource in an ACTIVE swap
DELETE /api/resources/:id - Remove a resource (uploader or participant)
GET /api/resources/swap/:swap_session_id - Resources of a swap, newest first
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Path, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from skillswap.api.auth import get_current_user
from skillswap.database import get_db
from skillswap.models.user import User
from skillswap.services.guards import to_dict
from skillswap.services.session_activity import get_session_activity

router = APIRouter(prefix="/api/resources", tags=["resources"])


class ResourceCreate(BaseModel):
    swap_session_id: int
    resource_type: str
    title: str
    content: Optional[str] = None
    file_path: Optional[str] = None


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_resource(
    body: ResourceCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db, scope="function"),
) -> Dict[str, Any]:
    resource = await get_session_activity().create_resource(
        db,
        actor_id=current_user.id,
        swap_session_id=body.swap_session_id,
        resource_type=body.resource_type,
        title=body.title,
        content=body.content,
        file_path=body.file_path,
    )
    row = to_dict(resource)
    row["uploaded_by_username"] = current_user.username
    return {"message": "Resource added successfully", "resource": row}


@router.delete("/{resource_id}")
async def delete_resource(
    resource_id: int = Path(..., description="Resource id"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db, scope="function"),
) -> Dict[str, Any]:
    await get_session_activity().delete_resource(db, current_user.id, resource_id)
    return {"message": "Resource deleted successfully"}


@router.get("/swap/{swap_session_id}")
async def list_resources(
    swap_session_id: int = Path(..., description="Swap session id"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db, scope="function"),
) -> Dict[str, Any]:
    return {"resources": await get_session_activity().list_resources(db, swap_session_id, current_user.id)}
