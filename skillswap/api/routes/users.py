"""
User Profile API Endpoints

GET /api/users/:id - Public profile
PUT /api/users/:id - Update full_name/bio (owner or admin)
POST /api/upload/profile-pic - Replace the current user's profile picture
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, Path, UploadFile
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from skillswap.api.auth import get_current_user
from skillswap.database import get_db
from skillswap.models.user import User
from skillswap.services.file_storage import get_file_storage
from skillswap.services.identity_store import get_identity_store, public_profile
from skillswap.services.skill_registry import get_skill_registry
from skillswap.services.guards import to_dict

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])
upload_router = APIRouter(prefix="/api/upload", tags=["upload"])


class ProfileUpdateRequest(BaseModel):
    full_name: Optional[str] = None
    bio: Optional[str] = None


@router.get("/{user_id}")
async def get_user(
    user_id: int = Path(..., description="User id"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db, scope="function"),
) -> Dict[str, Any]:
    """Profile plus the user's skills"""
    user = await get_identity_store().get_user(db, user_id)
    skills = await get_skill_registry().list_user_skills(db, user_id)
    return {"user": public_profile(user), "skills": [to_dict(s) for s in skills]}


@router.put("/{user_id}")
async def update_user(
    body: ProfileUpdateRequest,
    user_id: int = Path(..., description="User id"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db, scope="function"),
) -> Dict[str, Any]:
    user = await get_identity_store().update_profile(
        db, current_user, user_id, full_name=body.full_name, bio=body.bio
    )
    return {"message": "Profile updated successfully", "user": public_profile(user)}


@upload_router.post("/profile-pic")
async def upload_profile_pic(
    profile_pic: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db, scope="function"),
) -> Dict[str, Any]:
    """
    Store an image (jpeg, jpg, png, gif, webp; at most 5MB) as the profile picture.

    Raises:
        400: Empty, oversized or non-image upload (UPLOAD_REJECTED)
    """
    storage = get_file_storage()
    # One byte past the limit is enough to detect an oversized upload
    data = await profile_pic.read(storage.max_bytes + 1)
    ref = await get_identity_store().replace_profile_pic(
        db,
        current_user,
        storage,
        filename=profile_pic.filename,
        content_type=profile_pic.content_type,
        data=data,
    )
    return {"message": "Profile picture uploaded successfully", "profile_pic": ref}
