"""
Skill Registry API Endpoints

GET /api/skills - All skills with owner names
GET /api/skills/user/:id - One user's skills
POST /api/skills - Add a skill for the current user
PUT /api/skills/:id - Edit an owned skill
DELETE /api/skills/:id - Delete an owned skill
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Path, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from skillswap.api.auth import get_current_user
from skillswap.database import get_db
from skillswap.models.user import User
from skillswap.services.guards import to_dict
from skillswap.services.skill_registry import get_skill_registry

router = APIRouter(prefix="/api/skills", tags=["skills"])


class SkillCreateRequest(BaseModel):
    skill_name: str
    skill_type: str
    description: Optional[str] = None
    proficiency_level: Optional[str] = None


class SkillUpdateRequest(BaseModel):
    skill_name: Optional[str] = None
    skill_type: Optional[str] = None
    description: Optional[str] = None
    proficiency_level: Optional[str] = None


@router.get("")
async def list_skills(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db, scope="function"),
) -> Dict[str, Any]:
    return {"skills": await get_skill_registry().list_all_skills(db)}


@router.get("/user/{user_id}")
async def list_user_skills(
    user_id: int = Path(..., description="Owner user id"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db, scope="function"),
) -> Dict[str, Any]:
    skills = await get_skill_registry().list_user_skills(db, user_id)
    return {"skills": [to_dict(s) for s in skills]}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_skill(
    body: SkillCreateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db, scope="function"),
) -> Dict[str, Any]:
    """
    Add an OFFER or WANT skill.

    Raises:
        400: Missing skill_name, or invalid skill_type/proficiency_level
    """
    skill = await get_skill_registry().create_skill(
        db,
        owner_id=current_user.id,
        skill_name=body.skill_name,
        skill_type=body.skill_type,
        description=body.description,
        proficiency_level=body.proficiency_level,
    )
    return {"message": "Skill added successfully", "skill": to_dict(skill)}


@router.put("/{skill_id}")
async def update_skill(
    body: SkillUpdateRequest,
    skill_id: int = Path(..., description="Skill id"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db, scope="function"),
) -> Dict[str, Any]:
    """Partial update; description may be cleared by sending null explicitly"""
    changes = body.model_dump(exclude_unset=True)
    skill = await get_skill_registry().update_skill(db, current_user.id, skill_id, **changes)
    return {"message": "Skill updated successfully", "skill": to_dict(skill)}


@router.delete("/{skill_id}")
async def delete_skill(
    skill_id: int = Path(..., description="Skill id"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db, scope="function"),
) -> Dict[str, Any]:
    await get_skill_registry().delete_skill(db, current_user.id, skill_id)
    return {"message": "Skill deleted successfully"}
