"""
Authentication API Endpoints

POST /api/auth/register - Create an account and receive a token
POST /api/auth/login - Exchange email and password for a token
GET /api/auth/me - Current user profile
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from skillswap.api.auth import create_access_token, get_current_user
from skillswap.database import get_db
from skillswap.models.user import User
from skillswap.services.identity_store import get_identity_store, public_profile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


class RegisterRequest(BaseModel):
    username: str
    email: str
    password: str
    full_name: Optional[str] = None
    bio: Optional[str] = None
    profile_pic: Optional[str] = None
    is_admin: bool = False


class LoginRequest(BaseModel):
    email: str
    password: str


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, db: AsyncSession = Depends(get_db, scope="function")) -> Dict[str, Any]:
    """
    Register a new user.

    Raises:
        400: Missing or malformed fields
        409: Username or email already taken
    """
    user = await get_identity_store().register(
        db,
        username=body.username,
        email=body.email,
        password=body.password,
        full_name=body.full_name,
        bio=body.bio,
        profile_pic=body.profile_pic,
        is_admin=body.is_admin,
    )
    return {
        "message": "User registered successfully",
        "token": create_access_token(user),
        "user": public_profile(user),
    }


@router.post("/login")
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db, scope="function")) -> Dict[str, Any]:
    user = await get_identity_store().authenticate(db, body.email, body.password)
    logger.info(f"User {user.id} logged in")
    return {
        "message": "Login successful",
        "token": create_access_token(user),
        "user": public_profile(user),
    }


@router.get("/me")
async def me(current_user: User = Depends(get_current_user)) -> Dict[str, Any]:
    return {"user": public_profile(current_user)}
