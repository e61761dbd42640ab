"""
Authentication

Bearer-token (JWT) resolution of the current user, plus the password hashing
and token issuance contracts used by registration and login.
"""
import logging
from datetime import timedelta
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
from werkzeug.security import check_password_hash, generate_password_hash

from skillswap import config
from skillswap.database import get_db, utcnow
from skillswap.exceptions import AuthenticationFailed, AuthorizationDenied, MissingCredentials
from skillswap.models.user import User

logger = logging.getLogger(__name__)

# Security scheme
security = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    return check_password_hash(password_hash, password)


def create_access_token(user: User) -> str:
    """
    Issue a signed token for a user.

    Claims mirror what clients need without a round trip: id, username,
    email, is_admin. Authorization never trusts the is_admin claim; the user
    row is reloaded on every request.
    """
    now = utcnow()
    payload = {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "is_admin": bool(user.is_admin),
        "iat": now,
        "exp": now + timedelta(days=config.JWT_EXPIRES_DAYS),
    }
    return jwt.encode(payload, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    try:
        return jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthenticationFailed("Token has expired")
    except jwt.InvalidTokenError:
        logger.warning(f"Invalid token attempt: {token[:10]}...")
        raise AuthenticationFailed("Invalid or expired token")


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db, scope="function"),
) -> User:
    """
    Resolve the authenticated user from the bearer credential.

    Raises:
        MissingCredentials: No Authorization header
        AuthenticationFailed: Bad signature, expired token, or deleted user
    """
    if credentials is None:
        raise MissingCredentials("Authorization header missing")

    payload = decode_access_token(credentials.credentials)
    user_id = payload.get("id")
    if user_id is None:
        raise AuthenticationFailed("Invalid token: missing user id")

    user = await db.get(User, int(user_id))
    if user is None:
        raise AuthenticationFailed("User not found")
    return user


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """Dependency for admin-only endpoints"""
    if not current_user.is_admin:
        logger.warning(f"Non-admin user {current_user.id} attempted an admin operation")
        raise AuthorizationDenied("Admin access required")
    return current_user
