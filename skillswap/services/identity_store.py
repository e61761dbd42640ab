"""
Identity Store

User registration, login, profile reads/updates and profile-picture
replacement. Rating and total_swaps are never written here; they belong to
the rating aggregator and the swap lifecycle.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from skillswap import config
from skillswap.api.auth import hash_password, verify_password
from skillswap.exceptions import AuthenticationFailed, AuthorizationDenied, Conflict, NotFound, ValidationError
from skillswap.models.user import User
from skillswap.services.file_storage import FileStorage
from skillswap.services.guards import optional_text, require_text

logger = logging.getLogger(__name__)

PUBLIC_FIELDS = (
    "id",
    "username",
    "email",
    "full_name",
    "bio",
    "profile_pic",
    "rating",
    "total_swaps",
    "is_admin",
    "created_at",
)


def public_profile(user: User) -> Dict[str, Any]:
    """User fields safe to return to any caller (no credential hash)"""
    return {field: getattr(user, field) for field in PUBLIC_FIELDS}


class IdentityStore:
    """Registration, authentication and profile management"""

    async def register(
        self,
        db: AsyncSession,
        username: str,
        email: str,
        password: str,
        full_name: Optional[str] = None,
        bio: Optional[str] = None,
        profile_pic: Optional[str] = None,
        is_admin: bool = False,
    ) -> User:
        """
        Create a new user.

        Raises:
            ValidationError: Missing username/email/password, malformed email,
                or admin registration while it is disabled
            Conflict: Username or email already taken
        """
        username = require_text(username, "username")
        email = require_text(email, "email").lower()
        if "@" not in email:
            raise ValidationError("Invalid email address", field="email")
        if not password:
            raise ValidationError("password is required", field="password")
        if is_admin and not config.ALLOW_ADMIN_REGISTRATION:
            raise ValidationError("Admin registration is disabled", field="is_admin")

        existing = await db.execute(
            select(User.id).where(or_(User.username == username, User.email == email))
        )
        if existing.first() is not None:
            raise Conflict("User already exists with this email or username")

        user = User(
            username=username,
            email=email,
            password_hash=hash_password(password),
            full_name=optional_text(full_name),
            bio=optional_text(bio),
            profile_pic=optional_text(profile_pic),
            is_admin=bool(is_admin),
        )
        db.add(user)
        try:
            await db.flush()
        except IntegrityError:
            # Concurrent registration won the unique constraint race
            raise Conflict("User already exists with this email or username")

        logger.info(f"Registered user {user.id} ({user.username})")
        return user

    async def authenticate(self, db: AsyncSession, email: str, password: str) -> User:
        email = require_text(email, "email").lower()
        if not password:
            raise ValidationError("password is required", field="password")

        user = (await db.execute(select(User).where(User.email == email))).scalar_one_or_none()
        if user is None or not verify_password(user.password_hash, password):
            raise AuthenticationFailed("Invalid email or password")
        return user

    async def get_user(self, db: AsyncSession, user_id: int) -> User:
        user = await db.get(User, user_id)
        if user is None:
            raise NotFound("User not found", details={"user_id": user_id})
        return user

    async def update_profile(
        self,
        db: AsyncSession,
        actor: User,
        user_id: int,
        full_name: Optional[str],
        bio: Optional[str],
    ) -> User:
        """Owners update their own profile; admins may update anyone's"""
        if actor.id != user_id and not actor.is_admin:
            raise AuthorizationDenied("You can only update your own profile")

        user = await self.get_user(db, user_id)
        user.full_name = optional_text(full_name)
        user.bio = optional_text(bio)
        await db.flush()
        return user

    async def replace_profile_pic(
        self,
        db: AsyncSession,
        user: User,
        storage: FileStorage,
        filename: str,
        content_type: Optional[str],
        data: bytes,
    ) -> str:
        """
        Store a new profile picture and point the user at it.

        The new file is removed again if the database update fails. Removing
        the previous picture is a best-effort follow-up after commit.
        """
        new_ref = storage.save_profile_pic(user.id, filename, content_type, data)
        old_ref = user.profile_pic

        try:
            user.profile_pic = new_ref
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            storage.delete(new_ref)
            raise

        if old_ref and old_ref != new_ref:
            try:
                storage.delete(old_ref)
            except OSError as e:
                logger.error(f"Failed to delete old profile picture {old_ref}: {e}", exc_info=True)

        logger.info(f"User {user.id} profile picture updated")
        return new_ref

    async def list_users(self, db: AsyncSession) -> List[User]:
        result = await db.execute(select(User).order_by(User.created_at.desc(), User.id.desc()))
        return list(result.scalars().all())

    async def delete_user(self, db: AsyncSession, user_id: int) -> None:
        """Remove a user; the schema cascades to every entity they own or take part in"""
        await self.get_user(db, user_id)
        await db.execute(delete(User).where(User.id == user_id))
        logger.info(f"Deleted user {user_id} and all dependent records")


# Singleton instance
_identity_store_instance: Optional[IdentityStore] = None


def get_identity_store() -> IdentityStore:
    """Get singleton instance of IdentityStore"""
    global _identity_store_instance
    if _identity_store_instance is None:
        _identity_store_instance = IdentityStore()
    return _identity_store_instance
