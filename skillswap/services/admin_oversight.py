"""
Admin Oversight

On-demand platform statistics and listings, plus the two admin-only
mutations: force-cancelling an ACTIVE swap session and deleting a user.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from skillswap.models.skill import Skill
from skillswap.models.swap_session import SwapSession, SwapSessionStatus
from skillswap.models.user import User
from skillswap.services.identity_store import get_identity_store, public_profile
from skillswap.services.swap_lifecycle import get_swap_lifecycle

logger = logging.getLogger(__name__)


class AdminOversight:
    """Read-only aggregates and admin overrides; nothing here is cached"""

    async def stats(self, db: AsyncSession) -> Dict[str, int]:
        total_users = (await db.execute(select(func.count(User.id)))).scalar_one()
        total_skills = (await db.execute(select(func.count(Skill.id)))).scalar_one()

        by_status = dict(
            (await db.execute(select(SwapSession.status, func.count(SwapSession.id)).group_by(SwapSession.status))).all()
        )

        return {
            "total_users": total_users,
            "total_swaps": sum(by_status.values()),
            "active_swaps": by_status.get(SwapSessionStatus.ACTIVE.value, 0),
            "completed_swaps": by_status.get(SwapSessionStatus.COMPLETED.value, 0),
            "cancelled_swaps": by_status.get(SwapSessionStatus.CANCELLED.value, 0),
            "total_skills": total_skills,
        }

    async def list_users(self, db: AsyncSession) -> List[Dict[str, Any]]:
        users = await get_identity_store().list_users(db)
        return [public_profile(user) for user in users]

    async def list_requests(self, db: AsyncSession) -> List[Dict[str, Any]]:
        return await get_swap_lifecycle().list_all_requests(db)

    async def list_sessions(self, db: AsyncSession) -> List[Dict[str, Any]]:
        return await get_swap_lifecycle().list_all_sessions(db)

    async def cancel_session(self, db: AsyncSession, swap_session_id: int, admin: User) -> SwapSession:
        """Cancel regardless of participant consent; counters and ratings are untouched"""
        return await get_swap_lifecycle().force_cancel_session(db, swap_session_id, admin.id)

    async def delete_user(self, db: AsyncSession, user_id: int, admin: User) -> None:
        logger.warning(f"Admin {admin.id} deleting user {user_id}")
        await get_identity_store().delete_user(db, user_id)


# Singleton instance
_admin_oversight_instance: Optional[AdminOversight] = None


def get_admin_oversight() -> AdminOversight:
    """Get singleton instance of AdminOversight"""
    global _admin_oversight_instance
    if _admin_oversight_instance is None:
        _admin_oversight_instance = AdminOversight()
    return _admin_oversight_instance
