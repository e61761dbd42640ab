"""
Admin API Endpoints

All routes require an admin user.

GET /api/admin/stats - Platform counts
GET /api/admin/users - All users
GET /api/admin/swap-requests - All swap requests
GET /api/admin/swap-sessions - All swap sessions
POST /api/admin/swap-sessions/:id/cancel - Force-cancel an ACTIVE swap
DELETE /api/admin/users/:id - Delete a user and everything they own
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from skillswap.api.auth import require_admin
from skillswap.database import get_db
from skillswap.exceptions import ValidationError
from skillswap.models.user import User
from skillswap.services.admin_oversight import get_admin_oversight
from skillswap.services.guards import to_dict

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/stats")
async def platform_stats(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db, scope="function"),
) -> Dict[str, Any]:
    return {"stats": await get_admin_oversight().stats(db)}


@router.get("/users")
async def list_users(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db, scope="function"),
) -> Dict[str, Any]:
    return {"users": await get_admin_oversight().list_users(db)}


@router.get("/swap-requests")
async def list_swap_requests(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db, scope="function"),
) -> Dict[str, Any]:
    return {"swap_requests": await get_admin_oversight().list_requests(db)}


@router.get("/swap-sessions")
async def list_swap_sessions(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db, scope="function"),
) -> Dict[str, Any]:
    return {"swap_sessions": await get_admin_oversight().list_sessions(db)}


@router.post("/swap-sessions/{swap_session_id}/cancel")
async def cancel_swap_session(
    swap_session_id: int = Path(..., description="Swap session id"),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db, scope="function"),
) -> Dict[str, Any]:
    """
    Dispute resolution override.

    Raises:
        404: Session not found
        409: Session is not ACTIVE
    """
    swap_session = await get_admin_oversight().cancel_session(db, swap_session_id, admin)
    return {"message": "Swap session cancelled by admin", "swap_session": to_dict(swap_session)}


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: int = Path(..., description="User id"),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db, scope="function"),
) -> Dict[str, Any]:
    if user_id == admin.id:
        raise ValidationError("Admins cannot delete their own account", field="user_id")
    await get_admin_oversight().delete_user(db, user_id, admin)
    return {"message": "User deleted successfully"}
