"""
Swap Request API Endpoints

POST /api/swap-requests - Create a request with explicit skills
POST /api/swap-requests/propose/:other_id - Create a request with the skill pair chosen for you
GET /api/swap-requests?type=sent|received - List requests
POST /api/swap-requests/:id/accept - Receiver accepts; opens the swap session
POST /api/swap-requests/:id/reject - Receiver rejects
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Path, Query, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from skillswap.api.auth import get_current_user
from skillswap.database import get_db
from skillswap.models.user import User
from skillswap.services.guards import to_dict
from skillswap.services.swap_lifecycle import get_swap_lifecycle

router = APIRouter(prefix="/api/swap-requests", tags=["swap-requests"])


class SwapRequestCreate(BaseModel):
    receiver_id: int
    requester_skill_id: int
    receiver_skill_id: int
    message: Optional[str] = None


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_swap_request(
    body: SwapRequestCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db, scope="function"),
) -> Dict[str, Any]:
    """
    Create a PENDING request.

    Raises:
        400: Self request, or a skill that is not the party's OFFER skill
        404: Receiver not found
        409: A PENDING request to this receiver already exists
    """
    swap_request = await get_swap_lifecycle().create_request(
        db,
        requester_id=current_user.id,
        receiver_id=body.receiver_id,
        requester_skill_id=body.requester_skill_id,
        receiver_skill_id=body.receiver_skill_id,
        message=body.message,
    )
    return {"message": "Swap request created successfully", "swap_request": to_dict(swap_request)}


@router.post("/propose/{other_id}", status_code=status.HTTP_201_CREATED)
async def propose_swap_request(
    other_id: int = Path(..., description="Receiver user id"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db, scope="function"),
) -> Dict[str, Any]:
    """Create a request, preferring a bidirectional skill pairing"""
    swap_request = await get_swap_lifecycle().propose_request(db, current_user.id, other_id)
    return {"message": "Swap request sent successfully", "swap_request": to_dict(swap_request)}


@router.get("")
async def list_swap_requests(
    type: Optional[str] = Query(None, description="sent or received; omit for both"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db, scope="function"),
) -> Dict[str, Any]:
    requests = await get_swap_lifecycle().list_requests(db, current_user.id, type)
    return {"swap_requests": requests}


@router.post("/{request_id}/accept")
async def accept_swap_request(
    request_id: int = Path(..., description="Swap request id"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db, scope="function"),
) -> Dict[str, Any]:
    """
    Accept a PENDING request addressed to the current user.

    Raises:
        403: Current user is not the receiver
        404: Request not found
        409: Request is no longer PENDING
    """
    swap_session = await get_swap_lifecycle().accept_request(db, request_id, current_user.id)
    return {
        "message": "Swap request accepted and swap session created",
        "swap_session": to_dict(swap_session),
    }


@router.post("/{request_id}/reject")
async def reject_swap_request(
    request_id: int = Path(..., description="Swap request id"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db, scope="function"),
) -> Dict[str, Any]:
    swap_request = await get_swap_lifecycle().reject_request(db, request_id, current_user.id)
    return {"message": "Swap request rejected", "swap_request": to_dict(swap_request)}
