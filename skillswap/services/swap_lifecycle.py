"""
Swap Lifecycle State Machine

SwapRequest:  PENDING --accept(receiver)--> ACCEPTED  (creates the SwapSession)
              PENDING --reject(receiver)--> REJECTED
SwapSession:  ACTIVE --complete(participant)--> COMPLETED  (total_swaps += 1 for both)
              ACTIVE --cancel(admin)--> CANCELLED

Every transition re-reads the row under a row lock, checks the actor and the
current status, and then applies a conditional UPDATE guarded on the expected
status. A transition that loses a race therefore matches zero rows and is
reported as a Conflict. The unique swap_request_id on swap_sessions is the
final backstop against double sessions.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from skillswap.database import as_utc, utcnow
from skillswap.exceptions import AuthorizationDenied, Conflict, NotFound, ValidationError
from skillswap.models.skill import Skill, SkillType
from skillswap.models.swap_request import SwapRequest, SwapRequestStatus
from skillswap.models.swap_session import SwapSession, SwapSessionStatus
from skillswap.models.user import User
from skillswap.services.guards import (
    ensure_participant,
    ensure_session_status,
    load_swap_session,
    optional_text,
    to_dict,
)
from skillswap.services.matching_engine import get_matching_engine
from skillswap.services.session_activity import get_session_activity

logger = logging.getLogger(__name__)


def propose_skill_pair(detail: Dict[str, Any]) -> Tuple[int, int, str]:
    """
    Choose the (requester_skill_id, receiver_skill_id) pair for a new request.

    Prefers a bidirectional pairing. When only one direction matches, the
    matched skill is paired with the first OFFER skill of the other party.

    Args:
        detail: Output of MatchingEngine.compute_match_detail

    Returns:
        Tuple of (requester_skill_id, receiver_skill_id, message)

    Raises:
        ValidationError: No match in either direction, or the fallback party
            has no OFFER skills at all
    """
    theirs_i_want = detail["their_offers_that_i_want"]
    mine_they_want = detail["my_offers_that_they_want"]
    all_theirs = detail["all_their_offers"]
    all_mine = detail["all_my_offers"]

    if not theirs_i_want and not mine_they_want:
        raise ValidationError("No matching skills found")

    if mine_they_want and theirs_i_want:
        mine, theirs = mine_they_want[0], theirs_i_want[0]
    elif theirs_i_want and all_mine:
        mine, theirs = all_mine[0], theirs_i_want[0]
    elif mine_they_want and all_theirs:
        mine, theirs = mine_they_want[0], all_theirs[0]
    else:
        raise ValidationError("Cannot create swap request: both users need at least one OFFER skill")

    message = f"Hi! I'd like to swap {mine['skill_name']} for {theirs['skill_name']}."
    return mine["id"], theirs["id"], message


def dedupe_by_pair(swap_sessions: List[SwapSession]) -> List[SwapSession]:
    """
    Keep only the most recent session per unordered participant pair.

    Recency is the later of started_at and completed_at; ties go to the
    higher id. Output is ordered most recent first.
    """

    def recency(swap_session: SwapSession):
        moments = [as_utc(m) for m in (swap_session.started_at, swap_session.completed_at) if m is not None]
        return (max(moments) if moments else None, swap_session.id)

    latest: Dict[frozenset, SwapSession] = {}
    for swap_session in swap_sessions:
        key = frozenset(swap_session.participant_ids())
        current = latest.get(key)
        if current is None or recency(swap_session) > recency(current):
            latest[key] = swap_session

    return sorted(latest.values(), key=recency, reverse=True)


class SwapLifecycle:
    """Request and session transitions with their authorization and state checks"""

    # --- requests -------------------------------------------------------

    async def _offer_skill_of(self, db: AsyncSession, skill_id: int, owner_id: int, field: str) -> Skill:
        skill = await db.get(Skill, skill_id)
        if skill is None or skill.user_id != owner_id or skill.skill_type != SkillType.OFFER.value:
            raise ValidationError(f"Invalid {field}: must be an OFFER skill of that user", field=field)
        return skill

    async def create_request(
        self,
        db: AsyncSession,
        requester_id: int,
        receiver_id: int,
        requester_skill_id: int,
        receiver_skill_id: int,
        message: Optional[str] = None,
    ) -> SwapRequest:
        """
        Open a PENDING request from requester to receiver.

        Raises:
            ValidationError: Self request, or a skill that is not the party's OFFER skill
            NotFound: Receiver does not exist
            Conflict: A PENDING request already exists for this ordered pair
        """
        if requester_id == receiver_id:
            raise ValidationError("Cannot create swap request with yourself", field="receiver_id")

        if await db.get(User, receiver_id) is None:
            raise NotFound("Receiver not found", details={"user_id": receiver_id})

        await self._offer_skill_of(db, requester_skill_id, requester_id, "requester_skill_id")
        await self._offer_skill_of(db, receiver_skill_id, receiver_id, "receiver_skill_id")

        existing = (
            await db.execute(
                select(SwapRequest.id).where(
                    SwapRequest.requester_id == requester_id,
                    SwapRequest.receiver_id == receiver_id,
                    SwapRequest.status == SwapRequestStatus.PENDING.value,
                )
            )
        ).scalar_one_or_none()
        if existing is not None:
            raise Conflict(
                "A pending swap request already exists with this user",
                details={"swap_request_id": existing, "status": SwapRequestStatus.PENDING.value},
            )

        swap_request = SwapRequest(
            requester_id=requester_id,
            receiver_id=receiver_id,
            requester_skill_id=requester_skill_id,
            receiver_skill_id=receiver_skill_id,
            status=SwapRequestStatus.PENDING.value,
            message=optional_text(message),
        )
        db.add(swap_request)
        try:
            await db.flush()
        except IntegrityError:
            # Partial unique index on PENDING pairs caught a concurrent create
            raise Conflict("A pending swap request already exists with this user")

        logger.info(f"Swap request {swap_request.id} created: {requester_id} -> {receiver_id}")
        return swap_request

    async def propose_request(self, db: AsyncSession, requester_id: int, receiver_id: int) -> SwapRequest:
        """Create a request whose skill pair is chosen by propose_skill_pair"""
        detail = await get_matching_engine().compute_match_detail(db, requester_id, receiver_id)
        requester_skill_id, receiver_skill_id, message = propose_skill_pair(detail)
        return await self.create_request(
            db,
            requester_id=requester_id,
            receiver_id=receiver_id,
            requester_skill_id=requester_skill_id,
            receiver_skill_id=receiver_skill_id,
            message=message,
        )

    def _request_listing_query(self):
        requester = aliased(User)
        receiver = aliased(User)
        requester_skill = aliased(Skill)
        receiver_skill = aliased(Skill)
        stmt = (
            select(
                SwapRequest,
                requester.username,
                requester.full_name,
                requester.rating,
                receiver.username,
                receiver.full_name,
                receiver.rating,
                requester_skill.skill_name,
                requester_skill.description,
                receiver_skill.skill_name,
                receiver_skill.description,
            )
            .join(requester, requester.id == SwapRequest.requester_id)
            .join(receiver, receiver.id == SwapRequest.receiver_id)
            .join(requester_skill, requester_skill.id == SwapRequest.requester_skill_id)
            .join(receiver_skill, receiver_skill.id == SwapRequest.receiver_skill_id)
            .order_by(SwapRequest.created_at.desc(), SwapRequest.id.desc())
        )
        return stmt

    @staticmethod
    def _request_row(row) -> Dict[str, Any]:
        (
            swap_request,
            requester_username,
            requester_name,
            requester_rating,
            receiver_username,
            receiver_name,
            receiver_rating,
            requester_skill_name,
            requester_skill_desc,
            receiver_skill_name,
            receiver_skill_desc,
        ) = row
        data = to_dict(swap_request)
        data.update(
            requester_username=requester_username,
            requester_name=requester_name,
            requester_rating=requester_rating,
            receiver_username=receiver_username,
            receiver_name=receiver_name,
            receiver_rating=receiver_rating,
            requester_skill_name=requester_skill_name,
            requester_skill_desc=requester_skill_desc,
            receiver_skill_name=receiver_skill_name,
            receiver_skill_desc=receiver_skill_desc,
        )
        return data

    async def list_requests(
        self, db: AsyncSession, user_id: int, direction: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Requests sent by, received by, or (direction=None) involving the user, newest first"""
        stmt = self._request_listing_query()
        if direction == "sent":
            stmt = stmt.where(SwapRequest.requester_id == user_id)
        elif direction == "received":
            stmt = stmt.where(SwapRequest.receiver_id == user_id)
        elif direction is None:
            stmt = stmt.where(or_(SwapRequest.requester_id == user_id, SwapRequest.receiver_id == user_id))
        else:
            raise ValidationError("type must be 'sent' or 'received'", field="type")

        result = await db.execute(stmt)
        return [self._request_row(row) for row in result.all()]

    async def list_all_requests(self, db: AsyncSession) -> List[Dict[str, Any]]:
        result = await db.execute(self._request_listing_query())
        return [self._request_row(row) for row in result.all()]

    async def _load_request_for_receiver(self, db: AsyncSession, request_id: int, user_id: int, action: str):
        swap_request = (
            await db.execute(select(SwapRequest).where(SwapRequest.id == request_id).with_for_update())
        ).scalar_one_or_none()
        if swap_request is None:
            raise NotFound("Swap request not found", details={"swap_request_id": request_id})
        if swap_request.receiver_id != user_id:
            logger.warning(f"User {user_id} denied '{action}' on swap request {request_id}")
            raise AuthorizationDenied(f"Only the receiver can {action} this request")
        if swap_request.status != SwapRequestStatus.PENDING.value:
            raise Conflict(
                "Swap request is not pending",
                details={"swap_request_id": request_id, "status": swap_request.status},
            )
        return swap_request

    async def _transition_request(self, db: AsyncSession, swap_request: SwapRequest, new_status: str) -> None:
        result = await db.execute(
            update(SwapRequest)
            .where(
                SwapRequest.id == swap_request.id,
                SwapRequest.status == SwapRequestStatus.PENDING.value,
            )
            .values(status=new_status, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await db.refresh(swap_request)
            raise Conflict(
                "Swap request is not pending",
                details={"swap_request_id": swap_request.id, "status": swap_request.status},
            )
        await db.refresh(swap_request)

    async def accept_request(self, db: AsyncSession, request_id: int, user_id: int) -> SwapSession:
        """
        Accept a PENDING request and open its ACTIVE session in one transaction.

        user1/user2 and their skills are copied from the request.
        """
        swap_request = await self._load_request_for_receiver(db, request_id, user_id, "accept")
        await self._transition_request(db, swap_request, SwapRequestStatus.ACCEPTED.value)

        swap_session = SwapSession(
            swap_request_id=swap_request.id,
            user1_id=swap_request.requester_id,
            user2_id=swap_request.receiver_id,
            user1_skill_id=swap_request.requester_skill_id,
            user2_skill_id=swap_request.receiver_skill_id,
            status=SwapSessionStatus.ACTIVE.value,
            started_at=utcnow(),
        )
        db.add(swap_session)
        try:
            await db.flush()
        except IntegrityError:
            raise Conflict(
                "A swap session already exists for this request",
                details={"swap_request_id": swap_request.id, "status": SwapRequestStatus.ACCEPTED.value},
            )

        logger.info(f"Swap request {request_id} accepted; swap session {swap_session.id} is ACTIVE")
        return swap_session

    async def reject_request(self, db: AsyncSession, request_id: int, user_id: int) -> SwapRequest:
        swap_request = await self._load_request_for_receiver(db, request_id, user_id, "reject")
        await self._transition_request(db, swap_request, SwapRequestStatus.REJECTED.value)
        logger.info(f"Swap request {request_id} rejected by user {user_id}")
        return swap_request

    # --- sessions -------------------------------------------------------

    def _session_listing_query(self):
        user1 = aliased(User)
        user2 = aliased(User)
        skill1 = aliased(Skill)
        skill2 = aliased(Skill)
        return (
            select(
                SwapSession,
                user1.username,
                user1.full_name,
                user2.username,
                user2.full_name,
                skill1.skill_name,
                skill2.skill_name,
            )
            .join(user1, user1.id == SwapSession.user1_id)
            .join(user2, user2.id == SwapSession.user2_id)
            .join(skill1, skill1.id == SwapSession.user1_skill_id)
            .join(skill2, skill2.id == SwapSession.user2_skill_id)
            .order_by(SwapSession.started_at.desc(), SwapSession.id.desc())
        )

    @staticmethod
    def _session_row(swap_session: SwapSession, names) -> Dict[str, Any]:
        user1_username, user1_name, user2_username, user2_name, user1_skill_name, user2_skill_name = names
        data = to_dict(swap_session)
        data.update(
            user1_username=user1_username,
            user1_name=user1_name,
            user2_username=user2_username,
            user2_name=user2_name,
            user1_skill_name=user1_skill_name,
            user2_skill_name=user2_skill_name,
        )
        return data

    async def list_sessions(self, db: AsyncSession, user_id: int) -> List[Dict[str, Any]]:
        """The user's sessions, at most one (the most recent) per participant pair"""
        stmt = self._session_listing_query().where(
            or_(SwapSession.user1_id == user_id, SwapSession.user2_id == user_id)
        )
        rows = (await db.execute(stmt)).all()
        names_by_id = {row[0].id: row[1:] for row in rows}
        unique = dedupe_by_pair([row[0] for row in rows])
        return [self._session_row(s, names_by_id[s.id]) for s in unique]

    async def list_all_sessions(self, db: AsyncSession) -> List[Dict[str, Any]]:
        rows = (await db.execute(self._session_listing_query())).all()
        return [self._session_row(row[0], row[1:]) for row in rows]

    async def get_session_detail(self, db: AsyncSession, swap_session_id: int, user_id: int) -> Dict[str, Any]:
        """One session with names plus its learning sessions, resources and messages"""
        row = (
            await db.execute(self._session_listing_query().where(SwapSession.id == swap_session_id))
        ).first()
        if row is None:
            raise NotFound("Swap session not found", details={"swap_session_id": swap_session_id})
        swap_session = row[0]
        ensure_participant(swap_session, user_id, "view")

        activity = get_session_activity()
        detail = self._session_row(swap_session, row[1:])
        detail["learning_sessions"] = await activity.list_learning_sessions_detailed(db, swap_session_id, user_id)
        detail["resources"] = await activity.list_resources(db, swap_session_id, user_id)
        detail["messages"] = await activity.list_messages(db, swap_session_id, user_id)
        return detail

    async def _transition_session(
        self, db: AsyncSession, swap_session: SwapSession, new_status: str, **values
    ) -> None:
        result = await db.execute(
            update(SwapSession)
            .where(
                SwapSession.id == swap_session.id,
                SwapSession.status == SwapSessionStatus.ACTIVE.value,
            )
            .values(status=new_status, **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await db.refresh(swap_session)
            raise Conflict(
                "Swap session is not active",
                details={"swap_session_id": swap_session.id, "status": swap_session.status},
            )
        await db.refresh(swap_session)

    async def complete_session(self, db: AsyncSession, swap_session_id: int, user_id: int) -> SwapSession:
        """
        Mark an ACTIVE session COMPLETED and credit both participants one swap.

        Raises:
            NotFound: Unknown session
            AuthorizationDenied: Caller is not a participant
            Conflict: Session is not ACTIVE
        """
        swap_session = await load_swap_session(db, swap_session_id, for_update=True)
        ensure_participant(swap_session, user_id, "complete")
        ensure_session_status(swap_session, [SwapSessionStatus.ACTIVE], "complete")

        await self._transition_session(
            db, swap_session, SwapSessionStatus.COMPLETED.value, completed_at=utcnow()
        )
        await db.execute(
            update(User)
            .where(User.id.in_(list(swap_session.participant_ids())))
            .values(total_swaps=User.total_swaps + 1)
            .execution_options(synchronize_session="fetch")
        )

        logger.info(f"Swap session {swap_session_id} completed by user {user_id}")
        return swap_session

    async def force_cancel_session(self, db: AsyncSession, swap_session_id: int, admin_id: int) -> SwapSession:
        """Admin override: ACTIVE -> CANCELLED with no counter or rating side effects"""
        swap_session = await load_swap_session(db, swap_session_id, for_update=True)
        ensure_session_status(swap_session, [SwapSessionStatus.ACTIVE], "cancel")
        await self._transition_session(db, swap_session, SwapSessionStatus.CANCELLED.value)
        logger.info(f"Swap session {swap_session_id} cancelled by admin {admin_id}")
        return swap_session


# Singleton instance
_swap_lifecycle_instance: Optional[SwapLifecycle] = None


def get_swap_lifecycle() -> SwapLifecycle:
    """Get singleton instance of SwapLifecycle"""
    global _swap_lifecycle_instance
    if _swap_lifecycle_instance is None:
        _swap_lifecycle_instance = SwapLifecycle()
    return _swap_lifecycle_instance
