"""
Matching Engine

Finds, for a given user, every other user with a skill overlap in either
direction:

    (a) they OFFER a skill whose name equals one of my WANT skills
    (b) I OFFER a skill whose name equals one of their WANT skills

Names are compared exactly after case-folding. Results are recomputed live
from the skill registry on every call; nothing is cached.

Each candidate also carries its relationship status with the caller
(pending requests, active or completed swaps) so clients never have to
rebuild the lifecycle state from separate listings.
"""
import logging
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from skillswap.database import as_utc
from skillswap.exceptions import NotFound, ValidationError
from skillswap.models.skill import Skill, SkillType
from skillswap.models.swap_request import SwapRequest, SwapRequestStatus
from skillswap.models.swap_session import SwapSession, SwapSessionStatus
from skillswap.models.user import User

logger = logging.getLogger(__name__)

# Relationship statuses, highest precedence first
REL_COMPLETED = "COMPLETED"
REL_ACTIVE = "ACTIVE"
REL_RECEIVED_PENDING = "RECEIVED_PENDING"
REL_PENDING = "PENDING"
REL_REJECTED = "REJECTED"
REL_NONE = "NONE"

MATCH_USER_FIELDS = ("id", "username", "full_name", "rating", "bio", "profile_pic")
DETAIL_SKILL_FIELDS = ("id", "skill_name", "description", "proficiency_level")


def normalize_skill_name(name: str) -> str:
    return (name or "").strip().casefold()


def _distinct_names(skills: Iterable[Skill]) -> List[str]:
    """Skill names in the given order, dropping case-insensitive duplicates"""
    seen = set()
    names = []
    for skill in skills:
        key = normalize_skill_name(skill.skill_name)
        if key not in seen:
            seen.add(key)
            names.append(skill.skill_name)
    return names


def _split_by_type(skills: Sequence[Skill]):
    offers = [s for s in skills if s.skill_type == SkillType.OFFER.value]
    wants = [s for s in skills if s.skill_type == SkillType.WANT.value]
    return offers, wants


def offers_matching_wants(offers: Iterable[Skill], wants: Iterable[Skill]) -> List[Skill]:
    """OFFER skills whose name equals any of the WANT skill names"""
    wanted = {normalize_skill_name(s.skill_name) for s in wants}
    return [s for s in offers if normalize_skill_name(s.skill_name) in wanted]


def match_skill_names(my_skills: Sequence[Skill], their_skills: Sequence[Skill]) -> Dict[str, List[str]]:
    """
    Both direction lists for one candidate.

    Returns:
        {"they_offer_that_i_want": [...], "i_offer_that_they_want": [...]},
        each a list of distinct skill names taken from the OFFER side
    """
    my_offers, my_wants = _split_by_type(my_skills)
    their_offers, their_wants = _split_by_type(their_skills)
    return {
        "they_offer_that_i_want": _distinct_names(offers_matching_wants(their_offers, my_wants)),
        "i_offer_that_they_want": _distinct_names(offers_matching_wants(my_offers, their_wants)),
    }


def classify_relationship(
    user_id: int,
    other_id: int,
    sent_requests: Sequence[SwapRequest],
    received_requests: Sequence[SwapRequest],
    swap_sessions: Sequence[SwapSession],
) -> Dict[str, Any]:
    """
    Effective relationship between user_id and other_id.

    sent_requests must be ordered newest first; the newest request sent to
    other_id decides PENDING/REJECTED. Precedence is COMPLETED, ACTIVE,
    RECEIVED_PENDING, PENDING, REJECTED, NONE.
    """
    relationship = {
        "status": REL_NONE,
        "allow_new_request": True,
        "pending_request_id": None,
        "active_swap_id": None,
        "completed_swap_id": None,
    }

    pair = {user_id, other_id}
    pair_sessions = [s for s in swap_sessions if {s.user1_id, s.user2_id} == pair]

    completed = [s for s in pair_sessions if s.status == SwapSessionStatus.COMPLETED.value]
    if completed:
        latest = max(completed, key=lambda s: (as_utc(s.completed_at or s.started_at), s.id))
        relationship.update(status=REL_COMPLETED, completed_swap_id=latest.id)
        return relationship

    active = [s for s in pair_sessions if s.status == SwapSessionStatus.ACTIVE.value]
    if active:
        relationship.update(status=REL_ACTIVE, allow_new_request=False, active_swap_id=active[0].id)
        return relationship

    for request in received_requests:
        if request.requester_id == other_id and request.status == SwapRequestStatus.PENDING.value:
            relationship.update(
                status=REL_RECEIVED_PENDING,
                allow_new_request=False,
                pending_request_id=request.id,
            )
            return relationship

    sent = next((r for r in sent_requests if r.receiver_id == other_id), None)
    if sent is not None:
        if sent.status == SwapRequestStatus.PENDING.value:
            relationship.update(status=REL_PENDING, allow_new_request=False)
        elif sent.status == SwapRequestStatus.REJECTED.value:
            relationship.update(status=REL_REJECTED)
        # ACCEPTED without a live session (e.g. cancelled by an admin) falls back to NONE

    return relationship


class MatchingEngine:
    """Live skill-overlap matching between users"""

    async def _load_relationship_sources(self, db: AsyncSession, user_id: int):
        sent = (
            await db.execute(
                select(SwapRequest)
                .where(SwapRequest.requester_id == user_id)
                .order_by(SwapRequest.created_at.desc(), SwapRequest.id.desc())
            )
        ).scalars().all()
        received = (
            await db.execute(
                select(SwapRequest)
                .where(SwapRequest.receiver_id == user_id)
                .order_by(SwapRequest.created_at.desc(), SwapRequest.id.desc())
            )
        ).scalars().all()
        sessions = (
            await db.execute(
                select(SwapSession)
                .where(or_(SwapSession.user1_id == user_id, SwapSession.user2_id == user_id))
                .order_by(SwapSession.started_at.desc(), SwapSession.id.desc())
            )
        ).scalars().all()
        return sent, received, sessions

    async def compute_matches(self, db: AsyncSession, user_id: int) -> List[Dict[str, Any]]:
        """
        Every other user with a skill overlap in either direction.

        Ordered by rating descending, then username ascending. Self is
        always excluded and there is no pagination.
        """
        skills = (await db.execute(select(Skill).order_by(Skill.id))).scalars().all()

        my_skills = []
        skills_by_user: Dict[int, List[Skill]] = defaultdict(list)
        for skill in skills:
            if skill.user_id == user_id:
                my_skills.append(skill)
            else:
                skills_by_user[skill.user_id].append(skill)

        if not my_skills:
            return []

        matching_skills = {}
        for other_id, their_skills in skills_by_user.items():
            names = match_skill_names(my_skills, their_skills)
            if names["they_offer_that_i_want"] or names["i_offer_that_they_want"]:
                matching_skills[other_id] = names

        if not matching_skills:
            return []

        users = (
            await db.execute(
                select(User)
                .where(User.id.in_(list(matching_skills)))
                .order_by(User.rating.desc(), User.username.asc())
            )
        ).scalars().all()

        sent, received, sessions = await self._load_relationship_sources(db, user_id)

        matches = []
        for user in users:
            matches.append(
                {
                    "user": {field: getattr(user, field) for field in MATCH_USER_FIELDS},
                    "matching_skills": matching_skills[user.id],
                    "relationship": classify_relationship(user_id, user.id, sent, received, sessions),
                }
            )

        logger.info(f"Computed {len(matches)} matches for user {user_id}")
        return matches

    async def compute_match_detail(self, db: AsyncSession, user_id: int, other_id: int) -> Dict[str, Any]:
        """
        Skill pairing view for one user pair.

        Returns their matching offers, my matching offers, and both parties'
        complete OFFER lists (ordered by skill id) for the fallback pairing rule.
        """
        if other_id == user_id:
            raise ValidationError("Cannot match with yourself", field="other_id")

        other = await db.get(User, other_id)
        if other is None:
            raise NotFound("User not found", details={"user_id": other_id})

        skills = (
            await db.execute(
                select(Skill).where(Skill.user_id.in_([user_id, other_id])).order_by(Skill.id)
            )
        ).scalars().all()

        my_offers, my_wants = _split_by_type([s for s in skills if s.user_id == user_id])
        their_offers, their_wants = _split_by_type([s for s in skills if s.user_id == other_id])

        def serialize(items: Iterable[Skill]) -> List[Dict[str, Any]]:
            return [{field: getattr(s, field) for field in DETAIL_SKILL_FIELDS} for s in items]

        return {
            "matched_user": {field: getattr(other, field) for field in MATCH_USER_FIELDS},
            "their_offers_that_i_want": serialize(offers_matching_wants(their_offers, my_wants)),
            "my_offers_that_they_want": serialize(offers_matching_wants(my_offers, their_wants)),
            "all_their_offers": serialize(their_offers),
            "all_my_offers": serialize(my_offers),
        }


# Singleton instance
_matching_engine_instance: Optional[MatchingEngine] = None


def get_matching_engine() -> MatchingEngine:
    """Get singleton instance of MatchingEngine"""
    global _matching_engine_instance
    if _matching_engine_instance is None:
        _matching_engine_instance = MatchingEngine()
    return _matching_engine_instance
