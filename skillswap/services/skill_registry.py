"""
Skill Registry

Owner-scoped CRUD over OFFER/WANT skill entries.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from skillswap.exceptions import AuthorizationDenied, NotFound
from skillswap.models.skill import ProficiencyLevel, Skill, SkillType
from skillswap.models.user import User
from skillswap.services.guards import optional_text, parse_enum, require_text, to_dict

logger = logging.getLogger(__name__)

_UNSET = object()


class SkillRegistry:
    """Create, edit, delete and list skills; only the owner may mutate a skill"""

    async def create_skill(
        self,
        db: AsyncSession,
        owner_id: int,
        skill_name: str,
        skill_type: Any,
        description: Optional[str] = None,
        proficiency_level: Any = None,
    ) -> Skill:
        skill = Skill(
            user_id=owner_id,
            skill_name=require_text(skill_name, "skill_name"),
            skill_type=parse_enum(SkillType, skill_type, "skill_type").value,
            description=optional_text(description),
            proficiency_level=parse_enum(
                ProficiencyLevel,
                proficiency_level or ProficiencyLevel.BEGINNER,
                "proficiency_level",
            ).value,
        )
        db.add(skill)
        await db.flush()
        logger.info(f"User {owner_id} added {skill.skill_type} skill '{skill.skill_name}' ({skill.id})")
        return skill

    async def _owned_skill(self, db: AsyncSession, owner_id: int, skill_id: int) -> Skill:
        skill = await db.get(Skill, skill_id)
        if skill is None:
            raise NotFound("Skill not found", details={"skill_id": skill_id})
        if skill.user_id != owner_id:
            raise AuthorizationDenied("Only the owner can modify this skill")
        return skill

    async def update_skill(
        self,
        db: AsyncSession,
        owner_id: int,
        skill_id: int,
        skill_name: Optional[str] = None,
        skill_type: Any = None,
        description: Any = _UNSET,
        proficiency_level: Any = None,
    ) -> Skill:
        """Partial update; omitted fields keep their current value"""
        skill = await self._owned_skill(db, owner_id, skill_id)

        if skill_name is not None:
            skill.skill_name = require_text(skill_name, "skill_name")
        if skill_type is not None:
            skill.skill_type = parse_enum(SkillType, skill_type, "skill_type").value
        if description is not _UNSET:
            skill.description = optional_text(description)
        if proficiency_level is not None:
            skill.proficiency_level = parse_enum(ProficiencyLevel, proficiency_level, "proficiency_level").value

        await db.flush()
        return skill

    async def delete_skill(self, db: AsyncSession, owner_id: int, skill_id: int) -> None:
        skill = await self._owned_skill(db, owner_id, skill_id)
        await db.delete(skill)
        await db.flush()
        logger.info(f"User {owner_id} deleted skill {skill_id}")

    async def list_user_skills(self, db: AsyncSession, user_id: int) -> List[Skill]:
        result = await db.execute(
            select(Skill)
            .where(Skill.user_id == user_id)
            .order_by(Skill.skill_type, Skill.created_at.desc(), Skill.id.desc())
        )
        return list(result.scalars().all())

    async def list_all_skills(self, db: AsyncSession) -> List[Dict[str, Any]]:
        """Every skill with its owner's public identity, newest first"""
        result = await db.execute(
            select(Skill, User.username, User.full_name, User.rating)
            .join(User, User.id == Skill.user_id)
            .order_by(Skill.created_at.desc(), Skill.id.desc())
        )
        skills = []
        for skill, username, full_name, rating in result.all():
            row = to_dict(skill)
            row.update(username=username, full_name=full_name, rating=rating)
            skills.append(row)
        return skills

    async def list_offer_skills(self, db: AsyncSession, user_id: int) -> List[Skill]:
        """A user's OFFER skills in creation order (the order the pairing fallback relies on)"""
        result = await db.execute(
            select(Skill)
            .where(Skill.user_id == user_id, Skill.skill_type == SkillType.OFFER.value)
            .order_by(Skill.id)
        )
        return list(result.scalars().all())


# Singleton instance
_skill_registry_instance: Optional[SkillRegistry] = None


def get_skill_registry() -> SkillRegistry:
    """Get singleton instance of SkillRegistry"""
    global _skill_registry_instance
    if _skill_registry_instance is None:
        _skill_registry_instance = SkillRegistry()
    return _skill_registry_instance
