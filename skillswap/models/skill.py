"""Skill model - OFFER/WANT entries owned by a single user"""
import enum

from sqlalchemy import Column, String, Integer, DateTime, Text, ForeignKey, CheckConstraint, Index

from skillswap.database import Base, utcnow


class SkillType(str, enum.Enum):
    OFFER = "OFFER"
    WANT = "WANT"


class ProficiencyLevel(str, enum.Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"
    EXPERT = "Expert"


class Skill(Base):
    """A skill a user offers to teach or wants to learn"""

    __tablename__ = "skills"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    skill_name = Column(String(100), nullable=False)
    skill_type = Column(String(10), nullable=False)
    description = Column(Text, nullable=True)
    proficiency_level = Column(String(20), nullable=False, default=ProficiencyLevel.BEGINNER.value)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("skill_type IN ('OFFER', 'WANT')", name="ck_skills_type"),
        CheckConstraint(
            "proficiency_level IN ('Beginner', 'Intermediate', 'Advanced', 'Expert')",
            name="ck_skills_proficiency",
        ),
        Index("idx_skills_user_type", "user_id", "skill_type"),
    )

    def __repr__(self):
        return f"<Skill(id={self.id}, user_id={self.user_id}, name={self.skill_name}, type={self.skill_type})>"
