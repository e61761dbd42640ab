"""SQLAlchemy ORM Models for the SkillSwap Database Schema"""
from skillswap.models.user import User
from skillswap.models.skill import Skill, SkillType, ProficiencyLevel
from skillswap.models.swap_request import SwapRequest, SwapRequestStatus
from skillswap.models.swap_session import SwapSession, SwapSessionStatus
from skillswap.models.learning_session import LearningSession, LearningSessionType, LearningSessionStatus
from skillswap.models.resource import Resource, ResourceType
from skillswap.models.message import Message
from skillswap.models.review import Review

__all__ = [
    "User",
    "Skill",
    "SkillType",
    "ProficiencyLevel",
    "SwapRequest",
    "SwapRequestStatus",
    "SwapSession",
    "SwapSessionStatus",
    "LearningSession",
    "LearningSessionType",
    "LearningSessionStatus",
    "Resource",
    "ResourceType",
    "Message",
    "Review",
]
