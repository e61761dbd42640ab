"""SwapSession model - Active exchange created when a request is accepted"""
import enum

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, CheckConstraint, Index

from skillswap.database import Base, utcnow


class SwapSessionStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class SwapSession(Base):
    """
    One session per accepted request.

    Participants and skills are copied from the request at acceptance time and
    never change afterwards. The unique swap_request_id is the backstop that
    prevents two concurrent accepts from creating two sessions.
    """

    __tablename__ = "swap_sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    swap_request_id = Column(
        Integer,
        ForeignKey("swap_requests.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    user1_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    user2_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    user1_skill_id = Column(Integer, ForeignKey("skills.id", ondelete="CASCADE"), nullable=False)
    user2_skill_id = Column(Integer, ForeignKey("skills.id", ondelete="CASCADE"), nullable=False)
    status = Column(String(20), nullable=False, default=SwapSessionStatus.ACTIVE.value)
    started_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("status IN ('ACTIVE', 'COMPLETED', 'CANCELLED')", name="ck_swap_sessions_status"),
        Index("idx_swap_sessions_user1", "user1_id"),
        Index("idx_swap_sessions_user2", "user2_id"),
    )

    def participant_ids(self):
        return (self.user1_id, self.user2_id)

    def has_participant(self, user_id: int) -> bool:
        return user_id in (self.user1_id, self.user2_id)

    def other_participant(self, user_id: int) -> int:
        return self.user2_id if user_id == self.user1_id else self.user1_id

    def __repr__(self):
        return f"<SwapSession(id={self.id}, users=({self.user1_id}, {self.user2_id}), status={self.status})>"
