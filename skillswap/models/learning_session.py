"""LearningSession model - Scheduled lesson inside a swap session"""
import enum

from sqlalchemy import Column, String, Integer, Float, DateTime, Text, ForeignKey, CheckConstraint, Index

from skillswap.database import Base, utcnow


class LearningSessionType(str, enum.Enum):
    ONLINE = "Online"
    OFFLINE = "Offline"


class LearningSessionStatus(str, enum.Enum):
    SCHEDULED = "SCHEDULED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class LearningSession(Base):
    """Lesson between the two swap participants (stored in the sessions table)"""

    __tablename__ = "sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    swap_session_id = Column(Integer, ForeignKey("swap_sessions.id", ondelete="CASCADE"), nullable=False)
    teacher_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    topic = Column(String(255), nullable=False)
    session_type = Column(String(10), nullable=False)
    scheduled_date = Column(DateTime(timezone=True), nullable=False)
    duration_hours = Column(Float, nullable=False, default=1.0)
    status = Column(String(20), nullable=False, default=LearningSessionStatus.SCHEDULED.value)
    notes = Column(Text, nullable=True)
    meeting_link = Column(String(500), nullable=True)
    place = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("session_type IN ('Online', 'Offline')", name="ck_sessions_type"),
        CheckConstraint("status IN ('SCHEDULED', 'COMPLETED', 'CANCELLED')", name="ck_sessions_status"),
        Index("idx_sessions_swap_date", "swap_session_id", "scheduled_date"),
    )

    def __repr__(self):
        return f"<LearningSession(id={self.id}, swap_session_id={self.swap_session_id}, topic={self.topic})>"
