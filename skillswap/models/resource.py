"""Resource model - Material shared inside a swap session"""
import enum

from sqlalchemy import Column, String, Integer, DateTime, Text, ForeignKey, CheckConstraint, Index

from skillswap.database import Base, utcnow


class ResourceType(str, enum.Enum):
    LINK = "Link"
    PDF = "PDF"
    NOTE = "Note"
    OTHER = "Other"


class Resource(Base):
    __tablename__ = "resources"

    id = Column(Integer, primary_key=True, autoincrement=True)
    swap_session_id = Column(Integer, ForeignKey("swap_sessions.id", ondelete="CASCADE"), nullable=False)
    uploaded_by = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    resource_type = Column(String(10), nullable=False)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=True)
    file_path = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("resource_type IN ('Link', 'PDF', 'Note', 'Other')", name="ck_resources_type"),
        Index("idx_resources_swap", "swap_session_id"),
    )

    def __repr__(self):
        return f"<Resource(id={self.id}, swap_session_id={self.swap_session_id}, title={self.title})>"
