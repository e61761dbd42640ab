"""Message model - Append-only chat inside a swap session"""
from sqlalchemy import Column, Integer, DateTime, Text, ForeignKey, Index

from skillswap.database import Base, utcnow


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    swap_session_id = Column(Integer, ForeignKey("swap_sessions.id", ondelete="CASCADE"), nullable=False)
    sender_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    message_text = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (Index("idx_messages_swap_created", "swap_session_id", "created_at"),)

    def __repr__(self):
        return f"<Message(id={self.id}, swap_session_id={self.swap_session_id}, sender={self.sender_id})>"
