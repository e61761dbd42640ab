"""SwapRequest model - Proposed exchange of two OFFER skills"""
import enum

from sqlalchemy import Column, String, Integer, DateTime, Text, ForeignKey, CheckConstraint, Index, text

from skillswap.database import Base, utcnow


class SwapRequestStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"  # reserved, no transition leads here yet


class SwapRequest(Base):
    """Request from requester to receiver; only the receiver moves it out of PENDING"""

    __tablename__ = "swap_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    requester_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    receiver_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    requester_skill_id = Column(Integer, ForeignKey("skills.id", ondelete="CASCADE"), nullable=False)
    receiver_skill_id = Column(Integer, ForeignKey("skills.id", ondelete="CASCADE"), nullable=False)
    status = Column(String(20), nullable=False, default=SwapRequestStatus.PENDING.value)
    message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING', 'ACCEPTED', 'REJECTED', 'CANCELLED')",
            name="ck_swap_requests_status",
        ),
        CheckConstraint("requester_id <> receiver_id", name="ck_swap_requests_distinct_users"),
        # At most one PENDING request per ordered (requester, receiver) pair
        Index(
            "uq_swap_requests_pending_pair",
            "requester_id",
            "receiver_id",
            unique=True,
            postgresql_where=text("status = 'PENDING'"),
            sqlite_where=text("status = 'PENDING'"),
        ),
        Index("idx_swap_requests_receiver", "receiver_id"),
    )

    def __repr__(self):
        return (
            f"<SwapRequest(id={self.id}, requester={self.requester_id}, "
            f"receiver={self.receiver_id}, status={self.status})>"
        )
