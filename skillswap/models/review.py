"""Review model - Rating left by one swap participant for the other"""
from sqlalchemy import Column, Integer, DateTime, Text, ForeignKey, CheckConstraint, UniqueConstraint, Index

from skillswap.database import Base, utcnow


class Review(Base):
    """At most one review per (swap session, reviewer, reviewee)"""

    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, autoincrement=True)
    swap_session_id = Column(Integer, ForeignKey("swap_sessions.id", ondelete="CASCADE"), nullable=False)
    reviewer_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    reviewee_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"),
        UniqueConstraint("swap_session_id", "reviewer_id", "reviewee_id", name="uq_reviews_session_pair"),
        Index("idx_reviews_reviewee", "reviewee_id"),
    )

    def __repr__(self):
        return f"<Review(id={self.id}, reviewer={self.reviewer_id}, reviewee={self.reviewee_id}, rating={self.rating})>"
