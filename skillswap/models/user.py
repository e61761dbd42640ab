"""User model - Identity, profile and derived reputation"""
from sqlalchemy import Column, String, Integer, Float, Boolean, DateTime, Text, CheckConstraint

from skillswap.database import Base, utcnow


class User(Base):
    """Registered member; rating and total_swaps are derived counters"""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(50), unique=True, nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=True)
    bio = Column(Text, nullable=True)
    profile_pic = Column(String(500), nullable=True)
    rating = Column(
        Float,
        CheckConstraint("rating >= 0 AND rating <= 5", name="ck_users_rating_range"),
        nullable=False,
        default=0.0,
    )
    total_swaps = Column(Integer, nullable=False, default=0)
    is_admin = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username}, rating={self.rating})>"
