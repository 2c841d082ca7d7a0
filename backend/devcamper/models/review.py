# backend/devcamper/models/review.py
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Float, UniqueConstraint
from sqlalchemy.orm import relationship

from ..database import Base
from .bootcamp import utcnow


class Review(Base):
    __tablename__ = "reviews"
    # One review per user per bootcamp
    __table_args__ = (
        UniqueConstraint("bootcamp_id", "user_id", name="uq_reviews_bootcamp_user"),
    )

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(100), nullable=False)
    text = Column(Text, nullable=False)
    rating = Column(Float, nullable=False)
    bootcamp_id = Column(Integer, ForeignKey("bootcamps.id"), nullable=False, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    bootcamp = relationship("Bootcamp")
