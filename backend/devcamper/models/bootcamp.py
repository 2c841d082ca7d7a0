# backend/devcamper/models/bootcamp.py
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, DateTime, Float, Boolean, JSON
from ..database import Base


def utcnow():
    return datetime.now(timezone.utc)


class Bootcamp(Base):
    __tablename__ = "bootcamps"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False, unique=True)
    slug = Column(String(60), nullable=True, index=True)
    description = Column(String(500), nullable=False)
    website = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=False)
    email = Column(String(255), nullable=False)
    address = Column(Text, nullable=False)
    careers = Column(JSON, nullable=False)
    average_rating = Column(Float, nullable=True)
    average_cost = Column(Float, nullable=True)
    photo = Column(String(255), nullable=False, default="no-photo.jpg")
    housing = Column(Boolean, nullable=False, default=False)
    job_assistance = Column(Boolean, nullable=False, default=False)
    job_guarantee = Column(Boolean, nullable=False, default=False)
    accept_gi = Column(Boolean, nullable=False, default=False)
    user_id = Column(Integer, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
