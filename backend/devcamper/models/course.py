# backend/devcamper/models/course.py
import enum

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Float, Boolean, Enum
from sqlalchemy.orm import relationship

from ..database import Base
from .bootcamp import utcnow


class SkillLevel(str, enum.Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class Course(Base):
    __tablename__ = "courses"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    weeks = Column(String(50), nullable=False)
    tuition = Column(Float, nullable=False)
    minimum_skill = Column(
        Enum(SkillLevel, values_callable=lambda levels: [level.value for level in levels]),
        nullable=False
    )
    scholarship_available = Column(Boolean, nullable=False, default=False)
    bootcamp_id = Column(Integer, ForeignKey("bootcamps.id"), nullable=False, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    bootcamp = relationship("Bootcamp")
