# backend/devcamper/models/__init__.py
from ..database import Base
from .bootcamp import Bootcamp
from .course import Course, SkillLevel
from .review import Review

__all__ = [
    "Base",
    "Bootcamp",
    "Course",
    "SkillLevel",
    "Review"
]
