# backend/devcamper/schemas/course.py
from typing import Optional

from pydantic import Field, field_validator

from .base import BaseSchema, TimestampMixin, strip_text
from .bootcamp import BootcampSummary
from ..models.course import SkillLevel


class CourseBase(BaseSchema):
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    weeks: str = Field(min_length=1)
    tuition: float = Field(ge=0)
    minimum_skill: SkillLevel
    scholarship_available: bool = False

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, value):
        return strip_text(value)


class CourseCreate(CourseBase):
    pass


class CourseUpdate(BaseSchema):
    title: Optional[str] = None
    description: Optional[str] = None
    weeks: Optional[str] = None
    tuition: Optional[float] = None
    minimum_skill: Optional[SkillLevel] = None
    scholarship_available: Optional[bool] = None
    bootcamp_id: Optional[int] = None


class CourseRecord(CourseBase):
    bootcamp_id: int
    user_id: int


class Course(CourseBase, TimestampMixin):
    id: int
    bootcamp_id: int
    user_id: int


class CourseDetail(Course):
    bootcamp: Optional[BootcampSummary] = None
