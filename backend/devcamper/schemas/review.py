# backend/devcamper/schemas/review.py
from typing import Optional

from pydantic import Field, field_validator

from .base import BaseSchema, TimestampMixin, strip_text
from .bootcamp import BootcampSummary


class ReviewBase(BaseSchema):
    title: str = Field(min_length=1, max_length=100)
    text: str = Field(min_length=1)
    rating: float = Field(ge=1, le=10)

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, value):
        return strip_text(value)


class ReviewCreate(ReviewBase):
    pass


class ReviewUpdate(BaseSchema):
    title: Optional[str] = None
    text: Optional[str] = None
    rating: Optional[float] = None


class ReviewRecord(ReviewBase):
    bootcamp_id: int
    user_id: int


class Review(ReviewBase, TimestampMixin):
    id: int
    bootcamp_id: int
    user_id: int


class ReviewDetail(Review):
    bootcamp: Optional[BootcampSummary] = None
