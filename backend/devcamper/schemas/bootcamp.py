# backend/devcamper/schemas/bootcamp.py
import re
from typing import List, Literal, Optional

from pydantic import Field, field_validator, model_validator

from .base import BaseSchema, TimestampMixin, strip_text

Career = Literal[
    "Web Development",
    "Mobile Development",
    "UI/UX",
    "Data Science",
    "Business",
    "Other",
]

URL_PATTERN = r"^https?://(www\.)?[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}"
EMAIL_PATTERN = r"^\w+([.-]?\w+)*@\w+([.-]?\w+)*(\.\w{2,3})+$"


def slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


class BootcampBase(BaseSchema):
    name: str = Field(min_length=1, max_length=50)
    description: str = Field(min_length=1, max_length=500)
    website: str = Field(pattern=URL_PATTERN)
    phone: str = Field(min_length=1, max_length=20)
    email: str = Field(pattern=EMAIL_PATTERN)
    address: str = Field(min_length=1)
    careers: List[Career] = Field(min_length=1)
    photo: str = "no-photo.jpg"
    housing: bool = False
    job_assistance: bool = False
    job_guarantee: bool = False
    accept_gi: bool = False

    @field_validator("name", "description", "address", mode="before")
    @classmethod
    def strip_whitespace(cls, value):
        return strip_text(value)


class BootcampCreate(BootcampBase):
    pass


class BootcampUpdate(BaseSchema):
    name: Optional[str] = None
    description: Optional[str] = None
    website: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    careers: Optional[List[str]] = None
    photo: Optional[str] = None
    housing: Optional[bool] = None
    job_assistance: Optional[bool] = None
    job_guarantee: Optional[bool] = None
    accept_gi: Optional[bool] = None


class BootcampRecord(BootcampBase):
    """Stored shape of a bootcamp; used to validate inserts and merged patches"""
    user_id: int
    slug: Optional[str] = None

    @model_validator(mode="after")
    def derive_slug(self):
        self.slug = slugify(self.name)
        return self


class Bootcamp(BootcampBase, TimestampMixin):
    id: int
    slug: Optional[str] = None
    user_id: int
    average_rating: Optional[float] = None
    average_cost: Optional[float] = None


class BootcampSummary(BaseSchema):
    id: int
    name: str
    description: str
