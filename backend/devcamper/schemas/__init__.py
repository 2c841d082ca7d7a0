# backend/devcamper/schemas/__init__.py
from .bootcamp import Bootcamp, BootcampCreate, BootcampUpdate, BootcampRecord, BootcampSummary
from .course import Course, CourseCreate, CourseUpdate, CourseRecord, CourseDetail
from .review import Review, ReviewCreate, ReviewUpdate, ReviewRecord, ReviewDetail

__all__ = [
    "Bootcamp", "BootcampCreate", "BootcampUpdate", "BootcampRecord", "BootcampSummary",
    "Course", "CourseCreate", "CourseUpdate", "CourseRecord", "CourseDetail",
    "Review", "ReviewCreate", "ReviewUpdate", "ReviewRecord", "ReviewDetail"
]
