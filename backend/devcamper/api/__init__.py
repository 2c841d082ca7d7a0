# backend/devcamper/api/__init__.py
from .bootcamps import router as bootcamps_router
from .courses import router as courses_router
from .reviews import router as reviews_router

__all__ = ["bootcamps_router", "courses_router", "reviews_router"]
