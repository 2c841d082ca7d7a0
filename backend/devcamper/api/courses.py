# backend/devcamper/api/courses.py
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from ..errors import DevcamperError, UpstreamError
from ..schemas.course import CourseCreate, CourseUpdate, Course as CourseSchema, CourseDetail
from ..services import query_builder, record_service
from ..services.advanced_results import AdvancedResultsAdapter
from ..services.auth import Identity, get_identity, require_owner
from ..services.query_builder import QueryRequest
from ..services.store import Store
from ..utils.logging import api_logger

router = APIRouter(prefix="/api", tags=["courses"])

course_results = AdvancedResultsAdapter(
    "courses",
    query_builder,
    count_mode=settings.PAGINATION_TOTAL,
    populate=("bootcamp", ("name", "description")),
)


def _list_courses(request: Request, db: Session, scope=None):
    try:
        query = QueryRequest.from_params(request.query_params, default_limit=settings.DEFAULT_PAGE_LIMIT)
        return course_results.execute(db, query, scope=scope).envelope()
    except DevcamperError:
        raise
    except Exception as e:
        api_logger.error("Failed to list courses", extra={
            "scope": scope,
            "error": str(e)
        }, exc_info=True)
        raise UpstreamError("Failed to list courses") from e


@router.get("/courses")
async def list_courses(request: Request, db: Session = Depends(get_db)):
    api_logger.info("Listing courses", extra={"query": str(request.query_params)})
    return _list_courses(request, db)


@router.get("/bootcamps/{bootcamp_id}/courses")
async def list_bootcamp_courses(bootcamp_id: int, request: Request, db: Session = Depends(get_db)):
    api_logger.info("Listing courses for bootcamp", extra={
        "bootcamp_id": bootcamp_id,
        "query": str(request.query_params)
    })
    Store(db).collection("bootcamps").get(bootcamp_id)
    return _list_courses(request, db, scope={"bootcamp_id": bootcamp_id})


@router.get("/courses/{course_id}")
async def get_course(course_id: int, db: Session = Depends(get_db)):
    api_logger.info("Fetching course", extra={"course_id": course_id})
    course = Store(db).collection("courses").get(course_id)
    return {"success": True, "data": CourseDetail.model_validate(course)}


@router.post("/bootcamps/{bootcamp_id}/courses", status_code=201)
async def add_course(
        bootcamp_id: int,
        course: CourseCreate,
        db: Session = Depends(get_db),
        identity: Identity = Depends(get_identity)
):
    api_logger.info("Adding course to bootcamp", extra={
        "bootcamp_id": bootcamp_id,
        "course_title": course.title,
        "user_id": identity.id
    })

    bootcamp = Store(db).collection("bootcamps").get(bootcamp_id)
    require_owner(identity, bootcamp.user_id, f"add a course to bootcamp {bootcamp_id}")

    db_course = await record_service.create(db, "courses", {
        **course.model_dump(),
        "bootcamp_id": bootcamp_id,
        "user_id": identity.id
    })

    api_logger.info("Course created successfully", extra={
        "course_id": db_course.id,
        "bootcamp_id": bootcamp_id
    })
    return {"success": True, "data": CourseSchema.model_validate(db_course)}


@router.put("/courses/{course_id}")
async def update_course(
        course_id: int,
        course: CourseUpdate,
        db: Session = Depends(get_db),
        identity: Identity = Depends(get_identity)
):
    patch = course.model_dump(exclude_unset=True)
    api_logger.info("Updating course", extra={
        "course_id": course_id,
        "update_fields": list(patch.keys())
    })

    store = Store(db)
    db_course = store.collection("courses").get(course_id)
    require_owner(identity, db_course.user_id, f"update course {course_id}")
    if patch.get("bootcamp_id") not in (None, db_course.bootcamp_id):
        # moving a course needs rights on the target bootcamp too
        target = store.collection("bootcamps").get(patch["bootcamp_id"])
        require_owner(identity, target.user_id, f"move course {course_id} to bootcamp {target.id}")

    db_course = await record_service.update(db, "courses", course_id, patch)

    api_logger.info("Course updated successfully", extra={"course_id": course_id})
    return {"success": True, "data": CourseSchema.model_validate(db_course)}


@router.delete("/courses/{course_id}")
async def delete_course(
        course_id: int,
        db: Session = Depends(get_db),
        identity: Identity = Depends(get_identity)
):
    api_logger.info("Deleting course", extra={"course_id": course_id})

    db_course = Store(db).collection("courses").get(course_id)
    require_owner(identity, db_course.user_id, f"delete course {course_id}")

    await record_service.delete(db, "courses", course_id)

    api_logger.info(f"Successfully deleted course {course_id}")
    return {"success": True, "data": {}}
