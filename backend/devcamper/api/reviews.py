# backend/devcamper/api/reviews.py
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from ..errors import DevcamperError, UpstreamError
from ..schemas.review import ReviewCreate, ReviewUpdate, Review as ReviewSchema, ReviewDetail
from ..services import query_builder, record_service
from ..services.advanced_results import AdvancedResultsAdapter
from ..services.auth import Identity, get_identity, require_owner
from ..services.query_builder import QueryRequest
from ..services.store import Store
from ..utils.logging import api_logger

router = APIRouter(prefix="/api", tags=["reviews"])

review_results = AdvancedResultsAdapter(
    "reviews",
    query_builder,
    count_mode=settings.PAGINATION_TOTAL,
    populate=("bootcamp", ("name", "description")),
)


def _list_reviews(request: Request, db: Session, scope=None):
    try:
        query = QueryRequest.from_params(request.query_params, default_limit=settings.DEFAULT_PAGE_LIMIT)
        return review_results.execute(db, query, scope=scope).envelope()
    except DevcamperError:
        raise
    except Exception as e:
        api_logger.error("Failed to list reviews", extra={
            "scope": scope,
            "error": str(e)
        }, exc_info=True)
        raise UpstreamError("Failed to list reviews") from e


@router.get("/reviews")
async def list_reviews(request: Request, db: Session = Depends(get_db)):
    api_logger.info("Listing reviews", extra={"query": str(request.query_params)})
    return _list_reviews(request, db)


@router.get("/bootcamps/{bootcamp_id}/reviews")
async def list_bootcamp_reviews(bootcamp_id: int, request: Request, db: Session = Depends(get_db)):
    api_logger.info("Listing reviews for bootcamp", extra={"bootcamp_id": bootcamp_id})
    Store(db).collection("bootcamps").get(bootcamp_id)
    return _list_reviews(request, db, scope={"bootcamp_id": bootcamp_id})


@router.get("/reviews/{review_id}")
async def get_review(review_id: int, db: Session = Depends(get_db)):
    api_logger.info("Fetching review", extra={"review_id": review_id})
    review = Store(db).collection("reviews").get(review_id)
    return {"success": True, "data": ReviewDetail.model_validate(review)}


@router.post("/bootcamps/{bootcamp_id}/reviews", status_code=201)
async def add_review(
        bootcamp_id: int,
        review: ReviewCreate,
        db: Session = Depends(get_db),
        identity: Identity = Depends(get_identity)
):
    """Add a review; a user can review each bootcamp once"""
    api_logger.info("Adding review to bootcamp", extra={
        "bootcamp_id": bootcamp_id,
        "user_id": identity.id
    })

    db_review = await record_service.create(db, "reviews", {
        **review.model_dump(),
        "bootcamp_id": bootcamp_id,
        "user_id": identity.id
    })

    api_logger.info("Review created successfully", extra={
        "review_id": db_review.id,
        "bootcamp_id": bootcamp_id
    })
    return {"success": True, "data": ReviewSchema.model_validate(db_review)}


@router.put("/reviews/{review_id}")
async def update_review(
        review_id: int,
        review: ReviewUpdate,
        db: Session = Depends(get_db),
        identity: Identity = Depends(get_identity)
):
    patch = review.model_dump(exclude_unset=True)
    api_logger.info("Updating review", extra={
        "review_id": review_id,
        "update_fields": list(patch.keys())
    })

    db_review = Store(db).collection("reviews").get(review_id)
    require_owner(identity, db_review.user_id, f"update review {review_id}")

    db_review = await record_service.update(db, "reviews", review_id, patch)
    return {"success": True, "data": ReviewSchema.model_validate(db_review)}


@router.delete("/reviews/{review_id}")
async def delete_review(
        review_id: int,
        db: Session = Depends(get_db),
        identity: Identity = Depends(get_identity)
):
    api_logger.info("Deleting review", extra={"review_id": review_id})

    db_review = Store(db).collection("reviews").get(review_id)
    require_owner(identity, db_review.user_id, f"delete review {review_id}")

    await record_service.delete(db, "reviews", review_id)

    api_logger.info(f"Successfully deleted review {review_id}")
    return {"success": True, "data": {}}
