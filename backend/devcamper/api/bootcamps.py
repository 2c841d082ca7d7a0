# backend/devcamper/api/bootcamps.py
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from ..errors import DevcamperError, NotFoundError, UpstreamError
from ..schemas.bootcamp import BootcampCreate, BootcampUpdate, Bootcamp as BootcampSchema
from ..services import query_builder, record_service
from ..services.advanced_results import AdvancedResultsAdapter
from ..services.auth import Identity, get_identity, require_owner
from ..services.query_builder import QueryRequest
from ..services.store import Store
from ..utils.logging import api_logger

router = APIRouter(prefix="/api/bootcamps", tags=["bootcamps"])

bootcamp_results = AdvancedResultsAdapter("bootcamps", query_builder, count_mode=settings.PAGINATION_TOTAL)


@router.get("")
async def list_bootcamps(request: Request, db: Session = Depends(get_db)):
    """List bootcamps with filtering, field selection, sorting and pagination"""
    api_logger.info("Listing bootcamps", extra={
        "endpoint": "/api/bootcamps",
        "query": str(request.query_params)
    })

    try:
        query = QueryRequest.from_params(request.query_params, default_limit=settings.DEFAULT_PAGE_LIMIT)
        result = bootcamp_results.execute(db, query)
        return result.envelope()
    except DevcamperError:
        raise
    except Exception as e:
        api_logger.error("Failed to list bootcamps", extra={"error": str(e)}, exc_info=True)
        raise UpstreamError("Failed to list bootcamps") from e


@router.get("/{bootcamp_id}")
async def get_bootcamp(bootcamp_id: int, db: Session = Depends(get_db)):
    api_logger.info("Fetching bootcamp", extra={"bootcamp_id": bootcamp_id})

    bootcamp = Store(db).collection("bootcamps").find_by_id(bootcamp_id)
    if not bootcamp:
        api_logger.warning("Bootcamp not found", extra={"bootcamp_id": bootcamp_id})
        raise NotFoundError.for_id("bootcamps", bootcamp_id)

    return {"success": True, "data": BootcampSchema.model_validate(bootcamp)}


@router.post("", status_code=201)
async def create_bootcamp(
        bootcamp: BootcampCreate,
        db: Session = Depends(get_db),
        identity: Identity = Depends(get_identity)
):
    api_logger.info("Creating new bootcamp", extra={
        "bootcamp_name": bootcamp.name,
        "user_id": identity.id
    })

    db_bootcamp = await record_service.create(db, "bootcamps", {
        **bootcamp.model_dump(),
        "user_id": identity.id
    })

    api_logger.info("Bootcamp created successfully", extra={
        "bootcamp_id": db_bootcamp.id,
        "bootcamp_name": db_bootcamp.name
    })
    return {"success": True, "data": BootcampSchema.model_validate(db_bootcamp)}


@router.put("/{bootcamp_id}")
async def update_bootcamp(
        bootcamp_id: int,
        bootcamp: BootcampUpdate,
        db: Session = Depends(get_db),
        identity: Identity = Depends(get_identity)
):
    patch = bootcamp.model_dump(exclude_unset=True)
    api_logger.info("Updating bootcamp", extra={
        "bootcamp_id": bootcamp_id,
        "update_fields": list(patch.keys())
    })

    db_bootcamp = Store(db).collection("bootcamps").get(bootcamp_id)
    require_owner(identity, db_bootcamp.user_id, f"update bootcamp {bootcamp_id}")

    db_bootcamp = await record_service.update(db, "bootcamps", bootcamp_id, patch)

    api_logger.info("Bootcamp updated successfully", extra={"bootcamp_id": bootcamp_id})
    return {"success": True, "data": BootcampSchema.model_validate(db_bootcamp)}


@router.delete("/{bootcamp_id}")
async def delete_bootcamp(
        bootcamp_id: int,
        db: Session = Depends(get_db),
        identity: Identity = Depends(get_identity)
):
    """Delete a bootcamp together with its courses and reviews"""
    api_logger.info("Deleting bootcamp", extra={"bootcamp_id": bootcamp_id})

    db_bootcamp = Store(db).collection("bootcamps").get(bootcamp_id)
    require_owner(identity, db_bootcamp.user_id, f"delete bootcamp {bootcamp_id}")

    await record_service.delete(db, "bootcamps", bootcamp_id)

    api_logger.info(f"Successfully deleted bootcamp {bootcamp_id}")
    return {"success": True, "data": {}}
