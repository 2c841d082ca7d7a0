# backend/devcamper/main.py
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .database import engine
from . import models
from .api import bootcamps, courses, reviews
from .errors import DevcamperError, UpstreamError
from .utils.logging import api_logger

# Create all tables on startup
models.Base.metadata.create_all(bind=engine)

app = FastAPI(title="DevCamper API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(bootcamps.router)
app.include_router(courses.router)
app.include_router(reviews.router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    api_logger.info(f"{request.method} {request.url}")
    return await call_next(request)


@app.exception_handler(DevcamperError)
async def devcamper_error_handler(request: Request, exc: DevcamperError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_response())


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"] if part != "body")
        messages.append(f"{location}: {error['msg']}" if location else error["msg"])
    api_logger.warning("Request validation failed", extra={
        "path": request.url.path,
        "errors": messages
    })
    return JSONResponse(status_code=400, content={"success": False, "error": ", ".join(messages)})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    api_logger.error("Unhandled error", extra={
        "path": request.url.path,
        "error": str(exc)
    }, exc_info=exc)
    return JSONResponse(status_code=500, content=UpstreamError().to_response())


@app.get("/")
async def root():
    return {"message": "DevCamper API is running"}
