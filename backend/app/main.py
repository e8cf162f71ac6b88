import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.routes import (
    attendance,
    auth,
    classes,
    exams,
    health,
    meetings,
    notifications,
    remarks,
    substitutions,
    teachers,
    timetable,
)
from app.core.config import get_settings
from app.core.exceptions import AppError
from app.core.middleware import AccessLogMiddleware, RequestSizeLimitMiddleware, SecurityHeadersMiddleware
from app.services.store import build_store
from app.services.substitution import WorkflowRegistry
from app.services.suggestions import DisabledSuggestionProvider

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Tests install their own store before startup.
    if getattr(app.state, "store", None) is None:
        app.state.store = await build_store(settings)
    if getattr(app.state, "workflows", None) is None:
        app.state.workflows = WorkflowRegistry(settings.merge_policy)
    if getattr(app.state, "suggestions", None) is None:
        app.state.suggestions = DisabledSuggestionProvider()

    if await app.state.store.seed_default_classes():
        logger.info("Seeded the default class registry")
    logger.info("Serving schedules from the %s store", app.state.store.backend_name)
    yield
    await app.state.store.close()


async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message, "details": exc.details},
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    details = {} if isinstance(exc.detail, str) else {"detail": exc.detail}
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": message, "details": details},
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={"message": "Request validation failed", "details": {"errors": jsonable_encoder(exc.errors())}},
    )


async def database_error_handler(request: Request, exc: OperationalError):
    logger.warning("Database unavailable while serving %s", request.url.path, exc_info=True)
    return JSONResponse(
        status_code=503,
        content={"message": "Database is unavailable; try again shortly", "details": {}},
    )


app = FastAPI(title=settings.project_name, lifespan=lifespan)
app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(StarletteHTTPException, http_error_handler)
app.add_exception_handler(RequestValidationError, validation_error_handler)
app.add_exception_handler(OperationalError, database_error_handler)

app.add_middleware(AccessLogMiddleware)
app.add_middleware(RequestSizeLimitMiddleware, max_bytes=settings.max_request_size_bytes)
app.add_middleware(SecurityHeadersMiddleware, settings=settings)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix=settings.api_prefix, tags=["health"])
app.include_router(auth.router, prefix=f"{settings.api_prefix}/auth", tags=["auth"])
app.include_router(classes.router, prefix=f"{settings.api_prefix}/classes", tags=["classes"])
app.include_router(teachers.router, prefix=f"{settings.api_prefix}/teachers", tags=["teachers"])
app.include_router(timetable.router, prefix=f"{settings.api_prefix}/timetable", tags=["timetable"])
app.include_router(attendance.router, prefix=settings.api_prefix, tags=["attendance"])
app.include_router(substitutions.router, prefix=settings.api_prefix, tags=["substitutions"])
app.include_router(notifications.router, prefix=settings.api_prefix, tags=["notifications"])
app.include_router(remarks.router, prefix=settings.api_prefix, tags=["remarks"])
app.include_router(exams.router, prefix=settings.api_prefix, tags=["exams"])
app.include_router(meetings.router, prefix=settings.api_prefix, tags=["meetings"])
