from __future__ import annotations
import uuid
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from challengr.config import settings
from challengr.errors import CoreError, InvariantViolation
from challengr.logging_setup import configure_logging
from challengr.routes.system import router as system_router
from challengr.routes.challenges import router as challenges_router
from challengr.routes.submissions import router as submissions_router
from challengr.routes.validation import router as validation_router
from challengr.routes.reports import router as reports_router
from challengr.routes.admin import router as admin_router
from challengr.routes.profiles import router as profiles_router
from challengr.routes.feed import router as feed_router
from challengr.routes.notifications import router as notifications_router
import structlog

configure_logging(settings.log_level)
log = structlog.get_logger()

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    log.info("startup", env=settings.environment, version=settings.app_version, git_sha=settings.git_sha)
    yield
    # Shutdown
    log.info("shutdown")

app = FastAPI(
    title=f"{settings.app_display_name} API",
    version=settings.app_version,
    lifespan=lifespan,
    description=f"{settings.app_display_name} submission validation and reputation API",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.environment == "dev" else settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(system_router)
app.include_router(challenges_router)
app.include_router(submissions_router)
app.include_router(validation_router)
app.include_router(reports_router)
app.include_router(admin_router)
app.include_router(profiles_router)
app.include_router(feed_router)
app.include_router(notifications_router)

@app.exception_handler(CoreError)
async def core_error_handler(request: Request, exc: CoreError):
    if isinstance(exc, InvariantViolation):
        # details stay in the log, the client gets the generic message
        log.error("invariant_violation", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=exc.status_code, content={"detail": InvariantViolation.default_message, "code": exc.code})
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "code": exc.code})

@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    log.error("storage_error", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=503, content={"detail": "Temporarily unavailable, please retry", "code": "transient"})

@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = rid
    structlog.contextvars.bind_contextvars(request_id=rid)
    response: Response = await call_next(request)
    response.headers["X-Request-ID"] = rid
    structlog.contextvars.clear_contextvars()
    return response
