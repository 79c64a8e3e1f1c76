"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError as PayloadValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from churchcal import __version__
from churchcal.config import settings
from churchcal.database import Base, engine
from churchcal.errors import InternalError, WorkflowError

# Import routers
from churchcal.routers import audit, departments, events, notifications, requests, users

# Import all models so Base.metadata knows about them
import churchcal.models  # noqa: F401

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Church Event Requests",
    description="Department event requests with admin review, super admin approval and a public calendar",
    version=__version__,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(WorkflowError)
def workflow_error_handler(request: Request, exc: WorkflowError):
    if exc.http_status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.http_status, content={"error": exc.to_dict()})


@app.exception_handler(PayloadValidationError)
def payload_validation_handler(request: Request, exc: PayloadValidationError):
    errors = [
        {"field": ".".join(str(part) for part in err["loc"] if part != "body"), "message": err["msg"]}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"error": {"code": "validation_error", "message": "Invalid request", "details": errors}},
    )


@app.exception_handler(Exception)
def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": InternalError().to_dict()})


# Register routers
app.include_router(requests.router, prefix="/api/requests", tags=["Requests"])
app.include_router(audit.router, prefix="/api/audit", tags=["Audit"])
app.include_router(notifications.router, prefix="/api/notifications", tags=["Notifications"])
app.include_router(events.router, prefix="/api/events", tags=["Events"])
app.include_router(departments.router, prefix="/api/departments", tags=["Departments"])
app.include_router(users.router, prefix="/api/users", tags=["Users"])


@app.on_event("startup")
def on_startup():
    """Create database tables on startup (for SQLite dev mode)."""
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)


@app.get("/api/health")
def health_check():
    return {"status": "ok"}
