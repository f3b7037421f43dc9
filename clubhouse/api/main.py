"""
FastAPI app assembly: logging, middleware, error envelope and router wiring.
"""
import logging
import os

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request

# Configure logging
LOG_LEVEL_NAME = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL = getattr(logging, LOG_LEVEL_NAME, logging.INFO)
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger("clubhouse.api")
logger.setLevel(LOG_LEVEL)
logger.info("app_startup: log_level=%s", LOG_LEVEL_NAME)

from clubhouse.api.responses import failure, success
from clubhouse.api.attendees import router as attendees_router
from clubhouse.api.audits import router as audits_router
from clubhouse.api.inventory import router as inventory_router
from clubhouse.api.invitations import (
    public_router as invite_router,
    router as invitations_router,
    waitlist_router,
)
from clubhouse.api.settings import router as settings_router
from clubhouse.api.users import router as users_router
from clubhouse.api.workshops import router as workshops_router
from clubhouse.errors import ServiceError

# Database schema is managed by Alembic migrations.

app = FastAPI(
    title="Clubhouse Service",
    description="Club management API: workshops, registrations, refunds, inventory and membership.",
    version="1.0.0",
)

# Avoid implicit trailing-slash redirects for predictable URLs
app.router.redirect_slashes = False

DEFAULT_ORIGINS = [
    "http://localhost",
    "http://localhost:3000",
    "http://localhost:5173",
    "http://localhost:8000",
]


def _cors_origins():
    configured = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]
    return configured or DEFAULT_ORIGINS


app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    if exc.status_code >= 500:
        logger.error("service_error: path=%s error=%s", request.url.path, exc.message, exc_info=exc)
    issues = exc.details if isinstance(exc.details, list) else None
    return failure(exc.status_code, exc.message, issues)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return failure(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    issues = [
        {"path": [str(p) for p in err.get("loc", ())], "message": err.get("msg")}
        for err in exc.errors()
    ]
    return failure(400, "Validation failed", issues)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    # Attach a handler to the "clubhouse" logger to forward these to monitoring
    logger.exception("unhandled_error: path=%s", request.url.path, exc_info=exc)
    return failure(500, "Internal server error")


app.include_router(users_router)
app.include_router(audits_router)
app.include_router(workshops_router)
app.include_router(attendees_router)
app.include_router(inventory_router)
app.include_router(invitations_router)
app.include_router(invite_router)
app.include_router(waitlist_router)
app.include_router(settings_router)


@app.get("/health")
def health_check():
    return success({"status": "ok", "service": "clubhouse-service"})
