# aqro/main.py
"""
FastAPI application entry point.
Includes request timing, error translation, and all routers.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from aqro.routers import activities, container_types, containers, health, rebates, restaurants
from aqro.database import create_tables
from aqro.config import settings
from aqro.services.errors import ServiceError
from aqro.services.notification_service import notifier
from aqro.utils.logger import get_logger
import time

logger = get_logger(__name__)

app = FastAPI(
    title="aQRo Container API",
    description="Reusable container registration, returns and cash rebates.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS (mobile client + admin dashboard) ──────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Request Timing Middleware ────────────────────────────────────────────────
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    duration = round((time.time() - start) * 1000, 2)
    logger.debug(f"{request.method} {request.url.path} → {response.status_code} ({duration}ms)")
    return response


# ── Error translation ────────────────────────────────────────────────────────
@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    logger.info(f"{request.method} {request.url.path} refused ({exc.status_code}): {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail},
                        headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Internal server error"},
    )


# ── Routers ──────────────────────────────────────────────────────────────────
app.include_router(containers.router,      prefix="/api/v1", tags=["Containers"])
app.include_router(rebates.router,         prefix="/api/v1", tags=["Rebates"])
app.include_router(activities.router,      prefix="/api/v1", tags=["Activities"])
app.include_router(container_types.router, prefix="/api/v1", tags=["Container Types"])
app.include_router(restaurants.router,     prefix="/api/v1", tags=["Restaurants"])
app.include_router(health.router,          prefix="/api/v1", tags=["Health"])


# ── Startup ───────────────────────────────────────────────────────────────────
@app.on_event("startup")
async def startup():
    logger.info("aQRo backend starting up...")
    create_tables()
    logger.info("Database tables ready")
    if notifier.enabled:
        logger.info(f"Notifications → {notifier.webhook_url} (timeout {notifier.timeout}s)")
    else:
        logger.info("Notification webhook disabled")
    logger.info(f"Listening on http://{settings.BACKEND_HOST}:{settings.BACKEND_PORT}")


@app.on_event("shutdown")
async def shutdown():
    logger.info(f"aQRo backend shutting down ({notifier.pending} notification(s) in flight)...")
    await notifier.drain()
