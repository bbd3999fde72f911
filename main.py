"""
main.py
FastAPI application entry point.
Registers all routers, middleware, startup/shutdown events.
"""

import json
import logging
import os
import time
import uuid
from contextlib import asynccontextmanager
from logging import LogRecord

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.exceptions import HTTPException as StarletteHTTPException

from config.database import close_db, init_db, ping_db
from config.redis_client import RedisCache, close_redis, init_redis
from config.settings import settings

# Service routers
from services.admin.router import router as admin_router
from services.advocate.router import router as advocate_router
from services.booking.router import router as booking_router
from services.catalog.router import router as catalog_router
from services.review.router import router as review_router
from services.user.router import router as user_router


# ── Logging ──────────────────────────────────────────────────

class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record: LogRecord) -> str:
        log_data = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "instance": os.getenv("INSTANCE_NAME", "unknown"),
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data)


def configure_logging() -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter())
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)


configure_logging()
logger = logging.getLogger(__name__)


# ── Lifespan (startup/shutdown) ───────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle handler."""
    logger.info(f"Starting {settings.APP_NAME} ({settings.APP_ENV})")

    await init_db()
    logger.info("Database ready")

    await init_redis()
    logger.info("Redis connected")

    if settings.APP_ENV == "development":
        await seed_initial_data()

    logger.info(f"{settings.APP_NAME} v{settings.APP_VERSION} is ready")
    yield

    await close_redis()
    await close_db()
    logger.info("Server shutdown complete")


# ── Error Formatting ──────────────────────────────────────────

_LOCATION_ROOTS = {"body", "query", "path", "header", "cookie"}


def format_validation_error(exc: RequestValidationError) -> str:
    """First validation error as "<field>: <message>"; model-level errors carry no field."""
    errors = exc.errors()
    if not errors:
        return "Invalid request"

    first = errors[0]
    ctx_error = (first.get("ctx") or {}).get("error")
    message = str(ctx_error) if ctx_error else first.get("msg", "Invalid value")

    field = ".".join(
        str(part) for part in first.get("loc", ()) if part not in _LOCATION_ROOTS
    )
    return f"{field}: {message}" if field else message


# ── App Factory ───────────────────────────────────────────────

def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="""
## BookMyAdvocate API

Marketplace connecting clients with advocates:
- **Advocates**: directory search by specialization, city and experience; public profiles
- **Services**: advocates publish online/offline consultations with price and duration
- **Bookings**: clients book an advocate; the advocate confirms, cancels or completes
- **Reviews**: clients rate completed bookings
- **Admin**: verification queue and platform statistics

### Authentication
Protected endpoints require an `Authorization: Bearer <access_token>` header
issued by the auth service.

### Roles
- `user`: book advocates, write reviews, manage profile
- `advocate`: manage services and incoming bookings
- `admin`: verification and statistics
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Middleware (order matters, outermost first) ───────────────
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=["*"])
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Process-Time"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)

    # ── Custom Middleware ──────────────────────────────────────────

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        """Add unique X-Request-ID to every request for tracing."""
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    @app.middleware("http")
    async def process_time_middleware(request: Request, call_next):
        """Track and expose request processing time."""
        start = time.perf_counter()
        response = await call_next(request)
        process_time = round((time.perf_counter() - start) * 1000, 2)
        response.headers["X-Process-Time"] = f"{process_time}ms"
        return response

    @app.middleware("http")
    async def rate_limit_middleware(request: Request, call_next):
        """
        Unauthenticated requests: RATE_LIMIT_UNAUTH_PER_MINUTE per IP.
        Bearer requests, health checks and metrics are not limited here.
        Fails open when Redis is unavailable.
        """
        skip_paths = {"/api/health", "/docs", "/redoc", "/openapi.json", "/metrics"}
        if request.url.path in skip_paths:
            return await call_next(request)
        if request.headers.get("Authorization", "").startswith("Bearer "):
            return await call_next(request)

        from config.redis_client import redis_client
        if redis_client:
            client_ip = request.client.host if request.client else "unknown"
            try:
                allowed = await RedisCache(redis_client).check_rate_limit(
                    f"rate:unauth:{client_ip}", settings.RATE_LIMIT_UNAUTH_PER_MINUTE
                )
            except Exception as e:
                logger.error(f"Rate limit check failed: {e}")
                allowed = True

            if not allowed:
                logger.warning(f"Rate limit exceeded for IP {client_ip}")
                return JSONResponse(
                    status_code=429,
                    content={"error": "Rate limit exceeded. Please slow down."},
                    headers={"Retry-After": "60"},
                )

        return await call_next(request)

    # ── Exception Handlers ─────────────────────────────────────────

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": format_validation_error(exc)})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Catch-all exception handler. Never expose stack traces in production."""
        request_id = getattr(request.state, "request_id", None)
        logger.error(f"[{request_id}] Exception: {exc}", exc_info=True)

        detail = str(exc) if settings.DEBUG else "An internal server error occurred"
        return JSONResponse(
            status_code=500,
            content={"error": detail, "request_id": request_id},
        )

    # ── Routes ────────────────────────────────────────────────────

    @app.get("/api/health", tags=["Health"])
    async def health_check():
        from config.redis_client import redis_client

        checks = {"status": "ok", "version": settings.APP_VERSION}

        try:
            await ping_db()
            checks["database"] = "ok"
        except Exception as e:
            logger.error(f"Health check: database unreachable: {e}")
            checks["database"] = "error"
            checks["status"] = "degraded"

        try:
            if redis_client:
                await redis_client.ping()
                checks["redis"] = "ok"
            else:
                checks["redis"] = "not initialized"
        except Exception as e:
            logger.error(f"Health check: redis unreachable: {e}")
            checks["redis"] = "error"
            checks["status"] = "degraded"

        status_code = 200 if checks["status"] == "ok" else 503
        return JSONResponse(content=checks, status_code=status_code)

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "docs": "/docs",
            "health": "/api/health",
        }

    app.include_router(user_router)
    app.include_router(advocate_router)
    app.include_router(catalog_router)
    app.include_router(booking_router)
    app.include_router(review_router)
    app.include_router(admin_router)

    # ── Prometheus Metrics ─────────────────────────────────────────
    Instrumentator().instrument(app).expose(app, endpoint="/metrics", tags=["Monitoring"])

    return app


# ── Dev Data Seeder ───────────────────────────────────────────

SEED_ADVOCATES = [
    # name, email, phone, specialization, years, bar council no., city, bio, hourly rate
    ("Advocate Rajesh Kumar", "rajesh@advocate.com", "9876543220", "Criminal Law", 15,
     "BAR/DL/2008/1", "New Delhi", "Criminal defense specialist.", 5000),
    ("Advocate Priya Sharma", "priya@advocate.com", "9876543221", "Corporate Law", 12,
     "BAR/MH/2011/2", "Mumbai", "Expert in company law.", 6000),
    ("Advocate Amit Patel", "amit@advocate.com", "9876543222", "Family Law", 10,
     "BAR/KA/2013/3", "Bangalore", "Specialized in divorce/custody.", 4000),
    ("Advocate Sunita Reddy", "sunita@advocate.com", "9876543223", "Property Law", 8,
     "BAR/TN/2015/4", "Chennai", "Real estate and property law.", 4500),
    ("Advocate Vikram Singh", "vikram@advocate.com", "9876543224", "Civil Litigation", 7,
     "BAR/UP/2016/5", "Noida", "Civil dispute resolution.", 3500),
]


async def seed_initial_data():
    """Seed an admin and five verified advocates on first run (development only)."""
    from sqlalchemy import func, select

    from config.database import get_db_context
    from shared.models.models import Advocate, User, UserRole
    from shared.utils.security import hash_password

    async with get_db_context() as db:
        count = await db.scalar(select(func.count(User.id)))
        if count and count > 0:
            return  # Already seeded

        password = hash_password("admin123")
        db.add(User(
            name="Admin User",
            email="admin@bookmyadvocate.com",
            password=password,
            role=UserRole.ADMIN,
            phone="9999999999",
        ))

        for name, email, phone, spec, years, bar_no, city, bio, rate in SEED_ADVOCATES:
            user = User(
                name=name, email=email, password=password, role=UserRole.ADVOCATE, phone=phone
            )
            db.add(user)
            await db.flush()
            db.add(Advocate(
                user_id=user.id,
                specialization=spec,
                experience_years=years,
                bar_council_number=bar_no,
                location=city,
                bio=bio,
                hourly_rate=rate,
                is_verified=True,
            ))

        logger.info(f"Seeded admin and {len(SEED_ADVOCATES)} advocates")


# ── Entry Point ───────────────────────────────────────────────

app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        workers=1 if settings.DEBUG else settings.WORKERS,
        log_level="debug" if settings.DEBUG else "info",
        access_log=True,
    )
