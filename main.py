"""
main.py
FastAPI application entry point.
Registers all routers, middleware, exception handlers, startup/shutdown events.
"""

import json
import logging
import os
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from logging import LogRecord

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from jose import JWTError
from prometheus_fastapi_instrumentator import Instrumentator
from redis.exceptions import RedisError
from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import redis_client as redis_module
from config.database import close_db, get_db_context, init_db
from config.redis_client import RedisCache, close_redis, init_redis
from config.settings import settings
from shared.models.models import User, UserRole
from shared.schemas.schemas import describe_validation_error
from shared.utils.security import hash_password, verify_access_token

# Service routers
from services.admin.router import router as admin_router
from services.auth.router import router as auth_router
from services.interest.router import router as interest_router
from services.profile.router import router as profile_router


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


_handler = logging.StreamHandler()
_handler.setFormatter(JSONFormatter())
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    handlers=[_handler],
)
logger = logging.getLogger(__name__)


# ── Admin Seeder ──────────────────────────────────────────────

async def seed_admin() -> None:
    """Create the configured admin account on first run."""
    if not (settings.ADMIN_EMAIL and settings.ADMIN_PASSWORD):
        return

    email = settings.ADMIN_EMAIL.lower()
    async with get_db_context() as db:
        existing = await db.scalar(select(User.id).where(User.email == email))
        if existing:
            return
        db.add(
            User(
                email=email,
                password_hash=hash_password(settings.ADMIN_PASSWORD),
                role=UserRole.ADMIN,
                email_verified=True,
            )
        )
    logger.info(f"Seeded admin account {email}")


# ── Lifespan (startup/shutdown) ───────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle handler."""
    logger.info(f"Starting {settings.APP_NAME}...")

    await init_db()
    logger.info("Database connected")

    await init_redis()

    await seed_admin()

    logger.info(f"{settings.APP_NAME} v{settings.APP_VERSION} is ready on port {settings.PORT}")
    yield

    await close_redis()
    await close_db()
    logger.info("Server shutdown complete")


def _error(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message},
        headers=headers,
    )


# ── App Factory ───────────────────────────────────────────────

def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="""
## Biodata Referral Platform API

- **Auth**: email/password accounts + JWT bearer tokens
- **Profiles**: submit, edit and withdraw a biodata profile; browse approved ones
- **Interests**: express, withdraw, received and mutual interests
- **Admin**: approval queue, user roles, stats and the action log

### Authentication
Protected endpoints require `Authorization: Bearer <token>`.
Get a token from `POST /api/auth/login`.

### Roles
- `PARENT_RELATIVE`: default for new accounts
- `CANDIDATE`: reserved, never assignable through the API
- `ADMIN`: approval queue and user management
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Middleware (order matters, outermost first) ───────────────
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
        """Add unique X-Request-ID to every request."""
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    @app.middleware("http")
    async def process_time_middleware(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        process_time = round((time.perf_counter() - start) * 1000, 2)
        response.headers["X-Process-Time"] = f"{process_time}ms"
        return response

    @app.middleware("http")
    async def rate_limit_middleware(request: Request, call_next):
        """
        Fixed-window limits keyed per caller. A verified bearer token is
        counted in its own bucket with the higher authenticated limit;
        anything else, including an unverifiable token, counts against the
        client IP. Fails open when Redis is unavailable.
        """
        skip_paths = {"/health", "/metrics", "/docs", "/redoc", "/openapi.json"}
        client = redis_module.redis_client
        if request.url.path in skip_paths or client is None:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        key = f"rate:unauth:{client_ip}"
        limit = settings.RATE_LIMIT_UNAUTH_PER_WINDOW

        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            try:
                payload = verify_access_token(auth_header[7:])
                key = f"rate:auth:{payload['sub']}"
                limit = settings.RATE_LIMIT_AUTH_PER_WINDOW
            except (JWTError, KeyError):
                pass  # counted against the IP

        try:
            allowed = await RedisCache(client).check_rate_limit(
                key, limit, settings.RATE_LIMIT_WINDOW_SECONDS
            )
        except RedisError as e:
            logger.error(f"Rate limit check failed: {e}")
            allowed = True

        if not allowed:
            logger.warning(f"Rate limit exceeded for {key}")
            return _error(
                429,
                "Too many requests, please try again later.",
                headers={"Retry-After": str(settings.RATE_LIMIT_WINDOW_SECONDS)},
            )
        return await call_next(request)

    # ── Exception Handlers ─────────────────────────────────────────

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return _error(400, describe_validation_error(exc.errors()))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Catch-all. Store and driver errors are never echoed to clients."""
        request_id = getattr(request.state, "request_id", None)
        logger.error(f"[{request_id}] Unhandled exception: {exc}", exc_info=True)

        content = {"success": False, "error": "Internal server error"}
        if settings.DEBUG:
            content["detail"] = str(exc)
        return JSONResponse(status_code=500, content=content)

    # ── Routes ────────────────────────────────────────────────────

    @app.get("/health", tags=["Health"], include_in_schema=False)
    async def health_check():
        checks = {
            "success": True,
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

        try:
            async with get_db_context() as session:
                await session.execute(text("SELECT 1"))
            checks["database"] = "ok"
        except (SQLAlchemyError, OSError):
            checks["database"] = "error"
            checks["status"] = "degraded"

        # Redis is optional; its absence degrades logout and rate limiting only
        client = redis_module.redis_client
        try:
            if client is None:
                checks["redis"] = "disabled"
            else:
                await client.ping()
                checks["redis"] = "ok"
        except (RedisError, OSError):
            checks["redis"] = "error"

        status_code = 200 if checks["database"] == "ok" else 503
        checks["success"] = status_code == 200
        return JSONResponse(content=checks, status_code=status_code)

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "docs": "/docs",
            "health": "/health",
        }

    # Register all service routers
    app.include_router(auth_router)
    app.include_router(profile_router)
    app.include_router(interest_router)
    app.include_router(admin_router)

    # ── Prometheus Metrics ─────────────────────────────────────────
    Instrumentator().instrument(app).expose(app, endpoint="/metrics", tags=["Monitoring"])

    return app


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
