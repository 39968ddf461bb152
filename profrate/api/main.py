"""
FastAPI app assembly: logging, middleware, error handling and router wiring.
"""
import json
import logging
import os
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from starlette.middleware.sessions import SessionMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

# Configure logging
LOG_LEVEL_NAME = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL = getattr(logging, LOG_LEVEL_NAME, logging.INFO)
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)
logger.setLevel(LOG_LEVEL)
logger.info("app_startup: log_level=%s", LOG_LEVEL_NAME)

from profrate.api.admin import router as admin_router
from profrate.api.auth import legacy_router as legacy_auth_router
from profrate.api.auth import router as auth_router
from profrate.api.doctors import router as doctors_router
from profrate.api.reviews import router as reviews_router
from profrate.api.users import images_router as profile_images_router
from profrate.api.users import router as users_router
from profrate.db.database import SessionLocal, ensure_sqlite_schema
from profrate.services.account_email_service import get_account_email_service
from profrate.services.seed import seed_sample_doctors
from profrate.services.session_service import session_ttl_seconds
from profrate.utils.feature_flags import seed_sample_data_enabled
from profrate.utils.runtime import cors_origins, is_production, session_secret, session_secret_configured

SERVICE_NAME = "profrate-service"
SESSION_COOKIE_NAME = "profrate.sid"
_REDACTED_KEYS = ("password", "token", "secret", "image_data")
_LOGGED_BODY_CHARS = 200


def run_startup_seed() -> int:
    """Seed sample doctors into an empty catalogue when enabled."""
    if not seed_sample_data_enabled():
        return 0
    ensure_sqlite_schema()
    db = SessionLocal()
    try:
        return seed_sample_doctors(db)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(_app: FastAPI):
    try:
        run_startup_seed()
    except Exception:
        logger.exception("startup_seed_failed")
    yield


# Database schema is managed by Alembic migrations.

app = FastAPI(
    title="ProfRate Service",
    description="Anonymous multi-factor ratings of university teaching staff.",
    version="1.0.0",
    lifespan=lifespan,
)

# Avoid implicit trailing-slash redirects for predictable URLs
app.router.redirect_slashes = False


def _redact(value):
    if isinstance(value, dict):
        return {
            k: ("[redacted]" if any(s in str(k).lower() for s in _REDACTED_KEYS) else _redact(v))
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [_redact(v) for v in value]
    return value


# Middleware: request logging for API calls
@app.middleware("http")
async def log_api_requests(request: Request, call_next):
    path = request.url.path or ""
    if not path.startswith("/api"):
        return await call_next(request)

    if logger.isEnabledFor(logging.DEBUG) and request.method in ("POST", "PUT", "PATCH"):
        raw = await request.body()
        if raw and "json" in (request.headers.get("content-type") or ""):
            try:
                body = json.dumps(_redact(json.loads(raw)))
            except ValueError:
                body = "<invalid json>"
            logger.debug("api_request_body %s %s %s", request.method, path, body[:_LOGGED_BODY_CHARS])

    started = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - started) * 1000
    logger.info("%s %s %s %.1fms", request.method, path, response.status_code, duration_ms)
    return response


# Middleware: security headers on every response
@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    headers = response.headers
    headers.setdefault("X-Content-Type-Options", "nosniff")
    headers.setdefault("X-Frame-Options", "DENY")
    headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    headers.setdefault("X-XSS-Protection", "1; mode=block")
    headers.setdefault("Permissions-Policy", "camera=(), microphone=(), geolocation=()")
    if is_production():
        headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
    if (request.url.path or "").startswith("/api"):
        headers.setdefault("Cache-Control", "no-store")
    return response


app.add_middleware(
    SessionMiddleware,
    secret_key=session_secret(),
    session_cookie=SESSION_COOKIE_NAME,
    max_age=session_ttl_seconds(),
    same_site="lax",
    https_only=is_production(),
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("unhandled_error %s %s", request.method, request.url.path)
    detail = "Internal Server Error"
    if not is_production():
        detail = f"{detail}: {exc}"
    return JSONResponse(status_code=500, content={"detail": detail})


app.include_router(auth_router)
app.include_router(legacy_auth_router)
app.include_router(doctors_router)
app.include_router(reviews_router)
app.include_router(admin_router)
app.include_router(users_router)
app.include_router(profile_images_router)


@app.get("/health")
def health_check():
    return {"status": "ok", "service": SERVICE_NAME}


@app.get("/api/health")
def api_health_check():
    """Readiness summary; `percent` is the share of passing checks."""
    checks = {}
    ensure_sqlite_schema()
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        checks["database"] = True
    except Exception as e:
        logger.error("health_database_failed: %s", e)
        checks["database"] = False
    finally:
        db.close()
    checks["email"] = get_account_email_service().is_configured()
    checks["session_secret"] = session_secret_configured()

    passed = sum(1 for ok in checks.values() if ok)
    percent = round(100 * passed / len(checks))
    if passed == len(checks):
        state = "healthy"
    elif checks["database"]:
        state = "degraded"
    else:
        state = "unhealthy"
    status_code = 200 if checks["database"] else 503
    return JSONResponse(status_code=status_code, content={"status": state, "percent": percent, "checks": checks})
