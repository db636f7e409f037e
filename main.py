import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent
sys.path.insert(0, str(PROJECT_ROOT))

import asyncio
import logging
import secrets
import time
from contextlib import asynccontextmanager
from typing import Any, Callable

import psycopg2
from dotenv import load_dotenv
from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(message)s'
)
logger = logging.getLogger(__name__)

# Load environment variables from .env file
load_dotenv()

from backend.config import get_settings
from backend.db.connection import DatabaseNotConfigured, get_connector
from backend.db.migrate import migration_status, run_migration
from backend.blast import run_email_blast
from backend.notifications import send_welcome_email
from backend.waitlist import WaitlistValidationError, add_to_waitlist, validate_submission

SERVICE_NAME = "waitlist-intake"
MSG_SERVER_ERROR = "Server error. Please try again later."


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Apply the schema before serving requests. A failed migration is logged, not fatal."""
    logger.info("[STARTUP] Running database migration")
    try:
        success, message = await asyncio.to_thread(run_migration)
    except Exception:
        logger.exception("[STARTUP] Database migration error (non-fatal)")
    else:
        if success:
            logger.info(f"[STARTUP] Database migration: {message}")
        else:
            logger.warning(f"[STARTUP] Database migration did not complete: {message}")
            logger.warning("[STARTUP] Run it manually via POST /admin/migrate")

    settings = get_settings()
    if not settings.email_enabled:
        logger.warning("[STARTUP] RESEND_API_KEY not set - welcome and bulk emails are disabled")

    yield

    logger.info("[SHUTDOWN] Stopping")


app = FastAPI(lifespan=lifespan)

# Note: allow_credentials=True cannot be used with allow_origins=["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().allowed_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    max_age=3600,
)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    logger.info(f"➡️ {request.method} {request.url.path}")
    try:
        response = await call_next(request)
    except Exception as e:
        duration = round((time.time() - start) * 1000, 2)
        logger.error(f"❌ {request.method} {request.url.path} Exception after {duration}ms: {e}")
        raise
    duration = round((time.time() - start) * 1000, 2)
    logger.info(f"⬅️ {request.method} {request.url.path} status={response.status_code} {duration}ms")
    return response


# ============================================================================
# Error Handlers
# ============================================================================

def _server_error() -> JSONResponse:
    return JSONResponse(content={"success": False, "message": MSG_SERVER_ERROR}, status_code=500)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = "Method not allowed" if exc.status_code == 405 else exc.detail
    return JSONResponse(
        content={"success": False, "message": message},
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(DatabaseNotConfigured)
async def database_not_configured_handler(request: Request, exc: DatabaseNotConfigured):
    logger.error(f"[DB] {exc}")
    return _server_error()


@app.exception_handler(psycopg2.Error)
async def database_error_handler(request: Request, exc: psycopg2.Error):
    logger.error(f"[DB] {request.method} {request.url.path} failed: {exc.__class__.__name__}: {exc}")
    return _server_error()


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unexpected error on {request.method} {request.url.path}")
    return _server_error()


# ============================================================================
# Authentication Dependency
# ============================================================================

async def require_admin(request: Request) -> None:
    """Bearer token check for maintenance endpoints. Open when ADMIN_API_TOKEN is unset."""
    expected = get_settings().admin_token
    if not expected:
        return

    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        logger.warning("[AUTH] Missing or invalid Authorization header")
        raise HTTPException(status_code=401, detail="Missing or invalid Authorization header")

    if not secrets.compare_digest(auth_header[7:], expected):
        logger.warning("[AUTH] Invalid API token")
        raise HTTPException(status_code=401, detail="Invalid API token")


# ============================================================================
# Waitlist
# ============================================================================

def _store_submission(connector: Callable[[], Any], submission):
    conn = connector()
    try:
        return add_to_waitlist(conn, submission)
    finally:
        conn.close()


@app.post("/api/waitlist")
async def join_waitlist(
    request: Request,
    background_tasks: BackgroundTasks,
    connector: Callable[[], Any] = Depends(get_connector),
):
    """
    Waitlist signup.

    Body: {"name": str, "email": str, "struggle": str}
    201 on a new signup, 200 if the email is already registered.
    """
    try:
        payload = await request.json()
    except ValueError:
        return JSONResponse(
            content={"success": False, "message": "Invalid JSON in request body"},
            status_code=400,
        )

    settings = get_settings()
    try:
        submission = validate_submission(payload, settings.struggle_options)
    except WaitlistValidationError as e:
        logger.info(f"[WAITLIST] Rejected submission: field={e.field} reason={e.message!r}")
        return JSONResponse(content={"success": False, "message": e.message}, status_code=400)

    result = await asyncio.to_thread(_store_submission, connector, submission)

    if result.created and settings.send_welcome_email and settings.email_enabled:
        background_tasks.add_task(send_welcome_email, submission.name, submission.email, settings)

    return JSONResponse(
        content={"success": True, "message": result.message},
        status_code=result.status_code,
    )


@app.post("/api/send-bulk-email", dependencies=[Depends(require_admin)])
def send_bulk_email(connector: Callable[[], Any] = Depends(get_connector)):
    """Email every waitlist signup, paced by BULK_EMAIL_DELAY_SECONDS."""
    settings = get_settings()
    if not settings.email_enabled:
        logger.error("[BULK_EMAIL] RESEND_API_KEY not set")
        return JSONResponse(
            content={"success": False, "message": "Email provider is not configured"},
            status_code=500,
        )

    conn = connector()
    try:
        return run_email_blast(conn, settings)
    finally:
        conn.close()


# ============================================================================
# Admin / Health
# ============================================================================

@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "ok", "service": SERVICE_NAME}


@app.get("/admin/migrate/status", dependencies=[Depends(require_admin)])
def admin_migration_status(connector: Callable[[], Any] = Depends(get_connector)):
    """Check whether the waitlist table exists."""
    conn = connector()
    try:
        return {"success": True, **migration_status(conn)}
    finally:
        conn.close()


@app.post("/admin/migrate", dependencies=[Depends(require_admin)])
def admin_migrate():
    """Manually re-run the database migration."""
    success, message = run_migration()
    if success:
        return {"success": True, "message": message}
    logger.error(f"[MIGRATION] Manual migration failed: {message}")
    return JSONResponse(content={"success": False, "message": "Migration failed"}, status_code=500)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000)
