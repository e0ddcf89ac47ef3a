"""
Drive gateway backend: Google OAuth, sessions and API keys, Drive file operations.

Load .env in development only (production uses env vars directly). Configure
logging, CORS, error mapping, optional DB init.
"""
import logging
import os
from datetime import datetime, UTC
from pathlib import Path

from dotenv import load_dotenv

# Load .env only in development; must happen before config is imported
if os.getenv("ENV", "development").lower() == "development":
    load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from fastapi import FastAPI, Request
from fastapi.exceptions import HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import FRONTEND_URL, LOG_LEVEL, SKIP_DB_INIT
from database import init_db
from errors import DriveGatewayError
from auth import router as auth_router
from files import api_router as api_files_router
from files import router as files_router

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Create DB tables if not skipping (production uses migrations)
if not SKIP_DB_INIT:
    init_db()

app = FastAPI(
    title="Drive Gateway",
    description="Google Drive list/upload/download/delete/open behind session or API key auth.",
)

# CORS: explicit origin, allow credentials (state cookie). Never use "*" with cookies.
app.add_middleware(
    CORSMiddleware,
    allow_origins=[FRONTEND_URL] if FRONTEND_URL else [],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


@app.exception_handler(DriveGatewayError)
async def gateway_error_handler(request: Request, exc: DriveGatewayError):
    """Map service errors to their status with the message as detail."""
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.msg)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.msg, "error": type(exc).__name__},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch unhandled exceptions; log and return generic 500. Never leak stack traces."""
    # Let FastAPI handle HTTPException (validation, auth, etc.)
    if isinstance(exc, HTTPException):
        raise exc
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


@app.get("/health")
def health():
    return {"status": "ok", "timestamp": datetime.now(UTC).isoformat()}


app.include_router(auth_router)
app.include_router(files_router)
app.include_router(api_files_router)
