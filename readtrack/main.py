from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DisconnectionError, OperationalError
import logging
import os
from datetime import datetime

from readtrack.core.config import settings
from readtrack.core.errors import ReadTrackError, StoreUnavailable
from readtrack.routers import auth, books, reviews, shelves, users
from readtrack.database import init_db

# ----------------------------
# Logging
# ----------------------------
logger = logging.getLogger("readtrack")
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

# Server fingerprint for debugging
SERVER_BOOT_ID = f"readtrack-backend::{os.getpid()}::{datetime.utcnow().isoformat()}"

app = FastAPI(title="ReadTrack API", debug=settings.DEBUG)


# ----------------------------
# CORS
# ----------------------------
cors_origins = settings.cors_origins_list
logger.info("[CORS] allow_origins=%s", cors_origins)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ----------------------------
# Error handling
# ----------------------------
@app.exception_handler(ReadTrackError)
async def readtrack_error_handler(request: Request, exc: ReadTrackError):
    if exc.status_code >= 500:
        logger.error("[%s] %s %s: %s", exc.kind, request.method, request.url.path, exc.detail)
    else:
        logger.info("[%s] %s %s: %s", exc.kind, request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={"kind": "invalid_input", "detail": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(OperationalError)
@app.exception_handler(DisconnectionError)
async def store_unavailable_handler(request: Request, exc: Exception):
    logger.exception("[STORE] %s %s", request.method, request.url.path)
    error = StoreUnavailable("Database unavailable, please retry")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("[UNHANDLED] %s %s", request.method, request.url.path)

    response = JSONResponse(
        status_code=500,
        content={"kind": "internal_error", "detail": "Internal Server Error"}
    )

    # Ensure CORS headers are present in error responses
    origin = request.headers.get("origin")
    if origin and origin in cors_origins:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Credentials"] = "true"

    return response


# ----------------------------
# Routers
# ----------------------------
app.include_router(auth.router, prefix="/api")
app.include_router(books.router, prefix="/api")
app.include_router(shelves.router, prefix="/api")
app.include_router(reviews.router, prefix="/api")
app.include_router(users.router, prefix="/api")


@app.on_event("startup")
def on_startup() -> None:
    logger.info("[BOOT] %s", SERVER_BOOT_ID)
    init_db()


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.get("/api/health")
def api_health_check():
    return {"status": "ok"}
