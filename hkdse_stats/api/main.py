"""
HKDSE Statistics Dashboard - FastAPI Application

Serves the static dashboard and the read-only /api endpoints.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, Response
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError

from hkdse_stats.api.routes import statistics
from hkdse_stats.config import ENVIRONMENT, LOG_FORMAT, LOG_LEVEL, VERSION
from hkdse_stats.db.session import init_db

logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).parent / "static"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    logger.info(f"📊 HKDSE dashboard ready ({ENVIRONMENT})")
    yield


app = FastAPI(
    title="HKDSE Statistics API",
    version=VERSION,
    description="Read-only HKDSE examination statistics",
    lifespan=lifespan,
)


# CORS on every /api response, with or without an Origin header
@app.middleware("http")
async def api_cors(request: Request, call_next):
    if not request.url.path.startswith("/api/"):
        return await call_next(request)
    if request.method == "OPTIONS":
        return Response(status_code=204, headers=CORS_HEADERS)
    response = await call_next(request)
    response.headers.update(CORS_HEADERS)
    return response


app.add_exception_handler(SQLAlchemyError, statistics.store_error_handler)


@app.get("/health")
async def health():
    return {"status": "healthy", "version": VERSION, "environment": ENVIRONMENT}


app.include_router(statistics.router)

# Mounted last so API routes take precedence
app.mount("/", StaticFiles(directory=STATIC_DIR, html=True), name="dashboard")
