import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shiptrack import __version__
from shiptrack.api.routes import router
from shiptrack.config import settings
from shiptrack.errors import IngestionFailed
from shiptrack.schemas.error import ErrorResponse

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start every process with an empty fleet view."""
    app.state.fleet = None
    app.state.ingestion_status = None
    logger.info(
        "shiptrack API ready (max_records=%d, trajectory_capacity=%d)",
        settings.MAX_RECORDS, settings.TRAJECTORY_CAPACITY,
    )
    yield


app = FastAPI(
    title="shiptrack",
    description="AIS position ingestion: latest vessel state and recent trajectories.",
    version=__version__,
    lifespan=lifespan,
)

# CORS origins from settings (supports comma-separated env var)
cors_origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router, prefix="/api/v1")


# ── Structured error handlers ─────────────────────────────────────────────────

@app.exception_handler(IngestionFailed)
async def ingestion_failed_handler(request: Request, exc: IngestionFailed):
    return JSONResponse(status_code=422, content=ErrorResponse(**exc.to_dict()).model_dump())


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    body = ErrorResponse(error="Validation error", detail=str(exc))
    return JSONResponse(status_code=422, content=body.model_dump(exclude_none=True))


@app.exception_handler(Exception)
async def general_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception on %s %s:\n%s", request.method, request.url.path, traceback.format_exc())
    return JSONResponse(status_code=500, content={"error": "Internal server error", "detail": "An unexpected error occurred."})


@app.get("/health")
def health() -> dict:
    return {"status": "ok", "version": __version__}
