"""
GPS Tracker API
FastAPI application that stores location reports from a tracking device and
serves the latest position and the retained route history.
"""
import logging
import time
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request, Response
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from src.tracker import metrics
from src.tracker.config import Settings, configure_logging
from src.tracker.database import create_db_engine, create_session_factory, init_db
from src.tracker.errors import StorageError, ValidationError
from src.tracker.models import (
    CleanupResponse,
    LatestLocation,
    LocationOut,
    LocationReport,
    ReportResponse,
)
from src.tracker.services import IngestService, QueryService
from src.tracker.store import LocationStore

logger = logging.getLogger(__name__)

# Shown to clients on storage failures; details go to the log only
STORAGE_ERROR_MESSAGE = "Storage unavailable, please retry later"

router = APIRouter()


# =============================================================================
# Dependencies
# =============================================================================

def get_store(request: Request) -> LocationStore:
    return request.app.state.store


def get_ingest_service(request: Request) -> IngestService:
    return request.app.state.ingest_service


def get_query_service(request: Request) -> QueryService:
    return request.app.state.query_service


# =============================================================================
# Endpoints
# =============================================================================

@router.get("/")
def root():
    """Service banner."""
    return {"message": "GPS Tracker Backend is running"}


@router.get("/metrics")
def get_metrics():
    """
    Prometheus metrics endpoint.

    Returns:
        Response: Prometheus-formatted metrics
    """
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@router.get("/health")
def health(store: LocationStore = Depends(get_store)):
    """
    Health check endpoint.

    Returns:
        dict: API status and database connection status
    """
    try:
        store.ping()
        database_status = "connected"
    except StorageError:
        database_status = "disconnected"

    return {"status": "healthy", "database": database_status}


def _ingest(ingest: IngestService, lat, lon, timestamp=None) -> ReportResponse:
    start_time = time.time()
    try:
        record = ingest.report(lat, lon, timestamp)
    except ValidationError:
        metrics.location_reports_total.labels(status="invalid").inc()
        raise
    except StorageError:
        metrics.location_reports_total.labels(status="error").inc()
        raise

    metrics.location_reports_total.labels(status="success").inc()
    metrics.request_duration_seconds.labels(endpoint="update_location").observe(time.time() - start_time)
    return ReportResponse(lat=record.latitude, lon=record.longitude)


@router.get("/update_location", response_model=ReportResponse)
def update_location(
    lat: Optional[str] = None,
    lon: Optional[str] = None,
    ingest: IngestService = Depends(get_ingest_service),
):
    """
    Record a location report sent as query parameters.

    This is what the tracking device calls: GET /update_location?lat=..&lon=..
    The server assigns the timestamp.

    Raises:
        400: If lat or lon is missing or not a number
        500: If the report could not be stored
    """
    return _ingest(ingest, lat, lon)


@router.post("/update_location", response_model=ReportResponse)
def update_location_json(
    report: LocationReport,
    ingest: IngestService = Depends(get_ingest_service),
):
    """
    Record a location report sent as a JSON body.

    Same validation as the GET variant; additionally accepts an optional
    timestamp for fixes buffered on the device.
    """
    return _ingest(ingest, report.lat, report.lon, report.timestamp)


@router.get("/get_location", response_model=LatestLocation, response_model_exclude_none=True)
def get_location(query: QueryService = Depends(get_query_service)):
    """
    Get the latest reported location.

    Returns {"lat": 0, "lon": 0} when nothing has been reported yet.
    """
    start_time = time.time()
    try:
        latest = query.get_latest()
    except StorageError:
        metrics.location_queries_total.labels(endpoint="get_location", status="error").inc()
        raise

    metrics.location_queries_total.labels(endpoint="get_location", status="success").inc()
    metrics.request_duration_seconds.labels(endpoint="get_location").observe(time.time() - start_time)

    if isinstance(latest, dict):
        return LatestLocation(**latest)
    return LatestLocation(lat=latest.latitude, lon=latest.longitude, timestamp=latest.recorded_at)


@router.get("/get_all_locations", response_model=List[LocationOut])
def get_all_locations(query: QueryService = Depends(get_query_service)):
    """
    Get the retained route history, newest first.
    """
    start_time = time.time()
    try:
        records = query.get_history()
    except StorageError:
        metrics.location_queries_total.labels(endpoint="get_all_locations", status="error").inc()
        raise

    metrics.location_queries_total.labels(endpoint="get_all_locations", status="success").inc()
    metrics.request_duration_seconds.labels(endpoint="get_all_locations").observe(time.time() - start_time)

    return [LocationOut(**record.to_dict()) for record in records]


@router.delete("/cleanup", response_model=CleanupResponse)
def cleanup(
    cap: Optional[int] = Query(default=None, ge=0, description="Records to keep (defaults to RETENTION_CAP)"),
    query: QueryService = Depends(get_query_service),
):
    """
    Delete the oldest records beyond the retention cap.

    Safe to call repeatedly; a second call with the same cap deletes nothing.
    """
    start_time = time.time()
    try:
        deleted = query.cleanup(cap)
    except StorageError:
        metrics.location_queries_total.labels(endpoint="cleanup", status="error").inc()
        raise

    metrics.location_queries_total.labels(endpoint="cleanup", status="success").inc()
    metrics.request_duration_seconds.labels(endpoint="cleanup").observe(time.time() - start_time)

    return CleanupResponse(message="Cleanup done if necessary", deleted=deleted)


# =============================================================================
# Error handlers
# =============================================================================

async def handle_validation_error(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"error": str(exc)})


async def handle_request_validation_error(request: Request, exc: RequestValidationError):
    """
    Report malformed /update_location bodies as 400 {"error": ...}, like any
    other bad report. Other endpoints keep FastAPI's default 422.
    """
    if request.url.path != "/update_location":
        return await request_validation_exception_handler(request, exc)

    metrics.location_reports_total.labels(status="invalid").inc()
    errors = exc.errors()
    if not errors:
        return JSONResponse(status_code=400, content={"error": "Invalid location report"})
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body") or "body"
    return JSONResponse(status_code=400, content={"error": f"Invalid {field}: {first.get('msg', 'invalid value')}"})


async def handle_storage_error(request: Request, exc: StorageError):
    logger.error(f"Storage error on {request.method} {request.url.path}: {exc!r}", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": STORAGE_ERROR_MESSAGE})


# =============================================================================
# Application
# =============================================================================

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI application.

    The database engine is created when the app starts and disposed when it
    stops; the store and both services are shared by all requests through
    app.state.

    Args:
        settings: Runtime settings (read from the environment when omitted)
    """
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = create_db_engine(settings)
        init_db(engine)
        logger.info("Connected to database")

        store = LocationStore(create_session_factory(engine))
        app.state.store = store
        app.state.ingest_service = IngestService(store)
        app.state.query_service = QueryService(store, retention_cap=settings.retention_cap)

        yield

        engine.dispose()
        logger.info("Database connections closed")

    app = FastAPI(
        title="GPS Tracker",
        description="Stores location reports from a GPS tracker and serves the latest position and route history",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["Content-Type"],
    )
    app.add_exception_handler(ValidationError, handle_validation_error)
    app.add_exception_handler(StorageError, handle_storage_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.include_router(router)

    return app


settings = Settings.from_env()
app = create_app(settings)


if __name__ == "__main__":
    import uvicorn
    logger.info(f"Server running on port {settings.port}")
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
