from __future__ import annotations

import logging
import threading
from typing import Optional

from fastapi import APIRouter, File, HTTPException, Query, Request, UploadFile

from shiptrack.config import settings
from shiptrack.modules.ingest import IngestOptions, IngestResult, ingest_ais_csv, merge_results
from shiptrack.modules.progress import ProgressEvent
from shiptrack.modules.vessel_store import SORT_FIELDS, search_vessels, sort_vessels
from shiptrack.schemas.error import ErrorResponse
from shiptrack.schemas.vessel import (
    IngestMetadataRead,
    IngestSummaryRead,
    TrajectoryPointRead,
    TrajectoryRead,
    VesselListRead,
    VesselRead,
)
from shiptrack.utils.vessel_filter import build_filter_config

logger = logging.getLogger(__name__)

router = APIRouter()

# Imports from concurrent requests are reduced into the fleet view one at a time
_fleet_lock = threading.Lock()


def _check_upload_size(file: UploadFile) -> None:
    """Reject uploads exceeding MAX_UPLOAD_SIZE_MB."""
    file.file.seek(0, 2)  # seek to end
    size_mb = file.file.tell() / (1024 * 1024)
    file.file.seek(0)  # reset
    if size_mb > settings.MAX_UPLOAD_SIZE_MB:
        raise HTTPException(
            status_code=413,
            detail=f"File too large ({size_mb:.1f} MB). Max: {settings.MAX_UPLOAD_SIZE_MB} MB.",
        )


def _fleet(request: Request) -> Optional[IngestResult]:
    return getattr(request.app.state, "fleet", None)


# ---------------------------------------------------------------------------
# AIS Ingestion
# ---------------------------------------------------------------------------

@router.post(
    "/ais/import",
    tags=["ingestion"],
    response_model=IngestSummaryRead,
    responses={413: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
def import_ais(
    request: Request,
    file: UploadFile = File(...),
    max_records: Optional[int] = Query(default=None, ge=0),
    region: Optional[str] = None,
    bbox: Optional[str] = Query(default=None, description="south,west,north,east"),
    vessel_type: Optional[list[str]] = Query(default=None),
    recency_hours: Optional[float] = Query(default=None, gt=0),
):
    """Ingest AIS records from CSV and merge them into the fleet view."""
    _check_upload_size(file)
    filters = build_filter_config(
        bbox=bbox, region=region, vessel_types=vessel_type, recency_window_hours=recency_hours,
    )
    state = request.app.state

    def _on_progress(event: ProgressEvent) -> None:
        state.ingestion_status = {
            "status": "completed" if event.completed else "running",
            "file_name": file.filename,
            "processed": event.processed or 0,
            "percent_complete": round(event.percentage, 1),
        }

    state.ingestion_status = {
        "status": "running",
        "file_name": file.filename,
        "processed": 0,
        "percent_complete": 0.0,
    }
    options = IngestOptions(
        max_records=settings.MAX_RECORDS if max_records is None else max_records,
        filters=filters,
        progress_callback=_on_progress,
    )
    try:
        result = ingest_ais_csv(file.file, options, source_label=file.filename or "upload")
    except Exception as e:
        state.ingestion_status = {
            "status": "failed",
            "file_name": file.filename,
            "processed": getattr(e, "processed", 0),
            "error": str(e),
        }
        raise

    with _fleet_lock:
        current = _fleet(request)
        fleet = result if current is None else merge_results([current, result])
        state.fleet = fleet
    logger.info("Fleet view holds %d vessels after importing %s", len(fleet.vessels), file.filename)

    return IngestSummaryRead(
        metadata=IngestMetadataRead.model_validate(result.metadata.to_dict()),
        fleet_size=len(fleet.vessels),
        status=result.metadata.state.value,
    )


@router.get("/ingestion-status", tags=["ingestion"])
def ingestion_status(request: Request):
    """Return the latest AIS ingestion job status."""
    status = getattr(request.app.state, "ingestion_status", None)
    if status is None:
        return {"status": "idle", "processed": 0}
    return status


# ---------------------------------------------------------------------------
# Vessels
# ---------------------------------------------------------------------------

@router.get("/vessels", tags=["vessels"], response_model=VesselListRead)
def list_vessels(
    request: Request,
    sort_by: str = "name",
    sort_order: str = Query(default="asc", pattern="^(asc|desc)$"),
    search: Optional[str] = None,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
):
    """Latest known state of every vessel in the fleet view."""
    if sort_by not in SORT_FIELDS:
        raise HTTPException(status_code=422, detail=f"sort_by must be one of {', '.join(SORT_FIELDS)}")
    fleet = _fleet(request)
    vessels = fleet.vessels if fleet else []
    if search:
        vessels = search_vessels(vessels, search)
    vessels = sort_vessels(vessels, sort_by, ascending=sort_order == "asc")
    page = vessels[skip:skip + limit]
    return VesselListRead(
        items=[VesselRead.model_validate(v) for v in page],
        total=len(vessels),
    )


@router.get("/vessels/{mmsi}", tags=["vessels"], response_model=VesselRead)
def get_vessel(mmsi: str, request: Request):
    fleet = _fleet(request)
    for vessel in fleet.vessels if fleet else []:
        if vessel.mmsi == mmsi:
            return VesselRead.model_validate(vessel)
    raise HTTPException(status_code=404, detail=f"Vessel {mmsi} not found")


@router.get("/vessels/{mmsi}/trajectory", tags=["vessels"], response_model=TrajectoryRead)
def get_trajectory(mmsi: str, request: Request):
    fleet = _fleet(request)
    points = fleet.trajectories.get(mmsi) if fleet else None
    if points is None:
        raise HTTPException(status_code=404, detail=f"No trajectory for vessel {mmsi}")
    return TrajectoryRead(
        mmsi=mmsi,
        points=[TrajectoryPointRead.model_validate(p) for p in points],
    )
