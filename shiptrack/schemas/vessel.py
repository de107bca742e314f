"""Pydantic schemas for vessels and trajectories, used by FastAPI for response typing."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class VesselRead(BaseModel):
    mmsi: str
    name: str
    latitude: float
    longitude: float
    heading_degrees: float
    speed_knots: float
    course_over_ground: float
    vessel_type_code: str
    vessel_type_category: str
    nav_status_code: str
    nav_status_category: str
    length_m: float
    width_m: float
    draft_m: float
    destination: str
    eta: str
    timestamp: datetime
    callsign: str
    imo: str
    gross_tonnage: float
    deadweight: float
    flag: str
    transceiver_class: str

    model_config = {"from_attributes": True}


class TrajectoryPointRead(BaseModel):
    latitude: float
    longitude: float
    timestamp: datetime
    speed_knots: float
    heading_degrees: float

    model_config = {"from_attributes": True}


class TrajectoryRead(BaseModel):
    mmsi: str
    points: list[TrajectoryPointRead]


class IngestMetadataRead(BaseModel):
    total_processed: int
    unique_vessel_count: int
    source_label: str
    rows_read: int
    truncated: bool
    cancelled: bool
    state: str
    rejected: dict[str, int]
    failed_sources: list[dict] = []

    model_config = {"from_attributes": True}


class VesselListRead(BaseModel):
    items: list[VesselRead]
    total: int


class IngestSummaryRead(BaseModel):
    metadata: IngestMetadataRead
    fleet_size: int
    status: Optional[str] = None
