"""Canonical vessel observation and trajectory point."""
from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any

UNKNOWN_VESSEL_NAME = "Unknown Vessel"
UNKNOWN_DESTINATION = "Unknown"


@dataclass(frozen=True)
class VesselRecord:
    """One normalized AIS observation.

    Coordinates are degrees, speeds knots, dimensions metres. ``timestamp``
    is always timezone-aware (UTC).
    """
    mmsi: str
    latitude: float
    longitude: float
    timestamp: datetime
    name: str = UNKNOWN_VESSEL_NAME
    heading_degrees: float = 0.0
    speed_knots: float = 0.0
    course_over_ground: float = 0.0
    vessel_type_code: str = ""
    vessel_type_category: str = "Other"
    nav_status_code: str = ""
    nav_status_category: str = "Unknown"
    length_m: float = 0.0
    width_m: float = 0.0
    draft_m: float = 0.0
    destination: str = UNKNOWN_DESTINATION
    eta: str = ""
    callsign: str = ""
    imo: str = ""
    gross_tonnage: float = 0.0
    deadweight: float = 0.0
    flag: str = ""
    transceiver_class: str = "A"

    def to_trajectory_point(self) -> TrajectoryPoint:
        return TrajectoryPoint(
            latitude=self.latitude,
            longitude=self.longitude,
            timestamp=self.timestamp,
            speed_knots=self.speed_knots,
            heading_degrees=self.heading_degrees,
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data


@dataclass(frozen=True)
class TrajectoryPoint:
    latitude: float
    longitude: float
    timestamp: datetime
    speed_knots: float = 0.0
    heading_degrees: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data
