"""Record filter configuration: bounding box, vessel-type allow-list, recency window.

Filters are conjunctive; a dimension left unset imposes no constraint.
Configurations can be built in code, from CLI/API parameters, or loaded
from a YAML file:

    region: northeast            # or bounding_box: {north, south, east, west}
    vessel_types: [Cargo, Tanker]
    recency_window_hours: 24
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Iterable, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from shiptrack.models.vessel import VesselRecord

logger = logging.getLogger(__name__)


class BoundingBox(BaseModel):
    model_config = {"frozen": True}

    north: float = Field(ge=-90, le=90)
    south: float = Field(ge=-90, le=90)
    east: float = Field(ge=-180, le=180)
    west: float = Field(ge=-180, le=180)

    @model_validator(mode="after")
    def edges_must_be_ordered(self) -> "BoundingBox":
        if self.south > self.north:
            raise ValueError(f"south ({self.south}) must not exceed north ({self.north})")
        if self.west > self.east:
            raise ValueError(f"west ({self.west}) must not exceed east ({self.east})")
        return self

    def contains(self, lat: float, lon: float) -> bool:
        return self.south <= lat <= self.north and self.west <= lon <= self.east

    @classmethod
    def parse(cls, text: str) -> "BoundingBox":
        """Parse ``"south,west,north,east"``."""
        parts = [p.strip() for p in text.split(",")]
        if len(parts) != 4:
            raise ValueError(f"Bounding box needs 4 comma-separated values (south,west,north,east), got {text!r}")
        try:
            south, west, north, east = (float(p) for p in parts)
        except ValueError:
            raise ValueError(f"Bounding box values must be numeric: {text!r}")
        return cls(north=north, south=south, east=east, west=west)


REGION_PRESETS: dict[str, tuple[str, BoundingBox]] = {
    "northeast": ("US Northeast Coast", BoundingBox(north=45, south=35, east=-65, west=-80)),
    "southeast": ("US Southeast Coast", BoundingBox(north=35, south=25, east=-75, west=-85)),
    "gulfcoast": ("Gulf Coast", BoundingBox(north=31, south=24, east=-80, west=-100)),
    "westcoast": ("US West Coast", BoundingBox(north=50, south=32, east=-115, west=-130)),
    "greatlakes": ("Great Lakes", BoundingBox(north=49, south=41, east=-76, west=-93)),
}


def region_bounds(region: str) -> BoundingBox:
    key = region.strip().lower().replace(" ", "").replace("_", "").replace("-", "")
    if key not in REGION_PRESETS:
        raise ValueError(f"Unknown region {region!r}; choose from {', '.join(REGION_PRESETS)}")
    return REGION_PRESETS[key][1]


class FilterConfig(BaseModel):
    model_config = {"frozen": True}

    bounding_box: Optional[BoundingBox] = None
    vessel_types: Optional[frozenset[str]] = None
    recency_window_hours: Optional[float] = Field(default=None, gt=0)

    @field_validator("vessel_types", mode="before")
    @classmethod
    def drop_blank_types(cls, v: Any) -> Any:
        if v is None:
            return None
        if isinstance(v, str):
            v = [v]
        return frozenset(str(t).strip() for t in v if str(t).strip())

    @property
    def vessel_types_folded(self) -> frozenset[str]:
        return frozenset(t.casefold() for t in self.vessel_types or ())

    def is_empty(self) -> bool:
        return self.bounding_box is None and not self.vessel_types and self.recency_window_hours is None


def passes_bounding_box(record: VesselRecord, bbox: BoundingBox | None) -> bool:
    return bbox is None or bbox.contains(record.latitude, record.longitude)


def passes_vessel_type(record: VesselRecord, filters: FilterConfig) -> bool:
    """Category membership, case-insensitive; an empty allow-list admits everything."""
    allowed = filters.vessel_types_folded
    if not allowed:
        return True
    return record.vessel_type_category.casefold() in allowed


def passes_recency(record: VesselRecord, hours: float | None, now: datetime) -> bool:
    if hours is None:
        return True
    return record.timestamp >= now - timedelta(hours=hours)


def filter_by_bounds(vessels: Iterable[VesselRecord], bbox: BoundingBox) -> list[VesselRecord]:
    """Keep only vessels whose latest position lies inside *bbox*."""
    return [v for v in vessels if bbox.contains(v.latitude, v.longitude)]


def build_filter_config(
    bbox: str | None = None,
    region: str | None = None,
    vessel_types: Iterable[str] | None = None,
    recency_window_hours: float | None = None,
) -> FilterConfig:
    """Build a FilterConfig from loose CLI/API parameters. ``bbox`` wins over ``region``."""
    bounding_box = None
    if bbox:
        bounding_box = BoundingBox.parse(bbox)
    elif region and region.lower() != "all":
        bounding_box = region_bounds(region)
    types = [t for t in (vessel_types or []) if t and t.lower() != "all"]
    return FilterConfig(
        bounding_box=bounding_box,
        vessel_types=types or None,
        recency_window_hours=recency_window_hours,
    )


def load_filter_config(path: str | Path) -> FilterConfig:
    """Load a FilterConfig from a YAML file."""
    path = Path(path)
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at top level")

    region = data.pop("region", None)
    if region and "bounding_box" not in data:
        data["bounding_box"] = region_bounds(region)
    unknown = set(data) - set(FilterConfig.model_fields)
    if unknown:
        logger.warning("Ignoring unknown filter keys in %s: %s", path, sorted(unknown))
        for key in unknown:
            data.pop(key)
    return FilterConfig.model_validate(data)
