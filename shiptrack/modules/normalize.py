"""AIS row decoding and validation.

Turns one raw CSV row (column name → string) into a VesselRecord and
decides whether the record may enter the stores. Two header dialects are
handled through the alias table below: generic lowercase AIS exports
(``mmsi,lat,lon,sog,cog``) and NOAA MarineCadastre exports
(``MMSI,BaseDateTime,LAT,LON,SOG,COG,Heading,VesselName,...``).
"""
from __future__ import annotations

import math
import re
from datetime import datetime, timezone
from typing import Any, Mapping

from shiptrack.errors import MissingIdentity
from shiptrack.models.base import RejectReason
from shiptrack.models.vessel import UNKNOWN_DESTINATION, UNKNOWN_VESSEL_NAME, VesselRecord
from shiptrack.modules.classifiers import (
    classify_nav_status,
    classify_vessel_type,
    normalize_code,
)
from shiptrack.utils.vessel_filter import (
    FilterConfig,
    passes_bounding_box,
    passes_recency,
    passes_vessel_type,
)


# --- Shared helpers ---

_COMMON_TIMESTAMP_FORMATS = [
    "%Y-%m-%d %H:%M:%S",
    "%m/%d/%Y %H:%M:%S",
    "%d/%m/%Y %H:%M:%S",
    "%Y/%m/%d %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%d-%m-%Y %H:%M:%S",
]

# AIS "heading not available"
HEADING_NOT_AVAILABLE = 511.0

_PLACEHOLDER_NAMES = frozenset({"", "0", "unknown"})

# Canonical field → header aliases, first non-blank match wins.
# Headers are compared after normalize_header().
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "mmsi": ("mmsi", "userid", "user_id"),
    "name": ("vesselname", "vessel_name", "ship_name", "shipname", "name"),
    "lat": ("lat", "latitude"),
    "lon": ("lon", "longitude", "lng", "long"),
    "heading": ("heading", "true_heading", "hdg"),
    "cog": ("cog", "course", "course_over_ground"),
    "sog": ("sog", "speed", "speed_over_ground"),
    "destination": ("destination", "dest"),
    "eta": ("eta", "estimated_arrival"),
    "vessel_type": ("vesseltype", "vessel_type", "shipandcargotype", "ship_type", "shiptype"),
    "nav_status": ("status", "navstat", "navigation_status", "nav_status", "navigational_status"),
    "length": ("length", "vessel_length"),
    "width": ("width", "beam", "vessel_width"),
    "draft": ("draft", "draught"),
    "timestamp": ("basedatetime", "base_date_time", "timestamp", "timestamp_utc", "datetime", "time"),
    "callsign": ("callsign", "call_sign"),
    "imo": ("imo", "imo_number"),
    "gross_tonnage": ("grosstonnage", "gross_tonnage", "gt"),
    "deadweight": ("deadweight", "dwt"),
    "flag": ("flag", "country"),
    "transceiver_class": ("transceiverclass", "transceiver_class", "ais_class"),
}

_WHITESPACE = re.compile(r"\s+")
_FLOAT_INTEGER = re.compile(r"\d+\.0+")


def normalize_header(name: str) -> str:
    """``" Base DateTime "`` → ``"base_datetime"``; ``"BaseDateTime"`` → ``"basedatetime"``."""
    return _WHITESPACE.sub("_", name.strip().lower())


def normalize_row_keys(row: Mapping[Any, Any]) -> dict[str, Any]:
    """Lower-case and trim every header. Non-string keys (csv restkey overflow) are dropped."""
    return {normalize_header(k): v for k, v in row.items() if isinstance(k, str)}


def _first_value(row: Mapping[str, Any], field: str) -> str | None:
    for alias in FIELD_ALIASES[field]:
        value = row.get(alias)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return None


def parse_float(value: Any) -> float | None:
    """Tolerant float parse: blank, garbage, NaN and infinities → None."""
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        number = float(value)
    else:
        try:
            number = float(str(value).strip())
        except ValueError:
            return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _non_negative(value: Any) -> float:
    number = parse_float(value)
    if number is None or number < 0:
        return 0.0
    return number


def parse_timestamp_flexible(ts: Any) -> datetime | None:
    """Parse a timestamp from various formats.

    Returns a timezone-aware datetime or None if parsing fails. Naive values
    are taken as UTC. Supports ISO 8601, Unix epoch, and common strftime
    formats.
    """
    if isinstance(ts, datetime):
        return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)

    if isinstance(ts, str):
        ts_str = ts.strip()
        if not ts_str:
            return None
        # Unix epoch as text
        if re.fullmatch(r"\d{9,10}(\.\d+)?", ts_str):
            ts = float(ts_str)
        else:
            try:
                parsed = datetime.fromisoformat(ts_str.replace("Z", "+00:00"))
            except ValueError:
                parsed = None
            if parsed is None:
                for fmt in _COMMON_TIMESTAMP_FORMATS:
                    try:
                        parsed = datetime.strptime(ts_str, fmt)
                        break
                    except ValueError:
                        continue
            if parsed is None:
                return None
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)

    if isinstance(ts, (int, float)) and not isinstance(ts, bool) and ts > 1_000_000_000:
        try:
            return datetime.fromtimestamp(ts, tz=timezone.utc)
        except (OSError, ValueError, OverflowError):
            return None

    return None


def clean_vessel_name(raw: str | None) -> str:
    if raw is None or raw.strip().lower() in _PLACEHOLDER_NAMES:
        return UNKNOWN_VESSEL_NAME
    return raw.strip().upper()


def decode_ais_row(row: Mapping[Any, Any], now: datetime | None = None) -> VesselRecord:
    """Decode one raw CSV row into a VesselRecord.

    Only a missing MMSI fails the row (``MissingIdentity``). Every other
    field falls back to a default; coordinate validity is left to
    ``validate_record``. An unparseable timestamp becomes *now*.
    """
    row = normalize_row_keys(row)

    mmsi = _first_value(row, "mmsi")
    if mmsi is None:
        raise MissingIdentity("Row has no MMSI")
    # Spreadsheet exports turn 367123456 into "367123456.0"
    if _FLOAT_INTEGER.fullmatch(mmsi):
        mmsi = mmsi.split(".", 1)[0]

    cog = parse_float(_first_value(row, "cog"))
    heading = parse_float(_first_value(row, "heading"))
    if heading is None or heading == HEADING_NOT_AVAILABLE:
        heading = cog
    if heading is None:
        heading = 0.0

    timestamp = parse_timestamp_flexible(_first_value(row, "timestamp"))
    if timestamp is None:
        timestamp = now or datetime.now(timezone.utc)

    type_raw = _first_value(row, "vessel_type") or ""
    status_raw = _first_value(row, "nav_status") or ""

    return VesselRecord(
        mmsi=mmsi,
        name=clean_vessel_name(_first_value(row, "name")),
        latitude=parse_float(_first_value(row, "lat")) or 0.0,
        longitude=parse_float(_first_value(row, "lon")) or 0.0,
        heading_degrees=heading,
        speed_knots=_non_negative(_first_value(row, "sog")),
        course_over_ground=cog if cog is not None else 0.0,
        vessel_type_code=normalize_code(type_raw),
        vessel_type_category=classify_vessel_type(type_raw),
        nav_status_code=normalize_code(status_raw),
        nav_status_category=classify_nav_status(status_raw),
        length_m=_non_negative(_first_value(row, "length")),
        width_m=_non_negative(_first_value(row, "width")),
        draft_m=_non_negative(_first_value(row, "draft")),
        destination=_first_value(row, "destination") or UNKNOWN_DESTINATION,
        eta=_first_value(row, "eta") or "",
        timestamp=timestamp,
        callsign=_first_value(row, "callsign") or "",
        imo=_first_value(row, "imo") or "",
        gross_tonnage=_non_negative(_first_value(row, "gross_tonnage")),
        deadweight=_non_negative(_first_value(row, "deadweight")),
        flag=_first_value(row, "flag") or "",
        transceiver_class=_first_value(row, "transceiver_class") or "A",
    )


def has_valid_coordinates(lat: float, lon: float) -> bool:
    """Zero means "not reported" in AIS exports, so 0 on either axis is invalid."""
    if lat == 0 or lon == 0:
        return False
    return -90 <= lat <= 90 and -180 <= lon <= 180


def validate_record(
    record: VesselRecord,
    filters: FilterConfig | None = None,
    now: datetime | None = None,
) -> RejectReason | None:
    """Return why *record* must be kept out of the stores, or None to accept it.

    Coordinate checks always run; filter dimensions only when configured.
    """
    if not has_valid_coordinates(record.latitude, record.longitude):
        return RejectReason.INVALID_COORDINATES
    if filters is None:
        return None

    if not passes_bounding_box(record, filters.bounding_box):
        return RejectReason.OUTSIDE_BOUNDING_BOX
    if not passes_vessel_type(record, filters):
        return RejectReason.VESSEL_TYPE_EXCLUDED
    if not passes_recency(record, filters.recency_window_hours, now or datetime.now(timezone.utc)):
        return RejectReason.OUTSIDE_RECENCY_WINDOW
    return None
