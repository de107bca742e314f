"""Tests for AIS row decoding and record validation."""
from datetime import datetime, timedelta, timezone

import pytest

from shiptrack.errors import MissingIdentity
from shiptrack.models.base import RejectReason
from shiptrack.models.vessel import VesselRecord
from shiptrack.modules.normalize import (
    clean_vessel_name,
    decode_ais_row,
    has_valid_coordinates,
    normalize_header,
    parse_float,
    parse_timestamp_flexible,
    validate_record,
)
from shiptrack.utils.vessel_filter import BoundingBox, FilterConfig

NOW = datetime(2022, 1, 1, 12, 0, tzinfo=timezone.utc)


def _record(**overrides):
    fields = dict(mmsi="100", latitude=40.0, longitude=-74.0, timestamp=NOW)
    fields.update(overrides)
    return VesselRecord(**fields)


class TestDecodeRow:
    def test_noaa_row_decodes_with_cog_heading_fallback(self):
        row = {
            "MMSI": "367123456", "LAT": "51.505", "LON": "-0.09", "SOG": "12.5",
            "COG": "45", "VesselType": "70", "Status": "0",
            "BaseDateTime": "2022-01-01T00:00:00",
        }
        rec = decode_ais_row(row)
        assert rec.mmsi == "367123456"
        assert rec.latitude == pytest.approx(51.505)
        assert rec.longitude == pytest.approx(-0.09)
        assert rec.speed_knots == pytest.approx(12.5)
        assert rec.vessel_type_category == "Cargo"
        assert rec.nav_status_category == "Under way using engine"
        assert rec.heading_degrees == pytest.approx(45)
        assert rec.timestamp == datetime(2022, 1, 1, tzinfo=timezone.utc)

    def test_generic_lowercase_dialect(self):
        row = {
            "mmsi": "211000001", "lat": "54.1", "lon": "10.2", "speed": "3.4",
            "course": "180", "heading": "182", "ship_name": "  hansa  ",
            "timestamp": "2022-01-01 10:00:00", "ship_type": "Oil Tanker",
            "navigation_status": "Moored", "dest": "KIEL",
        }
        rec = decode_ais_row(row)
        assert rec.name == "HANSA"
        assert rec.heading_degrees == 182
        assert rec.course_over_ground == 180
        assert rec.speed_knots == pytest.approx(3.4)
        assert rec.vessel_type_category == "Tanker"
        assert rec.nav_status_category == "Moored"
        assert rec.destination == "KIEL"

    def test_first_non_blank_alias_wins(self):
        row = {"MMSI": "", "UserID": "244000000", "LAT": "52", "LON": "4"}
        assert decode_ais_row(row).mmsi == "244000000"

    def test_missing_mmsi_raises(self):
        with pytest.raises(MissingIdentity):
            decode_ais_row({"LAT": "52", "LON": "4"})

    def test_blank_mmsi_raises(self):
        with pytest.raises(MissingIdentity):
            decode_ais_row({"MMSI": "   ", "LAT": "52", "LON": "4"})

    def test_spreadsheet_float_mmsi(self):
        assert decode_ais_row({"MMSI": "367123456.0", "LAT": "1", "LON": "1"}).mmsi == "367123456"

    def test_mmsi_leading_zeros_kept(self):
        assert decode_ais_row({"MMSI": "002320123", "LAT": "1", "LON": "1"}).mmsi == "002320123"

    def test_heading_511_falls_back_to_cog(self):
        rec = decode_ais_row({"MMSI": "1", "Heading": "511", "COG": "270.5"})
        assert rec.heading_degrees == pytest.approx(270.5)

    def test_heading_defaults_to_zero_without_cog(self):
        assert decode_ais_row({"MMSI": "1"}).heading_degrees == 0.0

    def test_defaults_for_absent_fields(self):
        rec = decode_ais_row({"MMSI": "1"}, now=NOW)
        assert rec.name == "Unknown Vessel"
        assert rec.destination == "Unknown"
        assert rec.vessel_type_category == "Other"
        assert rec.nav_status_category == "Unknown"
        assert rec.latitude == 0.0 and rec.longitude == 0.0
        assert rec.transceiver_class == "A"
        assert rec.timestamp == NOW

    def test_unparseable_timestamp_uses_now(self):
        rec = decode_ais_row({"MMSI": "1", "BaseDateTime": "not a date"}, now=NOW)
        assert rec.timestamp == NOW

    def test_negative_speed_becomes_zero(self):
        rec = decode_ais_row({"MMSI": "1", "SOG": "-3", "Length": "-1"})
        assert rec.speed_knots == 0.0
        assert rec.length_m == 0.0

    def test_garbage_numbers_default(self):
        rec = decode_ais_row({"MMSI": "1", "LAT": "north", "SOG": "fast"})
        assert rec.latitude == 0.0
        assert rec.speed_knots == 0.0

    def test_header_whitespace_and_case(self):
        rec = decode_ais_row({" mmsi ": "5", " Lat": "10.5", "LON ": "20.5"})
        assert rec.mmsi == "5"
        assert rec.latitude == 10.5
        assert rec.longitude == 20.5

    def test_csv_overflow_key_ignored(self):
        rec = decode_ais_row({"MMSI": "5", None: ["extra", "cells"]})
        assert rec.mmsi == "5"


class TestHelpers:
    def test_normalize_header(self):
        assert normalize_header(" Base DateTime ") == "base_datetime"
        assert normalize_header("BaseDateTime") == "basedatetime"

    @pytest.mark.parametrize("raw,expected", [
        ("12.5", 12.5), (" 3 ", 3.0), ("", None), ("abc", None),
        ("nan", None), ("inf", None), (None, None), (7, 7.0),
    ])
    def test_parse_float(self, raw, expected):
        assert parse_float(raw) == expected

    @pytest.mark.parametrize("raw", [
        "2022-01-01T10:00:00",
        "2022-01-01T10:00:00Z",
        "2022-01-01 10:00:00",
        "01/01/2022 10:00:00",
        "1641031200",
    ])
    def test_parse_timestamp_formats(self, raw):
        assert parse_timestamp_flexible(raw) == datetime(2022, 1, 1, 10, 0, tzinfo=timezone.utc)

    def test_parse_timestamp_keeps_offset(self):
        ts = parse_timestamp_flexible("2022-01-01T12:00:00+02:00")
        assert ts == datetime(2022, 1, 1, 10, 0, tzinfo=timezone.utc)

    def test_parse_timestamp_rejects_garbage(self):
        assert parse_timestamp_flexible("yesterday") is None
        assert parse_timestamp_flexible("") is None
        assert parse_timestamp_flexible(None) is None

    @pytest.mark.parametrize("raw", [None, "", "  ", "0", "UNKNOWN"])
    def test_placeholder_names(self, raw):
        assert clean_vessel_name(raw) == "Unknown Vessel"

    def test_name_is_trimmed_and_uppercased(self):
        assert clean_vessel_name(" Maersk Alabama ") == "MAERSK ALABAMA"


class TestValidateRecord:
    @pytest.mark.parametrize("lat,lon", [(0, 0), (0, 10), (10, 0), (91, 10), (-91, 10), (10, 181), (10, -181)])
    def test_invalid_coordinates(self, lat, lon):
        assert has_valid_coordinates(lat, lon) is False
        assert validate_record(_record(latitude=lat, longitude=lon)) is RejectReason.INVALID_COORDINATES

    def test_boundary_coordinates_valid(self):
        assert has_valid_coordinates(90, 180)
        assert has_valid_coordinates(-90, -180)

    def test_no_filters_accepts(self):
        assert validate_record(_record()) is None
        assert validate_record(_record(), FilterConfig()) is None

    def test_bounding_box(self):
        filters = FilterConfig(bounding_box=BoundingBox(north=45, south=35, east=-65, west=-80))
        assert validate_record(_record(), filters) is None
        assert validate_record(_record(latitude=50.0), filters) is RejectReason.OUTSIDE_BOUNDING_BOX

    def test_vessel_type_case_insensitive(self):
        filters = FilterConfig(vessel_types=["cargo"])
        assert validate_record(_record(vessel_type_category="Cargo"), filters) is None
        assert validate_record(_record(vessel_type_category="Tanker"), filters) is RejectReason.VESSEL_TYPE_EXCLUDED

    def test_recency_window(self):
        filters = FilterConfig(recency_window_hours=2)
        fresh = _record(timestamp=NOW - timedelta(hours=1))
        stale = _record(timestamp=NOW - timedelta(hours=3))
        assert validate_record(fresh, filters, NOW) is None
        assert validate_record(stale, filters, NOW) is RejectReason.OUTSIDE_RECENCY_WINDOW

    def test_coordinates_checked_before_filters(self):
        filters = FilterConfig(vessel_types=["Tanker"])
        assert validate_record(_record(latitude=0), filters) is RejectReason.INVALID_COORDINATES
