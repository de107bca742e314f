"""Tests for bounding boxes, region presets and filter configuration."""
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from shiptrack.models.vessel import VesselRecord
from shiptrack.utils.vessel_filter import (
    REGION_PRESETS,
    BoundingBox,
    FilterConfig,
    build_filter_config,
    filter_by_bounds,
    load_filter_config,
    region_bounds,
)

NOW = datetime(2022, 1, 1, 12, 0, tzinfo=timezone.utc)


class TestBoundingBox:
    def test_contains_is_inclusive(self):
        box = BoundingBox(north=10, south=0, east=10, west=0)
        assert box.contains(5, 5)
        assert box.contains(10, 10)
        assert box.contains(0, 0)
        assert not box.contains(10.01, 5)

    def test_parse(self):
        box = BoundingBox.parse("35, -80, 45, -65")
        assert (box.south, box.west, box.north, box.east) == (35, -80, 45, -65)

    @pytest.mark.parametrize("text", ["1,2,3", "a,b,c,d", ""])
    def test_parse_rejects_bad_text(self, text):
        with pytest.raises(ValueError):
            BoundingBox.parse(text)

    def test_inverted_edges_rejected(self):
        with pytest.raises(ValidationError):
            BoundingBox(north=0, south=10, east=10, west=0)

    def test_out_of_range_rejected(self):
        with pytest.raises(ValidationError):
            BoundingBox(north=95, south=0, east=10, west=0)


class TestRegions:
    def test_all_presets_resolve(self):
        for key, (_, box) in REGION_PRESETS.items():
            assert region_bounds(key) == box

    def test_lookup_is_lenient(self):
        assert region_bounds("Gulf Coast") == REGION_PRESETS["gulfcoast"][1]
        assert region_bounds("west-coast") == REGION_PRESETS["westcoast"][1]

    def test_unknown_region(self):
        with pytest.raises(ValueError, match="Unknown region"):
            region_bounds("atlantis")


class TestFilterConfig:
    def test_default_is_empty(self):
        assert FilterConfig().is_empty()

    def test_blank_types_dropped(self):
        config = FilterConfig(vessel_types=["Cargo", " ", ""])
        assert config.vessel_types == frozenset({"Cargo"})

    def test_single_string_type(self):
        assert FilterConfig(vessel_types="Tanker").vessel_types == frozenset({"Tanker"})

    def test_folded_types(self):
        assert FilterConfig(vessel_types=["CARGO"]).vessel_types_folded == frozenset({"cargo"})

    def test_recency_must_be_positive(self):
        with pytest.raises(ValidationError):
            FilterConfig(recency_window_hours=0)


class TestBuildFilterConfig:
    def test_bbox_wins_over_region(self):
        config = build_filter_config(bbox="0,0,1,1", region="northeast")
        assert config.bounding_box == BoundingBox(north=1, south=0, east=1, west=0)

    def test_region_all_means_no_box(self):
        assert build_filter_config(region="all").bounding_box is None

    def test_type_all_is_ignored(self):
        config = build_filter_config(vessel_types=["all"])
        assert config.vessel_types is None
        assert config.is_empty()

    def test_everything(self):
        config = build_filter_config(region="northeast", vessel_types=["Cargo"], recency_window_hours=6)
        assert config.bounding_box == REGION_PRESETS["northeast"][1]
        assert config.vessel_types == frozenset({"Cargo"})
        assert config.recency_window_hours == 6


class TestLoadFilterConfig:
    def test_region_key(self, tmp_path):
        path = tmp_path / "filters.yaml"
        path.write_text("region: northeast\nvessel_types: [Cargo, Tanker]\nrecency_window_hours: 24\n")
        config = load_filter_config(path)
        assert config.bounding_box == REGION_PRESETS["northeast"][1]
        assert config.vessel_types == frozenset({"Cargo", "Tanker"})
        assert config.recency_window_hours == 24

    def test_explicit_box(self, tmp_path):
        path = tmp_path / "filters.yaml"
        path.write_text("bounding_box:\n  north: 45\n  south: 35\n  east: -65\n  west: -80\n")
        assert load_filter_config(path).bounding_box == BoundingBox(north=45, south=35, east=-65, west=-80)

    def test_unknown_keys_warned_and_dropped(self, tmp_path, caplog):
        path = tmp_path / "filters.yaml"
        path.write_text("vessel_types: Cargo\ncolour: red\n")
        config = load_filter_config(path)
        assert config.vessel_types == frozenset({"Cargo"})
        assert "colour" in caplog.text

    def test_empty_file(self, tmp_path):
        path = tmp_path / "filters.yaml"
        path.write_text("")
        assert load_filter_config(path).is_empty()

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "filters.yaml"
        path.write_text("- Cargo\n- Tanker\n")
        with pytest.raises(ValueError):
            load_filter_config(path)


def test_filter_by_bounds():
    vessels = [
        VesselRecord(mmsi="1", latitude=40, longitude=-70, timestamp=NOW),
        VesselRecord(mmsi="2", latitude=10, longitude=10, timestamp=NOW),
    ]
    kept = filter_by_bounds(vessels, REGION_PRESETS["northeast"][1])
    assert [v.mmsi for v in kept] == ["1"]
