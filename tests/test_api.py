"""Tests for the HTTP API: health, CSV import and fleet queries.

Uses the shared conftest fixture (api_client).
"""
from unittest.mock import patch


def _upload(api_client, text, name="AIS_2022_01_01.csv", **params):
    return api_client.post(
        "/api/v1/ais/import",
        files={"file": (name, text if isinstance(text, bytes) else text.encode("utf-8"), "text/csv")},
        params=params,
    )


class TestHealth:
    def test_returns_status_ok(self, api_client):
        resp = api_client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"

    def test_returns_version(self, api_client):
        assert api_client.get("/health").json()["version"] == "0.1.0"


class TestImport:
    def test_import_builds_fleet(self, api_client, noaa_csv):
        resp = _upload(api_client, noaa_csv)
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "completed"
        assert data["fleet_size"] == 3
        assert data["metadata"]["total_processed"] == 4
        assert data["metadata"]["rejected"] == {"invalid_coordinates": 1}

    def test_import_with_filters(self, api_client, noaa_csv):
        resp = _upload(api_client, noaa_csv, vessel_type=["Tanker"], region="gulfcoast")
        assert resp.status_code == 200
        assert resp.json()["fleet_size"] == 1

    def test_import_with_budget(self, api_client, noaa_csv):
        resp = _upload(api_client, noaa_csv, max_records=1)
        assert resp.json()["metadata"]["truncated"] is True
        assert resp.json()["fleet_size"] == 1

    def test_imports_accumulate(self, api_client, noaa_csv):
        _upload(api_client, noaa_csv)
        second = "MMSI,BaseDateTime,LAT,LON\n999,2022-01-01T09:00:00,30,-80\n"
        resp = _upload(api_client, second, name="second.csv")
        assert resp.json()["fleet_size"] == 4

    def test_unknown_region_is_422(self, api_client, noaa_csv):
        resp = _upload(api_client, noaa_csv, region="atlantis")
        assert resp.status_code == 422
        assert resp.json()["error"] == "Validation error"

    def test_unreadable_csv_is_422(self, api_client):
        resp = _upload(api_client, b"MMSI,LAT,LON\n\xff\xfe,40,-70\n")
        assert resp.status_code == 422
        body = resp.json()
        assert body["error"] == "Ingestion failed"
        assert body["source"] == "AIS_2022_01_01.csv"
        status = api_client.get("/api/v1/ingestion-status").json()
        assert status["status"] == "failed"

    @patch("shiptrack.api.routes.settings")
    def test_upload_too_large(self, mock_settings, api_client, noaa_csv):
        mock_settings.MAX_UPLOAD_SIZE_MB = 0
        mock_settings.MAX_RECORDS = 5000
        resp = _upload(api_client, noaa_csv)
        assert resp.status_code == 413


class TestIngestionStatus:
    def test_idle_before_import(self, api_client):
        assert api_client.get("/api/v1/ingestion-status").json()["status"] == "idle"

    def test_completed_after_import(self, api_client, noaa_csv):
        _upload(api_client, noaa_csv)
        status = api_client.get("/api/v1/ingestion-status").json()
        assert status["status"] == "completed"
        assert status["percent_complete"] == 100.0
        assert status["file_name"] == "AIS_2022_01_01.csv"


class TestVessels:
    def test_empty_fleet(self, api_client):
        data = api_client.get("/api/v1/vessels").json()
        assert data == {"items": [], "total": 0}

    def test_list_sorted_by_name(self, api_client, noaa_csv):
        _upload(api_client, noaa_csv)
        data = api_client.get("/api/v1/vessels").json()
        assert data["total"] == 3
        assert [v["name"] for v in data["items"]] == ["EVER GIVEN", "NORDIC TANKER", "Unknown Vessel"]

    def test_sort_by_speed_desc(self, api_client, noaa_csv):
        _upload(api_client, noaa_csv)
        data = api_client.get("/api/v1/vessels", params={"sort_by": "speed", "sort_order": "desc"}).json()
        assert data["items"][0]["mmsi"] == "367123456"

    def test_search_and_paging(self, api_client, noaa_csv):
        _upload(api_client, noaa_csv)
        data = api_client.get("/api/v1/vessels", params={"search": "nordic"}).json()
        assert [v["mmsi"] for v in data["items"]] == ["538001234"]
        page = api_client.get("/api/v1/vessels", params={"skip": 1, "limit": 1}).json()
        assert len(page["items"]) == 1
        assert page["total"] == 3

    def test_bad_sort_field(self, api_client):
        assert api_client.get("/api/v1/vessels", params={"sort_by": "colour"}).status_code == 422

    def test_get_vessel(self, api_client, noaa_csv):
        _upload(api_client, noaa_csv)
        data = api_client.get("/api/v1/vessels/367123456").json()
        assert data["latitude"] == 40.7
        assert data["heading_degrees"] == 45.0
        assert data["vessel_type_category"] == "Cargo"

    def test_get_vessel_not_found(self, api_client):
        assert api_client.get("/api/v1/vessels/123").status_code == 404

    def test_trajectory(self, api_client, noaa_csv):
        _upload(api_client, noaa_csv)
        data = api_client.get("/api/v1/vessels/367123456/trajectory").json()
        assert data["mmsi"] == "367123456"
        assert [p["timestamp"][11:13] for p in data["points"]] == ["10", "11"]

    def test_trajectory_not_found(self, api_client):
        assert api_client.get("/api/v1/vessels/338000111/trajectory").status_code == 404
