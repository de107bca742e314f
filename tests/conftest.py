"""Shared test fixtures: sample CSV text and an API client with an empty fleet view."""
import pytest
from fastapi.testclient import TestClient

from shiptrack.main import app

NOAA_HEADER = (
    "MMSI,BaseDateTime,LAT,LON,SOG,COG,Heading,VesselName,IMO,CallSign,"
    "VesselType,Status,Length,Width,Draft,Cargo,TransceiverClass"
)



@pytest.fixture
def noaa_csv():
    """Three vessels, five rows; one vessel reported twice out of order, one at 0,0."""
    rows = [
        "367123456,2022-01-01T11:00:00,40.7000,-74.0000,12.5,45.0,511,EVER GIVEN,IMO9811000,H3RC,70,0,399.9,58.8,14.5,70,A",
        "367123456,2022-01-01T10:00:00,40.6000,-74.1000,11.0,44.0,43,EVER GIVEN,IMO9811000,H3RC,70,0,399.9,58.8,14.5,70,A",
        "538001234,2022-01-01T10:30:00,29.7000,-94.9000,0.1,0.0,120,NORDIC TANKER,,V7AB,80,5,250,44,12,80,A",
        "338000111,2022-01-01T10:45:00,0,0,5.0,90.0,90,LOST BOAT,,,37,0,12,4,1.5,,B",
        "367999888,2022-01-01T11:30:00,41.2000,-71.5000,8.2,270.0,268,,,,30,7,24,7,3,,A",
    ]
    return NOAA_HEADER + "\n" + "\n".join(rows) + "\n"


@pytest.fixture
def csv_file(tmp_path, noaa_csv):
    path = tmp_path / "AIS_2022_01_01.csv"
    path.write_text(noaa_csv, encoding="utf-8")
    return path


@pytest.fixture
def api_client():
    """TestClient over a fresh fleet view."""
    with TestClient(app) as client:
        yield client
    app.state.fleet = None
    app.state.ingestion_status = None
