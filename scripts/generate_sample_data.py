#!/usr/bin/env python3
"""Generate a sample NOAA-dialect AIS CSV for development and testing.

Writes one track per vessel profile, plus rows the pipeline must reject:
  A  Cargo transit           steady course, Heading 511 (falls back to COG)
  B  Tanker at anchor        near-zero SOG, free-text status
  C  Fishing vessel          rows written out of chronological order
  D  Passenger ferry         long track, exceeds the trajectory capacity
  E  Unnamed pleasure craft  blank VesselName, spreadsheet-style MMSI ("338000123.0")
  X  Rejects                 0,0 placeholders, out-of-range LAT, missing MMSI
"""
from __future__ import annotations

import csv
import random
from datetime import datetime, timedelta
from pathlib import Path

import typer

from shiptrack.config import settings

cli = typer.Typer(help="Generate sample AIS CSV data for shiptrack development/testing.")

# ---------------------------------------------------------------------------
# Reference timestamp: all positions are relative to this instant.
# ---------------------------------------------------------------------------
BASE_TIME = datetime(2022, 1, 1, 0, 0, 0)

HEADER = [
    "MMSI", "BaseDateTime", "LAT", "LON", "SOG", "COG", "Heading", "VesselName",
    "IMO", "CallSign", "VesselType", "Status", "Length", "Width", "Draft",
    "Cargo", "TransceiverClass",
]

VESSELS: list[dict] = [
    {
        "mmsi": "367123456", "name": "ATLANTIC TRADER", "imo": "IMO9300001",
        "callsign": "WDC1234", "type": "70", "status": "0",
        "length": 225, "width": 32, "draft": 11.5, "label": "A",
    },
    {
        "mmsi": "538001234", "name": "NORDIC SPIRIT", "imo": "IMO9400002",
        "callsign": "V7AB2", "type": "80", "status": "At anchor",
        "length": 250, "width": 44, "draft": 14.2, "label": "B",
    },
    {
        "mmsi": "367555001", "name": "MISS KATHY", "imo": "",
        "callsign": "WCK9981", "type": "30", "status": "7",
        "length": 24, "width": 7, "draft": 3.0, "label": "C",
    },
    {
        "mmsi": "367777002", "name": "ISLAND QUEEN", "imo": "IMO9500003",
        "callsign": "WDF5520", "type": "60", "status": "0",
        "length": 70, "width": 16, "draft": 3.5, "label": "D",
    },
    {
        "mmsi": "338000123.0", "name": "", "imo": "",
        "callsign": "", "type": "37", "status": "",
        "length": 12, "width": 4, "draft": 1.5, "label": "E",
    },
]


def _row(vdef: dict, ts: datetime, lat: float, lon: float, sog: float, cog: float, heading: float) -> list:
    return [
        vdef["mmsi"], ts.strftime("%Y-%m-%dT%H:%M:%S"), f"{lat:.5f}", f"{lon:.5f}",
        f"{sog:.1f}", f"{cog:.1f}", f"{heading:.0f}", vdef["name"], vdef["imo"],
        vdef["callsign"], vdef["type"], vdef["status"], vdef["length"], vdef["width"],
        vdef["draft"], vdef["type"], "B" if vdef["label"] == "E" else "A",
    ]


# ---------------------------------------------------------------------------
# Per-profile track generators
# ---------------------------------------------------------------------------


def _rows_vessel_a(vdef: dict, rng: random.Random) -> list[list]:
    """Cargo heading NE off New Jersey, 12 kn, no heading sensor."""
    rows = []
    lat, lon = 39.5, -73.8
    for i in range(40):
        ts = BASE_TIME + timedelta(minutes=15 * i)
        lat += 0.035 + rng.uniform(-0.002, 0.002)
        lon += 0.030 + rng.uniform(-0.002, 0.002)
        rows.append(_row(vdef, ts, lat, lon, 12.0 + rng.uniform(-0.5, 0.5), 41.0, 511))
    return rows


def _rows_vessel_b(vdef: dict, rng: random.Random) -> list[list]:
    """Tanker swinging at anchor off Galveston."""
    rows = []
    for i in range(24):
        ts = BASE_TIME + timedelta(hours=i)
        lat = 29.30 + rng.uniform(-0.001, 0.001)
        lon = -94.60 + rng.uniform(-0.001, 0.001)
        rows.append(_row(vdef, ts, lat, lon, rng.uniform(0.0, 0.3), rng.uniform(0, 360), (i * 15) % 360))
    return rows


def _rows_vessel_c(vdef: dict, rng: random.Random) -> list[list]:
    """Trawler on Georges Bank; receiver delivered the batch shuffled."""
    rows = []
    for i in range(30):
        ts = BASE_TIME + timedelta(minutes=10 * i)
        lat = 41.40 + 0.02 * (i % 6)
        lon = -67.80 + 0.01 * i
        rows.append(_row(vdef, ts, lat, lon, 3.5 + rng.uniform(-0.5, 0.5), 90.0, 92))
    rng.shuffle(rows)
    return rows


def _rows_vessel_d(vdef: dict, rng: random.Random) -> list[list]:
    """Ferry shuttling across Puget Sound every few minutes."""
    rows = []
    for i in range(150):
        ts = BASE_TIME + timedelta(minutes=3 * i)
        leg = (i % 20) / 20
        outbound = (i // 20) % 2 == 0
        frac = leg if outbound else 1 - leg
        lat = 47.60 + 0.02 * frac
        lon = -122.34 + 0.10 * frac
        cog = 75.0 if outbound else 255.0
        rows.append(_row(vdef, ts, lat, lon, 14.0 + rng.uniform(-1, 1), cog, cog))
    return rows


def _rows_vessel_e(vdef: dict, rng: random.Random) -> list[list]:
    """Small pleasure craft off Cozumel, Class B."""
    rows = []
    for i in range(8):
        ts = BASE_TIME + timedelta(minutes=30 * i)
        rows.append(_row(vdef, ts, 20.50 + 0.005 * i, -86.95, 6.0, 180.0, 511))
    return rows


def _rows_rejects(rng: random.Random) -> list[list]:
    """Rows that decode but must never reach the stores."""
    blank = dict(VESSELS[0], mmsi="", name="NO IDENTITY", label="X")
    zero = dict(VESSELS[1], mmsi="229000001", name="ZERO FIX", label="X")
    return [
        _row(zero, BASE_TIME, 0.0, 0.0, 0.0, 0.0, 511),
        _row(zero, BASE_TIME + timedelta(hours=1), 0.0, -70.0, 0.0, 0.0, 511),
        _row(zero, BASE_TIME + timedelta(hours=2), 91.0, -70.0, 0.0, 0.0, 511),
        _row(blank, BASE_TIME, 40.0, -70.0, 10.0, 90.0, 90),
    ]


POINT_GENERATORS = {
    "A": _rows_vessel_a,
    "B": _rows_vessel_b,
    "C": _rows_vessel_c,
    "D": _rows_vessel_d,
    "E": _rows_vessel_e,
}


@cli.command()
def generate(
    output: Path = typer.Option(Path(settings.DATA_DIR) / "sample_ais.csv", "--output", "-o", help="CSV file to write"),
    seed: int = typer.Option(42, "--seed", help="Random seed for reproducible tracks"),
):
    """Write the sample CSV."""
    rng = random.Random(seed)
    output.parent.mkdir(parents=True, exist_ok=True)
    total_rows = 0
    with open(output, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(HEADER)
        for vdef in VESSELS:
            rows = POINT_GENERATORS[vdef["label"]](vdef, rng)
            writer.writerows(rows)
            total_rows += len(rows)
            typer.echo(
                f"  Vessel {vdef['label']}: {vdef['name'] or '(unnamed)'} "
                f"(MMSI {vdef['mmsi']}): {len(rows)} rows"
            )
        rejects = _rows_rejects(rng)
        writer.writerows(rejects)
        total_rows += len(rejects)
        typer.echo(f"  Rejects: {len(rejects)} rows")

    typer.echo(f"\nWrote {total_rows} rows across {len(VESSELS)} vessels to {output}.")


if __name__ == "__main__":
    cli()
