"""Per-vessel latest state and bounded trajectory history.

Both stores are owned by a single ingestion run and mutated sequentially;
combining runs goes through ``merge_stores``, never through shared writes.
"""
from __future__ import annotations

import logging
from collections import deque
from typing import Iterable, Iterator

from shiptrack.models.vessel import TrajectoryPoint, VesselRecord

logger = logging.getLogger(__name__)

DEFAULT_TRAJECTORY_CAPACITY = 100


class VesselStateStore:
    """MMSI → most recent VesselRecord."""

    def __init__(self) -> None:
        self._records: dict[str, VesselRecord] = {}

    def upsert(self, record: VesselRecord) -> bool:
        """Insert, or replace only when *record* is strictly newer.

        On an exact timestamp tie the first-seen record is kept.
        Returns True if the store changed.
        """
        current = self._records.get(record.mmsi)
        if current is None or record.timestamp > current.timestamp:
            self._records[record.mmsi] = record
            return True
        return False

    def get(self, mmsi: str) -> VesselRecord | None:
        return self._records.get(mmsi)

    def snapshot(self) -> list[VesselRecord]:
        """Current records in unspecified order; sort explicitly if order matters."""
        return list(self._records.values())

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, mmsi: object) -> bool:
        return mmsi in self._records


class TrajectoryStore:
    """MMSI → chronological points, at most ``capacity`` per vessel.

    ``append`` does not re-sort: callers feeding an unordered source call
    ``sort_all`` once at the end.
    """

    def __init__(self, capacity: int = DEFAULT_TRAJECTORY_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError(f"Trajectory capacity must be >= 1, got {capacity}")
        self.capacity = capacity
        self._tracks: dict[str, deque[TrajectoryPoint]] = {}

    def append(self, mmsi: str, point: TrajectoryPoint) -> None:
        track = self._tracks.get(mmsi)
        if track is None:
            track = self._tracks[mmsi] = deque(maxlen=self.capacity)
        # deque(maxlen) drops from the left once full
        track.append(point)

    def get(self, mmsi: str) -> list[TrajectoryPoint]:
        track = self._tracks.get(mmsi)
        return list(track) if track is not None else []

    def sort_all(self) -> None:
        for mmsi, track in self._tracks.items():
            self._tracks[mmsi] = deque(
                sorted(track, key=lambda p: p.timestamp), maxlen=self.capacity
            )

    def as_dict(self) -> dict[str, list[TrajectoryPoint]]:
        return {mmsi: list(track) for mmsi, track in self._tracks.items()}

    def __len__(self) -> int:
        return len(self._tracks)

    def __contains__(self, mmsi: object) -> bool:
        return mmsi in self._tracks

    def __iter__(self) -> Iterator[str]:
        return iter(self._tracks)


def merge_stores(
    parts: Iterable[tuple[Iterable[VesselRecord], dict[str, list[TrajectoryPoint]]]],
    capacity: int = DEFAULT_TRAJECTORY_CAPACITY,
) -> tuple[VesselStateStore, TrajectoryStore]:
    """Reduce several runs' (vessels, trajectories) into one pair of stores.

    Latest-wins is reapplied across runs. Each merged trajectory is sorted
    and cut to the ``capacity`` most recent points.
    """
    states = VesselStateStore()
    combined: dict[str, list[TrajectoryPoint]] = {}
    for vessels, trajectories in parts:
        for record in vessels:
            states.upsert(record)
        for mmsi, points in trajectories.items():
            combined.setdefault(mmsi, []).extend(points)

    tracks = TrajectoryStore(capacity)
    for mmsi, points in combined.items():
        for point in sorted(points, key=lambda p: p.timestamp):
            tracks.append(mmsi, point)
    logger.debug("Merged %d vessels, %d trajectories", len(states), len(tracks))
    return states, tracks


# --- Presentation helpers ---

_SORT_KEYS = {
    "name": lambda v: v.name.lower(),
    "speed": lambda v: v.speed_knots,
    "mmsi": lambda v: v.mmsi,
    "destination": lambda v: v.destination.lower(),
    "type": lambda v: v.vessel_type_category.lower(),
    "timestamp": lambda v: v.timestamp,
}

SORT_FIELDS = tuple(_SORT_KEYS)


def sort_vessels(
    vessels: Iterable[VesselRecord], sort_by: str = "name", ascending: bool = True
) -> list[VesselRecord]:
    key = _SORT_KEYS.get(sort_by)
    if key is None:
        raise ValueError(f"Unknown sort field {sort_by!r}; choose from {', '.join(SORT_FIELDS)}")
    return sorted(vessels, key=key, reverse=not ascending)


def search_vessels(vessels: Iterable[VesselRecord], query: str) -> list[VesselRecord]:
    """Case-insensitive substring match on name or MMSI."""
    needle = query.strip().lower()
    if not needle:
        return list(vessels)
    return [v for v in vessels if needle in v.name.lower() or needle in v.mmsi]
