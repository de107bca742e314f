"""Shared enums for the ingestion core."""
from __future__ import annotations

import enum


class RunStateEnum(str, enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


TERMINAL_RUN_STATES = frozenset({
    RunStateEnum.COMPLETED,
    RunStateEnum.CANCELLED,
    RunStateEnum.FAILED,
})


class ProgressStageEnum(str, enum.Enum):
    DOWNLOADING = "downloading"
    PARSING = "parsing"
    PROCESSING = "processing"


class RejectReason(str, enum.Enum):
    """Why a decoded record was kept out of the stores."""
    MISSING_IDENTITY = "missing_identity"
    INVALID_COORDINATES = "invalid_coordinates"
    OUTSIDE_BOUNDING_BOX = "outside_bounding_box"
    VESSEL_TYPE_EXCLUDED = "vessel_type_excluded"
    OUTSIDE_RECENCY_WINDOW = "outside_recency_window"
