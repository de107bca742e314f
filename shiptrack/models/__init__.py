"""Domain types shared by the decoder, stores and pipeline."""
from shiptrack.models.base import ProgressStageEnum, RejectReason, RunStateEnum
from shiptrack.models.vessel import TrajectoryPoint, VesselRecord
