"""shiptrack: AIS position ingestion into latest-state and trajectory views."""

__version__ = "0.1.0"
