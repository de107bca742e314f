"""Exception hierarchy for the ingestion core.

Per-row problems (MissingIdentity) are absorbed by the pipeline; only
IngestionFailed ever reaches a caller.
"""
from __future__ import annotations


class ShiptrackError(Exception):
    """Base class for all shiptrack errors."""


class MissingIdentity(ShiptrackError, ValueError):
    """Raised by the decoder when a row carries no vessel identity."""


class IngestionFailed(ShiptrackError):
    """The row source itself failed (I/O error, broken CSV framing).

    Partial stores are discarded; only the counts reached so far are kept
    for diagnostics.
    """

    def __init__(
        self,
        message: str,
        *,
        processed: int = 0,
        rows_read: int = 0,
        source_label: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.processed = processed
        self.rows_read = rows_read
        self.source_label = source_label

    def to_dict(self) -> dict:
        return {
            "error": "Ingestion failed",
            "detail": self.message,
            "processed": self.processed,
            "rows_read": self.rows_read,
            "source": self.source_label,
        }
