"""AIS CSV ingestion pipeline.

Drives rows through decode → validate → (state store, trajectory store),
enforcing a record budget, emitting progress every ``progress_interval``
accepted records, and checking for cancellation at every row boundary.

Per-row problems (no MMSI, bad coordinates, filtered out) only skip the
row. A failing source (I/O error, broken CSV framing, undecodable bytes)
aborts the run with IngestionFailed and discards the partial stores.
Cancellation is not an error: the partial result is returned.

Usage:
    from shiptrack.modules.ingest import IngestOptions, ingest_file
    result = ingest_file("AIS_2022_01_01.csv", IngestOptions(max_records=2000))
"""
from __future__ import annotations

import csv
import io
import logging
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping, Optional, TextIO, Union

import polars as pl

from shiptrack.config import settings
from shiptrack.errors import IngestionFailed, MissingIdentity
from shiptrack.models.base import (
    TERMINAL_RUN_STATES,
    ProgressStageEnum,
    RejectReason,
    RunStateEnum,
)
from shiptrack.models.vessel import TrajectoryPoint, VesselRecord
from shiptrack.modules.normalize import decode_ais_row, validate_record
from shiptrack.modules.progress import (
    CancellationToken,
    ProgressCallback,
    ProgressEvent,
    ProgressNotifier,
    percentage_of,
)
from shiptrack.modules.vessel_store import TrajectoryStore, VesselStateStore, merge_stores
from shiptrack.utils.vessel_filter import FilterConfig

logger = logging.getLogger(__name__)

# Errors raised by the row source itself (as opposed to a bad row)
_SOURCE_ERRORS = (csv.Error, OSError, UnicodeDecodeError, pl.exceptions.PolarsError)

_UTF8_BOM = b"\xef\xbb\xbf"

CsvSource = Union[str, bytes, io.IOBase]


@dataclass
class IngestOptions:
    max_records: int = field(default_factory=lambda: settings.MAX_RECORDS)
    filters: FilterConfig = field(default_factory=FilterConfig)
    progress_callback: Optional[ProgressCallback] = None
    cancel_token: Optional[CancellationToken] = None
    trajectory_capacity: int = field(default_factory=lambda: settings.TRAJECTORY_CAPACITY)
    progress_interval: int = field(default_factory=lambda: settings.PROGRESS_INTERVAL)
    # Reference instant for the recency window and for unparseable timestamps
    now: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.max_records < 0:
            raise ValueError(f"max_records must be >= 0, got {self.max_records}")
        if self.progress_interval < 1:
            raise ValueError(f"progress_interval must be >= 1, got {self.progress_interval}")


@dataclass
class IngestMetadata:
    total_processed: int
    unique_vessel_count: int
    source_label: str
    rows_read: int = 0
    # True when the record budget stopped the run with rows still unread
    truncated: bool = False
    cancelled: bool = False
    state: RunStateEnum = RunStateEnum.COMPLETED
    rejected: dict[str, int] = field(default_factory=dict)
    failed_sources: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_processed": self.total_processed,
            "unique_vessel_count": self.unique_vessel_count,
            "source_label": self.source_label,
            "rows_read": self.rows_read,
            "truncated": self.truncated,
            "cancelled": self.cancelled,
            "state": self.state.value,
            "rejected": dict(self.rejected),
            "failed_sources": list(self.failed_sources),
        }


@dataclass
class IngestResult:
    vessels: list[VesselRecord]
    trajectories: dict[str, list[TrajectoryPoint]]
    metadata: IngestMetadata

    def to_dict(self) -> dict[str, Any]:
        return {
            "vessels": [v.to_dict() for v in self.vessels],
            "trajectories": {
                mmsi: [p.to_dict() for p in points] for mmsi, points in self.trajectories.items()
            },
            "metadata": self.metadata.to_dict(),
        }


class IngestionRun:
    """One pass over one row source. Owns its stores; executes at most once."""

    def __init__(self, options: IngestOptions | None = None, source_label: str = "csv") -> None:
        self.options = options or IngestOptions()
        self.source_label = source_label
        self.state = RunStateEnum.IDLE
        self.processed = 0
        self.rows_read = 0
        self.truncated = False
        self.rejected: Counter[str] = Counter()
        self.vessels = VesselStateStore()
        self.trajectories = TrajectoryStore(self.options.trajectory_capacity)
        self._progress = ProgressNotifier(self.options.progress_callback)

    def _transition(self, new_state: RunStateEnum) -> None:
        if self.state in TERMINAL_RUN_STATES:
            raise RuntimeError(f"Run already {self.state.value}; cannot move to {new_state.value}")
        logger.debug("Run %s: %s -> %s", self.source_label, self.state.value, new_state.value)
        self.state = new_state

    def _cancel_requested(self) -> bool:
        token = self.options.cancel_token
        return token is not None and token.cancelled

    def execute(self, rows: Iterable[Mapping[Any, Any]], resort: bool = False) -> IngestResult:
        """Consume *rows* and return the run's result.

        With ``resort`` each trajectory is sorted once at the end, for
        sources whose row order is not chronological.
        """
        if self.state is not RunStateEnum.IDLE:
            raise RuntimeError("An IngestionRun can only be executed once")
        self._transition(RunStateEnum.RUNNING)
        now = self.options.now or datetime.now(timezone.utc)
        iterator = iter(rows)

        try:
            while True:
                if self._cancel_requested():
                    self._transition(RunStateEnum.CANCELLED)
                    logger.info(
                        "Ingestion of %s cancelled after %d records", self.source_label, self.processed
                    )
                    break
                if self.processed >= self.options.max_records:
                    self.truncated = self._has_more_rows(iterator)
                    if self.truncated:
                        logger.info(
                            "Record budget of %d reached for %s; remaining rows skipped",
                            self.options.max_records, self.source_label,
                        )
                    break
                try:
                    raw = next(iterator)
                except StopIteration:
                    break
                except _SOURCE_ERRORS as exc:
                    raise self._fail(exc) from exc
                self.rows_read += 1
                self._process_row(raw, now)
        finally:
            _close_source(iterator)

        if resort:
            self.trajectories.sort_all()

        if self.state is RunStateEnum.RUNNING:
            if self.processed % self.options.progress_interval:
                self._emit_progress()
            self._progress.emit(ProgressEvent(
                stage=ProgressStageEnum.PROCESSING,
                percentage=100.0,
                processed=self.processed,
                total=self.processed,
                completed=True,
            ))
            self._transition(RunStateEnum.COMPLETED)

        logger.info(
            "Ingestion of %s %s: %d accepted of %d rows, %d vessels, rejected=%s",
            self.source_label, self.state.value, self.processed, self.rows_read,
            len(self.vessels), dict(self.rejected),
        )
        return self._result()

    def _has_more_rows(self, iterator: Iterator[Any]) -> bool:
        """Look one row past the budget. The peeked row is not processed."""
        try:
            next(iterator)
        except StopIteration:
            return False
        except _SOURCE_ERRORS as exc:
            # Unreadable data past the budget still counts as unread input
            logger.debug("Source %s unreadable past the record budget: %s", self.source_label, exc)
        return True

    def _process_row(self, raw: Mapping[Any, Any], now: datetime) -> None:
        try:
            record = decode_ais_row(raw, now=now)
        except MissingIdentity:
            self.rejected[RejectReason.MISSING_IDENTITY.value] += 1
            return

        reason = validate_record(record, self.options.filters, now)
        if reason is not None:
            self.rejected[reason.value] += 1
            logger.debug("Rejected MMSI %s: %s", record.mmsi, reason.value)
            return

        self.vessels.upsert(record)
        self.trajectories.append(record.mmsi, record.to_trajectory_point())
        self.processed += 1
        if self.processed % self.options.progress_interval == 0:
            self._emit_progress()

    def _emit_progress(self) -> None:
        total = self.options.max_records
        self._progress.emit(ProgressEvent(
            stage=ProgressStageEnum.PROCESSING,
            percentage=percentage_of(self.processed, total),
            processed=self.processed,
            total=total,
        ))

    def _fail(self, exc: BaseException) -> IngestionFailed:
        self._transition(RunStateEnum.FAILED)
        message = f"Could not read {self.source_label}: {exc}"
        logger.warning(
            "%s (after %d rows, %d accepted)", message, self.rows_read, self.processed
        )
        self._progress.emit(ProgressEvent(
            stage=ProgressStageEnum.PROCESSING,
            percentage=percentage_of(self.processed, self.options.max_records),
            processed=self.processed,
            total=self.options.max_records,
            error=message,
        ))
        return IngestionFailed(
            message,
            processed=self.processed,
            rows_read=self.rows_read,
            source_label=self.source_label,
        )

    def _result(self) -> IngestResult:
        return IngestResult(
            vessels=self.vessels.snapshot(),
            trajectories=self.trajectories.as_dict(),
            metadata=IngestMetadata(
                total_processed=self.processed,
                unique_vessel_count=len(self.vessels),
                source_label=self.source_label,
                rows_read=self.rows_read,
                truncated=self.truncated,
                cancelled=self.state is RunStateEnum.CANCELLED,
                state=self.state,
                rejected=dict(self.rejected),
            ),
        )


# --- Row sources ---

def _close_source(iterator: Iterator[Any]) -> None:
    close = getattr(iterator, "close", None)
    if callable(close):
        close()


def _read_text(source: CsvSource | Path) -> str:
    """Read a whole CSV source as text, dropping a UTF-8 BOM."""
    if isinstance(source, Path):
        raw: Any = source.read_bytes()
    elif hasattr(source, "read"):
        raw = source.read()
    else:
        raw = source

    if isinstance(raw, bytes):
        if raw[:3] == _UTF8_BOM:
            raw = raw[3:]
        return raw.decode("utf-8")
    return str(raw).lstrip("\ufeff")


def _iter_records(text: str) -> Iterator[str]:
    """Split CSV text into records; a quoted field may span several lines."""
    pending = ""
    for line in io.StringIO(text, newline=""):
        pending += line
        if pending.count('"') % 2 == 0:
            yield pending
            pending = ""
    if pending:
        yield pending


def _parse_batch(columns: list[str], records: list[str]) -> pl.DataFrame:
    # Short rows are padded with nulls, long rows lose their extra fields
    return pl.read_csv(
        io.StringIO("".join(records)),
        has_header=False,
        schema={name: pl.String for name in columns},
        truncate_ragged_lines=True,
    )


def _iter_dataframe_rows(source: CsvSource | Path) -> Iterator[dict[str, Any]]:
    """Parse an in-memory CSV with polars, ``CSV_BATCH_ROWS`` records at a time.

    Every column stays a string. Blank lines are skipped. Parsing is lazy,
    so a run that stops early never parses the rest of the document.
    """
    records = _iter_records(_read_text(source))
    header = next((r for r in records if r.strip()), None)
    if header is None:
        return
    columns = next(csv.reader([header]))

    batch_size = settings.CSV_BATCH_ROWS
    batch: list[str] = []
    for record in records:
        if not record.strip():
            continue
        batch.append(record)
        if len(batch) >= batch_size:
            yield from _parse_batch(columns, batch).iter_rows(named=True)
            batch = []
    if batch:
        yield from _parse_batch(columns, batch).iter_rows(named=True)


def _strip_bom(lines: Iterable[str]) -> Iterator[str]:
    first = True
    for line in lines:
        if first:
            line = line.lstrip("\ufeff")
            first = False
        yield line


def _iter_csv_rows(lines: Iterable[str]) -> Iterator[dict[str, Any]]:
    """Stream rows from an iterable of CSV lines (header first)."""
    yield from csv.DictReader(_strip_bom(lines), strict=True)


def _iter_file_rows(path: Path) -> Iterator[dict[str, Any]]:
    with open(path, encoding="utf-8", newline="") as f:
        yield from _iter_csv_rows(f)


# --- Entry points ---

def ingest_ais_csv(
    source: CsvSource,
    options: IngestOptions | None = None,
    source_label: str = "csv",
) -> IngestResult:
    """Ingest a complete CSV document already held in memory (text, bytes or file object).

    Row order is not assumed chronological, so trajectories are re-sorted
    once at the end.
    """
    run = IngestionRun(options, source_label)
    return run.execute(_iter_dataframe_rows(source), resort=True)


def ingest_stream(
    lines: Union[Iterable[str], TextIO],
    options: IngestOptions | None = None,
    source_label: str = "stream",
) -> IngestResult:
    """Ingest CSV lines as they arrive. Points are appended in arrival order."""
    run = IngestionRun(options, source_label)
    return run.execute(_iter_csv_rows(lines))


def ingest_rows(
    rows: Iterable[Mapping[Any, Any]],
    options: IngestOptions | None = None,
    source_label: str = "rows",
    resort: bool = False,
) -> IngestResult:
    """Ingest already-split rows (header → value mappings)."""
    run = IngestionRun(options, source_label)
    return run.execute(rows, resort=resort)


def ingest_file(
    path: str | Path,
    options: IngestOptions | None = None,
    streaming: bool = True,
) -> IngestResult:
    """Ingest a CSV file from disk, streaming line by line unless ``streaming=False``."""
    path = Path(path)
    run = IngestionRun(options, path.name)
    if streaming:
        return run.execute(_iter_file_rows(path))
    return run.execute(_iter_dataframe_rows(path), resort=True)


def merge_results(
    results: Iterable[IngestResult],
    capacity: int | None = None,
) -> IngestResult:
    """Combine independent runs into one view; latest-wins is reapplied across runs."""
    results = list(results)
    capacity = capacity or settings.TRAJECTORY_CAPACITY
    states, tracks = merge_stores(
        ((r.vessels, r.trajectories) for r in results), capacity=capacity
    )
    rejected: Counter[str] = Counter()
    failed: list[dict[str, Any]] = []
    for r in results:
        rejected.update(r.metadata.rejected)
        failed.extend(r.metadata.failed_sources)
    cancelled = any(r.metadata.cancelled for r in results)
    return IngestResult(
        vessels=states.snapshot(),
        trajectories=tracks.as_dict(),
        metadata=IngestMetadata(
            total_processed=sum(r.metadata.total_processed for r in results),
            unique_vessel_count=len(states),
            source_label=", ".join(r.metadata.source_label for r in results),
            rows_read=sum(r.metadata.rows_read for r in results),
            truncated=any(r.metadata.truncated for r in results),
            cancelled=cancelled,
            state=RunStateEnum.CANCELLED if cancelled else RunStateEnum.COMPLETED,
            rejected=dict(rejected),
            failed_sources=failed,
        ),
    )


def ingest_files(
    paths: Iterable[str | Path],
    options: IngestOptions | None = None,
    max_workers: int | None = None,
    streaming: bool = True,
) -> IngestResult:
    """Ingest several files concurrently, one run and one pair of stores per file.

    A file that fails is logged and listed in ``metadata.failed_sources``;
    the remaining files are still merged.
    """
    paths = [Path(p) for p in paths]
    options = options or IngestOptions()
    workers = max_workers or settings.INGEST_MAX_WORKERS

    results: list[IngestResult] = []
    failed: list[dict[str, Any]] = []
    with ThreadPoolExecutor(max_workers=max(1, min(workers, len(paths) or 1))) as pool:
        futures = {pool.submit(ingest_file, p, options, streaming): p for p in paths}
        for future, path in futures.items():
            try:
                results.append(future.result())
            except IngestionFailed as exc:
                logger.warning("Skipping %s: %s", path, exc)
                failed.append({"source": path.name, "error": exc.message})

    merged = merge_results(results, capacity=options.trajectory_capacity)
    merged.metadata.failed_sources.extend(failed)
    if not merged.metadata.source_label:
        merged.metadata.source_label = ", ".join(p.name for p in paths)
    return merged
