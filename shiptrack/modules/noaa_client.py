"""NOAA AIS historical data loader.

NOAA distributes daily AIS files at:
  https://coast.noaa.gov/htdata/CMSP/AISDataHandler/

Daily archives are named AIS_{YYYY}_{MM}_{DD}.zip. Archives must be
unpacked by the caller: this module only downloads plain CSV text and hands
it to the ingestion pipeline. Download progress is reported as the
``downloading`` stage (0–50 %), parsing as ``parsing`` (50–100 %).
"""
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, timedelta

import httpx

from shiptrack.config import settings
from shiptrack.errors import IngestionFailed
from shiptrack.models.base import ProgressStageEnum
from shiptrack.modules.ingest import IngestOptions, IngestResult, ingest_ais_csv
from shiptrack.modules.progress import ProgressEvent, ProgressNotifier

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 65536
_ARCHIVE_SUFFIXES = (".zip", ".zst", ".gz", ".bz2", ".7z")
_ARCHIVE_MAGIC = (b"PK\x03\x04", b"\x28\xb5\x2f\xfd", b"\x1f\x8b")


def _url_for_date(d: date) -> str:
    """Build NOAA download URL for a given date."""
    return f"{settings.NOAA_BASE_URL}/{d.year}/AIS_{d.year}_{d.month:02d}_{d.day:02d}.zip"


def noaa_urls_for_range(start_date: date, end_date: date) -> list[str]:
    """Daily NOAA file URLs from *start_date* to *end_date*, inclusive."""
    if end_date < start_date:
        raise ValueError(f"end_date {end_date} is before start_date {start_date}")
    urls = []
    current = start_date
    while current <= end_date:
        urls.append(_url_for_date(current))
        current += timedelta(days=1)
    return urls


def download_noaa_csv(
    url: str,
    notifier: ProgressNotifier | None = None,
    client: httpx.Client | None = None,
) -> str:
    """Download a plain-CSV AIS file and return its text.

    Raises IngestionFailed for HTTP/network errors and for compressed
    archives.
    """
    if url.lower().endswith(_ARCHIVE_SUFFIXES):
        raise IngestionFailed(
            f"{url} is a compressed archive; extract the CSV first", source_label=url
        )

    notifier = notifier or ProgressNotifier(None)
    notifier.emit(ProgressEvent(stage=ProgressStageEnum.DOWNLOADING, percentage=0.0))
    logger.info("Downloading AIS data: %s", url)

    own_client = client is None
    client = client or httpx.Client(timeout=settings.DATA_FETCH_TIMEOUT, follow_redirects=True)
    chunks: list[bytes] = []
    try:
        with client.stream("GET", url) as resp:
            resp.raise_for_status()
            total = int(resp.headers.get("content-length") or 0)
            loaded = 0
            for chunk in resp.iter_bytes(chunk_size=_CHUNK_SIZE):
                chunks.append(chunk)
                loaded += len(chunk)
                if total:
                    notifier.emit(ProgressEvent(
                        stage=ProgressStageEnum.DOWNLOADING,
                        percentage=min(50.0, loaded / total * 50),
                    ))
    except httpx.HTTPError as exc:
        raise IngestionFailed(f"Download of {url} failed: {exc}", source_label=url) from exc
    finally:
        if own_client:
            client.close()

    payload = b"".join(chunks)
    if payload.startswith(_ARCHIVE_MAGIC):
        raise IngestionFailed(
            f"{url} returned a compressed archive; extract the CSV first", source_label=url
        )
    try:
        text = payload.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise IngestionFailed(f"{url} is not UTF-8 text: {exc}", source_label=url) from exc
    logger.info("Downloaded %s (%.1f MB)", url, len(payload) / 1e6)
    return text


def load_noaa_data(
    url: str,
    options: IngestOptions | None = None,
    client: httpx.Client | None = None,
) -> IngestResult:
    """Download *url* and ingest it, reporting download then parse progress."""
    options = options or IngestOptions()
    notifier = ProgressNotifier(options.progress_callback)

    text = download_noaa_csv(url, notifier=notifier, client=client)
    notifier.emit(ProgressEvent(stage=ProgressStageEnum.PARSING, percentage=50.0))

    def _remap(event: ProgressEvent) -> None:
        notifier.emit(replace(
            event,
            stage=ProgressStageEnum.PARSING,
            percentage=50.0 + event.percentage * 0.5,
        ))

    parse_options = replace(options, progress_callback=_remap)
    return ingest_ais_csv(text, parse_options, source_label=url.rsplit("/", 1)[-1] or url)
