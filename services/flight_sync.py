"""Refresh one day's flight arrivals from the third-party flight API.

A sync fetches the API document, locates and normalizes the flight records,
then replaces the stored rows for that date. The scoped delete and the insert
share one database transaction, so a failed insert leaves the previous batch
in place. Only one sync runs at a time per process; a second caller gets a
``busy`` :class:`SyncError` instead of racing the first one.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Tuple

import requests
from sqlalchemy.exc import SQLAlchemyError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

import config
from services.errors import SyncError
from services.flight_normalizer import CanonicalFlight, normalize_flights
from services.flight_shape import probe_record_array
from services.store import delete_where, flight_cache, insert_many

logger = logging.getLogger(__name__)

_SYNC_LOCK = threading.Lock()

MAX_PREVIEW_CHARS = 500
MAX_PREVIEW_KEYS = 20


@dataclass
class SyncResult:
    inserted_count: int
    date: str
    path: Tuple[str, ...] = ()
    deleted_count: int = 0

    def as_dict(self) -> Dict[str, Any]:
        return {
            "inserted_count": self.inserted_count,
            "deleted_count": self.deleted_count,
            "date": self.date,
            "path": list(self.path),
        }


def sync_in_progress() -> bool:
    return _SYNC_LOCK.locked()


def _document_preview(document: Any) -> str:
    text = repr(document)
    if len(text) > MAX_PREVIEW_CHARS:
        return text[:MAX_PREVIEW_CHARS] + "..."
    return text


@retry(
    retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout)),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
    reraise=True,
)
def fetch_flight_document(day: date) -> Any:
    """GET the flight search endpoint and return its decoded JSON body.

    Connection errors and timeouts are retried; HTTP error statuses are not.
    """

    headers = {"Accept": "application/json"}
    if config.FLIGHT_API_KEY:
        headers["X-API-Key"] = config.FLIGHT_API_KEY

    params = {"date": day.isoformat()}
    if config.FLIGHT_API_AIRPORT:
        params["airport"] = config.FLIGHT_API_AIRPORT

    resp = requests.get(
        config.FLIGHT_API_URL,
        params=params,
        headers=headers,
        timeout=config.FLIGHT_API_TIMEOUT_SEC,
    )
    resp.raise_for_status()
    return resp.json()


def flight_to_row(flight: CanonicalFlight, day: date) -> Dict[str, Any]:
    """Map a canonical record onto ``flight_arrivals`` columns."""

    return {
        "external_id": flight.id,
        "flight_number": flight.flight_number,
        "airline_code": flight.airline_code,
        "airline": flight.airline_name,
        "origin": flight.origin,
        "scheduled_time": flight.scheduled_time,
        "estimated_time": flight.estimated_time,
        "arrival_time": flight.estimated_time or flight.scheduled_time,
        "passengers": 0,
        "status": flight.status,
        "terminal": flight.terminal,
        "date": day,
    }


def _replace_day(day: date, rows: List[Dict[str, Any]]) -> Tuple[int, int]:
    from app import FlightArrival, db

    try:
        deleted = delete_where(FlightArrival, commit=False, date=day)
        inserted = insert_many(FlightArrival, rows, commit=False)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
    return deleted, inserted


def sync_flights(
    today: date,
    *,
    fetch: Optional[Callable[[date], Any]] = None,
) -> SyncResult:
    """Fetch, normalize and store the flight arrivals for ``today``.

    ``fetch`` replaces :func:`fetch_flight_document` (tests, alternate feeds).
    Raises :class:`SyncError` with ``stage`` set to ``busy``, ``fetch``,
    ``locate`` or ``persist``.
    """

    if not _SYNC_LOCK.acquire(blocking=False):
        raise SyncError("busy", "A flight sync is already in progress")

    try:
        fetcher = fetch or fetch_flight_document
        try:
            document = fetcher(today)
        except (requests.RequestException, ValueError) as exc:
            logger.warning("[flight-sync] fetch failed for %s: %s", today, exc)
            raise SyncError("fetch", f"Flight API request failed: {exc}") from exc

        probe = probe_record_array(document)
        if not probe.found:
            logger.warning(
                "[flight-sync] no flight array in API response for %s: %s",
                today,
                _document_preview(document),
            )
            detail: Dict[str, Any] = {"document_type": type(document).__name__}
            if isinstance(document, dict):
                detail["top_level_keys"] = sorted(str(key) for key in document)[:MAX_PREVIEW_KEYS]
            raise SyncError(
                "locate",
                "Could not find flight records in the flight API response",
                detail=detail,
            )

        flights = normalize_flights(probe.records, today)
        rows = [flight_to_row(flight, today) for flight in flights]

        try:
            deleted, inserted = _replace_day(today, rows)
        except SQLAlchemyError as exc:
            logger.exception("[flight-sync] persisting %s flights for %s failed", len(rows), today)
            raise SyncError("persist", str(exc)) from exc

        flight_cache.invalidate(today)
        logger.info(
            "[flight-sync] %s: replaced %s rows with %s (path=%s)",
            today.isoformat(),
            deleted,
            inserted,
            "/".join(probe.path) or "<root>",
        )
        return SyncResult(
            inserted_count=inserted,
            deleted_count=deleted,
            date=today.isoformat(),
            path=probe.path,
        )
    finally:
        _SYNC_LOCK.release()


__all__ = [
    "SyncResult",
    "fetch_flight_document",
    "flight_to_row",
    "sync_flights",
    "sync_in_progress",
]
