"""Thin persistence helpers over the Flask-SQLAlchemy session.

The sync orchestrator only needs ``select_all``, ``insert_many`` and
``delete_where``; the admin CRUD endpoints use the row helpers. Commits can be
deferred (``commit=False``) so callers can group several statements into one
transaction.
"""

from __future__ import annotations

import threading
import time
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple


def _get_db():
    from app import db

    return db


def select_all(model, order_by: Sequence[Any] = (), **filters) -> list:
    query = model.query.filter_by(**filters)
    if order_by:
        query = query.order_by(*order_by)
    return query.all()


def insert_many(model, rows: Iterable[Mapping[str, Any]], *, commit: bool = True) -> int:
    db = _get_db()
    objects = [model(**dict(row)) for row in rows]
    db.session.add_all(objects)
    if commit:
        db.session.commit()
    return len(objects)


def delete_where(model, *, commit: bool = True, **filters) -> int:
    if not filters:
        # Scoped deletes only; a missing filter would wipe the table.
        raise ValueError("delete_where requires at least one filter")
    db = _get_db()
    deleted = model.query.filter_by(**filters).delete(synchronize_session=False)
    if commit:
        db.session.commit()
    return deleted


def get_row(model, row_id: int):
    return _get_db().session.get(model, row_id)


def create_row(model, values: Mapping[str, Any]):
    db = _get_db()
    obj = model(**dict(values))
    db.session.add(obj)
    db.session.commit()
    return obj


def update_row(obj, values: Mapping[str, Any]):
    db = _get_db()
    for key, value in values.items():
        setattr(obj, key, value)
    db.session.commit()
    return obj


def delete_row(obj) -> None:
    db = _get_db()
    db.session.delete(obj)
    db.session.commit()


class FlightReadCache:
    """TTL cache of serialized ``flight_arrivals`` reads, keyed by date."""

    def __init__(self, ttl_seconds: int = 60, max_entries: int = 256):
        self.ttl_seconds = max(ttl_seconds, 0)
        self.max_entries = max(max_entries, 1)
        self._lock = threading.Lock()
        self._entries: Dict[date, Tuple[float, List[Dict[str, Any]]]] = {}

    def get(self, day: date) -> Optional[List[Dict[str, Any]]]:
        with self._lock:
            entry = self._entries.get(day)
            if entry is None:
                return None
            stored_at, rows = entry
            if time.monotonic() - stored_at > self.ttl_seconds:
                self._entries.pop(day, None)
                return None
            return rows

    def put(self, day: date, rows: List[Dict[str, Any]]) -> None:
        with self._lock:
            now = time.monotonic()
            expired = [
                key for key, (stored_at, _) in self._entries.items()
                if now - stored_at > self.ttl_seconds
            ]
            for key in expired:
                del self._entries[key]
            self._entries.pop(day, None)
            while len(self._entries) >= self.max_entries:
                oldest = min(self._entries, key=lambda key: self._entries[key][0])
                del self._entries[oldest]
            self._entries[day] = (now, rows)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def invalidate(self, day: Optional[date] = None) -> None:
        with self._lock:
            if day is None:
                self._entries.clear()
            else:
                self._entries.pop(day, None)


def _build_flight_cache() -> FlightReadCache:
    import config

    return FlightReadCache(ttl_seconds=config.FLIGHT_CACHE_SECONDS)


flight_cache = _build_flight_cache()


def list_flights_for_date(day: date) -> List[Dict[str, Any]]:
    """Flight arrivals for ``day`` ordered by arrival time, served from cache."""

    cached = flight_cache.get(day)
    if cached is not None:
        return cached

    from app import FlightArrival

    rows = select_all(
        FlightArrival,
        order_by=(FlightArrival.arrival_time.asc(), FlightArrival.flight_number.asc()),
        date=day,
    )
    payload = [row.to_dict() for row in rows]
    flight_cache.put(day, payload)
    return payload


__all__ = [
    "FlightReadCache",
    "create_row",
    "delete_row",
    "delete_where",
    "flight_cache",
    "get_row",
    "insert_many",
    "list_flights_for_date",
    "select_all",
    "update_row",
]
