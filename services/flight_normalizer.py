"""Normalize loosely-typed flight records from the arrivals API.

Different responses of the flight search endpoint name the same field in
different ways (``flight_number`` vs ``flightNumber`` vs ``flight_id``) and
sometimes nest values (``origin: {"city": ...}``). :func:`normalize_flights`
maps every record into a :class:`CanonicalFlight` whose fields are always
strings, so the API layer and the database never see ``None``.

The alias policy is the ``FIELD_ALIASES`` table below; each canonical field
lists its source keys in priority order and the first present, non-null value
wins.
"""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass
from datetime import date
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

STATUS_SCHEDULED = "Scheduled"
FLIGHT_STATUSES = ("Scheduled", "Departed", "Arrived", "Delayed", "Cancelled")


@dataclass(frozen=True)
class CanonicalFlight:
    id: str
    airline_code: str
    airline_name: str
    flight_number: str
    origin: str
    scheduled_time: str
    estimated_time: str
    status: str
    terminal: str
    date: str

    def as_dict(self) -> dict:
        return asdict(self)


def _plain(value: Any) -> Optional[str]:
    # Objects and arrays have no scalar reading; the next alias is tried.
    if isinstance(value, (Mapping, list, tuple)):
        return None
    return str(value)


def _city_or_plain(value: Any) -> Optional[str]:
    # {"city": "KUL"} -> "KUL"; an object without a city does not count.
    if isinstance(value, Mapping):
        city = value.get("city")
        return None if city is None else str(city)
    return _plain(value)


def _name_or_plain(value: Any) -> Optional[str]:
    # {"name": "AirAsia", "iata": "AK"} -> "AirAsia"
    if isinstance(value, Mapping):
        name = value.get("name")
        return None if name is None else str(name)
    return _plain(value)


Extractor = Callable[[Any], Optional[str]]

# canonical field -> ((source key, extractor), ...), default
FIELD_ALIASES: Tuple[Tuple[str, Sequence[Tuple[str, Extractor]], Optional[str]], ...] = (
    (
        "flight_number",
        (("flight_number", _plain), ("flightNumber", _plain), ("flight_id", _plain)),
        None,  # replaced by UNKNOWN-<index>
    ),
    (
        "airline_name",
        (
            ("name", _plain),
            ("airline_name", _name_or_plain),
            ("airlineName", _name_or_plain),
            ("airline", _name_or_plain),
        ),
        "",
    ),
    ("airline_code", (("airline_code", _plain), ("airlineCode", _plain)), ""),
    (
        "origin",
        (("origin", _city_or_plain), ("from", _city_or_plain), ("departure_airport", _city_or_plain)),
        "",
    ),
    (
        "scheduled_time",
        (("scheduled_time", _plain), ("scheduledTime", _plain), ("std", _plain)),
        "",
    ),
    (
        "estimated_time",
        (("estimated_time", _plain), ("estimatedTime", _plain), ("etd", _plain)),
        "",
    ),
    ("status", (("status", _plain),), STATUS_SCHEDULED),
    ("terminal", (("terminal", _plain),), ""),
)


def flight_identifying_keys() -> frozenset[str]:
    """Source keys that mark an object as a flight record (number, airline, origin)."""

    keys = set()
    for field, aliases, _default in FIELD_ALIASES:
        if field in ("flight_number", "airline_name", "origin"):
            keys.update(key for key, _ in aliases)
    return frozenset(keys)


def resolve_field(
    record: Mapping[str, Any],
    aliases: Iterable[Tuple[str, Extractor]],
    default: Optional[str],
) -> Optional[str]:
    """Return the first alias that is present, non-null and extractable."""

    for key, extract in aliases:
        value = record.get(key)
        if value is None:
            continue
        extracted = extract(value)
        if extracted is not None:
            return extracted
    return default


def _current_timestamp_ms() -> int:
    return int(time.time() * 1000)


def normalize_flight(
    record: Any,
    index: int,
    today: date,
    timestamp: int,
) -> CanonicalFlight:
    """Map one raw record into a :class:`CanonicalFlight`.

    ``index`` is the record's position in the batch and is used for the
    ``UNKNOWN-<index>`` flight number fallback.
    """

    source: Mapping[str, Any] = record if isinstance(record, Mapping) else {}

    values = {
        field: resolve_field(source, aliases, default)
        for field, aliases, default in FIELD_ALIASES
    }
    if values["flight_number"] is None:
        values["flight_number"] = f"UNKNOWN-{index}"

    source_id = source.get("id")
    if source_id is not None:
        identifier = str(source_id)
    else:
        identifier = f"live-{values['flight_number']}-{timestamp}"

    return CanonicalFlight(id=identifier, date=today.isoformat(), **values)


def normalize_flights(
    raw_records: Sequence[Any],
    today: date,
    *,
    timestamp: Optional[int] = None,
) -> List[CanonicalFlight]:
    """Normalize a located array of raw flight records.

    Never raises: fields that cannot be resolved fall back to ``""`` (or the
    scheduled status). ``timestamp`` feeds synthesized identifiers and is
    taken once per batch when omitted.
    """

    stamp = _current_timestamp_ms() if timestamp is None else timestamp
    flights = [
        normalize_flight(record, index, today, stamp)
        for index, record in enumerate(raw_records or [])
    ]

    if flights:
        logger.debug(
            "[flight-normalize] %s records, sample=%s",
            len(flights),
            [f.as_dict() for f in flights[:2]],
        )
    return flights


__all__ = [
    "CanonicalFlight",
    "FIELD_ALIASES",
    "FLIGHT_STATUSES",
    "STATUS_SCHEDULED",
    "flight_identifying_keys",
    "normalize_flight",
    "normalize_flights",
    "resolve_field",
]
