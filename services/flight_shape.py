"""Locate the array of flight records inside an arrivals API response.

The flight search endpoint does not commit to a top-level shape: the records
may be the document itself, sit under an arbitrary wrapper key
(``{"data": [...]}``, ``{"flights": [...]}``) or one level deeper
(``{"result": {"arrivals": [...]}}``). :func:`probe_record_array` searches
that bounded tree and prefers arrays whose first element looks like a flight.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Tuple

from services.errors import ShapeNotFound
from services.flight_normalizer import flight_identifying_keys

logger = logging.getLogger(__name__)

FLIGHT_KEYS = flight_identifying_keys()


@dataclass(frozen=True)
class ProbeResult:
    found: bool
    records: List[Any] = field(default_factory=list)
    path: Tuple[str, ...] = ()


NOT_FOUND = ProbeResult(found=False)


def _looks_like_flight_array(candidate: List[Any]) -> bool:
    first = candidate[0]
    return isinstance(first, Mapping) and any(key in first for key in FLIGHT_KEYS)


def _pick_array(obj: Mapping[str, Any]) -> Optional[Tuple[str, List[Any]]]:
    """Pick the best non-empty array property of ``obj`` (one level only)."""

    candidates = [
        (key, value)
        for key, value in obj.items()
        if isinstance(value, list) and value
    ]
    if not candidates:
        return None

    for key, value in candidates:
        if _looks_like_flight_array(value):
            return key, value

    # Nothing flight-shaped; fall back to the first array in key order.
    return candidates[0]


def probe_record_array(doc: Any) -> ProbeResult:
    """Search ``doc`` for the flight record array without raising."""

    if isinstance(doc, list):
        return ProbeResult(found=True, records=doc, path=())

    if not isinstance(doc, Mapping):
        return NOT_FOUND

    picked = _pick_array(doc)
    if picked is not None:
        key, records = picked
        logger.debug("[shape-probe] using top-level key %r (%s records)", key, len(records))
        return ProbeResult(found=True, records=records, path=(key,))

    for outer_key, nested in doc.items():
        if not isinstance(nested, Mapping):
            continue
        picked = _pick_array(nested)
        if picked is not None:
            key, records = picked
            logger.debug(
                "[shape-probe] using nested key %r.%r (%s records)",
                outer_key,
                key,
                len(records),
            )
            return ProbeResult(found=True, records=records, path=(outer_key, key))

    return NOT_FOUND


def locate_record_array(doc: Any) -> List[Any]:
    """Return the flight record array in ``doc`` or raise :class:`ShapeNotFound`."""

    result = probe_record_array(doc)
    if not result.found:
        raise ShapeNotFound(doc)
    return result.records


__all__ = ["NOT_FOUND", "ProbeResult", "locate_record_array", "probe_record_array"]
