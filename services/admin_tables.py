"""Editable dashboard tables and their field rules for the admin CRUD API."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple

from services.derived_stats import month_number
from services.errors import ValidationError
from services.flight_normalizer import FLIGHT_STATUSES

YEAR_RANGE = (2000, 2100)

# Keys to_dict() adds or the database manages; echoed back rows may carry them.
READ_ONLY_KEYS = frozenset({"id", "created_at", "updated_at", "month_label", "total_visitors"})


@dataclass(frozen=True)
class FieldRule:
    name: str
    kind: str = "str"  # str | int | float | month | date | time
    required: bool = False
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    choices: Tuple[str, ...] = ()
    message: str = ""


@dataclass(frozen=True)
class AdminTable:
    slug: str
    model_name: str
    fields: Tuple[FieldRule, ...]
    order_by: Callable[[Any], Sequence[Any]] = field(default=lambda model: (model.id.asc(),))

    def model(self):
        import app

        return getattr(app, self.model_name)

    def ordering(self) -> Sequence[Any]:
        return self.order_by(self.model())


def _year(required: bool = True) -> FieldRule:
    return FieldRule(
        "year",
        "int",
        required,
        *YEAR_RANGE,
        message="Year must be between 2000 and 2100",
    )


def _count(name: str, required: bool = True) -> FieldRule:
    return FieldRule(name, "int", required, minimum=0, message="Cannot be negative")


def _percent(name: str) -> FieldRule:
    return FieldRule(name, "float", True, 0, 100, message="Must be between 0 and 100")


def _by_year_month(model):
    return (model.year.asc(), model.month.asc())


ADMIN_TABLES: Dict[str, AdminTable] = {
    table.slug: table
    for table in (
        AdminTable(
            "visitor-stats",
            "VisitorStat",
            (
                FieldRule("month", "month", True),
                _year(),
                _count("domestic_visitors"),
                _count("international_visitors"),
            ),
            _by_year_month,
        ),
        AdminTable(
            "origin-countries",
            "OriginCountry",
            (
                FieldRule("country_name", "str", True),
                _count("visitor_count"),
                _percent("percentage"),
                _year(),
                FieldRule("color"),
            ),
            lambda model: (model.visitor_count.desc(),),
        ),
        AdminTable(
            "occupancy-rates",
            "OccupancyRate",
            (FieldRule("month", "month", True), _year(), _percent("rate")),
            _by_year_month,
        ),
        AdminTable(
            "tourist-spending",
            "TouristSpending",
            (
                FieldRule("month", "month", True),
                _year(),
                FieldRule("amount", "float", True, minimum=0, message="Cannot be negative"),
                FieldRule("category"),
            ),
            _by_year_month,
        ),
        AdminTable(
            "attractions",
            "Attraction",
            (
                FieldRule("name", "str", True),
                FieldRule("description"),
                FieldRule(
                    "location_lat", "float", False, -90, 90,
                    message="Latitude must be between -90 and 90",
                ),
                FieldRule(
                    "location_lng", "float", False, -180, 180,
                    message="Longitude must be between -180 and 180",
                ),
                _count("visitors_count", required=False),
                FieldRule("rating", "float", False, 0, 5, message="Rating must be between 0 and 5"),
                FieldRule("image_url"),
            ),
            lambda model: (model.visitors_count.desc(),),
        ),
        AdminTable(
            "flight-arrivals",
            "FlightArrival",
            (
                FieldRule("flight_number", "str", True),
                FieldRule("airline", "str", True),
                FieldRule("airline_code"),
                FieldRule("origin", "str", True),
                FieldRule("arrival_time", "time", True),
                _count("passengers"),
                FieldRule("status", "str", True, choices=FLIGHT_STATUSES),
                FieldRule("terminal"),
                FieldRule("date", "date", True),
            ),
            lambda model: (model.date.desc(), model.arrival_time.asc()),
        ),
    )
}


def get_table(slug: str) -> Optional[AdminTable]:
    return ADMIN_TABLES.get(slug)


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _coerce(rule: FieldRule, value: Any) -> Any:
    """Convert a JSON value for ``rule``; raise ValueError with a user message."""

    if rule.kind == "str":
        return str(value).strip()
    if rule.kind in ("int", "float"):
        number = _to_number(value)
        if rule.kind == "float":
            return number
        if number != int(number):
            raise ValueError("Must be a whole number")
        return int(number)
    if rule.kind == "month":
        month = month_number(value)
        if month is None:
            raise ValueError("Month must be 1-12 or a month name")
        return month
    if rule.kind == "date":
        if isinstance(value, date):
            return value
        try:
            return datetime.strptime(str(value).strip(), "%Y-%m-%d").date()
        except ValueError:
            raise ValueError("Must be a date in YYYY-MM-DD format") from None
    if rule.kind == "time":
        try:
            parsed = datetime.strptime(str(value).strip(), "%H:%M")
        except ValueError:
            raise ValueError("Must be a time in HH:MM format") from None
        return parsed.strftime("%H:%M")
    raise ValueError(f"Unsupported field kind {rule.kind}")


def _to_number(value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError("Must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError("Must be a number") from None
    if not math.isfinite(number):
        raise ValueError("Must be a number")
    return number


def _check_value(rule: FieldRule, value: Any) -> Optional[str]:
    if rule.minimum is not None and value < rule.minimum:
        return rule.message or f"Must be at least {rule.minimum}"
    if rule.maximum is not None and value > rule.maximum:
        return rule.message or f"Must be at most {rule.maximum}"
    if rule.choices and value not in rule.choices:
        return f"Must be one of: {', '.join(rule.choices)}"
    return None


def validate_payload(
    table: AdminTable,
    payload: Mapping[str, Any],
    *,
    partial: bool = False,
) -> Dict[str, Any]:
    """Return cleaned column values or raise :class:`ValidationError`.

    With ``partial`` (updates) only the supplied fields are checked. Unknown
    keys are rejected so typos do not silently drop data; the read-only keys
    of a serialized row are skipped.
    """

    errors: Dict[str, str] = {}
    known = {rule.name for rule in table.fields}
    for key in payload:
        if key not in known and key not in READ_ONLY_KEYS:
            errors[key] = "Unknown field"

    cleaned: Dict[str, Any] = {}
    for rule in table.fields:
        if rule.name not in payload:
            if rule.required and not partial:
                errors[rule.name] = "This field is required"
            continue

        raw = payload[rule.name]
        if _blank(raw):
            if rule.required:
                errors[rule.name] = "This field is required"
            else:
                cleaned[rule.name] = None
            continue

        try:
            value = _coerce(rule, raw)
        except ValueError as exc:
            errors[rule.name] = str(exc)
            continue

        problem = _check_value(rule, value)
        if problem:
            errors[rule.name] = problem
            continue
        cleaned[rule.name] = value

    if errors:
        raise ValidationError(errors)
    return cleaned


__all__ = ["ADMIN_TABLES", "AdminTable", "FieldRule", "get_table", "validate_payload"]
