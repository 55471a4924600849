"""Admin CRUD over the dashboard tables plus the flight arrivals sync trigger.

This module keeps app-level imports inside request handlers to avoid circular
imports when Flask initializes the application.
"""

from flask import Blueprint, request
from sqlalchemy.exc import SQLAlchemyError

from routes.dashboard import _year_filter
from services.admin_tables import get_table, validate_payload
from services.auth import admin_required
from services.errors import SyncError, ValidationError
from services.flight_sync import sync_flights
from services.store import create_row, delete_row, flight_cache, get_row, select_all, update_row

admin_bp = Blueprint("admin_api", __name__, url_prefix="/api/admin")

SYNC_STAGE_STATUS = {
    "busy": (409, "sync_in_progress"),
    "fetch": (502, "upstream_error"),
    "locate": (502, "shape_not_found"),
    "persist": (500, "persistence_error"),
}


def _table_or_404(slug: str):
    from app import json_error

    table = get_table(slug)
    if table is None:
        return None, json_error(f"Unknown table '{slug}'", status_code=404, code="not_found")
    return table, None


def _json_body():
    """Return (dict, error_response) for the request body."""
    from app import json_error

    data = request.get_json(silent=True)
    if data is None:
        if request.data:
            return None, json_error("Invalid JSON body.", status_code=400, code="invalid_json")
        data = {}
    if not isinstance(data, dict):
        return None, json_error(
            "Request body must be a JSON object.",
            status_code=400,
            code="bad_request",
        )
    return data, None


def _validation_error(exc: ValidationError):
    from app import json_error

    return json_error(
        "Validation failed",
        status_code=400,
        code="validation_error",
        detail={"fields": exc.errors},
    )


def _persistence_error(exc: SQLAlchemyError, action: str, slug: str):
    from app import app, db, json_error

    db.session.rollback()
    app.logger.exception("Failed to %s %s", action, slug)
    # Database messages go to the admin verbatim.
    return json_error(str(exc), status_code=500, code="persistence_error")


def _list_filters(table):
    """Return ({column: value}, error_response) from ?year= and ?date=."""
    from app import _parse_date_arg, json_error

    columns = set(table.model().__table__.columns.keys())
    filters, err = _year_filter()
    if err is not None:
        return None, err

    raw_date = (request.args.get("date") or "").strip()
    if raw_date:
        day = _parse_date_arg(raw_date)
        if day is None:
            return None, json_error(
                "date must be in YYYY-MM-DD format",
                status_code=400,
                code="validation_error",
            )
        filters["date"] = day

    unsupported = sorted(name for name in filters if name not in columns)
    if unsupported:
        return None, json_error(
            f"{table.slug} cannot be filtered by {', '.join(unsupported)}",
            status_code=400,
            code="validation_error",
        )
    return filters, None


def _after_write(slug: str) -> None:
    if slug == "flight-arrivals":
        flight_cache.invalidate()


@admin_bp.get("/<slug>")
@admin_required
def list_rows(slug):
    from app import ALLOWED_QUERY_PARAMS, _build_ok, _reject_unknown_query_params

    guard = _reject_unknown_query_params("api_admin_list", ALLOWED_QUERY_PARAMS["api_admin_list"])
    if guard is not None:
        return guard

    table, err = _table_or_404(slug)
    if err is not None:
        return err

    filters, err = _list_filters(table)
    if err is not None:
        return err

    try:
        rows = select_all(table.model(), order_by=table.ordering(), **filters)
    except SQLAlchemyError as exc:
        return _persistence_error(exc, "list", slug)
    return _build_ok({"table": slug, "count": len(rows), "rows": [r.to_dict() for r in rows]})


@admin_bp.post("/<slug>")
@admin_required
def create(slug):
    from app import _build_ok, app

    table, err = _table_or_404(slug)
    if err is not None:
        return err
    data, err = _json_body()
    if err is not None:
        return err

    try:
        values = validate_payload(table, data)
    except ValidationError as exc:
        return _validation_error(exc)

    try:
        row = create_row(table.model(), values)
    except SQLAlchemyError as exc:
        return _persistence_error(exc, "create", slug)

    _after_write(slug)
    app.logger.info("[admin] created %s id=%s", slug, row.id)
    return _build_ok({"row": row.to_dict()}, status_code=201)


@admin_bp.put("/<slug>/<int:row_id>")
@admin_required
def update(slug, row_id):
    from app import _build_ok, app, json_error

    table, err = _table_or_404(slug)
    if err is not None:
        return err
    data, err = _json_body()
    if err is not None:
        return err

    row = get_row(table.model(), row_id)
    if row is None:
        return json_error(f"{slug} row {row_id} not found", status_code=404, code="not_found")

    try:
        values = validate_payload(table, data, partial=True)
    except ValidationError as exc:
        return _validation_error(exc)

    try:
        update_row(row, values)
    except SQLAlchemyError as exc:
        return _persistence_error(exc, "update", slug)

    _after_write(slug)
    app.logger.info("[admin] updated %s id=%s fields=%s", slug, row_id, sorted(values))
    return _build_ok({"row": row.to_dict()})


@admin_bp.delete("/<slug>/<int:row_id>")
@admin_required
def delete(slug, row_id):
    from app import _build_ok, app, json_error

    table, err = _table_or_404(slug)
    if err is not None:
        return err

    row = get_row(table.model(), row_id)
    if row is None:
        return json_error(f"{slug} row {row_id} not found", status_code=404, code="not_found")

    try:
        delete_row(row)
    except SQLAlchemyError as exc:
        return _persistence_error(exc, "delete", slug)

    _after_write(slug)
    app.logger.info("[admin] deleted %s id=%s", slug, row_id)
    return _build_ok({"deleted": row_id})


@admin_bp.post("/flight-arrivals/sync")
@admin_required
def sync_flight_arrivals():
    """EWOT: explicit "Refresh" trigger that replaces a day's arrivals from the flight API."""
    from app import _build_ok, _parse_date_arg, app, json_error, local_today

    data, err = _json_body()
    if err is not None:
        return err

    raw_date = str(data.get("date") or "").strip()
    if raw_date:
        target_date = _parse_date_arg(raw_date)
        if target_date is None:
            return json_error(
                "date must be in YYYY-MM-DD format",
                status_code=400,
                code="validation_error",
            )
    else:
        target_date = local_today()

    try:
        result = sync_flights(target_date)
    except SyncError as exc:
        status_code, code = SYNC_STAGE_STATUS.get(exc.stage, (500, "sync_error"))
        app.logger.warning("[admin] flight sync failed stage=%s: %s", exc.stage, exc.message)
        detail = {"stage": exc.stage, **exc.detail}
        return json_error(exc.message, status_code=status_code, code=code, detail=detail)

    return _build_ok(result.as_dict())
