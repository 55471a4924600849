"""Read-only endpoints behind the dashboard charts and stat cards.

This module keeps app-level imports inside request handlers to avoid circular
imports when Flask initializes the application.
"""

from flask import Blueprint, request
from sqlalchemy.exc import SQLAlchemyError

from services.derived_stats import dashboard_summary
from services.store import list_flights_for_date, select_all

dashboard_bp = Blueprint("dashboard_api", __name__, url_prefix="/api")


def _year_filter():
    """Return ({"year": n} or {}, error_response)."""
    from app import json_error

    raw = (request.args.get("year") or "").strip()
    if not raw:
        return {}, None
    try:
        year = int(raw)
    except ValueError:
        return None, json_error(
            f"Invalid year value '{raw}'. Expected a number.",
            status_code=400,
            code="validation_error",
        )
    return {"year": year}, None


def _list_rows(route_key: str, model_name: str, order_by):
    import app as dashboard_app

    guard = dashboard_app._reject_unknown_query_params(
        route_key, dashboard_app.ALLOWED_QUERY_PARAMS[route_key]
    )
    if guard is not None:
        return guard

    filters = {}
    if "year" in dashboard_app.ALLOWED_QUERY_PARAMS[route_key]:
        filters, err = _year_filter()
        if err is not None:
            return err

    model = getattr(dashboard_app, model_name)
    try:
        rows = select_all(model, order_by=order_by(model), **filters)
    except SQLAlchemyError as exc:
        dashboard_app.app.logger.exception("Failed to read %s", model.__tablename__)
        return dashboard_app.json_error(str(exc), status_code=500, code="persistence_error")

    return dashboard_app._build_ok({"count": len(rows), "rows": [row.to_dict() for row in rows]})


@dashboard_bp.get("/visitor-stats")
def api_visitor_stats():
    return _list_rows("api_visitor_stats", "VisitorStat", lambda m: (m.year.asc(), m.month.asc()))


@dashboard_bp.get("/origin-countries")
def api_origin_countries():
    return _list_rows("api_origin_countries", "OriginCountry", lambda m: (m.visitor_count.desc(),))


@dashboard_bp.get("/occupancy-rates")
def api_occupancy_rates():
    return _list_rows("api_occupancy_rates", "OccupancyRate", lambda m: (m.year.asc(), m.month.asc()))


@dashboard_bp.get("/tourist-spending")
def api_tourist_spending():
    return _list_rows("api_tourist_spending", "TouristSpending", lambda m: (m.year.asc(), m.month.asc()))


@dashboard_bp.get("/attractions")
def api_attractions():
    return _list_rows("api_attractions", "Attraction", lambda m: (m.visitors_count.desc(),))


@dashboard_bp.get("/flight-arrivals")
def api_flight_arrivals():
    """Flight arrivals for ?date=YYYY-MM-DD (defaults to today)."""
    from app import (
        ALLOWED_QUERY_PARAMS,
        _build_ok,
        _parse_date_arg,
        _reject_unknown_query_params,
        app,
        json_error,
        local_today,
    )

    guard = _reject_unknown_query_params("api_flight_arrivals", ALLOWED_QUERY_PARAMS["api_flight_arrivals"])
    if guard is not None:
        return guard

    raw_date = request.args.get("date")
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
        flights = list_flights_for_date(target_date)
    except SQLAlchemyError as exc:
        app.logger.exception("Failed to read flight arrivals for %s", target_date)
        return json_error(str(exc), status_code=500, code="persistence_error")

    return _build_ok({"date": target_date.isoformat(), "count": len(flights), "flights": flights})


@dashboard_bp.get("/stats/summary")
def api_stats_summary():
    """Stat cards: latest value and change vs the previous period."""
    from app import (
        ALLOWED_QUERY_PARAMS,
        FlightArrival,
        OccupancyRate,
        TouristSpending,
        VisitorStat,
        _build_ok,
        _reject_unknown_query_params,
        app,
        db,
        json_error,
    )

    guard = _reject_unknown_query_params("api_stats_summary", ALLOWED_QUERY_PARAMS["api_stats_summary"])
    if guard is not None:
        return guard

    def ordered(model):
        return [row.to_dict() for row in select_all(model, order_by=(model.year.asc(), model.month.asc()))]

    try:
        visitors = ordered(VisitorStat)
        occupancy = ordered(OccupancyRate)
        spending = ordered(TouristSpending)
        flight_dates = [row.date for row in db.session.query(FlightArrival.date).all()]
    except SQLAlchemyError as exc:
        app.logger.exception("Failed to build stats summary")
        return json_error(str(exc), status_code=500, code="persistence_error")

    cards = dashboard_summary(visitors, occupancy, spending, flight_dates)
    return _build_ok({"cards": cards})
