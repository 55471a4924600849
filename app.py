import os
import time
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from flask import Flask, g, jsonify, request
from flask_sqlalchemy import SQLAlchemy
from werkzeug.security import check_password_hash, generate_password_hash

# Load .env before config reads the environment.
load_dotenv()

import config  # noqa: E402

# EWOT: This app is the JSON backend of the Langkawi tourism dashboard. The
# charts read /api/* endpoints, admins edit the same tables through
# /api/admin/*, and the flight arrivals table is refreshed from a third-party
# flight search API on demand.

app = Flask(__name__)
app.secret_key = os.getenv("FLASK_SECRET_KEY", "dev-not-secret")


def _normalize_database_url(uri: str) -> str:
    if uri.startswith("postgres://"):
        return uri.replace("postgres://", "postgresql://", 1)
    return uri


app.config["SQLALCHEMY_DATABASE_URI"] = _normalize_database_url(
    os.getenv("DATABASE_URL") or config.DATABASE_URL
)
app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False

db = SQLAlchemy(app)

DASHBOARD_TZ = ZoneInfo(config.DASHBOARD_TZ)


def local_today() -> date:
    """Calendar date in the dashboard timezone; syncs and default reads use it."""
    return datetime.now(DASHBOARD_TZ).date()


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes", "on"}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# --- CORS (dashboard frontend -> this backend) ---


@app.after_request
def add_cors_headers(resp):
    resp.headers["Access-Control-Allow-Origin"] = config.FRONTEND_ORIGIN
    resp.headers["Vary"] = "Origin"
    resp.headers["Access-Control-Allow-Credentials"] = "true"
    resp.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,PATCH,DELETE,OPTIONS"
    resp.headers["Access-Control-Allow-Headers"] = "Content-Type, Authorization"
    return resp


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

MONTH_LABELS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


class SerializerMixin:
    """JSON-ready dicts built from the table columns."""

    _hidden_columns: tuple = ()

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for column in self.__table__.columns:
            if column.name in self._hidden_columns:
                continue
            value = getattr(self, column.name)
            if isinstance(value, (date, datetime)):
                value = value.isoformat()
            out[column.name] = value
        month = out.get("month")
        if isinstance(month, int) and 1 <= month <= 12:
            out["month_label"] = MONTH_LABELS[month - 1]
        return out


class VisitorStat(SerializerMixin, db.Model):
    __tablename__ = "visitor_stats"

    id = db.Column(db.Integer, primary_key=True)
    month = db.Column(db.Integer, nullable=False)
    year = db.Column(db.Integer, nullable=False)
    domestic_visitors = db.Column(db.Integer, nullable=False, default=0)
    international_visitors = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def to_dict(self) -> Dict[str, Any]:
        out = super().to_dict()
        out["total_visitors"] = (self.domestic_visitors or 0) + (self.international_visitors or 0)
        return out


class OriginCountry(SerializerMixin, db.Model):
    __tablename__ = "origin_countries"

    id = db.Column(db.Integer, primary_key=True)
    country_name = db.Column(db.String(128), nullable=False)
    visitor_count = db.Column(db.Integer, nullable=False, default=0)
    percentage = db.Column(db.Float, nullable=False, default=0)
    year = db.Column(db.Integer, nullable=False)
    color = db.Column(db.String(32))
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)


class OccupancyRate(SerializerMixin, db.Model):
    __tablename__ = "occupancy_rates"

    id = db.Column(db.Integer, primary_key=True)
    month = db.Column(db.Integer, nullable=False)
    year = db.Column(db.Integer, nullable=False)
    rate = db.Column(db.Float, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)


class TouristSpending(SerializerMixin, db.Model):
    __tablename__ = "tourist_spending"

    id = db.Column(db.Integer, primary_key=True)
    month = db.Column(db.Integer, nullable=False)
    year = db.Column(db.Integer, nullable=False)
    amount = db.Column(db.Float, nullable=False)
    category = db.Column(db.String(64))
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)


class Attraction(SerializerMixin, db.Model):
    __tablename__ = "attractions"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    description = db.Column(db.Text)
    location_lat = db.Column(db.Float)
    location_lng = db.Column(db.Float)
    visitors_count = db.Column(db.Integer, default=0)
    rating = db.Column(db.Float)
    image_url = db.Column(db.String(512))
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)


class FlightArrival(SerializerMixin, db.Model):
    __tablename__ = "flight_arrivals"

    id = db.Column(db.Integer, primary_key=True)
    external_id = db.Column(db.String(128))
    flight_number = db.Column(db.String(32), nullable=False)
    airline_code = db.Column(db.String(16), default="")
    airline = db.Column(db.String(128), default="")
    origin = db.Column(db.String(128), default="")
    scheduled_time = db.Column(db.String(64), default="")
    estimated_time = db.Column(db.String(64), default="")
    arrival_time = db.Column(db.String(64), default="")
    passengers = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(32), nullable=False, default="Scheduled")
    terminal = db.Column(db.String(32), default="")
    date = db.Column(db.Date, nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)


class Profile(SerializerMixin, db.Model):
    __tablename__ = "profiles"

    _hidden_columns = ("password_hash",)

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    full_name = db.Column(db.String(255))
    role = db.Column(db.String(32), nullable=False, default="user")
    password_hash = db.Column(db.String(255))
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)


def ensure_schema() -> None:
    """Create any missing dashboard tables (no-op when they exist)."""
    db.create_all()


# ---------------------------------------------------------------------------
# JSON envelope helpers
# ---------------------------------------------------------------------------


def json_error(
    message: str,
    status_code: int = 500,
    code: str = "error",
    detail: Optional[Dict[str, Any]] = None,
):
    """Return normalized JSON error payloads for all /api/* routes."""

    payload: Dict[str, Any] = {
        "ok": False,
        "error": {
            "code": code,
            "message": message,
        },
    }
    if detail:
        payload["error"]["detail"] = detail
    return jsonify(payload), status_code


def _build_ok(payload: Dict[str, Any], status_code: int = 200):
    payload.setdefault("ok", True)
    return jsonify(payload), status_code


# --- Contract Guard: prevent drift by rejecting unknown query params ---

ALLOWED_QUERY_PARAMS = {
    "api_visitor_stats": {"year"},
    "api_origin_countries": {"year"},
    "api_occupancy_rates": {"year"},
    "api_tourist_spending": {"year"},
    "api_attractions": set(),
    "api_flight_arrivals": {"date"},
    "api_stats_summary": set(),
    "api_admin_list": {"date", "year"},
}


def _reject_unknown_query_params(route_key: str, allowed: set[str]):
    """
    EWOT: Validates request.args against a canonical allowlist.
    Returns a Flask response (json_error) if unknown params exist, else None.
    """
    provided = set(request.args.keys())

    unknown = sorted(k for k in provided if k not in allowed)
    if unknown:
        allowed_text = ", ".join(sorted(allowed)) or "(none)"
        msg = f"Unknown query parameter(s): {', '.join(unknown)}. Allowed: {allowed_text}"
        app.logger.warning("schema_drift route=%s unknown=%s", route_key, unknown)
        return json_error(msg, status_code=400, code="schema_drift")

    return None


def _parse_date_arg(value: Optional[str]) -> Optional[date]:
    """Parse YYYY-MM-DD; ``None`` on blank or malformed input."""
    text = (value or "").strip()
    if not text:
        return None
    try:
        return datetime.strptime(text, "%Y-%m-%d").date()
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Request logging + health
# ---------------------------------------------------------------------------


@app.before_request
def _track_start_time():
    # Track per-request start time for logging.
    g.start_time = time.monotonic()


@app.after_request
def _log_request(response):  # noqa: D401 - simple logger
    """Log method, path, status, and duration for API endpoints."""

    if request.path.startswith("/api/"):
        duration_ms = int((time.monotonic() - getattr(g, "start_time", time.monotonic())) * 1000)
        app.logger.info(
            "%s %s -> %s (%sms)",
            request.method,
            request.path,
            response.status_code,
            duration_ms,
        )
    return response


@app.errorhandler(404)
def _not_found(exc):
    if request.path.startswith("/api/"):
        return json_error("Not found", status_code=404, code="not_found")
    return exc


@app.get("/api/healthz")
def api_healthz():
    """EWOT: simple health endpoint so we can see if the dashboard backend is up."""
    return _build_ok(
        {
            "service": "TourismDashboard",
            "time": _utcnow().isoformat(),
            "today": local_today().isoformat(),
        }
    )


# Blueprints import models from this module inside their handlers.
from routes.admin import admin_bp  # noqa: E402
from routes.auth import auth_bp  # noqa: E402
from routes.dashboard import dashboard_bp  # noqa: E402

app.register_blueprint(dashboard_bp)
app.register_blueprint(admin_bp)
app.register_blueprint(auth_bp)

with app.app_context():
    if _env_flag("AUTO_CREATE_TABLES", "true"):
        ensure_schema()


if __name__ == "__main__":  # pragma: no cover
    # Local dev convenience; in production run via gunicorn.
    app.run(host="0.0.0.0", port=int(os.getenv("PORT", "5055")), debug=True)
