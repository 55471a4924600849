import os
from datetime import date
from unittest.mock import patch

import pytest

os.environ["DATABASE_URL"] = "sqlite:///:memory:"

from app import FlightArrival, Profile, VisitorStat, app, db  # noqa: E402
from services.errors import SyncError  # noqa: E402
from services.flight_sync import SyncResult  # noqa: E402


class TestAdminApi:
    def setup_method(self):
        self.client = app.test_client()
        with app.app_context():
            db.drop_all()
            db.create_all()

    def teardown_method(self):
        with app.app_context():
            db.session.remove()
            db.drop_all()

    def _login(self, role: str = "admin") -> int:
        with app.app_context():
            profile = Profile(email=f"{role}@langkawi.test", full_name=role.title(), role=role)
            profile.set_password("secret123")
            db.session.add(profile)
            db.session.commit()
            profile_id = profile.id
        with self.client.session_transaction() as sess:
            sess["user_id"] = profile_id
        return profile_id

    def test_requires_sign_in(self):
        resp = self.client.get("/api/admin/visitor-stats")

        assert resp.status_code == 401
        assert resp.get_json()["error"]["code"] == "unauthorized"

    def test_non_admin_is_forbidden(self):
        self._login(role="user")

        resp = self.client.post("/api/admin/visitor-stats", json={})

        assert resp.status_code == 403
        assert resp.get_json()["error"]["code"] == "forbidden"

    def test_role_change_applies_without_new_session(self):
        profile_id = self._login(role="admin")
        assert self.client.get("/api/admin/attractions").status_code == 200

        with app.app_context():
            db.session.get(Profile, profile_id).role = "user"
            db.session.commit()

        assert self.client.get("/api/admin/attractions").status_code == 403

    def test_create_update_delete_visitor_stat(self):
        self._login()

        created = self.client.post(
            "/api/admin/visitor-stats",
            json={"month": "Mar", "year": 2024, "domestic_visitors": "1200", "international_visitors": 300},
        )
        assert created.status_code == 201
        row = created.get_json()["row"]
        assert row["month"] == 3
        assert row["domestic_visitors"] == 1200
        assert row["total_visitors"] == 1500

        updated = self.client.put(f"/api/admin/visitor-stats/{row['id']}", json={"international_visitors": 500})
        assert updated.status_code == 200
        assert updated.get_json()["row"]["total_visitors"] == 1700
        assert updated.get_json()["row"]["month"] == 3

        deleted = self.client.delete(f"/api/admin/visitor-stats/{row['id']}")
        assert deleted.status_code == 200
        with app.app_context():
            assert VisitorStat.query.count() == 0

    def test_validation_errors_are_reported_per_field(self):
        self._login()

        resp = self.client.post(
            "/api/admin/occupancy-rates",
            json={"month": "Smarch", "year": 1999, "rate": 120, "extra": 1},
        )

        assert resp.status_code == 400
        payload = resp.get_json()
        assert payload["error"]["code"] == "validation_error"
        fields = payload["error"]["detail"]["fields"]
        assert set(fields) == {"month", "year", "rate", "extra"}
        assert fields["rate"] == "Must be between 0 and 100"

    def test_non_finite_month_is_a_validation_error(self):
        self._login()

        resp = self.client.post(
            "/api/admin/occupancy-rates",
            data='{"month": Infinity, "year": 2024, "rate": 50}',
            content_type="application/json",
        )

        assert resp.status_code == 400
        fields = resp.get_json()["error"]["detail"]["fields"]
        assert fields == {"month": "Month must be 1-12 or a month name"}

    def test_fetched_row_can_be_sent_back_unchanged(self):
        self._login()
        created = self.client.post(
            "/api/admin/visitor-stats",
            json={"month": 4, "year": 2024, "domestic_visitors": 10, "international_visitors": 5},
        ).get_json()["row"]

        row = dict(created, domestic_visitors=20)
        resp = self.client.put(f"/api/admin/visitor-stats/{created['id']}", json=row)

        assert resp.status_code == 200
        assert resp.get_json()["row"]["total_visitors"] == 25

    def test_list_filters_by_year_and_date(self):
        self._login()
        with app.app_context():
            db.session.add_all(
                [
                    VisitorStat(month=1, year=2023, domestic_visitors=1, international_visitors=1),
                    VisitorStat(month=1, year=2024, domestic_visitors=2, international_visitors=2),
                    FlightArrival(flight_number="MH1", date=date(2024, 5, 14)),
                    FlightArrival(flight_number="MH2", date=date(2024, 5, 15)),
                ]
            )
            db.session.commit()

        stats = self.client.get("/api/admin/visitor-stats", query_string={"year": "2023"}).get_json()
        assert [r["year"] for r in stats["rows"]] == [2023]

        flights = self.client.get("/api/admin/flight-arrivals", query_string={"date": "2024-05-15"}).get_json()
        assert [r["flight_number"] for r in flights["rows"]] == ["MH2"]

    def test_list_filter_errors(self):
        self._login()

        no_year_column = self.client.get("/api/admin/attractions", query_string={"year": "2024"})
        assert no_year_column.status_code == 400
        assert no_year_column.get_json()["error"]["code"] == "validation_error"

        assert self.client.get("/api/admin/visitor-stats", query_string={"year": "soon"}).status_code == 400
        assert self.client.get("/api/admin/flight-arrivals", query_string={"date": "15/05"}).status_code == 400

    def test_flight_arrival_rules(self):
        self._login()

        resp = self.client.post(
            "/api/admin/flight-arrivals",
            json={
                "flight_number": "MH1432",
                "airline": "Malaysia Airlines",
                "origin": "Kuala Lumpur",
                "arrival_time": "9:30",
                "passengers": -1,
                "status": "Landed",
                "date": "2024-05-15",
            },
        )

        fields = resp.get_json()["error"]["detail"]["fields"]
        assert set(fields) == {"passengers", "status"}

        ok = self.client.post(
            "/api/admin/flight-arrivals",
            json={
                "flight_number": "MH1432",
                "airline": "Malaysia Airlines",
                "origin": "Kuala Lumpur",
                "arrival_time": "09:30",
                "passengers": 132,
                "status": "Arrived",
                "date": "2024-05-15",
            },
        )
        assert ok.status_code == 201
        assert ok.get_json()["row"]["date"] == "2024-05-15"

    def test_admin_write_refreshes_flight_reads(self):
        self._login()
        target = date(2024, 5, 15)

        first = self.client.get("/api/flight-arrivals", query_string={"date": target.isoformat()})
        assert first.get_json()["count"] == 0

        self.client.post(
            "/api/admin/flight-arrivals",
            json={
                "flight_number": "AK5642",
                "airline": "AirAsia",
                "origin": "Singapore",
                "arrival_time": "11:45",
                "passengers": 175,
                "status": "Scheduled",
                "date": target.isoformat(),
            },
        )

        second = self.client.get("/api/flight-arrivals", query_string={"date": target.isoformat()})
        assert second.get_json()["count"] == 1

    def test_unknown_table_and_missing_row(self):
        self._login()

        assert self.client.get("/api/admin/hotels").status_code == 404
        assert self.client.put("/api/admin/attractions/999", json={"name": "x"}).status_code == 404
        assert self.client.delete("/api/admin/attractions/999").status_code == 404

    def test_invalid_json_body(self):
        self._login()

        resp = self.client.post(
            "/api/admin/attractions",
            data="{not json",
            content_type="application/json",
        )

        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "invalid_json"

    def test_sync_endpoint_uses_today_by_default(self):
        self._login()

        with patch("app.local_today", return_value=date(2024, 5, 15)), patch(
            "routes.admin.sync_flights",
            return_value=SyncResult(inserted_count=3, date="2024-05-15", path=("data",)),
        ) as mock_sync:
            resp = self.client.post("/api/admin/flight-arrivals/sync")

        assert resp.status_code == 200
        assert resp.get_json()["inserted_count"] == 3
        mock_sync.assert_called_once_with(date(2024, 5, 15))

    @pytest.mark.parametrize(
        "stage,status_code,code",
        [
            ("busy", 409, "sync_in_progress"),
            ("fetch", 502, "upstream_error"),
            ("locate", 502, "shape_not_found"),
            ("persist", 500, "persistence_error"),
        ],
    )
    def test_sync_failures_map_to_http_errors(self, stage, status_code, code):
        self._login()

        with patch("routes.admin.sync_flights", side_effect=SyncError(stage, f"{stage} failed")):
            resp = self.client.post("/api/admin/flight-arrivals/sync", json={"date": "2024-05-15"})

        assert resp.status_code == status_code
        error = resp.get_json()["error"]
        assert error["code"] == code
        assert error["message"] == f"{stage} failed"
        assert error["detail"]["stage"] == stage

    def test_sync_end_to_end_with_stubbed_api(self):
        self._login()

        document = {"result": {"arrivals": [{"flight_number": "MH1", "origin": {"city": "KUL"}}]}}
        with patch("services.flight_sync.fetch_flight_document", return_value=document):
            resp = self.client.post("/api/admin/flight-arrivals/sync", json={"date": "2024-05-15"})

        assert resp.status_code == 200
        assert resp.get_json()["path"] == ["result", "arrivals"]
        with app.app_context():
            row = FlightArrival.query.one()
            assert row.origin == "KUL"
            assert row.date == date(2024, 5, 15)
