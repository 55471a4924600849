import os

os.environ["DATABASE_URL"] = "sqlite:///:memory:"

from app import Profile, app, db  # noqa: E402
from services.auth import fetch_user_role, is_admin  # noqa: E402


class TestAuth:
    def setup_method(self):
        self.client = app.test_client()
        with app.app_context():
            db.drop_all()
            db.create_all()

    def teardown_method(self):
        with app.app_context():
            db.session.remove()
            db.drop_all()

    def _signup(self, email="guide@langkawi.test", password="secret123", **extra):
        return self.client.post("/api/auth/signup", json={"email": email, "password": password, **extra})

    def test_signup_creates_regular_user_and_signs_in(self):
        resp = self._signup(full_name="Aina", role="admin")

        assert resp.status_code == 201
        user = resp.get_json()["user"]
        assert user["email"] == "guide@langkawi.test"
        assert user["role"] == "user"
        assert user["is_admin"] is False
        assert "password_hash" not in user

        me = self.client.get("/api/auth/me")
        assert me.status_code == 200
        assert me.get_json()["user"]["full_name"] == "Aina"

    def test_signup_validation(self):
        assert self._signup(email="not-an-email").status_code == 400
        assert self._signup(password="123").status_code == 400

        self._signup()
        dup = self._signup(email="GUIDE@langkawi.test")
        assert dup.status_code == 409
        assert dup.get_json()["error"]["code"] == "conflict"

    def test_signin_and_signout(self):
        self._signup()
        self.client.post("/api/auth/signout")
        assert self.client.get("/api/auth/me").status_code == 401

        bad = self.client.post("/api/auth/signin", json={"email": "guide@langkawi.test", "password": "wrong"})
        assert bad.status_code == 401
        assert bad.get_json()["error"]["code"] == "unauthorized"

        ok = self.client.post("/api/auth/signin", json={"email": "guide@langkawi.test", "password": "secret123"})
        assert ok.status_code == 200
        assert self.client.get("/api/auth/me").status_code == 200

    def test_me_reflects_promotion(self):
        self._signup()
        with app.app_context():
            Profile.query.filter_by(email="guide@langkawi.test").one().role = "admin"
            db.session.commit()

        me = self.client.get("/api/auth/me").get_json()["user"]
        assert me["is_admin"] is True

    def test_profile_update(self):
        self._signup()

        resp = self.client.patch("/api/profile", json={"full_name": "  Nur Aina  "})
        assert resp.status_code == 200
        assert resp.get_json()["profile"]["full_name"] == "Nur Aina"

        short = self.client.patch("/api/profile", json={"password": "abc"})
        assert short.status_code == 400

        self.client.patch("/api/profile", json={"password": "newsecret"})
        self.client.post("/api/auth/signout")
        ok = self.client.post("/api/auth/signin", json={"email": "guide@langkawi.test", "password": "newsecret"})
        assert ok.status_code == 200

    def test_profile_requires_sign_in(self):
        assert self.client.get("/api/profile").status_code == 401

    def test_role_lookup(self):
        with app.app_context():
            admin = Profile(email="admin@langkawi.test", role="admin")
            user = Profile(email="user@langkawi.test")
            db.session.add_all([admin, user])
            db.session.commit()

            assert fetch_user_role(admin.id) == "admin"
            assert fetch_user_role(user.id) == "user"
            assert fetch_user_role(9999) is None
            assert is_admin(admin.id) is True
            assert is_admin(user.id) is False
            assert is_admin(9999) is False
            assert is_admin(None) is False
