"""
Tests for Supabase token verification and user provisioning.
"""

import time

from jose import jwt

from easemail.config import SUPABASE_JWT_AUDIENCE, SUPABASE_JWT_SECRET
from easemail.models import User


def _token(sub="supa-123", email="Jane@Acme.com", expires_in=3600, audience=SUPABASE_JWT_AUDIENCE, **claims):
    payload = {
        "sub": sub,
        "email": email,
        "aud": audience,
        "exp": int(time.time()) + expires_in,
        "user_metadata": {"full_name": "Jane Doe"},
        **claims,
    }
    return jwt.encode(payload, SUPABASE_JWT_SECRET, algorithm="HS256")


def _get(client, token):
    return client.get("/onboarding", headers={"Authorization": f"Bearer {token}"})


class TestAuthentication:
    def test_first_login_creates_user(self, client, db):
        assert _get(client, _token()).status_code == 200

        user = db.query(User).one()
        assert user.supabase_uid == "supa-123"
        assert user.email == "jane@acme.com"
        assert user.name == "Jane Doe"
        assert user.login_count == 1

    def test_admin_created_user_is_linked_by_email(self, client, db, make_user):
        existing = make_user("jane@acme.com")

        _get(client, _token())
        _get(client, _token())

        db.expire_all()
        user = db.query(User).one()
        assert user.id == existing.id
        assert user.supabase_uid == "supa-123"
        assert user.name == "Jane Doe"
        assert user.login_count == 2
        assert user.last_login_at is not None

    def test_expired_token(self, client, db):
        response = _get(client, _token(expires_in=-60))
        assert response.status_code == 401
        assert response.json()["detail"] == "Token expired"

    def test_wrong_secret(self, client, db):
        token = jwt.encode(
            {"sub": "x", "aud": SUPABASE_JWT_AUDIENCE, "exp": int(time.time()) + 60}, "other", algorithm="HS256"
        )
        assert _get(client, token).json()["detail"] == "Token verification failed"

    def test_wrong_audience(self, client, db):
        assert _get(client, _token(audience="anon")).status_code == 401

    def test_malformed_token(self, client, db):
        response = _get(client, "not-a-jwt")
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid token format. Expected a valid JWT token."

    def test_missing_header(self, client, db):
        assert client.get("/onboarding").status_code in (401, 403)

    def test_super_admin_routes(self, client, db, make_user):
        make_user("jane@acme.com")
        assert client.get("/admin/organizations", headers={"Authorization": f"Bearer {_token()}"}).status_code == 403
