"""
Tests for onboarding step validation and preference saving.
"""

import pytest

from easemail.models import UsageTracking
from easemail.routes.onboarding import validate_step


class TestValidateStep:
    def test_welcome_has_no_fields(self):
        assert validate_step("welcome", {}) == []

    def test_profile_needs_a_name(self):
        assert validate_step("profile", {"name": "  "}) == ["Name is required"]
        assert validate_step("profile", {"name": "Olivia"}) == []

    def test_email_connection(self):
        errors = validate_step("email_connection", {"provider": "aol", "email": "nope"})
        assert errors == [
            "Provider must be one of: google, microsoft, imap",
            "A valid email address is required",
        ]
        assert validate_step("email_connection", {"provider": "google", "email": "a@acme.com"}) == []

    def test_signature_length(self):
        assert validate_step("signature", {"signature": "x" * 10001}) == [
            "Signature must be 10000 characters or fewer"
        ]

    def test_non_text_values_are_errors(self):
        assert validate_step("signature", {"signature": 12345}) == ["Signature must be text"]
        assert validate_step("signature", {"signature": None}) == []
        assert validate_step("profile", {"name": 5}) == ["Name is required"]
        assert validate_step("email_connection", {"provider": "google", "email": 42}) == [
            "A valid email address is required"
        ]

    def test_unknown_step(self):
        with pytest.raises(ValueError):
            validate_step("billing", {})


class TestOnboardingEndpoints:
    def test_no_preferences_yet(self, client, login, owner):
        login(owner)
        assert client.get("/onboarding").json() == {"preferences": None}

    def test_complete_saves_preferences(self, client, db, login, owner):
        login(owner)
        response = client.post(
            "/onboarding",
            json={"use_case": "sales", "auto_categorize": False, "notification_schedule": {"digest": "daily"}},
        )

        assert response.status_code == 200
        prefs = response.json()["preferences"]
        assert prefs["use_case"] == "sales"
        assert prefs["ai_features_enabled"] is True
        assert prefs["auto_categorize"] is False
        assert prefs["onboarding_completed"] is True
        assert prefs["onboarding_completed_at"] is not None
        assert db.query(UsageTracking).filter(UsageTracking.feature == "onboarding_completed").count() == 1

    def test_completing_twice_updates_in_place(self, client, login, owner):
        login(owner)
        first = client.post("/onboarding", json={"use_case": "sales"}).json()["preferences"]
        second = client.post("/onboarding", json={"use_case": "support"}).json()["preferences"]

        assert first["id"] == second["id"]
        assert client.get("/onboarding").json()["preferences"]["use_case"] == "support"

    def test_step_endpoint(self, client, login, owner):
        login(owner)
        assert client.post("/onboarding/steps/profile", json={}).json() == {
            "valid": False,
            "errors": ["Name is required"],
        }
        assert client.post("/onboarding/steps/profile", json={"name": "Olivia"}).json()["valid"] is True
        assert client.post("/onboarding/steps/billing", json={}).status_code == 404

    def test_step_endpoint_rejects_wrong_types(self, client, login, owner):
        login(owner)
        signature = client.post("/onboarding/steps/signature", json={"signature": 12345})
        assert signature.status_code == 200
        assert signature.json() == {"valid": False, "errors": ["Signature must be text"]}

        connection = client.post("/onboarding/steps/email_connection", json={"provider": "google", "email": 42})
        assert connection.status_code == 200
        assert connection.json()["errors"] == ["A valid email address is required"]
