"""
Tests for calendar events: validation, range queries and RSVP.
"""

from datetime import datetime

import pytest

from easemail.domain.calendar.service import parse_datetime
from easemail.models import UsageTracking


def _event(client, title="Standup", start="2026-03-02T09:00:00Z", end="2026-03-02T09:15:00Z", **extra):
    return client.post("/calendar", json={"title": title, "startTime": start, "endTime": end, **extra})


class TestParseDatetime:
    def test_zulu_becomes_naive_utc(self):
        assert parse_datetime("2026-03-02T09:00:00Z") == datetime(2026, 3, 2, 9, 0)

    def test_offset_is_converted(self):
        assert parse_datetime("2026-03-02T11:00:00+02:00") == datetime(2026, 3, 2, 9, 0)

    def test_garbage_raises(self):
        with pytest.raises(ValueError):
            parse_datetime("next tuesday")


class TestEvents:
    def test_create_sets_organizer_and_tracks_usage(self, client, db, login, owner):
        login(owner)
        response = _event(client, participants=[{"email": "bob@acme.com", "name": "Bob"}])

        assert response.status_code == 201
        event = response.json()["event"]
        assert event["organizerEmail"] == "owner@acme.com"
        assert event["participants"] == [{"email": "bob@acme.com", "name": "Bob"}]
        assert event["startTime"].startswith("2026-03-02T09:00:00")
        assert db.query(UsageTracking).filter(UsageTracking.feature == "calendar_event").count() == 1

    @pytest.mark.parametrize(
        "body,detail",
        [
            ({"title": " ", "start": "2026-03-02T09:00:00Z"}, "Title is required"),
            ({"start": None}, "Start time and end time are required"),
            ({"end": "soon"}, "Invalid date format"),
            ({"end": "2026-03-02T08:00:00Z"}, "End time must be after start time"),
            ({"end": "2026-03-02T09:00:00Z"}, "End time must be after start time"),
        ],
    )
    def test_validation_errors(self, client, login, owner, body, detail):
        login(owner)
        response = _event(client, **body)

        assert response.status_code == 400
        assert response.json()["detail"] == detail

    def test_range_returns_overlapping_events_in_order(self, client, login, owner):
        login(owner)
        _event(client, title="Late", start="2026-03-02T15:00:00Z", end="2026-03-02T16:00:00Z")
        _event(client, title="Overnight", start="2026-03-01T22:00:00Z", end="2026-03-02T01:00:00Z")
        _event(client, title="Next day", start="2026-03-03T09:00:00Z", end="2026-03-03T10:00:00Z")

        response = client.get(
            "/calendar", params={"start": "2026-03-02T00:00:00Z", "end": "2026-03-02T23:59:59Z"}
        )

        assert response.status_code == 200
        assert [e["title"] for e in response.json()["events"]] == ["Overnight", "Late"]

    def test_bad_range_is_400(self, client, login, owner):
        login(owner)
        assert client.get("/calendar", params={"start": "yesterday"}).status_code == 400

    def test_partial_update_is_checked_against_stored_times(self, client, login, owner):
        login(owner)
        event_id = _event(client).json()["event"]["id"]

        bad = client.patch(f"/calendar/{event_id}", json={"endTime": "2026-03-02T08:00:00Z"})
        assert bad.status_code == 400

        good = client.patch(f"/calendar/{event_id}", json={"title": "Daily standup", "location": "Room 4"})
        assert good.status_code == 200
        assert good.json()["event"]["title"] == "Daily standup"
        assert good.json()["event"]["location"] == "Room 4"

    def test_events_are_private(self, client, login, make_user, owner):
        login(owner)
        event_id = _event(client).json()["event"]["id"]

        login(make_user("other@acme.com"))
        assert client.get("/calendar").json()["events"] == []
        assert client.delete(f"/calendar/{event_id}").status_code == 404

    def test_delete(self, client, login, owner):
        login(owner)
        event_id = _event(client).json()["event"]["id"]

        assert client.delete(f"/calendar/{event_id}").json() == {"success": True}
        assert client.delete(f"/calendar/{event_id}").status_code == 404


class TestRsvp:
    def test_rsvp(self, client, login, owner):
        login(owner)
        event_id = _event(client).json()["event"]["id"]

        response = client.post(f"/calendar/{event_id}/rsvp", json={"status": "maybe"})
        assert response.json() == {"success": True, "status": "maybe"}
        assert client.get("/calendar").json()["events"][0]["rsvpStatus"] == "maybe"

    def test_invalid_status(self, client, login, owner):
        login(owner)
        event_id = _event(client).json()["event"]["id"]

        response = client.post(f"/calendar/{event_id}/rsvp", json={"status": "perhaps"})
        assert response.status_code == 400
