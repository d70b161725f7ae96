"""
Tests for organization webhooks.

Tests:
- CRUD and validation
- Signed delivery to the endpoint
- Event fan-out from organization actions
- Delivery history filters
- Manual and scheduled retries with backoff
"""

import json
from datetime import datetime, timedelta

import httpx
import pytest

from easemail.config import WEBHOOK_MAX_RETRIES, WEBHOOK_RETRY_BASE_SECONDS
from easemail.domain.webhooks import delivery as delivery_module
from easemail.domain.webhooks.delivery import retry_due_deliveries
from easemail.models import ROLE_ADMIN, ROLE_MEMBER, Webhook, WebhookDelivery
from easemail.webhook_security import SIGNATURE_HEADER, TIMESTAMP_HEADER, verify_signature


@pytest.fixture
def endpoint(monkeypatch):
    """Fake receiver; set endpoint.status to change the reply"""

    class Endpoint:
        status = 200
        requests: list[httpx.Request] = []

    Endpoint.requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        Endpoint.requests.append(request)
        return httpx.Response(Endpoint.status, text="ok" if Endpoint.status < 400 else "boom")

    monkeypatch.setattr(
        delivery_module,
        "get_http_client",
        lambda: httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    return Endpoint


def _create_webhook(client, organization_id, **overrides):
    body = {
        "name": "Audit sink",
        "url": "https://hooks.example.com/easemail",
        "events": ["member.added", "member.removed", "organization.updated"],
        "secret": "whsec_test",
    }
    body.update(overrides)
    return client.post(f"/organizations/{organization_id}/webhooks", json=body)


class TestWebhookCrud:
    def test_create_hides_secret(self, client, login, owner, org):
        login(owner)
        response = _create_webhook(client, org.id)

        assert response.status_code == 201
        webhook = response.json()["webhook"]
        assert webhook["has_secret"] is True
        assert "secret" not in webhook
        assert webhook["is_active"] is True

    def test_duplicate_events_are_collapsed(self, client, login, owner, org):
        login(owner)
        response = _create_webhook(client, org.id, events=["member.added", "member.added"])
        assert response.json()["webhook"]["events"] == ["member.added"]

    @pytest.mark.parametrize(
        "overrides",
        [
            {"url": "ftp://hooks.example.com"},
            {"url": "not a url"},
            {"events": []},
            {"events": ["member.exploded"]},
            {"name": "   "},
        ],
    )
    def test_invalid_input_is_422(self, client, login, owner, org, overrides):
        login(owner)
        assert _create_webhook(client, org.id, **overrides).status_code == 422

    def test_members_cannot_manage(self, client, login, make_user, make_org, owner):
        member = make_user("member@acme.com")
        organization = make_org("Acme", [(owner, "OWNER"), (member, ROLE_MEMBER)])
        login(member)

        assert client.get(f"/organizations/{organization.id}/webhooks").status_code == 403
        assert _create_webhook(client, organization.id).status_code == 403

    def test_admin_can_manage(self, client, login, make_user, make_org, owner):
        admin = make_user("admin@acme.com")
        organization = make_org("Acme", [(owner, "OWNER"), (admin, ROLE_ADMIN)])
        login(admin)
        assert _create_webhook(client, organization.id).status_code == 201

    def test_update_and_delete(self, client, db, login, owner, org):
        login(owner)
        webhook_id = _create_webhook(client, org.id).json()["webhook"]["id"]

        response = client.patch(
            f"/organizations/{org.id}/webhooks/{webhook_id}",
            json={"is_active": False, "secret": ""},
        )
        assert response.status_code == 200
        assert response.json()["webhook"]["is_active"] is False
        assert response.json()["webhook"]["has_secret"] is False

        assert client.delete(f"/organizations/{org.id}/webhooks/{webhook_id}").status_code == 200
        assert client.delete(f"/organizations/{org.id}/webhooks/{webhook_id}").status_code == 404

    def test_webhook_of_other_organization_is_404(self, client, login, make_user, make_org, owner, org):
        other_owner = make_user("boss@other.com")
        other = make_org("Other", [(other_owner, "OWNER")])
        login(other_owner)
        webhook_id = _create_webhook(client, other.id).json()["webhook"]["id"]

        login(owner)
        response = client.patch(f"/organizations/{org.id}/webhooks/{webhook_id}", json={"name": "x"})
        assert response.status_code == 404

    def test_available_events(self, client):
        response = client.get("/organizations/1/webhooks/events")
        assert "member.added" in response.json()["events"]


class TestDelivery:
    def test_test_event_is_signed(self, client, login, owner, org, endpoint):
        login(owner)
        webhook_id = _create_webhook(client, org.id).json()["webhook"]["id"]

        response = client.post(f"/organizations/{org.id}/webhooks/{webhook_id}/test")

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert response.json()["status"] == 200

        sent = endpoint.requests[0]
        payload = json.loads(sent.content)
        assert payload["event"] == "webhook.test"
        assert payload["organization_id"] == org.id
        assert verify_signature(
            "whsec_test", sent.content, sent.headers[TIMESTAMP_HEADER], sent.headers[SIGNATURE_HEADER]
        )

    def test_no_signature_without_secret(self, client, login, owner, org, endpoint):
        login(owner)
        webhook_id = _create_webhook(client, org.id, secret=None).json()["webhook"]["id"]

        client.post(f"/organizations/{org.id}/webhooks/{webhook_id}/test")
        assert SIGNATURE_HEADER not in endpoint.requests[0].headers

    def test_member_removal_fans_out_to_subscribers(self, client, db, login, make_user, make_org, owner, endpoint):
        member = make_user("member@acme.com")
        organization = make_org("Acme", [(owner, "OWNER"), (member, ROLE_MEMBER)])
        login(owner)
        _create_webhook(client, organization.id, events=["member.removed"])
        _create_webhook(client, organization.id, name="Other", events=["invite.sent"])

        client.delete(f"/organizations/{organization.id}/members", params={"userId": member.id})

        assert len(endpoint.requests) == 1
        payload = json.loads(endpoint.requests[0].content)
        assert payload["event"] == "member.removed"
        assert payload["data"]["email"] == "member@acme.com"

        db.expire_all()
        delivery = db.query(WebhookDelivery).one()
        assert delivery.response_status == 200
        assert delivery.delivered_at is not None
        assert delivery.next_retry_at is None

    def test_inactive_webhook_gets_nothing(self, client, login, owner, org, endpoint):
        login(owner)
        webhook_id = _create_webhook(client, org.id).json()["webhook"]["id"]
        client.patch(f"/organizations/{org.id}/webhooks/{webhook_id}", json={"is_active": False})

        client.patch(f"/organizations/{org.id}", json={"name": "Renamed"})
        assert endpoint.requests == []

    def test_failed_delivery_does_not_fail_the_action(self, client, db, login, owner, org, endpoint):
        endpoint.status = 500
        login(owner)
        _create_webhook(client, org.id)

        response = client.patch(f"/organizations/{org.id}", json={"name": "Renamed"})

        assert response.status_code == 200
        db.expire_all()
        delivery = db.query(WebhookDelivery).one()
        assert delivery.response_status == 500
        assert delivery.response_body == "boom"
        assert delivery.delivered_at is None
        assert delivery.retry_count == 0
        assert delivery.next_retry_at is not None

    def test_connection_error_is_status_zero(self, client, db, login, owner, org, monkeypatch):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        monkeypatch.setattr(
            delivery_module,
            "get_http_client",
            lambda: httpx.AsyncClient(transport=httpx.MockTransport(refuse)),
        )
        login(owner)
        webhook_id = _create_webhook(client, org.id).json()["webhook"]["id"]

        response = client.post(f"/organizations/{org.id}/webhooks/{webhook_id}/test")
        assert response.json() == {"success": False, "status": 0, "delivery_id": 1}


class TestDeliveryHistory:
    def test_filters_and_pagination(self, client, login, owner, org, endpoint):
        login(owner)
        webhook_id = _create_webhook(client, org.id).json()["webhook"]["id"]
        base = f"/organizations/{org.id}/webhooks/{webhook_id}"

        client.post(f"{base}/test")
        endpoint.status = 502
        client.post(f"{base}/test")

        everything = client.get(f"{base}/deliveries").json()
        assert everything["pagination"]["total"] == 2
        # Newest first
        assert everything["deliveries"][0]["response_status"] == 502

        failed = client.get(f"{base}/deliveries", params={"status": "failed"}).json()
        assert [d["response_status"] for d in failed["deliveries"]] == [502]

        success = client.get(f"{base}/deliveries", params={"status": "success"}).json()
        assert [d["response_status"] for d in success["deliveries"]] == [200]

        page = client.get(f"{base}/deliveries", params={"limit": 1}).json()
        assert page["pagination"]["hasMore"] is True

    def test_unknown_status_filter(self, client, login, owner, org):
        login(owner)
        webhook_id = _create_webhook(client, org.id).json()["webhook"]["id"]
        response = client.get(
            f"/organizations/{org.id}/webhooks/{webhook_id}/deliveries", params={"status": "weird"}
        )
        assert response.status_code == 400

    def test_manual_retry_counts_the_attempt(self, client, db, login, owner, org, endpoint):
        login(owner)
        webhook_id = _create_webhook(client, org.id).json()["webhook"]["id"]
        base = f"/organizations/{org.id}/webhooks/{webhook_id}"
        endpoint.status = 503
        delivery_id = client.post(f"{base}/test").json()["delivery_id"]

        endpoint.status = 200
        response = client.post(f"{base}/deliveries/{delivery_id}/retry")

        assert response.json() == {
            "success": True,
            "status": 200,
            "message": "Webhook delivered successfully",
        }
        db.expire_all()
        delivery = db.query(WebhookDelivery).filter(WebhookDelivery.id == delivery_id).one()
        assert delivery.retry_count == 1
        assert delivery.delivered_at is not None

    def test_retry_unknown_delivery(self, client, login, owner, org):
        login(owner)
        webhook_id = _create_webhook(client, org.id).json()["webhook"]["id"]
        response = client.post(f"/organizations/{org.id}/webhooks/{webhook_id}/deliveries/999/retry")
        assert response.status_code == 404


class TestScheduledRetries:
    def _failed_delivery(self, db, org, retry_count=0, active=True):
        webhook = Webhook(
            organization_id=org.id,
            name="Sink",
            url="https://hooks.example.com/x",
            events=["member.added"],
            is_active=active,
        )
        db.add(webhook)
        db.flush()
        delivery = WebhookDelivery(
            webhook_id=webhook.id,
            event_type="member.added",
            payload={"event": "member.added", "data": {}},
            response_status=500,
            retry_count=retry_count,
            next_retry_at=datetime.utcnow() - timedelta(seconds=1),
        )
        db.add(delivery)
        db.commit()
        return delivery

    async def test_due_delivery_is_resent(self, db, org, endpoint):
        delivery = self._failed_delivery(db, org)

        summary = await retry_due_deliveries(db)

        assert summary == {"due": 1, "delivered": 1, "failed": 0, "skipped": 0}
        assert delivery.retry_count == 1
        assert delivery.next_retry_at is None
        assert delivery.delivered_at is not None

    async def test_failure_backs_off_exponentially(self, db, org, endpoint):
        endpoint.status = 500
        delivery = self._failed_delivery(db, org, retry_count=1)
        before = datetime.utcnow()

        await retry_due_deliveries(db)

        assert delivery.retry_count == 2
        expected = timedelta(seconds=WEBHOOK_RETRY_BASE_SECONDS * 4)
        assert delivery.next_retry_at - before >= expected - timedelta(seconds=5)

    async def test_gives_up_after_max_retries(self, db, org, endpoint):
        endpoint.status = 500
        delivery = self._failed_delivery(db, org, retry_count=WEBHOOK_MAX_RETRIES - 1)

        await retry_due_deliveries(db)

        assert delivery.retry_count == WEBHOOK_MAX_RETRIES
        assert delivery.next_retry_at is None

    async def test_inactive_webhook_is_skipped(self, db, org, endpoint):
        delivery = self._failed_delivery(db, org, active=False)

        summary = await retry_due_deliveries(db)

        assert summary["skipped"] == 1
        assert delivery.next_retry_at is None
        assert endpoint.requests == []
