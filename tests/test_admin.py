"""
Tests for the organization creation wizard and user administration.
"""

import pytest

from easemail import email_service
from easemail.domain.admin.schemas import WizardOrganization, WizardRequest, WizardUser
from easemail.domain.admin.wizard import (
    validate_api_key_step,
    validate_organization_step,
    validate_users_step,
    validate_wizard,
)
from easemail.encryption import decrypt_secret
from easemail.models import (
    ApiKey,
    BillingHistory,
    EmailAccount,
    Organization,
    OrganizationMember,
    User,
    UserPreferences,
)


@pytest.fixture
def super_admin(make_user):
    return make_user("root@easemail.app", "Root", is_super_admin=True)


def _wizard_body(**overrides):
    body = {
        "organization": {
            "name": "Globex",
            "domain": "globex.com",
            "plan": "PRO",
            "seats": 5,
            "billing_email": "hank@globex.com",
            "billing_cycle": "monthly",
        },
        "users": [
            {
                "email": "hank@globex.com",
                "name": "Hank Scorpio",
                "role": "OWNER",
                "password": "volcano-lair",
                "emailAccounts": [{"email": "hank@gmail.com", "provider": "google"}],
            },
            {"email": "homer@globex.com", "name": "Homer", "role": "MEMBER"},
        ],
        "api_key": {"uses_master_key": True},
    }
    body.update(overrides)
    return body


class TestWizardValidation:
    def test_organization_step(self):
        errors = validate_organization_step(
            WizardOrganization(name="G", plan="GOLD", seats=0, billing_cycle="weekly", billing_email="x")
        )
        assert errors == [
            "Organization name must be at least 2 characters",
            "Seats must be at least 1",
            "Plan must be one of: FREE, PRO, ENTERPRISE",
            "Billing cycle must be monthly or annual",
            "Billing email is invalid",
        ]

    def test_users_need_an_owner_and_fit_in_seats(self):
        users = [WizardUser(email="a@x.com", name="A"), WizardUser(email="b@x.com", name="B")]
        errors = validate_users_step(users, seats=1)
        assert "At least one OWNER is required" in errors
        assert "Number of users (2) exceeds seats (1)" in errors

    def test_duplicate_and_invalid_users(self):
        users = [
            WizardUser(email="a@x.com", name="A", role="OWNER"),
            WizardUser(email="A@x.com", name="", role="BOSS", password="short"),
        ]
        errors = validate_users_step(users, seats=5)
        assert "A@x.com: name is required" in errors
        assert "A@x.com: role must be one of OWNER, ADMIN, MEMBER" in errors
        assert "A@x.com: password must be at least 8 characters" in errors
        assert "Duplicate email: A@x.com" in errors

    def test_empty_user_list(self):
        assert validate_users_step([], seats=1) == ["At least one user is required"]

    def test_custom_key_needs_a_value(self):
        request = WizardRequest(organization=WizardOrganization(name="Globex"), users=[])
        request.api_key.uses_master_key = False
        assert validate_api_key_step(request.api_key) == [
            "API key value is required when not using the master key"
        ]

    def test_errors_are_collected_across_steps(self):
        request = WizardRequest(organization=WizardOrganization(name=""), users=[])
        assert validate_wizard(request) == ["Organization name is required", "At least one user is required"]


class TestWizardEndpoint:
    def test_creates_everything_in_one_go(self, client, db, login, super_admin, sent_emails):
        login(super_admin)
        response = client.post("/admin/organizations/wizard", json=_wizard_body())

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["organization"]["mrr"] == 125
        assert body["organization"]["arr"] == 1500
        assert [u["role"] for u in body["users"]] == ["OWNER", "MEMBER"]
        assert body["skipped"] == []

        db.expire_all()
        organization = db.query(Organization).one()
        assert organization.seats_used == 2
        assert organization.uses_master_api_key is True
        assert organization.next_billing_date is not None
        assert db.query(OrganizationMember).count() == 2

        hank = db.query(User).filter(User.email == "hank@globex.com").one()
        assert db.query(UserPreferences).filter(UserPreferences.user_id == hank.id).one().onboarding_completed
        account = db.query(EmailAccount).filter(EmailAccount.user_id == hank.id).one()
        assert account.needs_oauth_connection is True
        assert account.account_metadata == {"added_via": "org_creation_wizard"}

        billing = db.query(BillingHistory).one()
        assert billing.event_type == "subscription_created"
        assert billing.amount == 125

        subjects = sorted(e["subject"] for e in sent_emails)
        assert subjects == [
            "Complete Your Billing Setup - Globex",
            "Welcome to Globex on EaseMail!",
            "Welcome to Globex on EaseMail!",
        ]

    def test_custom_api_key_is_encrypted(self, client, db, login, super_admin):
        login(super_admin)
        body = _wizard_body(api_key={"uses_master_key": False, "key_value": "sk-globex"})

        assert client.post("/admin/organizations/wizard", json=body).status_code == 201

        db.expire_all()
        key = db.query(ApiKey).one()
        assert key.key_name == "Primary OpenAI Key"
        assert decrypt_secret(key.key_value) == "sk-globex"
        assert db.query(Organization).one().api_key_id == key.id

    def test_validation_errors_are_one_400(self, client, login, super_admin):
        login(super_admin)
        body = _wizard_body(users=[{"email": "bad", "name": "", "role": "MEMBER"}])

        response = client.post("/admin/organizations/wizard", json=body)
        assert response.status_code == 400
        assert "bad: a valid email is required" in response.json()["detail"]
        assert "At least one OWNER is required" in response.json()["detail"]

    def test_existing_users_are_skipped(self, client, make_user, login, super_admin):
        make_user("homer@globex.com")
        login(super_admin)

        body = client.post("/admin/organizations/wizard", json=_wizard_body()).json()
        assert body["skipped"] == ["homer@globex.com"]
        assert [u["email"] for u in body["users"]] == ["hank@globex.com"]

    def test_existing_owner_still_owns_the_organization(
        self, client, db, make_user, login, super_admin, sent_emails
    ):
        hank = make_user("hank@globex.com", "Hank")
        login(super_admin)

        response = client.post("/admin/organizations/wizard", json=_wizard_body())
        assert response.status_code == 201
        body = response.json()
        assert body["existingOwners"] == ["hank@globex.com"]
        assert [u["email"] for u in body["users"]] == ["homer@globex.com"]

        db.expire_all()
        organization = db.query(Organization).one()
        owners = (
            db.query(OrganizationMember)
            .filter(OrganizationMember.organization_id == organization.id, OrganizationMember.role == "OWNER")
            .all()
        )
        assert [m.user_id for m in owners] == [hank.id]
        assert organization.seats_used == 2

        to_hank = [e for e in sent_emails if e["to"] == "hank@globex.com"]
        assert to_hank
        assert all("volcano-lair" not in e["mjml"] for e in to_hank)

    def test_nothing_to_create_is_500(self, client, db, make_user, login, super_admin):
        make_user("hank@globex.com")
        make_user("homer@globex.com")
        login(super_admin)

        response = client.post("/admin/organizations/wizard", json=_wizard_body())
        assert response.status_code == 500
        db.expire_all()
        assert db.query(Organization).count() == 0

    def test_free_plan_sends_no_billing_email(self, client, login, super_admin, sent_emails):
        login(super_admin)
        body = _wizard_body()
        body["organization"]["plan"] = "FREE"

        client.post("/admin/organizations/wizard", json=body)
        assert all("Billing" not in e["subject"] for e in sent_emails)

    def test_super_admin_only(self, client, login, owner, org):
        login(owner)
        assert client.post("/admin/organizations/wizard", json=_wizard_body()).status_code == 403
        assert client.get("/admin/organizations").status_code == 403


class TestUserAdministration:
    def test_org_owner_can_list_users(self, client, login, owner, org):
        login(owner)
        response = client.get("/admin/users")

        assert response.status_code == 200
        users = response.json()["users"]
        assert users[0]["email"] == "owner@acme.com"
        assert users[0]["organization_count"] == 1

    def test_plain_user_cannot_list(self, client, login, make_user):
        login(make_user("nobody@acme.com"))
        assert client.get("/admin/users").status_code == 403

    def test_create_user_sends_welcome(self, client, login, super_admin, sent_emails):
        login(super_admin)
        response = client.post("/admin/users", json={"email": "New@Acme.com", "name": "New"})

        assert response.status_code == 201
        assert response.json()["user"]["email"] == "new@acme.com"
        assert sent_emails[0]["subject"] == "Welcome to EaseMail!"

        duplicate = client.post("/admin/users", json={"email": "new@acme.com"})
        assert duplicate.status_code == 409

    def test_short_password_is_422(self, client, login, super_admin):
        login(super_admin)
        assert client.post("/admin/users", json={"email": "a@acme.com", "password": "123"}).status_code == 422

    def test_promotion_sends_super_admin_email(self, client, login, make_user, super_admin, sent_emails):
        user = make_user("promote@acme.com")
        login(super_admin)

        response = client.patch(f"/admin/users/{user.id}", json={"is_super_admin": True})

        assert response.status_code == 200
        assert response.json()["user"]["is_super_admin"] is True
        assert sent_emails[0]["subject"] == "You're Now an EaseMail Super Administrator"

    def test_cannot_demote_self(self, client, login, super_admin):
        login(super_admin)
        response = client.patch(f"/admin/users/{super_admin.id}", json={"is_super_admin": False})
        assert response.status_code == 400

    def test_email_must_stay_unique(self, client, login, make_user, super_admin):
        make_user("taken@acme.com")
        user = make_user("me@acme.com")
        login(super_admin)

        response = client.patch(f"/admin/users/{user.id}", json={"email": "taken@acme.com"})
        assert response.status_code == 409

    def test_list_organizations_with_member_counts(self, client, login, super_admin, org):
        login(super_admin)
        organizations = client.get("/admin/organizations").json()["organizations"]
        assert [(o["name"], o["member_count"]) for o in organizations] == [("Acme", 1)]


class TestAdminPasswordReset:
    def test_sends_reset_link(self, client, login, make_user, super_admin, sent_emails):
        user = make_user("lost@acme.com", "Lost Larry")
        login(super_admin)

        response = client.post(f"/admin/users/{user.id}/reset-password")

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Password reset email sent to lost@acme.com",
            "emailId": "email-1",
        }
        assert sent_emails[0]["to"] == "lost@acme.com"
        assert sent_emails[0]["subject"] == "Your EaseMail Password Was Reset"
        assert "/reset-password?email=lost%40acme.com" in sent_emails[0]["mjml"]
        assert "Root has requested a password reset" in sent_emails[0]["mjml"]

    def test_unknown_user(self, client, login, super_admin):
        login(super_admin)
        assert client.post("/admin/users/999/reset-password").status_code == 404

    def test_super_admin_only(self, client, login, owner, org):
        login(owner)
        assert client.post(f"/admin/users/{owner.id}/reset-password").status_code == 403

    def test_unconfigured_email_is_503(self, client, login, make_user, super_admin, monkeypatch):
        user = make_user("lost@acme.com")

        async def not_configured(*args, **kwargs):
            raise email_service.EmailNotConfigured("Email service not configured")

        monkeypatch.setattr(email_service, "send_email", not_configured)
        login(super_admin)

        response = client.post(f"/admin/users/{user.id}/reset-password")
        assert response.status_code == 503
        assert response.json()["detail"] == "Email service not configured"
