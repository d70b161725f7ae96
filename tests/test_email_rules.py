"""
Tests for email rules: condition matching, actions and batch processing.
"""

import pytest

from easemail.domain.email_rules.engine import apply_actions, matches_condition, matches_rule
from easemail.models import EmailAccount, EmailRule, Label, Message


@pytest.fixture
def mailbox(db, owner):
    account = EmailAccount(user_id=owner.id, email=owner.email, provider="google", is_primary=True)
    db.add(account)
    db.commit()
    return account


def _message(db, account, **fields):
    defaults = {
        "user_id": account.user_id,
        "account_id": account.id,
        "from_email": "billing@vendor.com",
        "to": ["owner@acme.com"],
        "subject": "Your invoice",
        "body": "Amount due: $20",
        "folder": "inbox",
    }
    defaults.update(fields)
    message = Message(**defaults)
    db.add(message)
    db.commit()
    return message


def _rule(db, user, name="Invoices", conditions=None, actions=None, priority=0, enabled=True):
    rule = EmailRule(
        user_id=user.id,
        name=name,
        conditions=conditions or [{"field": "subject", "operator": "contains", "value": "invoice"}],
        actions=actions or [{"type": "mark_as_read"}],
        priority=priority,
        enabled=enabled,
    )
    db.add(rule)
    db.commit()
    return rule


class TestConditions:
    @pytest.mark.parametrize(
        "operator,value,expected",
        [
            ("contains", "INVOICE", True),
            ("equals", "your invoice", True),
            ("equals", "invoice", False),
            ("starts_with", "your", True),
            ("ends_with", "invoice", True),
            ("not_contains", "receipt", True),
            ("not_contains", "invoice", False),
            ("regex", "invoice", False),
        ],
    )
    def test_subject_operators(self, operator, value, expected):
        message = Message(subject="Your Invoice")
        condition = {"field": "subject", "operator": operator, "value": value}
        assert matches_condition(message, condition) is expected

    def test_to_joins_recipients(self):
        message = Message(to=["a@acme.com", "b@acme.com"])
        assert matches_condition(message, {"field": "to", "operator": "contains", "value": "b@acme"})

    def test_body_falls_back_to_snippet(self):
        message = Message(body=None, snippet="quarterly report attached")
        assert matches_condition(message, {"field": "body", "operator": "contains", "value": "report"})

    def test_has_attachment_ignores_value(self):
        condition = {"field": "has_attachment", "operator": "equals", "value": "whatever"}
        assert matches_condition(Message(has_attachments=True), condition)
        assert not matches_condition(Message(has_attachments=False), condition)

    def test_unknown_field_never_matches(self):
        assert not matches_condition(Message(subject="x"), {"field": "cc", "operator": "contains", "value": "x"})

    def test_all_conditions_must_match(self):
        rule = EmailRule(
            conditions=[
                {"field": "from", "operator": "ends_with", "value": "@vendor.com"},
                {"field": "subject", "operator": "contains", "value": "invoice"},
            ]
        )
        assert matches_rule(Message(from_email="x@vendor.com", subject="Invoice 4"), rule)
        assert not matches_rule(Message(from_email="x@vendor.com", subject="Hello"), rule)


class TestActions:
    def test_action_results(self, db, owner, mailbox):
        message = _message(db, mailbox)
        rule = _rule(
            db,
            owner,
            actions=[
                {"type": "mark_as_read"},
                {"type": "mark_as_starred"},
                {"type": "move_to_folder", "value": "finance"},
            ],
        )

        assert apply_actions(db, message, rule) == ["Marked as read", "Starred", "Moved to finance"]
        assert message.is_read and message.is_starred
        assert message.folder == "finance"

    def test_delete_moves_to_trash(self, db, owner, mailbox):
        message = _message(db, mailbox)
        rule = _rule(db, owner, actions=[{"type": "delete"}])

        assert apply_actions(db, message, rule) == ["Deleted"]
        assert message.is_deleted is True
        assert message.folder == "trash"

    def test_apply_label_needs_existing_label(self, db, owner, mailbox):
        message = _message(db, mailbox)
        rule = _rule(db, owner, actions=[{"type": "apply_label", "value": "Finance"}])

        assert apply_actions(db, message, rule) == []

        db.add(Label(user_id=owner.id, name="Finance"))
        db.commit()
        assert apply_actions(db, message, rule) == ["Applied label: Finance"]
        assert [label.name for label in message.labels] == ["Finance"]


class TestRuleApi:
    def test_create_and_list_by_priority(self, client, login, owner):
        login(owner)
        rule = {
            "conditions": [{"field": "from", "operator": "contains", "value": "news"}],
            "actions": [{"type": "archive"}],
        }
        client.post("/email-rules", json={"name": "Later", "priority": 5, **rule})
        created = client.post("/email-rules", json={"name": "First", "priority": 1, **rule})

        assert created.status_code == 201
        names = [r["name"] for r in client.get("/email-rules").json()["rules"]]
        assert names == ["First", "Later"]

    @pytest.mark.parametrize(
        "body",
        [
            {"name": "x", "conditions": [], "actions": [{"type": "archive"}]},
            {"name": "x", "conditions": [{"field": "subject", "operator": "contains", "value": "a"}], "actions": []},
            {"name": "x", "conditions": [{"field": "cc", "operator": "contains", "value": "a"}], "actions": [{"type": "archive"}]},
            {"name": "x", "conditions": [{"field": "subject", "operator": "contains", "value": "a"}], "actions": [{"type": "move_to_folder"}]},
            {"name": "x", "conditions": [{"field": "subject", "operator": "contains", "value": "a"}], "actions": [{"type": "forward"}]},
        ],
    )
    def test_invalid_rules_are_422(self, client, login, owner, body):
        login(owner)
        assert client.post("/email-rules", json=body).status_code == 422

    def test_rules_are_private(self, client, db, login, make_user, owner):
        rule = _rule(db, owner)
        login(make_user("other@acme.com"))

        assert client.get(f"/email-rules/{rule.id}").status_code == 404
        assert client.delete(f"/email-rules/{rule.id}").status_code == 404

    def test_update_toggles_enabled(self, client, db, login, owner):
        rule = _rule(db, owner)
        login(owner)

        response = client.patch(f"/email-rules/{rule.id}", json={"enabled": False})
        assert response.status_code == 200
        assert response.json()["rule"]["enabled"] is False


class TestProcessRules:
    def test_requires_connected_account(self, client, db, login, owner):
        _rule(db, owner)
        login(owner)

        response = client.post("/email-rules/process")
        assert response.status_code == 400
        assert response.json()["detail"] == "No email account connected"

    def test_no_enabled_rules(self, client, db, login, owner, mailbox):
        _rule(db, owner, enabled=False)
        login(owner)

        response = client.post("/email-rules/process")
        assert response.json() == {"message": "No active rules to process", "processed": 0, "results": []}

    def test_recent_inbox_is_processed(self, client, db, login, owner, mailbox):
        invoice = _message(db, mailbox)
        _message(db, mailbox, subject="Lunch?")
        _message(db, mailbox, subject="Old invoice", folder="archive")
        _rule(db, owner, actions=[{"type": "mark_as_read"}, {"type": "archive"}])
        login(owner)

        response = client.post("/email-rules/process")

        assert response.status_code == 200
        body = response.json()
        assert body["processed"] == 1
        assert body["results"] == [
            {
                "messageId": invoice.id,
                "subject": "Your invoice",
                "rule": "Invoices",
                "actions": ["Marked as read", "Archived"],
            }
        ]
        db.expire_all()
        stored = db.query(Message).filter(Message.id == invoice.id).one()
        assert stored.is_read is True
        assert stored.folder == "archive"

    def test_every_matching_rule_applies_in_priority_order(self, client, db, login, owner, mailbox):
        _message(db, mailbox)
        _rule(db, owner, name="Star", actions=[{"type": "mark_as_starred"}], priority=2)
        _rule(db, owner, name="Read", actions=[{"type": "mark_as_read"}], priority=1)
        login(owner)

        body = client.post("/email-rules/process").json()
        assert body["processed"] == 2
        assert [r["rule"] for r in body["results"]] == ["Read", "Star"]

    def test_explicit_message_ids(self, client, db, login, owner, mailbox):
        _message(db, mailbox)
        archived = _message(db, mailbox, folder="archive")
        _rule(db, owner)
        login(owner)

        body = client.post("/email-rules/process", json={"messageIds": [archived.id]}).json()
        assert [r["messageId"] for r in body["results"]] == [archived.id]
