"""
Tests for the local message store and labels.
"""

import pytest

from easemail.models import EmailAccount, Label, Message


@pytest.fixture
def inbox(db, owner):
    account = EmailAccount(user_id=owner.id, email=owner.email, provider="imap", is_primary=True)
    db.add(account)
    db.flush()
    messages = [
        Message(user_id=owner.id, account_id=account.id, subject=f"Message {i}", body=f"Body {i}")
        for i in range(3)
    ]
    messages.append(Message(user_id=owner.id, account_id=account.id, subject="Old", folder="archive"))
    messages.append(Message(user_id=owner.id, account_id=account.id, subject="Gone", is_deleted=True))
    db.add_all(messages)
    db.commit()
    return messages


class TestMessages:
    def test_list_newest_first_without_deleted(self, client, login, owner, inbox):
        login(owner)
        body = client.get("/messages").json()

        assert [m["subject"] for m in body["messages"]] == ["Old", "Message 2", "Message 1", "Message 0"]
        assert body["pagination"] == {"total": 4, "limit": 50, "offset": 0, "hasMore": False}

    def test_folder_and_paging(self, client, login, owner, inbox):
        login(owner)
        body = client.get("/messages", params={"folder": "inbox", "limit": 2}).json()

        assert [m["subject"] for m in body["messages"]] == ["Message 2", "Message 1"]
        assert body["pagination"]["hasMore"] is True

    def test_detail_includes_body_and_labels(self, client, db, login, owner, inbox):
        inbox[0].labels.append(Label(user_id=owner.id, name="Work"))
        db.commit()
        login(owner)

        message = client.get(f"/messages/{inbox[0].id}").json()
        assert message["body"] == "Body 0"
        assert message["labels"] == ["Work"]

    def test_update_flags_and_folder(self, client, login, owner, inbox):
        login(owner)
        response = client.patch(f"/messages/{inbox[0].id}", json={"is_read": True, "folder": " Archive "})

        assert response.status_code == 200
        assert response.json()["is_read"] is True
        assert response.json()["folder"] == "archive"

    def test_other_users_messages_are_hidden(self, client, login, make_user, inbox):
        login(make_user("other@acme.com"))
        assert client.get(f"/messages/{inbox[0].id}").status_code == 404
        assert client.get("/messages").json()["messages"] == []


class TestLabels:
    def test_create_list_delete(self, client, login, owner):
        login(owner)
        created = client.post("/labels", json={"name": " Work ", "color": "#1A73E8"})
        client.post("/labels", json={"name": "Receipts"})

        assert created.status_code == 201
        assert created.json()["name"] == "Work"
        assert [l["name"] for l in client.get("/labels").json()["labels"]] == ["Receipts", "Work"]

        assert client.delete(f"/labels/{created.json()['id']}").json() == {"success": True}
        assert client.delete(f"/labels/{created.json()['id']}").status_code == 404

    def test_duplicate_name_is_409(self, client, login, owner):
        login(owner)
        client.post("/labels", json={"name": "Work"})
        assert client.post("/labels", json={"name": "Work"}).status_code == 409

    def test_bad_color_is_422(self, client, login, owner):
        login(owner)
        assert client.post("/labels", json={"name": "Work", "color": "blue"}).status_code == 422
