"""Shared pytest fixtures for the API test suite.

The app runs against an in-memory SQLite database with Redis switched off:
rate limits fall back to process memory, the cache misses, and webhook
deliveries run inline instead of through the ARQ worker. Outgoing email is
captured instead of sent.

Fixture overview
----------------
db            - session on a freshly created schema
client        - TestClient for the app
login         - make a user the authenticated caller
make_user     - insert a user
make_org      - insert an organization with members
sent_emails   - list of captured outgoing emails
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("RESEND_API_KEY", "re_test")

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from easemail import email_service, jobs, rate_limiter
from easemail.auth import get_current_user
from easemail.cache import cache
from easemail.database import Base, SessionLocal, engine, get_db
from easemail.main import app
from easemail.models import ROLE_OWNER, Organization, OrganizationMember, User


def _redis_down():
    raise rate_limiter.RedisUnavailable("Redis disabled in tests")


@pytest.fixture(autouse=True)
def no_redis(monkeypatch):
    monkeypatch.setattr(rate_limiter, "get_redis_client", _redis_down)
    monkeypatch.setattr(jobs, "get_redis_client", _redis_down)
    monkeypatch.setattr(cache, "redis_client", None)
    rate_limiter.memory_cache.clear()
    yield
    rate_limiter.memory_cache.clear()


@pytest.fixture(autouse=True)
def sent_emails(monkeypatch):
    sent = []

    async def fake_send_email(to, subject, mjml_content, from_address=None):
        sent.append({"to": to, "subject": subject, "mjml": mjml_content})
        return {"id": f"email-{len(sent)}"}

    monkeypatch.setattr(email_service, "send_email", fake_send_email)
    return sent


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def login():
    """login(user) makes user the caller for every following request"""

    def _login(user: User):
        user_id = user.id

        def current_user(session: Session = Depends(get_db)) -> User:
            return session.query(User).filter(User.id == user_id).first()

        app.dependency_overrides[get_current_user] = current_user
        return user

    yield _login
    app.dependency_overrides.pop(get_current_user, None)


@pytest.fixture
def make_user(db):
    def _make_user(email: str, name: str = None, is_super_admin: bool = False) -> User:
        user = User(email=email, name=name, is_super_admin=is_super_admin)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_org(db):
    def _make_org(name: str, members: list[tuple[User, str]], seats: int = 5, plan: str = "PRO") -> Organization:
        organization = Organization(
            name=name,
            slug=name.lower().replace(" ", "-"),
            plan=plan,
            seats=seats,
            seats_used=len(members),
        )
        db.add(organization)
        db.flush()
        for user, role in members:
            db.add(OrganizationMember(organization_id=organization.id, user_id=user.id, role=role))
        db.commit()
        db.refresh(organization)
        return organization

    return _make_org


@pytest.fixture
def owner(make_user):
    return make_user("owner@acme.com", "Olivia Owner")


@pytest.fixture
def org(make_org, owner):
    return make_org("Acme", [(owner, ROLE_OWNER)])
