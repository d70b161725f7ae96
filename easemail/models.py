from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base

ROLE_OWNER = "OWNER"
ROLE_ADMIN = "ADMIN"
ROLE_MEMBER = "MEMBER"
ORG_ROLES = (ROLE_OWNER, ROLE_ADMIN, ROLE_MEMBER)

PLAN_FREE = "FREE"
PLAN_PRO = "PRO"
PLAN_ENTERPRISE = "ENTERPRISE"
PLANS = (PLAN_FREE, PLAN_PRO, PLAN_ENTERPRISE)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    supabase_uid = Column(String(255), unique=True, index=True, nullable=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=True)
    is_super_admin = Column(Boolean, default=False, nullable=False)
    # Two-Factor Authentication fields
    two_factor_secret = Column(String(100), nullable=True)  # Pending or active TOTP secret
    two_factor_enabled = Column(Boolean, default=False, nullable=False)
    last_login_at = Column(DateTime, nullable=True)
    login_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    preferences = relationship(
        "UserPreferences", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    backup_codes = relationship("BackupCode", back_populates="user", cascade="all, delete-orphan")
    memberships = relationship(
        "OrganizationMember",
        back_populates="user",
        cascade="all, delete-orphan",
        foreign_keys="OrganizationMember.user_id",
    )
    email_accounts = relationship(
        "EmailAccount",
        back_populates="user",
        cascade="all, delete-orphan",
        foreign_keys="EmailAccount.user_id",
    )
    email_rules = relationship("EmailRule", back_populates="user", cascade="all, delete-orphan")
    contacts = relationship("Contact", back_populates="user", cascade="all, delete-orphan")
    calendar_events = relationship(
        "CalendarEvent", back_populates="user", cascade="all, delete-orphan"
    )


class UserPreferences(Base):
    __tablename__ = "user_preferences"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    use_case = Column(String(100), nullable=True)  # personal, business, team
    ai_features_enabled = Column(Boolean, default=True, nullable=False)
    auto_categorize = Column(Boolean, default=True, nullable=False)
    notification_schedule = Column(JSON, default=dict, nullable=True)
    onboarding_completed = Column(Boolean, default=False, nullable=False)
    onboarding_completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="preferences")


class BackupCode(Base):
    __tablename__ = "backup_codes"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    code_hash = Column(String(64), nullable=False)  # SHA-256 hex digest
    used = Column(Boolean, default=False, nullable=False)
    used_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="backup_codes")


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(300), unique=True, index=True, nullable=False)
    domain = Column(String(255), nullable=True)
    plan = Column(String(20), default=PLAN_FREE, nullable=False)  # FREE, PRO, ENTERPRISE
    seats = Column(Integer, default=1, nullable=False)
    seats_used = Column(Integer, default=0, nullable=False)
    billing_email = Column(String(255), nullable=True)
    billing_cycle = Column(String(20), default="monthly", nullable=False)  # monthly, annual
    next_billing_date = Column(DateTime, nullable=True)
    mrr = Column(Float, default=0, nullable=False)
    arr = Column(Float, default=0, nullable=False)
    uses_master_api_key = Column(Boolean, default=True, nullable=False)
    api_key_id = Column(Integer, nullable=True)  # Active ApiKey row, if the org brings its own
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    members = relationship(
        "OrganizationMember", back_populates="organization", cascade="all, delete-orphan"
    )
    invites = relationship(
        "OrganizationInvite", back_populates="organization", cascade="all, delete-orphan"
    )
    webhooks = relationship("Webhook", back_populates="organization", cascade="all, delete-orphan")
    api_keys = relationship("ApiKey", back_populates="organization", cascade="all, delete-orphan")
    audit_logs = relationship("AuditLog", back_populates="organization", cascade="all, delete-orphan")
    billing_history = relationship(
        "BillingHistory", back_populates="organization", cascade="all, delete-orphan"
    )


class OrganizationMember(Base):
    __tablename__ = "organization_members"
    __table_args__ = (UniqueConstraint("organization_id", "user_id", name="uq_org_member"),)

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(
        Integer, ForeignKey("organizations.id", ondelete="CASCADE"), index=True, nullable=False
    )
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    role = Column(String(20), default=ROLE_MEMBER, nullable=False)  # OWNER, ADMIN, MEMBER
    added_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    joined_at = Column(DateTime, server_default=func.now())

    organization = relationship("Organization", back_populates="members")
    user = relationship("User", back_populates="memberships", foreign_keys=[user_id])


class OrganizationInvite(Base):
    __tablename__ = "organization_invites"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(
        Integer, ForeignKey("organizations.id", ondelete="CASCADE"), index=True, nullable=False
    )
    email = Column(String(255), index=True, nullable=False)
    role = Column(String(20), default=ROLE_MEMBER, nullable=False)
    token = Column(String(100), unique=True, index=True, nullable=False)
    invited_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    expires_at = Column(DateTime, nullable=False)
    accepted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    organization = relationship("Organization", back_populates="invites")
    inviter = relationship("User", foreign_keys=[invited_by])


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(
        Integer, ForeignKey("organizations.id", ondelete="CASCADE"), index=True, nullable=True
    )
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    action = Column(String(50), index=True, nullable=False)
    details = Column(JSON, nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(500), nullable=True)
    timestamp = Column(DateTime, server_default=func.now(), index=True)

    organization = relationship("Organization", back_populates="audit_logs")
    user = relationship("User")


class BillingHistory(Base):
    __tablename__ = "billing_history"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(
        Integer, ForeignKey("organizations.id", ondelete="CASCADE"), index=True, nullable=False
    )
    event_type = Column(String(50), nullable=False)  # subscription_created, plan_changed, ...
    new_value = Column(JSON, nullable=True)
    amount = Column(Float, default=0, nullable=False)
    triggered_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    organization = relationship("Organization", back_populates="billing_history")


class ApiKey(Base):
    __tablename__ = "api_keys"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(
        Integer, ForeignKey("organizations.id", ondelete="CASCADE"), index=True, nullable=False
    )
    key_name = Column(String(255), nullable=False)
    key_value = Column(Text, nullable=False)  # Fernet ciphertext, never the raw key
    is_active = Column(Boolean, default=True, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    last_used_at = Column(DateTime, nullable=True)
    usage_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    organization = relationship("Organization", back_populates="api_keys")


class Webhook(Base):
    __tablename__ = "webhooks"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(
        Integer, ForeignKey("organizations.id", ondelete="CASCADE"), index=True, nullable=False
    )
    name = Column(String(255), nullable=False)
    url = Column(String(2048), nullable=False)
    events = Column(JSON, default=list, nullable=False)  # e.g. ["member.added", "plan.changed"]
    secret = Column(String(255), nullable=True)  # HMAC signing secret
    is_active = Column(Boolean, default=True, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    organization = relationship("Organization", back_populates="webhooks")
    deliveries = relationship(
        "WebhookDelivery", back_populates="webhook", cascade="all, delete-orphan"
    )


class WebhookDelivery(Base):
    __tablename__ = "webhook_deliveries"

    id = Column(Integer, primary_key=True, index=True)
    webhook_id = Column(
        Integer, ForeignKey("webhooks.id", ondelete="CASCADE"), index=True, nullable=False
    )
    event_type = Column(String(100), index=True, nullable=False)
    payload = Column(JSON, nullable=False)
    response_status = Column(Integer, nullable=True)  # None = not attempted, 0 = connection error
    response_body = Column(Text, nullable=True)
    delivered_at = Column(DateTime, nullable=True)
    retry_count = Column(Integer, default=0, nullable=False)
    next_retry_at = Column(DateTime, index=True, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), index=True)

    webhook = relationship("Webhook", back_populates="deliveries")


class EmailAccount(Base):
    __tablename__ = "email_accounts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    email = Column(String(255), nullable=False)
    provider = Column(String(50), nullable=True)  # google, microsoft, imap
    is_primary = Column(Boolean, default=False, nullable=False)
    grant_id = Column(String(255), nullable=True)  # Provider grant once OAuth completes
    needs_oauth_connection = Column(Boolean, default=False, nullable=False)
    added_by_admin = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    # "metadata" is reserved on declarative classes
    account_metadata = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="email_accounts", foreign_keys=[user_id])
    messages = relationship("Message", back_populates="account", cascade="all, delete-orphan")


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    account_id = Column(
        Integer, ForeignKey("email_accounts.id", ondelete="CASCADE"), index=True, nullable=False
    )
    from_email = Column(String(255), nullable=True)
    from_name = Column(String(255), nullable=True)
    to = Column(JSON, default=list, nullable=True)  # list of recipient addresses
    subject = Column(String(1000), nullable=True)
    body = Column(Text, nullable=True)
    snippet = Column(String(500), nullable=True)
    folder = Column(String(100), default="inbox", index=True, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    is_starred = Column(Boolean, default=False, nullable=False)
    is_deleted = Column(Boolean, default=False, nullable=False)
    has_attachments = Column(Boolean, default=False, nullable=False)
    received_at = Column(DateTime, server_default=func.now(), index=True)

    account = relationship("EmailAccount", back_populates="messages")
    labels = relationship("Label", secondary="message_labels", back_populates="messages")


class Label(Base):
    __tablename__ = "labels"
    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_label_user_name"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    name = Column(String(100), nullable=False)
    color = Column(String(7), nullable=True)  # e.g., #RRGGBB
    created_at = Column(DateTime, server_default=func.now())

    messages = relationship("Message", secondary="message_labels", back_populates="labels")


class MessageLabel(Base):
    __tablename__ = "message_labels"
    __table_args__ = (UniqueConstraint("message_id", "label_id", name="uq_message_label"),)

    id = Column(Integer, primary_key=True, index=True)
    message_id = Column(Integer, ForeignKey("messages.id", ondelete="CASCADE"), nullable=False)
    label_id = Column(Integer, ForeignKey("labels.id", ondelete="CASCADE"), nullable=False)


class EmailRule(Base):
    __tablename__ = "email_rules"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    conditions = Column(JSON, nullable=False)  # [{"field", "operator", "value"}]
    actions = Column(JSON, nullable=False)  # [{"type", "value"}]
    enabled = Column(Boolean, default=True, nullable=False)
    priority = Column(Integer, default=0, nullable=False)  # Lower runs first
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="email_rules")


class Contact(Base):
    __tablename__ = "contacts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    given_name = Column(String(255), nullable=True)
    surname = Column(String(255), nullable=True)
    emails = Column(JSON, default=list, nullable=False)  # [{"email", "type"}]
    phone_numbers = Column(JSON, default=list, nullable=True)  # [{"number", "type"}]
    company_name = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="contacts")


class CalendarEvent(Base):
    __tablename__ = "calendar_events"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    location = Column(String(500), nullable=True)
    start_time = Column(DateTime, index=True, nullable=False)
    end_time = Column(DateTime, nullable=False)
    rsvp_status = Column(String(10), nullable=True)  # yes, no, maybe
    organizer_email = Column(String(255), nullable=True)
    participants = Column(JSON, default=list, nullable=True)  # [{"email", "name", "status"}]
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="calendar_events")


class UsageTracking(Base):
    __tablename__ = "usage_tracking"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    feature = Column(String(100), index=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
