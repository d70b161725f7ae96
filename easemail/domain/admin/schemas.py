"""Admin domain schemas - Pydantic models for the wizard and user administration

Wizard fields are loosely typed on purpose: each step is validated by
``wizard.validate_wizard`` so that problems come back as one 400 listing
every error, the way the multi-step form expects.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import validate_email


class WizardEmailAccount(BaseModel):
    email: str
    provider: Optional[str] = None


class WizardUser(BaseModel):
    email: Optional[str] = None
    name: Optional[str] = None
    role: str = "MEMBER"
    password: Optional[str] = None
    emailAccounts: list[WizardEmailAccount] = Field(default_factory=list)


class WizardOrganization(BaseModel):
    name: Optional[str] = None
    domain: Optional[str] = None
    plan: str = "PRO"
    seats: int = 1
    billing_email: Optional[str] = None
    billing_cycle: str = "monthly"


class WizardApiKey(BaseModel):
    uses_master_key: bool = True
    key_name: Optional[str] = None
    key_value: Optional[str] = None


class WizardRequest(BaseModel):
    organization: WizardOrganization
    users: list[WizardUser] = Field(default_factory=list)
    api_key: WizardApiKey = Field(default_factory=WizardApiKey)


class WizardOrganizationSummary(BaseModel):
    id: int
    name: str
    domain: Optional[str] = None
    plan: str
    seats: int
    billing_cycle: str
    mrr: float
    arr: float


class WizardCreatedUser(BaseModel):
    id: int
    email: str
    role: str


class WizardResponse(BaseModel):
    success: bool
    organization: WizardOrganizationSummary
    users: list[WizardCreatedUser]
    existingOwners: list[str] = []
    skipped: list[str] = []
    message: str


class AdminUserCreate(BaseModel):
    email: str
    name: Optional[str] = None
    password: Optional[str] = None

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v):
        if not v:
            raise ValueError("Email is required")
        return validate_email(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        if v is not None and len(v) < 8:
            raise ValueError("Password must be at least 8 characters")
        return v


class AdminUserUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    is_super_admin: Optional[bool] = None

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v):
        return validate_email(v) if v else v


class AdminUserResponse(BaseModel):
    id: int
    email: str
    name: Optional[str] = None
    is_super_admin: bool
    two_factor_enabled: bool
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None
    organization_count: int = 0
    email_account_count: int = 0


class AdminOrganizationResponse(BaseModel):
    id: int
    name: str
    slug: str
    plan: str
    seats: int
    seats_used: int
    billing_cycle: str
    mrr: float
    arr: float
    member_count: int
    created_at: Optional[datetime] = None
