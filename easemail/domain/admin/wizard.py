"""Step validation for the organization creation wizard

Steps: organization, users, api_key, review. Review is client-side only.
"""

from ...models import ORG_ROLES, PLANS, ROLE_OWNER
from ...shared.validators import is_valid_email
from .schemas import WizardApiKey, WizardOrganization, WizardRequest, WizardUser

WIZARD_STEPS = ("organization", "users", "api_key", "review")
BILLING_CYCLES = ("monthly", "annual")
MIN_PASSWORD_LENGTH = 8


def validate_organization_step(organization: WizardOrganization) -> list[str]:
    errors = []
    name = (organization.name or "").strip()
    if not name:
        errors.append("Organization name is required")
    elif len(name) < 2:
        errors.append("Organization name must be at least 2 characters")
    if organization.seats < 1:
        errors.append("Seats must be at least 1")
    if organization.plan not in PLANS:
        errors.append(f"Plan must be one of: {', '.join(PLANS)}")
    if organization.billing_cycle not in BILLING_CYCLES:
        errors.append("Billing cycle must be monthly or annual")
    if organization.billing_email and not is_valid_email(organization.billing_email):
        errors.append("Billing email is invalid")
    return errors


def validate_users_step(users: list[WizardUser], seats: int) -> list[str]:
    if not users:
        return ["At least one user is required"]

    errors = []
    seen = set()
    for index, user in enumerate(users, start=1):
        label = user.email or f"User {index}"
        if not is_valid_email(user.email):
            errors.append(f"{label}: a valid email is required")
        if not (user.name or "").strip():
            errors.append(f"{label}: name is required")
        if user.role not in ORG_ROLES:
            errors.append(f"{label}: role must be one of {', '.join(ORG_ROLES)}")
        if user.password is not None and len(user.password) < MIN_PASSWORD_LENGTH:
            errors.append(f"{label}: password must be at least {MIN_PASSWORD_LENGTH} characters")
        for account in user.emailAccounts:
            if not is_valid_email(account.email):
                errors.append(f"{label}: email account {account.email} is invalid")

        key = (user.email or "").strip().lower()
        if key and key in seen:
            errors.append(f"Duplicate email: {user.email}")
        seen.add(key)

    if not any(u.role == ROLE_OWNER for u in users):
        errors.append("At least one OWNER is required")
    if len(users) > seats:
        errors.append(f"Number of users ({len(users)}) exceeds seats ({seats})")
    return errors


def validate_api_key_step(api_key: WizardApiKey) -> list[str]:
    if not api_key.uses_master_key and not (api_key.key_value or "").strip():
        return ["API key value is required when not using the master key"]
    return []


def validate_wizard(data: WizardRequest) -> list[str]:
    """Every error across all steps, in step order"""
    return (
        validate_organization_step(data.organization)
        + validate_users_step(data.users, data.organization.seats)
        + validate_api_key_step(data.api_key)
    )
