"""
Personalisation placeholders for composed emails, e.g. "Hi {{firstName}}"
"""

import re
from datetime import datetime
from typing import Optional

PLACEHOLDER_PATTERN = re.compile(r"\{\{([^}]+)\}\}")

DEFAULT_VARIABLES = [
    {"key": "{{firstName}}", "label": "First Name", "description": "Recipient's first name"},
    {"key": "{{lastName}}", "label": "Last Name", "description": "Recipient's last name"},
    {"key": "{{fullName}}", "label": "Full Name", "description": "Recipient's full name"},
    {"key": "{{email}}", "label": "Email", "description": "Recipient's email address"},
    {"key": "{{company}}", "label": "Company", "description": "Recipient's company name"},
    {"key": "{{date}}", "label": "Current Date", "description": "Today's date"},
    {"key": "{{time}}", "label": "Current Time", "description": "Current time"},
]


def replace_template_variables(text: str, variables: dict[str, Optional[str]]) -> str:
    """Substitute {{key}} for every variable with a non-empty value; others are left in place"""
    result = text
    for key, value in variables.items():
        if value:
            result = result.replace("{{" + key + "}}", str(value))
    return result


def has_template_variables(text: str) -> bool:
    return bool(PLACEHOLDER_PATTERN.search(text or ""))


def extract_variables(text: str) -> list[str]:
    """Unique placeholders in order of first appearance"""
    seen: list[str] = []
    for match in PLACEHOLDER_PATTERN.finditer(text or ""):
        placeholder = match.group(0)
        if placeholder not in seen:
            seen.append(placeholder)
    return seen


def _clock(now: Optional[datetime]) -> dict[str, str]:
    now = now or datetime.now()
    return {"date": now.strftime("%m/%d/%Y"), "time": now.strftime("%I:%M:%S %p")}


def variables_from_contact(
    email: str,
    given_name: Optional[str],
    surname: Optional[str],
    company_name: Optional[str],
    now: Optional[datetime] = None,
) -> dict[str, str]:
    full_name = f"{given_name or ''} {surname or ''}".strip() or email
    return {
        "firstName": given_name or "",
        "lastName": surname or "",
        "fullName": full_name,
        "email": email,
        "company": company_name or "",
        **_clock(now),
    }


def variables_from_address(email: str, now: Optional[datetime] = None) -> dict[str, str]:
    """Best-effort names when the recipient is not a saved contact (jane.doe@acme.com -> jane / doe / acme.com)"""
    local, _, domain = email.partition("@")
    name = re.sub(r"[._-]", " ", local)
    parts = name.split(" ")
    return {
        "firstName": parts[0] if parts else "",
        "lastName": " ".join(parts[1:]),
        "fullName": name or email,
        "email": email,
        "company": domain,
        **_clock(now),
    }
