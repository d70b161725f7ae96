"""
Transactional email via Resend
Templates are written in MJML (see email_templates) and compiled to HTML before sending
"""

import logging
from typing import Optional, Union
from urllib.parse import quote

import resend
from mjml import mjml_to_html

from .config import EMAIL_FROM_ADDRESS, FRONTEND_URL, RESEND_API_KEY
from .email_templates import (
    admin_password_reset_template,
    billing_setup_template,
    notification_template,
    org_admin_welcome_template,
    org_member_removal_template,
    org_member_welcome_template,
    org_owner_welcome_template,
    org_role_change_template,
    organization_invite_template,
    ownership_transfer_new_owner_template,
    ownership_transfer_previous_owner_template,
    password_reset_template,
    super_admin_welcome_template,
    welcome_email_template,
)

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


class EmailNotConfigured(Exception):
    pass


class EmailSendError(Exception):
    pass


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise EmailSendError(f"Failed to compile MJML template: {str(e)}") from e

    # mjml returns an object with .html and .errors (older versions return a dict or str)
    if isinstance(result, dict):
        if result.get("errors"):
            logger.warning(f"MJML compilation warnings: {result['errors']}")
        return result.get("html", "")
    if hasattr(result, "html"):
        if getattr(result, "errors", None):
            logger.warning(f"MJML compilation warnings: {result.errors}")
        return result.html
    return str(result)


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
) -> dict:
    """
    Send an email through Resend

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (will be compiled to HTML)
        from_address: Optional custom from address

    Returns:
        Resend response dict
    """
    if not RESEND_API_KEY:
        logger.error("❌ No email service configured - RESEND_API_KEY missing")
        raise EmailNotConfigured("Email service not configured")

    html_content = compile_mjml_to_html(mjml_content)
    recipients = [to] if isinstance(to, str) else to

    try:
        logger.info(f"📧 Sending email via Resend to: {recipients}")
        response = resend.Emails.send(
            {
                "from": from_address or EMAIL_FROM_ADDRESS,
                "to": recipients,
                "subject": subject,
                "html": html_content,
            }
        )
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise EmailSendError(f"Failed to send email: {str(e)}") from e


# ============================================
# Pre-built emails for account and organization events
# ============================================


async def send_welcome_email(to: str, user_name: str) -> dict:
    return await send_email(
        to=to, subject="Welcome to EaseMail!", mjml_content=welcome_email_template(user_name)
    )


async def send_super_admin_welcome_email(to: str, user_name: str) -> dict:
    return await send_email(
        to=to,
        subject="You're Now an EaseMail Super Administrator",
        mjml_content=super_admin_welcome_template(user_name),
    )


def build_reset_link(email: str) -> str:
    """Frontend page that starts the Supabase recovery flow for this address"""
    return f"{FRONTEND_URL}/reset-password?email={quote(email)}"


async def send_password_reset_email(to: str, reset_link: str) -> dict:
    return await send_email(
        to=to,
        subject="Reset Your EaseMail Password",
        mjml_content=password_reset_template(reset_link),
    )


async def send_admin_password_reset_email(
    to: str, user_name: str, reset_link: str, admin_name: str
) -> dict:
    return await send_email(
        to=to,
        subject="Your EaseMail Password Was Reset",
        mjml_content=admin_password_reset_template(user_name, reset_link, admin_name),
    )


async def send_organization_invite_email(
    to: str,
    invitee_name: str,
    organization_name: str,
    inviter_name: str,
    role: str,
    token: str,
) -> dict:
    invite_link = f"{FRONTEND_URL}/invite/{token}"
    return await send_email(
        to=to,
        subject=f"You're Invited to Join {organization_name}",
        mjml_content=organization_invite_template(
            invitee_name, organization_name, inviter_name, role, invite_link
        ),
    )


async def send_org_welcome_email(
    to: str,
    role: str,
    user_name: str,
    organization_name: str,
    plan: str,
    seats: int,
    inviter_name: str,
    temporary_password: Optional[str] = None,
) -> dict:
    """Role-specific welcome for users added to an organization"""
    if role == "OWNER":
        subject = f"Welcome to {organization_name} on EaseMail!"
        mjml_content = org_owner_welcome_template(
            user_name, to, organization_name, plan, seats, temporary_password
        )
    elif role == "ADMIN":
        subject = f"You're Now an Admin of {organization_name}"
        mjml_content = org_admin_welcome_template(
            user_name, to, organization_name, inviter_name, temporary_password
        )
    else:
        subject = f"Welcome to {organization_name} on EaseMail!"
        mjml_content = org_member_welcome_template(
            user_name, to, organization_name, inviter_name, temporary_password
        )
    return await send_email(to=to, subject=subject, mjml_content=mjml_content)


async def send_billing_setup_email(
    to: str,
    user_name: str,
    organization_name: str,
    plan: str,
    seats: int,
    price_per_seat: float,
    billing_cycle: str,
) -> dict:
    return await send_email(
        to=to,
        subject=f"Complete Your Billing Setup - {organization_name}",
        mjml_content=billing_setup_template(
            user_name, organization_name, plan, seats, price_per_seat, billing_cycle
        ),
    )


async def send_member_removal_email(
    to: str, user_name: str, organization_name: str, removed_by: str
) -> dict:
    return await send_email(
        to=to,
        subject=f"You've Been Removed from {organization_name}",
        mjml_content=org_member_removal_template(user_name, organization_name, removed_by),
    )


async def send_role_change_email(
    to: str, user_name: str, organization_name: str, old_role: str, new_role: str, changed_by: str
) -> dict:
    return await send_email(
        to=to,
        subject=f"Your Role in {organization_name} Has Changed",
        mjml_content=org_role_change_template(
            user_name, organization_name, old_role, new_role, changed_by
        ),
    )


async def send_ownership_transfer_emails(
    new_owner_email: str,
    new_owner_name: str,
    previous_owner_email: str,
    previous_owner_name: str,
    organization_name: str,
) -> None:
    await send_email(
        to=new_owner_email,
        subject=f"You're Now the Owner of {organization_name}",
        mjml_content=ownership_transfer_new_owner_template(
            new_owner_name, organization_name, previous_owner_name
        ),
    )
    await send_email(
        to=previous_owner_email,
        subject=f"Ownership of {organization_name} Transferred",
        mjml_content=ownership_transfer_previous_owner_template(
            previous_owner_name, organization_name, new_owner_name
        ),
    )


async def send_notification_email(
    to: Union[str, list[str]],
    title: str,
    message: str,
    action_url: Optional[str] = None,
    action_label: Optional[str] = None,
) -> dict:
    return await send_email(
        to=to,
        subject=title,
        mjml_content=notification_template(title, message, action_url, action_label),
    )


async def send_safely(coro, description: str) -> bool:
    """Await an email send; log and swallow failures for best-effort notifications"""
    try:
        await coro
        return True
    except Exception as e:
        logger.warning(f"⚠️ Failed to send {description}: {e}")
        return False
