"""
MJML Email Templates
Transactional emails for accounts and organizations, compiled to HTML by email_service
"""

from html import escape
from typing import Optional

from .config import FRONTEND_URL

THEME = {
    "primary": "#2563eb",
    "primary_dark": "#1e40af",
    "primary_light": "#dbeafe",
    "owner": "#7c3aed",
    "owner_light": "#f3e8ff",
    "background": "#f8fafc",
    "card_bg": "#ffffff",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
    "success": "#10b981",
    "warning": "#f59e0b",
    "warning_light": "#fef3c7",
    "danger": "#ef4444",
}

ROLE_LABELS = {"OWNER": "Owner", "ADMIN": "Admin", "MEMBER": "Member"}


def _e(value) -> str:
    return escape(str(value)) if value is not None else ""


def _role(role: str) -> str:
    return ROLE_LABELS.get((role or "").upper(), _e(role))


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
    accent: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""
    accent = accent or THEME["primary"]

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section background-color="#ffffff" padding="0 40px 40px 40px">
          <mj-column>
            <mj-button
              href="{_e(cta_url)}"
              background-color="{accent}"
              color="#ffffff"
              font-weight="600"
              border-radius="8px"
              padding="0"
              inner-padding="16px 36px"
              font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', 'Helvetica Neue', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="{accent}" padding="36px 20px">
          <mj-column>
            <mj-text align="center" font-size="26px" font-weight="700" color="#ffffff" padding="0">
              EaseMail
            </mj-text>
          </mj-column>
        </mj-section>

        <mj-section background-color="#ffffff" padding="40px 40px 24px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 16px 0">
              {title}
            </mj-text>

            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="0">
              © EaseMail. All rights reserved.
            </mj-text>
            <mj-text align="center" font-size="12px" color="#94a3b8" padding="12px 0 0 0">
              You're receiving this because you have an account with EaseMail.
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def _details_card(heading: str, rows: list[tuple[str, str]], accent: str, background: str) -> str:
    """Key/value card, e.g. organization details or login credentials"""
    lines = "".join(
        f"""
        <tr>
          <td style="padding: 6px 0; color: {THEME['text_muted']}; font-size: 14px;">{label}</td>
          <td style="padding: 6px 0; color: {THEME['text_primary']}; font-size: 14px; font-weight: 600; text-align: right;">{value}</td>
        </tr>"""
        for label, value in rows
    )
    return f"""
    <mj-text padding="8px 0 24px 0">
      <div style="padding: 20px; background-color: {background}; border-radius: 12px; border: 2px solid {accent};">
        <p style="margin: 0 0 12px 0; font-size: 16px; font-weight: 600; color: {THEME['text_primary']};">{heading}</p>
        <table width="100%" cellpadding="0" cellspacing="0">{lines}
        </table>
      </div>
    </mj-text>
    """


def _credentials_card(user_email: str, temporary_password: Optional[str]) -> str:
    if not temporary_password:
        return ""
    card = _details_card(
        "🔐 Your Login Credentials",
        [("Email:", _e(user_email)), ("Temporary Password:", f"<code>{_e(temporary_password)}</code>")],
        THEME["warning"],
        THEME["warning_light"],
    )
    return (
        card
        + f"""
    <mj-text font-size="13px" color="{THEME['danger']}" padding="0 0 24px 0">
      ⚠️ For security, change this temporary password right after your first login
      (Settings → Security → Change Password).
    </mj-text>
    """
    )


def _bullets(items: list[str]) -> str:
    return f"""
    <mj-text padding="0 0 16px 20px">
      {'<br/>'.join('• ' + item for item in items)}
    </mj-text>
    """


def welcome_email_template(user_name: str) -> str:
    content = f"""
    <mj-text>Hi {_e(user_name)},</mj-text>

    <mj-text>
      Welcome to EaseMail! Your account is ready. Connect a mailbox to start using
      AI-assisted email, smart rules and a unified calendar.
    </mj-text>
    {_bullets(["Connect Gmail, Outlook or any IMAP account", "Create rules to organise incoming mail", "Manage contacts and events in one place"])}
    """

    return get_base_template(
        title="Welcome to EaseMail!",
        preview_text="Your account has been created successfully",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/app/inbox",
        cta_label="Open EaseMail",
    )


def super_admin_welcome_template(user_name: str) -> str:
    content = f"""
    <mj-text>Hi {_e(user_name)},</mj-text>

    <mj-text>
      You have been granted <strong>Super Administrator</strong> access to EaseMail.
      You can now create organizations, manage every user and review platform activity.
    </mj-text>
    <mj-text color="{THEME['text_muted']}" font-size="14px">
      Super admin access is powerful. Keep two-factor authentication enabled on this account.
    </mj-text>
    """

    return get_base_template(
        title="You're Now a Super Administrator",
        preview_text="Super admin access granted",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/app/admin",
        cta_label="Open Admin Dashboard",
        accent=THEME["owner"],
    )


def password_reset_template(reset_link: str) -> str:
    content = f"""
    <mj-text>
      We received a request to reset your EaseMail password. Click the button below to choose a new one.
    </mj-text>
    <mj-text color="{THEME['text_muted']}" font-size="14px">
      This link expires in 1 hour. If you didn't request a reset, you can ignore this email.
    </mj-text>
    """

    return get_base_template(
        title="Reset Your Password",
        preview_text="Reset your EaseMail password",
        content_sections=content,
        cta_url=reset_link,
        cta_label="Reset Password",
    )


def admin_password_reset_template(user_name: str, reset_link: str, admin_name: str) -> str:
    content = f"""
    <mj-text>Hi {_e(user_name)},</mj-text>
    <mj-text>
      {_e(admin_name)} has requested a password reset for your EaseMail account.
      Use the button below to set a new password.
    </mj-text>
    <mj-text color="{THEME['text_muted']}" font-size="14px">
      If you weren't expecting this, contact your administrator.
    </mj-text>
    """

    return get_base_template(
        title="Your Password Was Reset",
        preview_text="An administrator reset your password",
        content_sections=content,
        cta_url=reset_link,
        cta_label="Set New Password",
    )


def organization_invite_template(
    invitee_name: str, organization_name: str, inviter_name: str, role: str, invite_link: str
) -> str:
    content = f"""
    <mj-text>Hi {_e(invitee_name) or 'there'},</mj-text>
    <mj-text>
      <strong>{_e(inviter_name)}</strong> has invited you to join
      <strong>{_e(organization_name)}</strong> on EaseMail as {_role(role)}.
    </mj-text>
    <mj-text color="{THEME['text_muted']}" font-size="14px">
      This invitation expires in 7 days.
    </mj-text>
    """

    return get_base_template(
        title=f"Join {_e(organization_name)}",
        preview_text=f"{_e(inviter_name)} invited you to {_e(organization_name)}",
        content_sections=content,
        cta_url=invite_link,
        cta_label="Accept Invitation",
    )


def org_owner_welcome_template(
    user_name: str,
    user_email: str,
    organization_name: str,
    plan: str,
    seats: int,
    temporary_password: Optional[str] = None,
) -> str:
    content = f"""
    <mj-text>Hi {_e(user_name)},</mj-text>
    <mj-text>
      Congratulations on creating <strong>{_e(organization_name)}</strong> on EaseMail!
      Your organization is set up and ready for your team.
    </mj-text>
    {_details_card(
        "📋 Your Organization Details",
        [("Organization:", _e(organization_name)), ("Plan:", _e(plan)), ("Seats Available:", _e(seats)), ("Your Role:", "Owner")],
        THEME["owner"],
        THEME["owner_light"],
    )}
    {_credentials_card(user_email, temporary_password)}
    <mj-text><strong>Quick start:</strong></mj-text>
    {_bullets(["Invite your team from the organization page", "Connect your email account", "Set up webhooks and API keys if you need them"])}
    """

    return get_base_template(
        title=f"Welcome to {_e(organization_name)}!",
        preview_text="You're the organization owner",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/app/organization",
        cta_label="Manage Organization",
        accent=THEME["owner"],
    )


def org_admin_welcome_template(
    user_name: str,
    user_email: str,
    organization_name: str,
    inviter_name: str,
    temporary_password: Optional[str] = None,
) -> str:
    content = f"""
    <mj-text>Hi {_e(user_name)},</mj-text>
    <mj-text>
      {_e(inviter_name)} has added you to <strong>{_e(organization_name)}</strong> as an
      <strong>Admin</strong>. You can invite members, manage roles and configure organization settings.
    </mj-text>
    {_credentials_card(user_email, temporary_password)}
    """

    return get_base_template(
        title=f"You're an Admin of {_e(organization_name)}",
        preview_text=f"Admin access to {_e(organization_name)}",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/app/organization",
        cta_label="Open Organization",
    )


def org_member_welcome_template(
    user_name: str,
    user_email: str,
    organization_name: str,
    inviter_name: str,
    temporary_password: Optional[str] = None,
) -> str:
    content = f"""
    <mj-text>Hi {_e(user_name)},</mj-text>
    <mj-text>
      {_e(inviter_name)} has added you to <strong>{_e(organization_name)}</strong> on EaseMail.
      Sign in to connect your mailbox and get started.
    </mj-text>
    {_credentials_card(user_email, temporary_password)}
    """

    return get_base_template(
        title=f"Welcome to {_e(organization_name)}!",
        preview_text=f"You've joined {_e(organization_name)}",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/login",
        cta_label="Sign In",
    )


def billing_setup_template(
    user_name: str,
    organization_name: str,
    plan: str,
    seats: int,
    price_per_seat: float,
    billing_cycle: str,
) -> str:
    monthly_total = seats * price_per_seat
    cycle_label = "Annual" if billing_cycle == "annual" else "Monthly"
    content = f"""
    <mj-text>Hi {_e(user_name)},</mj-text>
    <mj-text>
      <strong>{_e(organization_name)}</strong> is on the {_e(plan)} plan. Add a payment method to keep
      your team's access uninterrupted.
    </mj-text>
    {_details_card(
        "💳 Billing Summary",
        [
            ("Plan:", _e(plan)),
            ("Seats:", _e(seats)),
            ("Price per seat:", f"${price_per_seat:,.2f}/month"),
            ("Billing cycle:", cycle_label),
            ("Total:", f"${monthly_total:,.2f}/month"),
        ],
        THEME["primary"],
        THEME["primary_light"],
    )}
    """

    return get_base_template(
        title="Complete Your Billing Setup",
        preview_text=f"Set up billing for {_e(organization_name)}",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/app/settings/billing",
        cta_label="Set Up Billing",
    )


def org_member_removal_template(user_name: str, organization_name: str, removed_by: str) -> str:
    content = f"""
    <mj-text>Hi {_e(user_name)},</mj-text>
    <mj-text>
      {_e(removed_by)} has removed you from <strong>{_e(organization_name)}</strong>.
      You no longer have access to the organization's shared settings.
    </mj-text>
    <mj-text color="{THEME['text_muted']}" font-size="14px">
      Your personal EaseMail account and connected mailboxes are unaffected.
    </mj-text>
    """

    return get_base_template(
        title=f"Removed from {_e(organization_name)}",
        preview_text="Your organization membership has changed",
        content_sections=content,
    )


def org_role_change_template(
    user_name: str, organization_name: str, old_role: str, new_role: str, changed_by: str
) -> str:
    content = f"""
    <mj-text>Hi {_e(user_name)},</mj-text>
    <mj-text>
      {_e(changed_by)} changed your role in <strong>{_e(organization_name)}</strong>
      from {_role(old_role)} to <strong>{_role(new_role)}</strong>.
    </mj-text>
    """

    return get_base_template(
        title="Your Role Has Changed",
        preview_text=f"You're now {_role(new_role)} of {_e(organization_name)}",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/app/organization",
        cta_label="View Organization",
    )


def ownership_transfer_new_owner_template(
    user_name: str, organization_name: str, previous_owner_name: str
) -> str:
    content = f"""
    <mj-text>Hi {_e(user_name)},</mj-text>
    <mj-text>
      {_e(previous_owner_name)} has transferred ownership of <strong>{_e(organization_name)}</strong> to you.
      As owner you control billing, seats and can delete the organization.
    </mj-text>
    <mj-text color="{THEME['text_muted']}" font-size="14px">
      {_e(previous_owner_name)} remains in the organization as an Admin.
    </mj-text>
    """

    return get_base_template(
        title=f"You're Now the Owner of {_e(organization_name)}",
        preview_text="Organization ownership transferred to you",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/app/organization",
        cta_label="Manage Organization",
        accent=THEME["owner"],
    )


def ownership_transfer_previous_owner_template(
    user_name: str, organization_name: str, new_owner_name: str
) -> str:
    content = f"""
    <mj-text>Hi {_e(user_name)},</mj-text>
    <mj-text>
      You transferred ownership of <strong>{_e(organization_name)}</strong> to {_e(new_owner_name)}.
      Your role is now <strong>Admin</strong>.
    </mj-text>
    """

    return get_base_template(
        title="Ownership Transferred",
        preview_text=f"{_e(new_owner_name)} now owns {_e(organization_name)}",
        content_sections=content,
    )


def notification_template(
    title: str,
    message: str,
    action_url: Optional[str] = None,
    action_label: Optional[str] = None,
) -> str:
    content = f"""
    <mj-text>{_e(message)}</mj-text>
    """

    return get_base_template(
        title=_e(title),
        preview_text=_e(title),
        content_sections=content,
        cta_url=action_url,
        cta_label=_e(action_label or "View Details") if action_url else None,
    )
