"""
MJML Email Templates
Booking lifecycle and team emails using MJML for responsive, cross-client compatibility
"""

from html import escape
from typing import Optional

from .config import APP_NAME, APP_URL

THEME = {
    "primary": "#4f46e5",
    "primary_dark": "#4338ca",
    "primary_light": "#e0e7ff",
    "background": "#f8fafc",
    "card_bg": "#ffffff",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
    "success": "#16a34a",
    "warning": "#f59e0b",
    "danger": "#ef4444",
}


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
    brand_color: Optional[str] = None,
    hide_platform_branding: bool = False,
) -> str:
    """Base MJML template wrapper for all emails"""
    accent = brand_color or THEME["primary"]

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section padding="20px 0">
          <mj-column>
            <mj-button
              href="{cta_url}"
              background-color="{accent}"
              color="#ffffff"
              font-weight="600"
              border-radius="8px"
              padding="18px 40px"
              font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    footer = ""
    if not hide_platform_branding:
        footer = f"""
        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="0">
              Scheduled with <a href="{APP_URL}" style="color: #64748b; text-decoration: none;">{APP_NAME}</a>
            </mj-text>
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
        <mj-section background-color="#ffffff" padding="40px 40px 48px 40px" border-top="4px solid {accent}">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 16px 0">
              {title}
            </mj-text>

            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        {footer}
      </mj-body>
    </mjml>
    """


def _details_block(rows: list[tuple[str, Optional[str]]]) -> str:
    lines = "".join(
        f"<strong>{label}:</strong> {escape(str(value))}<br/>" for label, value in rows if value
    )
    return f"""
    <mj-text background-color="{THEME['primary_light']}" padding="16px" border-radius="8px">
      {lines}
    </mj-text>
    """


def booking_confirmation_template(
    guest_name: str,
    host_name: str,
    event_title: str,
    when: str,
    location: Optional[str],
    meeting_link: Optional[str],
    reschedule_url: str,
    cancel_url: str,
    brand_color: Optional[str] = None,
    hide_platform_branding: bool = False,
) -> str:
    """Guest confirmation for a new booking"""
    content = f"""
    <mj-text>Hi {escape(guest_name)},</mj-text>
    <mj-text>Your meeting with {escape(host_name)} is confirmed. A calendar invite is attached.</mj-text>
    {_details_block([("What", event_title), ("When", when), ("Where", location), ("Join", meeting_link)])}
    <mj-text font-size="14px" color="{THEME['text_muted']}">
      Need to make a change? <a href="{reschedule_url}">Reschedule</a> or <a href="{cancel_url}">cancel</a>.
    </mj-text>
    """
    return get_base_template(
        title="Booking confirmed",
        preview_text=f"{event_title} with {host_name} on {when}",
        content_sections=content,
        cta_url=meeting_link,
        cta_label="Join meeting" if meeting_link else None,
        brand_color=brand_color,
        hide_platform_branding=hide_platform_branding,
    )


def host_booking_notification_template(
    host_name: str,
    guest_name: str,
    guest_email: str,
    event_title: str,
    when: str,
    notes: Optional[str] = None,
) -> str:
    """Host notification for a new booking"""
    content = f"""
    <mj-text>Hi {escape(host_name)},</mj-text>
    <mj-text>{escape(guest_name)} just booked time with you.</mj-text>
    {_details_block([("Event", event_title), ("When", when), ("Guest", f"{guest_name} <{guest_email}>"), ("Notes", notes)])}
    """
    return get_base_template(
        title="New booking",
        preview_text=f"{guest_name} booked {event_title}",
        content_sections=content,
        cta_url=f"{APP_URL}/dashboard/bookings",
        cta_label="View bookings",
    )


def booking_reminder_template(
    guest_name: str,
    host_name: str,
    event_title: str,
    when: str,
    time_until: str,
    meeting_link: Optional[str] = None,
    location: Optional[str] = None,
) -> str:
    content = f"""
    <mj-text>Hi {escape(guest_name)},</mj-text>
    <mj-text>This is a reminder that your meeting with {escape(host_name)} starts in {time_until}.</mj-text>
    {_details_block([("What", event_title), ("When", when), ("Where", location), ("Join", meeting_link)])}
    """
    return get_base_template(
        title=f"Reminder: {event_title}",
        preview_text=f"Starts in {time_until}",
        content_sections=content,
        cta_url=meeting_link,
        cta_label="Join meeting" if meeting_link else None,
    )


def booking_cancelled_template(
    recipient_name: str,
    event_title: str,
    when: str,
    cancelled_by: str,
    reason: Optional[str] = None,
) -> str:
    content = f"""
    <mj-text>Hi {escape(recipient_name)},</mj-text>
    <mj-text>The following meeting was cancelled by the {cancelled_by}.</mj-text>
    {_details_block([("What", event_title), ("When", when), ("Reason", reason)])}
    """
    return get_base_template(
        title="Booking cancelled",
        preview_text=f"{event_title} on {when} was cancelled",
        content_sections=content,
    )


def booking_rescheduled_template(
    recipient_name: str,
    event_title: str,
    old_when: str,
    new_when: str,
    meeting_link: Optional[str] = None,
) -> str:
    content = f"""
    <mj-text>Hi {escape(recipient_name)},</mj-text>
    <mj-text>Your meeting has been moved to a new time.</mj-text>
    {_details_block([("What", event_title), ("Previously", old_when), ("Now", new_when), ("Join", meeting_link)])}
    """
    return get_base_template(
        title="Booking rescheduled",
        preview_text=f"{event_title} moved to {new_when}",
        content_sections=content,
    )


def team_invitation_template(inviter_name: str, team_name: str, role: str) -> str:
    content = f"""
    <mj-text>{escape(inviter_name)} invited you to join <strong>{escape(team_name)}</strong> as {role.lower()}.</mj-text>
    <mj-text color="{THEME['text_muted']}">Accept the invitation to share scheduling with your team.</mj-text>
    """
    return get_base_template(
        title=f"Join {team_name}",
        preview_text=f"{inviter_name} invited you to {team_name}",
        content_sections=content,
        cta_url=f"{APP_URL}/dashboard/teams",
        cta_label="View invitation",
    )
