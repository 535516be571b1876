"""
Email Service using Resend
Provides booking lifecycle emails using MJML templates and .ics calendar invites
"""

import base64
import logging
from datetime import datetime
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from .config import APP_NAME, APP_URL, EMAIL_FROM_ADDRESS, RESEND_API_KEY
from .email_templates import (
    booking_cancelled_template,
    booking_confirmation_template,
    booking_reminder_template,
    booking_rescheduled_template,
    host_booking_notification_template,
    team_invitation_template,
)
from .models import Booking, EventType, User
from .shared.dates import get_zone, utc_now

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
        # mjml_to_html returns a mapping with 'html' and 'errors' keys
        if isinstance(result, dict):
            if result.get("errors"):
                logger.warning(f"MJML compilation warnings: {result['errors']}")
            return result.get("html", "")
        return str(result)
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise Exception(f"Failed to compile MJML template: {str(e)}") from e


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
    attachments: Optional[list[dict]] = None,
    reply_to: Optional[str] = None,
) -> dict:
    """
    Send an email through Resend

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (will be compiled to HTML)
        from_address: Optional custom from address
        attachments: Optional list of {"filename", "content"} dicts, content as bytes or str
        reply_to: Optional reply-to address

    Returns:
        Send response dict
    """
    if not RESEND_API_KEY:
        logger.error("❌ No email service configured - RESEND_API_KEY missing")
        raise Exception("Email service not configured")

    html_content = compile_mjml_to_html(mjml_content)
    recipients = [to] if isinstance(to, str) else to

    email_data = {
        "from": from_address or EMAIL_FROM_ADDRESS,
        "to": recipients,
        "subject": subject,
        "html": html_content,
    }
    if reply_to:
        email_data["reply_to"] = reply_to
    if attachments:
        email_data["attachments"] = [
            {
                "filename": attachment["filename"],
                "content": base64.b64encode(
                    attachment["content"]
                    if isinstance(attachment["content"], bytes)
                    else attachment["content"].encode()
                ).decode(),
            }
            for attachment in attachments
        ]

    try:
        logger.info(f"📧 Sending email via Resend to: {recipients}")
        response = resend.Emails.send(email_data)
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise Exception(f"Failed to send email: {str(e)}") from e


# ============================================================================
# FORMATTING HELPERS
# ============================================================================


def format_booking_time(value: datetime, tz_name: Optional[str], time_format: str = "12h") -> str:
    """Human-readable start time in the recipient's timezone"""
    try:
        zone = get_zone(tz_name)
    except ValueError:
        zone = get_zone("UTC")
    local = value.replace(tzinfo=get_zone("UTC")).astimezone(zone)
    clock = local.strftime("%I:%M %p").lstrip("0") if time_format == "12h" else local.strftime("%H:%M")
    return f"{local.strftime('%A, %B')} {local.day}, {local.year} at {clock} ({zone.key})"


def format_time_until(minutes: int) -> str:
    if minutes >= 1440 and minutes % 1440 == 0:
        days = minutes // 1440
        return f"{days} day{'s' if days != 1 else ''}"
    if minutes >= 60 and minutes % 60 == 0:
        hours = minutes // 60
        return f"{hours} hour{'s' if hours != 1 else ''}"
    return f"{minutes} minute{'s' if minutes != 1 else ''}"


def _ics_escape(value: str) -> str:
    return (
        value.replace("\\", "\\\\").replace(";", "\\;").replace(",", "\\,").replace("\n", "\\n")
    )


def _ics_time(value: datetime) -> str:
    return value.strftime("%Y%m%dT%H%M%SZ")


def generate_ics(booking: Booking, event_type: EventType, host: User) -> str:
    """Build an iCalendar REQUEST invite with a 15 minute alarm"""
    location = booking.meeting_link or booking.location or ""
    description = event_type.description or ""
    if booking.meeting_link:
        description = f"{description}\n\nJoin: {booking.meeting_link}".strip()

    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:-//{APP_NAME}//Booking//EN",
        "CALSCALE:GREGORIAN",
        "METHOD:REQUEST",
        "BEGIN:VEVENT",
        f"UID:{booking.id}@{APP_NAME.lower()}",
        f"DTSTAMP:{_ics_time(utc_now())}",
        f"DTSTART:{_ics_time(booking.start_time)}",
        f"DTEND:{_ics_time(booking.end_time)}",
        f"SUMMARY:{_ics_escape(f'{event_type.title} with {host.name or host.email}')}",
        f"DESCRIPTION:{_ics_escape(description)}",
        f"LOCATION:{_ics_escape(location)}",
        f"ORGANIZER;CN={_ics_escape(host.name or host.email)}:mailto:{host.email}",
        f"ATTENDEE;CN={_ics_escape(booking.guest_name)};RSVP=TRUE:mailto:{booking.guest_email}",
        "STATUS:CONFIRMED",
        "SEQUENCE:0",
        "BEGIN:VALARM",
        "TRIGGER:-PT15M",
        "ACTION:DISPLAY",
        "DESCRIPTION:Reminder",
        "END:VALARM",
        "END:VEVENT",
        "END:VCALENDAR",
    ]
    return "\r\n".join(lines) + "\r\n"


# ============================================================================
# BOOKING EMAILS
# ============================================================================


async def send_booking_confirmation(booking: Booking) -> dict:
    """Send the guest confirmation with an .ics invite attached"""
    event_type = booking.event_type
    host = booking.user
    when = format_booking_time(booking.start_time, booking.guest_timezone)

    mjml_content = booking_confirmation_template(
        guest_name=booking.guest_name,
        host_name=host.name or host.email,
        event_title=event_type.title,
        when=when,
        location=booking.location,
        meeting_link=booking.meeting_link,
        reschedule_url=f"{APP_URL}/reschedule/{booking.reschedule_token}",
        cancel_url=f"{APP_URL}/cancel/{booking.cancel_token}",
        brand_color=host.brand_color if host.email_branding_enabled else None,
        hide_platform_branding=bool(host.is_premium and host.hide_platform_branding),
    )
    return await send_email(
        to=booking.guest_email,
        subject=f"Confirmed: {event_type.title} with {host.name or host.email}",
        mjml_content=mjml_content,
        attachments=[{"filename": "invite.ics", "content": generate_ics(booking, event_type, host)}],
        reply_to=host.email,
    )


async def send_host_notification(booking: Booking) -> dict:
    host = booking.user
    mjml_content = host_booking_notification_template(
        host_name=host.name or host.email,
        guest_name=booking.guest_name,
        guest_email=booking.guest_email,
        event_title=booking.event_type.title,
        when=format_booking_time(booking.start_time, host.timezone, host.time_format),
        notes=booking.notes,
    )
    return await send_email(
        to=host.email,
        subject=f"New booking: {booking.event_type.title} with {booking.guest_name}",
        mjml_content=mjml_content,
        reply_to=booking.guest_email,
    )


async def send_reminder_email(booking: Booking, minutes_before: int) -> dict:
    host = booking.user
    mjml_content = booking_reminder_template(
        guest_name=booking.guest_name,
        host_name=host.name or host.email,
        event_title=booking.event_type.title,
        when=format_booking_time(booking.start_time, booking.guest_timezone),
        time_until=format_time_until(minutes_before),
        meeting_link=booking.meeting_link,
        location=booking.location,
    )
    return await send_email(
        to=booking.guest_email,
        subject=f"Reminder: {booking.event_type.title} in {format_time_until(minutes_before)}",
        mjml_content=mjml_content,
    )


async def send_cancellation_email(booking: Booking) -> dict:
    """Notify whichever party did not cancel"""
    host = booking.user
    cancelled_by_host = booking.cancelled_by == "host"
    recipient_email = booking.guest_email if cancelled_by_host else host.email
    recipient_name = booking.guest_name if cancelled_by_host else (host.name or host.email)
    recipient_tz = booking.guest_timezone if cancelled_by_host else host.timezone

    mjml_content = booking_cancelled_template(
        recipient_name=recipient_name,
        event_title=booking.event_type.title,
        when=format_booking_time(booking.start_time, recipient_tz),
        cancelled_by="host" if cancelled_by_host else "guest",
        reason=booking.cancellation_reason,
    )
    return await send_email(
        to=recipient_email,
        subject=f"Cancelled: {booking.event_type.title}",
        mjml_content=mjml_content,
    )


async def send_reschedule_email(booking: Booking, previous_start: datetime) -> dict:
    host = booking.user
    mjml_content = booking_rescheduled_template(
        recipient_name=booking.guest_name,
        event_title=booking.event_type.title,
        old_when=format_booking_time(previous_start, booking.guest_timezone),
        new_when=format_booking_time(booking.start_time, booking.guest_timezone),
        meeting_link=booking.meeting_link,
    )
    return await send_email(
        to=[booking.guest_email, host.email],
        subject=f"Rescheduled: {booking.event_type.title}",
        mjml_content=mjml_content,
        attachments=[{"filename": "invite.ics", "content": generate_ics(booking, booking.event_type, host)}],
    )


async def send_team_invitation(to: str, inviter_name: str, team_name: str, role: str) -> dict:
    return await send_email(
        to=to,
        subject=f"You've been invited to join {team_name}",
        mjml_content=team_invitation_template(inviter_name, team_name, role),
    )
