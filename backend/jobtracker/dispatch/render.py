# backend/jobtracker/dispatch/render.py
"""
Turn a reminder (plus its linked contact/job) into mail content.

Public:
  render_reminder_email(reminder, recipient, app_url) -> (subject, html)
  compose_body(contact, job, user_message) -> plain-text body stored at creation
"""

from __future__ import annotations

from html import escape
from typing import Any, Optional, Tuple

from ..core.templates import TEMPLATES
from ..core.utils import format_in_timezone


def _e(value: Any) -> str:
    return escape(str(value or ""), quote=True)


def _line(label: str, value: Optional[str], href: Optional[str] = None) -> str:
    if not value:
        return ""
    if href:
        return f'<p><strong>{label}:</strong> <a href="{_e(href)}">{_e(value)}</a></p>'
    return f"<p><strong>{label}:</strong> {_e(value)}</p>"


def _contact_block(contact: Any) -> str:
    if contact is None or not contact.name:
        return ""
    return TEMPLATES["contact_block"].format(
        name=_e(contact.name),
        email_line=_line("Email", contact.email, f"mailto:{contact.email}" if contact.email else None),
        company_line=_line("Company", contact.company),
    )


def _job_block(job: Any) -> str:
    if job is None or not job.position:
        return ""
    return TEMPLATES["job_block"].format(
        position=_e(job.position),
        company_line=_line("Company", job.company),
        location_line=_line("Location", job.location),
    )


def render_reminder_email(reminder: Any, recipient: str, app_url: str) -> Tuple[str, str]:
    """
    Build the HTML message for one reminder.
    `reminder` needs: subject, user_message, scheduled_time (naive UTC), timezone,
    contact_id/contact, job_id/job.
    """
    contact = getattr(reminder, "contact", None)
    job = getattr(reminder, "job", None)
    subject = reminder.subject

    html = TEMPLATES["page"].format(
        subject=_e(subject),
        scheduled_for=_e(format_in_timezone(reminder.scheduled_time, reminder.timezone)),
        contact_block=_contact_block(contact),
        job_block=_job_block(job),
        user_message=_e(reminder.user_message),
        app_url=_e(app_url),
        contact_button=(
            TEMPLATES["contact_button"].format(app_url=_e(app_url), contact_id=int(reminder.contact_id))
            if reminder.contact_id else ""
        ),
        job_button=(
            TEMPLATES["job_button"].format(app_url=_e(app_url), job_id=int(reminder.job_id))
            if reminder.job_id else ""
        ),
        recipient=_e(recipient),
    )
    return subject, html


def compose_body(contact: Any, job: Any, user_message: str) -> str:
    if contact is not None:
        about = f"follow up with {contact.name}" + (f" ({contact.company})" if contact.company else "")
    elif job is not None:
        about = f"follow up on {job.position} at {job.company}"
    else:
        about = "general follow-up"
    return TEMPLATES["plain_body"].format(about=about, user_message=user_message).strip()


__all__ = ["render_reminder_email", "compose_body"]
