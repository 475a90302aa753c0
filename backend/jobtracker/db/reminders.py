# backend/jobtracker/db/reminders.py
"""
Reminder store: validation, queries and the status lifecycle.

Lifecycle:
    pending -> sent | failed | cancelled      (all three are terminal)

`transition()` is the only place a status is written. The UPDATE is
conditional on the row still being pending, so a terminal reminder can never
be moved back, even by a concurrent dispatcher run.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import and_, asc, desc, func, or_, select, update
from sqlalchemy.orm import Session, contains_eager

from ..core.config import get_reminder_rules
from ..core.errors import ConflictError, NotFoundError, ValidationError
from ..core.utils import (
    as_utc,
    blank,
    clip,
    like_pattern,
    months,
    now_utc,
    resolve_timezone,
    to_utc_naive,
)
from ..dispatch.render import compose_body
from .models import Contact, Job, Reminder, ReminderStatus

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: Dict[ReminderStatus, frozenset] = {
    ReminderStatus.pending: frozenset({ReminderStatus.sent, ReminderStatus.failed, ReminderStatus.cancelled}),
    ReminderStatus.sent: frozenset(),
    ReminderStatus.failed: frozenset(),
    ReminderStatus.cancelled: frozenset(),
}

SORTABLE = {"scheduled_time": Reminder.scheduled_time, "created_at": Reminder.created_at}
ERROR_MAX_LENGTH = 1000

# ----------------- Validation -----------------

def validate_schedule(scheduled_utc: datetime, rules: Optional[Dict[str, Any]] = None, now: Optional[datetime] = None) -> None:
    """scheduled_utc is naive UTC; must sit inside [now + lead, now + horizon]."""
    rules = rules or get_reminder_rules()
    now = now or now_utc()
    lead = int(rules["min_lead_minutes"])
    horizon = int(rules["max_horizon_months"])
    if scheduled_utc < now + timedelta(minutes=lead):
        raise ValidationError(f"Scheduled time must be at least {lead} minutes from now")
    if scheduled_utc > now + months(horizon):
        raise ValidationError(f"Scheduled time cannot be more than {horizon} months from now")


def validate_content(subject: Optional[str], user_message: Optional[str], rules: Optional[Dict[str, Any]] = None) -> None:
    rules = rules or get_reminder_rules()
    if blank(subject):
        raise ValidationError("Subject is required")
    if len(subject.strip()) > rules["subject_max_length"]:
        raise ValidationError(f"Subject too long (max {rules['subject_max_length']} characters)")
    if blank(user_message):
        raise ValidationError("Message is required")
    if len(user_message.strip()) > rules["user_message_max_length"]:
        raise ValidationError(f"Message too long (max {rules['user_message_max_length']} characters)")


def _resolve_target(
    session: Session, user_id: int, contact_id: Optional[int], job_id: Optional[int]
) -> Tuple[Optional[Contact], Optional[Job]]:
    if contact_id is not None and job_id is not None:
        raise ValidationError("A reminder can be linked to a contact or a job, not both")
    contact = job = None
    if contact_id is not None:
        contact = session.get(Contact, contact_id)
        if contact is None or contact.user_id != user_id:
            raise ValidationError(f"Contact {contact_id} does not exist")
    if job_id is not None:
        job = session.get(Job, job_id)
        if job is None or job.user_id != user_id:
            raise ValidationError(f"Job {job_id} does not exist")
    return contact, job

# ----------------- Lifecycle -----------------

def transition(
    session: Session,
    reminder: Reminder,
    new_status: ReminderStatus | str,
    *,
    error_message: Optional[str] = None,
    sent_at: Optional[datetime] = None,
    commit: bool = True,
) -> Reminder:
    new = ReminderStatus(new_status)
    current = ReminderStatus(reminder.status)
    if new not in ALLOWED_TRANSITIONS[current]:
        raise ConflictError(f"Reminder {reminder.id} is {current.value}; cannot move to {new.value}")

    now = now_utc()
    values: Dict[str, Any] = {"status": new.value, "updated_at": now}
    if new is ReminderStatus.sent:
        values["sent_at"] = sent_at or now
    if error_message is not None:
        values["error_message"] = clip(error_message, ERROR_MAX_LENGTH)

    result = session.execute(
        update(Reminder)
        .where(Reminder.id == reminder.id, Reminder.status == ReminderStatus.pending.value)
        .values(**values)
    )
    if result.rowcount != 1:
        session.rollback()
        raise ConflictError(f"Reminder {reminder.id} is no longer pending")
    if commit:
        session.commit()
    return reminder


def mark_sent(session: Session, reminder: Reminder, sent_at: Optional[datetime] = None) -> Reminder:
    return transition(session, reminder, ReminderStatus.sent, sent_at=sent_at)


def mark_failed(session: Session, reminder: Reminder, error: str) -> Reminder:
    return transition(session, reminder, ReminderStatus.failed, error_message=error or "Unknown error")


def cancel_for_deleted_target(session: Session, reminders: Iterable[Reminder], reason: str) -> int:
    """Cancel pending reminders whose contact/job is being deleted (caller commits)."""
    n = 0
    for r in list(reminders):
        if r.status == ReminderStatus.pending.value:
            transition(session, r, ReminderStatus.cancelled, error_message=reason, commit=False)
            n += 1
    if n:
        logger.info("[reminders] cancelled %d pending reminder(s): %s", n, reason)
    return n

# ----------------- CRUD -----------------

def get_reminder(session: Session, user_id: int, reminder_id: int) -> Reminder:
    row = session.get(Reminder, reminder_id)
    if row is None or row.user_id != user_id:
        raise NotFoundError(f"Reminder {reminder_id} not found")
    return row


def create_reminder(
    session: Session,
    user_id: int,
    payload: Dict[str, Any],
    rules: Optional[Dict[str, Any]] = None,
    now: Optional[datetime] = None,
) -> Reminder:
    """
    Expected keys: scheduled_time (datetime), subject, user_message;
    optional: timezone, body, contact_id, job_id.
    """
    rules = rules or get_reminder_rules()
    tz_name = (payload.get("timezone") or rules["default_timezone"]).strip()
    resolve_timezone(tz_name)

    if payload.get("scheduled_time") is None:
        raise ValidationError("Scheduled time is required")
    validate_content(payload.get("subject"), payload.get("user_message"), rules)

    scheduled_utc = to_utc_naive(payload["scheduled_time"], tz_name)
    validate_schedule(scheduled_utc, rules, now)

    contact, job = _resolve_target(session, user_id, payload.get("contact_id"), payload.get("job_id"))
    user_message = payload["user_message"].strip()
    body = (payload.get("body") or "").strip() or compose_body(contact, job, user_message)

    row = Reminder(
        user_id=user_id,
        contact_id=contact.id if contact else None,
        job_id=job.id if job else None,
        scheduled_time=scheduled_utc,
        timezone=tz_name,
        subject=payload["subject"].strip(),
        body=body,
        user_message=user_message,
        status=ReminderStatus.pending.value,
    )
    session.add(row)
    session.commit()
    logger.info("[reminders] created reminder %s for %s UTC", row.id, scheduled_utc.isoformat())
    return row


def update_reminder(
    session: Session,
    user_id: int,
    reminder_id: int,
    payload: Dict[str, Any],
    rules: Optional[Dict[str, Any]] = None,
    now: Optional[datetime] = None,
) -> Reminder:
    """
    Partial update; only pending reminders can be edited.
    Changing only the timezone keeps the local wall-clock time and moves the
    UTC instant accordingly.
    """
    rules = rules or get_reminder_rules()
    row = get_reminder(session, user_id, reminder_id)
    if row.is_terminal:
        raise ConflictError(f"Reminder {reminder_id} is {row.status}; only pending reminders can be edited")

    tz_name = row.timezone
    if payload.get("timezone"):
        tz_name = payload["timezone"].strip()
        resolve_timezone(tz_name)

    subject = payload["subject"] if "subject" in payload else row.subject
    user_message = payload["user_message"] if "user_message" in payload else row.user_message
    validate_content(subject, user_message, rules)

    if payload.get("scheduled_time") is not None:
        scheduled_utc = to_utc_naive(payload["scheduled_time"], tz_name)
        validate_schedule(scheduled_utc, rules, now)
        row.scheduled_time = scheduled_utc
    elif tz_name != row.timezone:
        # keep the wall-clock time the user entered, now read in the new zone
        local = as_utc(row.scheduled_time).astimezone(resolve_timezone(row.timezone)).replace(tzinfo=None)
        scheduled_utc = to_utc_naive(local, tz_name)
        validate_schedule(scheduled_utc, rules, now)
        row.scheduled_time = scheduled_utc

    if "contact_id" in payload or "job_id" in payload:
        contact_id = payload["contact_id"] if "contact_id" in payload else row.contact_id
        job_id = payload["job_id"] if "job_id" in payload else row.job_id
        contact, job = _resolve_target(session, user_id, contact_id, job_id)
        row.contact_id = contact.id if contact else None
        row.job_id = job.id if job else None

    row.timezone = tz_name
    row.subject = subject.strip()
    row.user_message = user_message.strip()
    if "body" in payload and payload["body"] is not None:
        row.body = payload["body"].strip()
    session.commit()
    return row


def cancel_reminder(session: Session, user_id: int, reminder_id: int) -> Reminder:
    """pending -> cancelled; cancelled is a no-op; sent/failed history is kept (409)."""
    row = get_reminder(session, user_id, reminder_id)
    if row.status == ReminderStatus.cancelled.value:
        return row
    if row.status != ReminderStatus.pending.value:
        raise ConflictError(f"Reminder {reminder_id} is already {row.status} and cannot be cancelled")
    return transition(session, row, ReminderStatus.cancelled)

# ----------------- Queries -----------------

def _statuses() -> List[str]:
    return [s.value for s in ReminderStatus]


def list_reminders(
    session: Session,
    user_id: int,
    search: Optional[str] = None,
    status: Optional[str] = None,
    sort_by: str = "scheduled_time",
    sort_order: str = "asc",
    limit: int = 50,
    offset: int = 0,
) -> Tuple[List[Reminder], int]:
    """Returns (page, total matches before pagination)."""
    if sort_by not in SORTABLE:
        raise ValidationError(f"sort_by must be one of: {', '.join(SORTABLE)}")
    if sort_order not in ("asc", "desc"):
        raise ValidationError("sort_order must be 'asc' or 'desc'")

    filters = [Reminder.user_id == user_id]
    if status and status != "all":
        if status not in _statuses():
            raise ValidationError(f"status must be one of: all, {', '.join(_statuses())}")
        filters.append(Reminder.status == status)
    if search and search.strip():
        like = like_pattern(search)
        filters.append(or_(
            Reminder.subject.ilike(like, escape="\\"),
            Reminder.user_message.ilike(like, escape="\\"),
            Contact.name.ilike(like, escape="\\"),
            Contact.company.ilike(like, escape="\\"),
            Job.position.ilike(like, escape="\\"),
            Job.company.ilike(like, escape="\\"),
        ))

    def _joined(q):
        return (
            q.outerjoin(Contact, Reminder.contact_id == Contact.id)
            .outerjoin(Job, Reminder.job_id == Job.id)
            .where(and_(*filters))
        )

    total = session.execute(_joined(select(func.count(Reminder.id)).select_from(Reminder))).scalar_one()

    order = asc if sort_order == "asc" else desc
    q = (
        _joined(select(Reminder))
        .options(contains_eager(Reminder.contact), contains_eager(Reminder.job))
        .order_by(order(SORTABLE[sort_by]), order(Reminder.id))
        .offset(max(0, offset))
        .limit(max(1, min(limit, 500)))
    )
    return list(session.execute(q).scalars().all()), int(total)


def reminder_stats(session: Session, user_id: int, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or now_utc()
    counts = {s: 0 for s in _statuses()}
    for status, n in session.execute(
        select(Reminder.status, func.count(Reminder.id))
        .where(Reminder.user_id == user_id)
        .group_by(Reminder.status)
    ).all():
        counts[status] = int(n)

    pending = and_(Reminder.user_id == user_id, Reminder.status == ReminderStatus.pending.value)
    overdue = session.execute(
        select(func.count(Reminder.id)).where(pending, Reminder.scheduled_time < now)
    ).scalar_one()
    next_up = session.execute(
        select(func.min(Reminder.scheduled_time)).where(pending, Reminder.scheduled_time >= now)
    ).scalar_one_or_none()

    return {
        "total": sum(counts.values()),
        "by_status": counts,
        "overdue": int(overdue),
        "next_scheduled_time": next_up,
    }


def due_reminders(
    session: Session,
    now: Optional[datetime] = None,
    lookahead_minutes: int = 5,
    batch_size: int = 50,
) -> List[Reminder]:
    """Pending reminders due within the lookahead window, oldest first (all users)."""
    now = now or now_utc()
    q = (
        select(Reminder)
        .where(
            Reminder.status == ReminderStatus.pending.value,
            Reminder.scheduled_time <= now + timedelta(minutes=lookahead_minutes),
        )
        .order_by(asc(Reminder.scheduled_time), asc(Reminder.id))
        .limit(max(1, batch_size))
    )
    return list(session.execute(q).scalars().all())


__all__ = [
    "ALLOWED_TRANSITIONS",
    "validate_schedule", "validate_content",
    "transition", "mark_sent", "mark_failed", "cancel_for_deleted_target",
    "get_reminder", "create_reminder", "update_reminder", "cancel_reminder",
    "list_reminders", "reminder_stats", "due_reminders",
]
