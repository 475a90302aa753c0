# backend/jobtracker/db/crud.py
"""
CRUD helpers for users, jobs, contacts, interactions and job<->contact links.
Every query is scoped to the owning user; a row owned by someone else is
reported as missing.

Usage (FastAPI):
    def handler(db: Session = Depends(get_session), user: User = Depends(get_current_user)):
        return crud.create_job(db, user.id, payload.model_dump())

Writes commit here; reads never do.
"""

from __future__ import annotations

import enum
from collections import Counter
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import desc, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from ..core.errors import ConflictError, NotFoundError, ValidationError
from ..core.utils import blank, like_pattern
from .models import Contact, Interaction, Job, JobContact, User
from . import reminders as reminder_store

# ----------------- Helpers -----------------

_JOB_FIELDS = {"company", "position", "status", "salary", "location", "url", "notes", "date_added", "applied_date"}
_CONTACT_FIELDS = {"name", "company", "position", "email", "phone", "linkedin", "associated_job_id", "notes"}
_INTERACTION_FIELDS = {"contact_id", "date", "type", "summary", "notes"}


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, enum.Enum) else value


def _apply(row: Any, payload: Dict[str, Any], allowed: Iterable[str]) -> None:
    for k, v in payload.items():
        if k in allowed:
            setattr(row, k, _plain(v))


def _require(payload: Dict[str, Any], *fields: str) -> None:
    missing = [f for f in fields if payload.get(f) is None or (isinstance(payload.get(f), str) and blank(payload.get(f)))]
    if missing:
        raise ValidationError(f"Missing required field(s): {', '.join(missing)}")


def _search_filter(term: Optional[str], *columns):
    like = like_pattern(term)
    return or_(*[c.ilike(like, escape="\\") for c in columns])

# ----------------- Users -----------------

def get_user(session: Session, user_id: int) -> User:
    user = session.get(User, user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")
    return user


def get_or_create_user(session: Session, email: str, name: Optional[str] = None) -> User:
    q = select(User).where(User.email == email).limit(1)
    user = session.execute(q).scalars().first()
    if user:
        return user
    user = User(email=email, name=name)
    session.add(user)
    try:
        session.commit()
    except IntegrityError:
        # another request created it first
        session.rollback()
        return session.execute(q).scalars().one()
    return user

# ----------------- Jobs -----------------

def list_jobs(session: Session, user_id: int, status: Optional[str] = None, search: Optional[str] = None) -> List[Job]:
    q = select(Job).where(Job.user_id == user_id)
    if status:
        q = q.where(Job.status == _plain(status))
    if search and search.strip():
        q = q.where(_search_filter(search, Job.company, Job.position, Job.location))
    q = q.order_by(desc(Job.created_at), desc(Job.id))
    return list(session.execute(q).scalars().all())


def get_job(session: Session, user_id: int, job_id: int) -> Job:
    job = session.get(Job, job_id)
    if job is None or job.user_id != user_id:
        raise NotFoundError(f"Job {job_id} not found")
    return job


def create_job(session: Session, user_id: int, payload: Dict[str, Any]) -> Job:
    _require(payload, "company", "position")
    job = Job(user_id=user_id)
    _apply(job, payload, _JOB_FIELDS)
    session.add(job)
    session.commit()
    return job


def update_job(session: Session, user_id: int, job_id: int, payload: Dict[str, Any]) -> Job:
    job = get_job(session, user_id, job_id)
    for f in ("company", "position"):
        if f in payload and blank(payload[f]):
            raise ValidationError(f"{f} cannot be empty")
    _apply(job, payload, _JOB_FIELDS)
    session.commit()
    return job


def delete_job(session: Session, user_id: int, job_id: int) -> None:
    """
    Links go with the job; associated contacts keep living with the FK nulled.
    Pending reminders about the job are cancelled, and every reminder keeps its
    history with job_id nulled.
    """
    job = get_job(session, user_id, job_id)
    reminder_store.cancel_for_deleted_target(session, job.reminders, f"Job {job_id} was deleted")
    session.delete(job)
    session.commit()


def list_job_contacts(session: Session, user_id: int, job_id: int) -> List[Contact]:
    get_job(session, user_id, job_id)
    q = (
        select(Contact)
        .join(JobContact, JobContact.contact_id == Contact.id)
        .where(JobContact.job_id == job_id, JobContact.user_id == user_id)
        .order_by(Contact.name)
    )
    return list(session.execute(q).scalars().all())

# ----------------- Contacts -----------------

def _check_associated_job(session: Session, user_id: int, payload: Dict[str, Any]) -> None:
    job_id = payload.get("associated_job_id")
    if job_id is not None:
        try:
            get_job(session, user_id, job_id)
        except NotFoundError:
            raise ValidationError(f"Associated job {job_id} does not exist")


def list_contacts(session: Session, user_id: int, search: Optional[str] = None) -> List[Contact]:
    q = (
        select(Contact)
        .where(Contact.user_id == user_id)
        .options(selectinload(Contact.interactions))
    )
    if search and search.strip():
        q = q.where(_search_filter(search, Contact.name, Contact.company, Contact.position, Contact.email))
    q = q.order_by(desc(Contact.created_at), desc(Contact.id))
    return list(session.execute(q).scalars().all())


def get_contact(session: Session, user_id: int, contact_id: int) -> Contact:
    contact = session.get(Contact, contact_id)
    if contact is None or contact.user_id != user_id:
        raise NotFoundError(f"Contact {contact_id} not found")
    return contact


def create_contact(session: Session, user_id: int, payload: Dict[str, Any]) -> Contact:
    _require(payload, "name")
    _check_associated_job(session, user_id, payload)
    contact = Contact(user_id=user_id)
    _apply(contact, payload, _CONTACT_FIELDS)
    session.add(contact)
    session.commit()
    return contact


def update_contact(session: Session, user_id: int, contact_id: int, payload: Dict[str, Any]) -> Contact:
    contact = get_contact(session, user_id, contact_id)
    if "name" in payload and blank(payload["name"]):
        raise ValidationError("name cannot be empty")
    _check_associated_job(session, user_id, payload)
    _apply(contact, payload, _CONTACT_FIELDS)
    session.commit()
    return contact


def delete_contact(session: Session, user_id: int, contact_id: int) -> None:
    """Interactions and job links cascade; reminders are cancelled/null-ed like delete_job."""
    contact = get_contact(session, user_id, contact_id)
    reminder_store.cancel_for_deleted_target(session, contact.reminders, f"Contact {contact_id} was deleted")
    session.delete(contact)
    session.commit()

# ----------------- Job <-> Contact links -----------------

def link_job_to_contact(session: Session, user_id: int, contact_id: int, job_id: int) -> JobContact:
    get_contact(session, user_id, contact_id)
    get_job(session, user_id, job_id)
    exists = session.execute(
        select(JobContact).where(JobContact.job_id == job_id, JobContact.contact_id == contact_id).limit(1)
    ).scalars().first()
    if exists:
        raise ConflictError(f"Contact {contact_id} is already linked to job {job_id}")
    link = JobContact(user_id=user_id, job_id=job_id, contact_id=contact_id)
    session.add(link)
    session.commit()
    return link


def unlink_job_from_contact(session: Session, user_id: int, contact_id: int, job_id: int) -> None:
    link = session.execute(
        select(JobContact).where(
            JobContact.job_id == job_id,
            JobContact.contact_id == contact_id,
            JobContact.user_id == user_id,
        ).limit(1)
    ).scalars().first()
    if link is None:
        raise NotFoundError(f"Contact {contact_id} is not linked to job {job_id}")
    session.delete(link)
    session.commit()


def list_contact_jobs(session: Session, user_id: int, contact_id: int) -> List[Job]:
    get_contact(session, user_id, contact_id)
    q = (
        select(Job)
        .join(JobContact, JobContact.job_id == Job.id)
        .where(JobContact.contact_id == contact_id, JobContact.user_id == user_id)
        .order_by(desc(Job.created_at), desc(Job.id))
    )
    return list(session.execute(q).scalars().all())

# ----------------- Interactions -----------------

def list_interactions(session: Session, user_id: int, contact_id: Optional[int] = None) -> List[Interaction]:
    q = select(Interaction).where(Interaction.user_id == user_id)
    if contact_id is not None:
        q = q.where(Interaction.contact_id == contact_id)
    q = q.order_by(desc(Interaction.date), desc(Interaction.id))
    return list(session.execute(q).scalars().all())


def get_interaction(session: Session, user_id: int, interaction_id: int) -> Interaction:
    row = session.get(Interaction, interaction_id)
    if row is None or row.user_id != user_id:
        raise NotFoundError(f"Interaction {interaction_id} not found")
    return row


def create_interaction(session: Session, user_id: int, payload: Dict[str, Any]) -> Interaction:
    _require(payload, "contact_id", "type", "date", "summary")
    try:
        get_contact(session, user_id, payload["contact_id"])
    except NotFoundError:
        raise ValidationError(f"Contact {payload['contact_id']} does not exist")
    row = Interaction(user_id=user_id)
    _apply(row, payload, _INTERACTION_FIELDS)
    session.add(row)
    session.commit()
    return row


def update_interaction(session: Session, user_id: int, interaction_id: int, payload: Dict[str, Any]) -> Interaction:
    row = get_interaction(session, user_id, interaction_id)
    if "summary" in payload and blank(payload["summary"]):
        raise ValidationError("summary cannot be empty")
    if payload.get("contact_id") is not None and payload["contact_id"] != row.contact_id:
        try:
            get_contact(session, user_id, payload["contact_id"])
        except NotFoundError:
            raise ValidationError(f"Contact {payload['contact_id']} does not exist")
    _apply(row, payload, _INTERACTION_FIELDS)
    session.commit()
    return row


def delete_interaction(session: Session, user_id: int, interaction_id: int) -> None:
    row = get_interaction(session, user_id, interaction_id)
    session.delete(row)
    session.commit()


def interaction_stats(session: Session, user_id: int, contact_id: int) -> Dict[str, Any]:
    get_contact(session, user_id, contact_id)
    rows = list_interactions(session, user_id, contact_id=contact_id)
    return {
        "contact_id": contact_id,
        "total": len(rows),
        "by_type": dict(Counter(r.type for r in rows)),
        "last_interaction": rows[0].date if rows else None,
    }


__all__ = [
    "get_user", "get_or_create_user",
    "list_jobs", "get_job", "create_job", "update_job", "delete_job", "list_job_contacts",
    "list_contacts", "get_contact", "create_contact", "update_contact", "delete_contact",
    "link_job_to_contact", "unlink_job_from_contact", "list_contact_jobs",
    "list_interactions", "get_interaction", "create_interaction", "update_interaction",
    "delete_interaction", "interaction_stats",
]
