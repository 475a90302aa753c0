# backend/jobtracker/schemas.py
"""
Request/response models (pydantic v2).
- *Create / *Update are request bodies; *Update fields are all optional and
  only the fields actually sent are applied (model_dump(exclude_unset=True)).
- *Out models read straight from ORM rows (from_attributes).
- Naive UTC datetimes from the DB are returned with an explicit UTC offset.
"""

from __future__ import annotations

import datetime as dt
from datetime import date, datetime
from typing import Annotated, Any, Dict, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from .core.utils import as_utc, now_utc
from .db.models import InteractionType, JobStatus, ReminderStatus

UTCDateTime = Annotated[datetime, AfterValidator(as_utc)]


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class ErrorResponse(BaseModel):
    error: str


# --- Users -------------------------------------------------------------------

class UserOut(ORMModel):
    id: int
    email: str
    name: Optional[str] = None


# --- Jobs --------------------------------------------------------------------

class JobCreate(BaseModel):
    company: str
    position: str
    status: JobStatus = JobStatus.interested
    salary: Optional[str] = None
    location: Optional[str] = None
    url: Optional[str] = None
    notes: Optional[str] = None
    date_added: Optional[date] = None
    applied_date: Optional[date] = None


class JobUpdate(BaseModel):
    company: Optional[str] = None
    position: Optional[str] = None
    status: Optional[JobStatus] = None
    salary: Optional[str] = None
    location: Optional[str] = None
    url: Optional[str] = None
    notes: Optional[str] = None
    date_added: Optional[date] = None
    applied_date: Optional[date] = None


class JobOut(ORMModel):
    id: int
    company: str
    position: str
    status: JobStatus
    salary: Optional[str] = None
    location: Optional[str] = None
    url: Optional[str] = None
    notes: Optional[str] = None
    date_added: Optional[date] = None
    applied_date: Optional[date] = None
    created_at: UTCDateTime
    updated_at: UTCDateTime


# --- Interactions --------------------------------------------------------------

class InteractionCreate(BaseModel):
    contact_id: int
    type: InteractionType
    date: dt.date
    summary: str
    notes: Optional[str] = None


class InteractionUpdate(BaseModel):
    contact_id: Optional[int] = None
    type: Optional[InteractionType] = None
    date: Optional[dt.date] = None
    summary: Optional[str] = None
    notes: Optional[str] = None


class InteractionOut(ORMModel):
    id: int
    contact_id: int
    type: InteractionType
    date: dt.date
    summary: str
    notes: Optional[str] = None
    created_at: UTCDateTime


class InteractionStats(BaseModel):
    contact_id: int
    total: int
    by_type: Dict[str, int]
    last_interaction: Optional[date] = None


# --- Contacts ------------------------------------------------------------------

class ContactCreate(BaseModel):
    name: str
    company: Optional[str] = None
    position: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    linkedin: Optional[str] = None
    associated_job_id: Optional[int] = None
    notes: Optional[str] = None


class ContactUpdate(BaseModel):
    name: Optional[str] = None
    company: Optional[str] = None
    position: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    linkedin: Optional[str] = None
    associated_job_id: Optional[int] = None
    notes: Optional[str] = None


class ContactOut(ORMModel):
    id: int
    name: str
    company: Optional[str] = None
    position: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    linkedin: Optional[str] = None
    associated_job_id: Optional[int] = None
    notes: Optional[str] = None
    created_at: UTCDateTime
    updated_at: UTCDateTime


class ContactWithInteractions(ContactOut):
    interactions: List[InteractionOut] = Field(default_factory=list)


# --- Reminders -------------------------------------------------------------------

class ReminderCreate(BaseModel):
    scheduled_time: datetime
    subject: str
    user_message: str
    timezone: Optional[str] = None
    body: Optional[str] = None
    contact_id: Optional[int] = None
    job_id: Optional[int] = None


class ReminderUpdate(BaseModel):
    scheduled_time: Optional[datetime] = None
    subject: Optional[str] = None
    user_message: Optional[str] = None
    timezone: Optional[str] = None
    body: Optional[str] = None
    contact_id: Optional[int] = None
    job_id: Optional[int] = None


class ReminderOut(ORMModel):
    id: int
    contact_id: Optional[int] = None
    job_id: Optional[int] = None
    scheduled_time: UTCDateTime
    timezone: str
    subject: str
    body: str
    user_message: str
    status: ReminderStatus
    sent_at: Optional[UTCDateTime] = None
    error_message: Optional[str] = None
    created_at: UTCDateTime
    updated_at: UTCDateTime

    # linked context (flattened for list views)
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    contact_company: Optional[str] = None
    job_position: Optional[str] = None
    job_company: Optional[str] = None
    job_location: Optional[str] = None
    is_overdue: bool = False

    @classmethod
    def from_row(cls, row: Any, now: Optional[datetime] = None) -> "ReminderOut":
        out = cls.model_validate(row)
        contact, job = row.contact, row.job
        if contact is not None:
            out.contact_name, out.contact_email, out.contact_company = contact.name, contact.email, contact.company
        if job is not None:
            out.job_position, out.job_company, out.job_location = job.position, job.company, job.location
        now = now or now_utc()
        out.is_overdue = row.status == ReminderStatus.pending.value and row.scheduled_time < now
        return out


class ReminderPage(BaseModel):
    items: List[ReminderOut]
    total: int
    limit: int
    offset: int


class ReminderStats(BaseModel):
    total: int
    by_status: Dict[str, int]
    overdue: int
    next_scheduled_time: Optional[UTCDateTime] = None


class DispatchSummary(BaseModel):
    success: bool
    processed: int = 0
    errors: int = 0
    skipped: int = 0
    total: int = 0
    results: List[Dict[str, Any]] = Field(default_factory=list)
    error: Optional[str] = None
