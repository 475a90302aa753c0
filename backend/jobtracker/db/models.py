# backend/jobtracker/db/models.py
"""
SQLAlchemy ORM models.
- User: owner of every row; the dispatcher mails reminders to User.email
- Job: a tracked application (status pipeline interested -> ... -> offered/rejected)
- Contact: a professional contact, optionally associated with one job
- Interaction: append-only log entry of a communication with a contact
- JobContact: many-to-many link between jobs and contacts
- Reminder: a scheduled follow-up email (pending -> sent | failed | cancelled)

All datetimes are stored as naive UTC (see core.utils.now_utc).
"""

from __future__ import annotations

import datetime as dt
import enum
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import Date, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.utils import now_utc
from .session import Base


class JobStatus(str, enum.Enum):
    interested = "interested"
    applied = "applied"
    interviewing = "interviewing"
    onhold = "onhold"
    offered = "offered"
    rejected = "rejected"


class InteractionType(str, enum.Enum):
    email = "email"
    phone = "phone"
    video_call = "video_call"
    linkedin = "linkedin"
    meeting = "meeting"
    other = "other"


class ReminderStatus(str, enum.Enum):
    pending = "pending"
    sent = "sent"
    failed = "failed"
    cancelled = "cancelled"


TERMINAL_STATUSES = frozenset({ReminderStatus.sent, ReminderStatus.failed, ReminderStatus.cancelled})


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, index=True, nullable=False)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_utc, nullable=False)

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email}>"


class Job(Base):
    __tablename__ = "jobs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)

    company: Mapped[str] = mapped_column(String(255), nullable=False)
    position: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=JobStatus.interested.value, index=True)
    salary: Mapped[str | None] = mapped_column(String(100), nullable=True)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    url: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    date_added: Mapped[date | None] = mapped_column(Date, nullable=True)
    applied_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_utc, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=now_utc, onupdate=now_utc, nullable=False)

    # Deleting a job removes its links; contacts/reminders pointing at it get NULL.
    contact_links: Mapped[List["JobContact"]] = relationship(
        back_populates="job", cascade="all, delete-orphan"
    )
    associated_contacts: Mapped[List["Contact"]] = relationship(back_populates="associated_job")
    reminders: Mapped[List["Reminder"]] = relationship(back_populates="job")

    def __repr__(self) -> str:
        return f"<Job id={self.id} {self.position} @ {self.company} status={self.status}>"


class Contact(Base):
    __tablename__ = "contacts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    company: Mapped[str | None] = mapped_column(String(255), nullable=True)
    position: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    linkedin: Mapped[str | None] = mapped_column(Text, nullable=True)
    associated_job_id: Mapped[int | None] = mapped_column(
        ForeignKey("jobs.id", ondelete="SET NULL"), nullable=True, index=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_utc, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=now_utc, onupdate=now_utc, nullable=False)

    associated_job: Mapped[Optional["Job"]] = relationship(back_populates="associated_contacts")
    # If a Contact is deleted, its interaction log and job links go with it.
    interactions: Mapped[List["Interaction"]] = relationship(
        back_populates="contact",
        cascade="all, delete-orphan",
        order_by=lambda: [Interaction.date.desc(), Interaction.id.desc()],
    )
    job_links: Mapped[List["JobContact"]] = relationship(
        back_populates="contact", cascade="all, delete-orphan"
    )
    reminders: Mapped[List["Reminder"]] = relationship(back_populates="contact")

    def __repr__(self) -> str:
        return f"<Contact id={self.id} {self.name}>"


class Interaction(Base):
    __tablename__ = "interactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    contact_id: Mapped[int] = mapped_column(
        ForeignKey("contacts.id", ondelete="CASCADE"), index=True, nullable=False
    )

    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_utc, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=now_utc, onupdate=now_utc, nullable=False)

    contact: Mapped["Contact"] = relationship(back_populates="interactions")

    def __repr__(self) -> str:
        return f"<Interaction id={self.id} contact_id={self.contact_id} type={self.type}>"


class JobContact(Base):
    __tablename__ = "job_contacts"
    __table_args__ = (UniqueConstraint("job_id", "contact_id", name="uq_job_contact"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    job_id: Mapped[int] = mapped_column(ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False)
    contact_id: Mapped[int] = mapped_column(ForeignKey("contacts.id", ondelete="CASCADE"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_utc, nullable=False)

    job: Mapped["Job"] = relationship(back_populates="contact_links")
    contact: Mapped["Contact"] = relationship(back_populates="job_links")


class Reminder(Base):
    __tablename__ = "email_reminders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    contact_id: Mapped[int | None] = mapped_column(
        ForeignKey("contacts.id", ondelete="SET NULL"), nullable=True, index=True
    )
    job_id: Mapped[int | None] = mapped_column(
        ForeignKey("jobs.id", ondelete="SET NULL"), nullable=True, index=True
    )

    scheduled_time: Mapped[datetime] = mapped_column(DateTime, index=True, nullable=False)
    timezone: Mapped[str] = mapped_column(String(64), nullable=False)
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False, default="")
    user_message: Mapped[str] = mapped_column(Text, nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default=ReminderStatus.pending.value, index=True)
    sent_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_utc, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=now_utc, onupdate=now_utc, nullable=False)

    user: Mapped["User"] = relationship()
    contact: Mapped[Optional["Contact"]] = relationship(back_populates="reminders")
    job: Mapped[Optional["Job"]] = relationship(back_populates="reminders")

    @property
    def is_terminal(self) -> bool:
        return self.status in {s.value for s in TERMINAL_STATUSES}

    def __repr__(self) -> str:
        return f"<Reminder id={self.id} status={self.status} scheduled_time={self.scheduled_time}>"
