# backend/jobtracker/api/reminders.py
"""
Reminder API + the HTTP trigger for the dispatcher.

/stats and /dispatch are declared before /{reminder_id} so they are matched first.
"""

from __future__ import annotations

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Header, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..core.config import get_dispatch_secret
from ..core.errors import JobTrackerError, NotFoundError
from ..core.utils import now_utc
from ..db import reminders as store
from ..db.models import User
from ..dispatch.dispatcher import Mailer, run_dispatch
from ..schemas import (
    DispatchSummary,
    ReminderCreate,
    ReminderOut,
    ReminderPage,
    ReminderStats,
    ReminderUpdate,
)
from .deps import ERROR_RESPONSES, get_current_user, get_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/reminders", tags=["reminders"], responses=ERROR_RESPONSES)


def get_mailer() -> Optional[Mailer]:
    """Overridable in tests; None means 'build the Gmail mailer from env'."""
    return None


@router.get("", response_model=ReminderPage)
def list_reminders(
    search: Optional[str] = Query(default=None),
    status: Optional[str] = Query(default=None),
    sort_by: Literal["scheduled_time", "created_at"] = Query(default="scheduled_time"),
    sort_order: Literal["asc", "desc"] = Query(default="asc"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    rows, total = store.list_reminders(
        db, user.id, search=search, status=status,
        sort_by=sort_by, sort_order=sort_order, limit=limit, offset=offset,
    )
    now = now_utc()
    return ReminderPage(
        items=[ReminderOut.from_row(r, now) for r in rows],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.post("", response_model=ReminderOut, status_code=201)
def create_reminder(payload: ReminderCreate, db: Session = Depends(get_session), user: User = Depends(get_current_user)):
    row = store.create_reminder(db, user.id, payload.model_dump())
    return ReminderOut.from_row(row)


@router.get("/stats", response_model=ReminderStats)
def reminder_stats(db: Session = Depends(get_session), user: User = Depends(get_current_user)):
    return store.reminder_stats(db, user.id)


@router.post("/dispatch", response_model=DispatchSummary)
def dispatch_due_reminders(
    x_dispatch_secret: Optional[str] = Header(default=None),
    db: Session = Depends(get_session),
    mailer: Optional[Mailer] = Depends(get_mailer),
):
    secret = get_dispatch_secret()
    if secret and x_dispatch_secret != secret:
        # don't reveal the endpoint to callers without the secret
        raise NotFoundError("Not found")
    try:
        return run_dispatch(db, mailer=mailer)
    except JobTrackerError as e:
        logger.error("[dispatch] run aborted: %s", e.message)
        return JSONResponse(status_code=500, content={"success": False, "error": e.message})


@router.get("/{reminder_id}", response_model=ReminderOut)
def get_reminder(reminder_id: int, db: Session = Depends(get_session), user: User = Depends(get_current_user)):
    return ReminderOut.from_row(store.get_reminder(db, user.id, reminder_id))


@router.put("/{reminder_id}", response_model=ReminderOut)
def update_reminder(
    reminder_id: int,
    payload: ReminderUpdate,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    row = store.update_reminder(db, user.id, reminder_id, payload.model_dump(exclude_unset=True))
    return ReminderOut.from_row(row)


@router.delete("/{reminder_id}", response_model=ReminderOut)
def cancel_reminder(reminder_id: int, db: Session = Depends(get_session), user: User = Depends(get_current_user)):
    return ReminderOut.from_row(store.cancel_reminder(db, user.id, reminder_id))
