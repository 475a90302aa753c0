# backend/jobtracker/api/contacts.py
"""Contacts, their interaction log summary, and job links."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..db import crud
from ..db.models import User
from ..schemas import (
    ContactCreate,
    ContactUpdate,
    ContactWithInteractions,
    InteractionStats,
    JobOut,
)
from .deps import ERROR_RESPONSES, get_current_user, get_session

router = APIRouter(prefix="/api/v1/contacts", tags=["contacts"], responses=ERROR_RESPONSES)


@router.get("", response_model=List[ContactWithInteractions])
def list_contacts(
    search: Optional[str] = Query(default=None),
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    return crud.list_contacts(db, user.id, search=search)


@router.post("", response_model=ContactWithInteractions, status_code=201)
def create_contact(payload: ContactCreate, db: Session = Depends(get_session), user: User = Depends(get_current_user)):
    return crud.create_contact(db, user.id, payload.model_dump())


@router.get("/{contact_id}", response_model=ContactWithInteractions)
def get_contact(contact_id: int, db: Session = Depends(get_session), user: User = Depends(get_current_user)):
    return crud.get_contact(db, user.id, contact_id)


@router.put("/{contact_id}", response_model=ContactWithInteractions)
def update_contact(
    contact_id: int,
    payload: ContactUpdate,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    return crud.update_contact(db, user.id, contact_id, payload.model_dump(exclude_unset=True))


@router.delete("/{contact_id}")
def delete_contact(contact_id: int, db: Session = Depends(get_session), user: User = Depends(get_current_user)):
    crud.delete_contact(db, user.id, contact_id)
    return {"message": "Contact deleted successfully"}


@router.get("/{contact_id}/interactions/stats", response_model=InteractionStats)
def contact_interaction_stats(contact_id: int, db: Session = Depends(get_session), user: User = Depends(get_current_user)):
    return crud.interaction_stats(db, user.id, contact_id)


# --- job links ------------------------------------------------------------------

@router.get("/{contact_id}/jobs", response_model=List[JobOut])
def contact_jobs(contact_id: int, db: Session = Depends(get_session), user: User = Depends(get_current_user)):
    return crud.list_contact_jobs(db, user.id, contact_id)


@router.post("/{contact_id}/jobs/{job_id}", status_code=201)
def link_job(contact_id: int, job_id: int, db: Session = Depends(get_session), user: User = Depends(get_current_user)):
    link = crud.link_job_to_contact(db, user.id, contact_id, job_id)
    return {"id": link.id, "job_id": link.job_id, "contact_id": link.contact_id}


@router.delete("/{contact_id}/jobs/{job_id}")
def unlink_job(contact_id: int, job_id: int, db: Session = Depends(get_session), user: User = Depends(get_current_user)):
    crud.unlink_job_from_contact(db, user.id, contact_id, job_id)
    return {"message": "Job unlinked from contact"}
