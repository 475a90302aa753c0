# backend/jobtracker/api/jobs.py

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..db import crud
from ..db.models import JobStatus, User
from ..schemas import ContactOut, JobCreate, JobOut, JobUpdate
from .deps import ERROR_RESPONSES, get_current_user, get_session

router = APIRouter(prefix="/api/v1/jobs", tags=["jobs"], responses=ERROR_RESPONSES)


@router.get("", response_model=List[JobOut])
def list_jobs(
    status: Optional[JobStatus] = Query(default=None),
    search: Optional[str] = Query(default=None),
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    return crud.list_jobs(db, user.id, status=status, search=search)


@router.post("", response_model=JobOut, status_code=201)
def create_job(payload: JobCreate, db: Session = Depends(get_session), user: User = Depends(get_current_user)):
    return crud.create_job(db, user.id, payload.model_dump())


@router.get("/{job_id}", response_model=JobOut)
def get_job(job_id: int, db: Session = Depends(get_session), user: User = Depends(get_current_user)):
    return crud.get_job(db, user.id, job_id)


@router.put("/{job_id}", response_model=JobOut)
def update_job(
    job_id: int, payload: JobUpdate, db: Session = Depends(get_session), user: User = Depends(get_current_user)
):
    return crud.update_job(db, user.id, job_id, payload.model_dump(exclude_unset=True))


@router.delete("/{job_id}")
def delete_job(job_id: int, db: Session = Depends(get_session), user: User = Depends(get_current_user)):
    crud.delete_job(db, user.id, job_id)
    return {"message": "Job deleted successfully"}


@router.get("/{job_id}/contacts", response_model=List[ContactOut])
def job_contacts(job_id: int, db: Session = Depends(get_session), user: User = Depends(get_current_user)):
    return crud.list_job_contacts(db, user.id, job_id)
