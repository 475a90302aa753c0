# backend/jobtracker/api/interactions.py

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..db import crud
from ..db.models import User
from ..schemas import InteractionCreate, InteractionOut, InteractionUpdate
from .deps import ERROR_RESPONSES, get_current_user, get_session

router = APIRouter(prefix="/api/v1/interactions", tags=["interactions"], responses=ERROR_RESPONSES)


@router.get("", response_model=List[InteractionOut])
def list_interactions(
    contact_id: Optional[int] = Query(default=None),
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    return crud.list_interactions(db, user.id, contact_id=contact_id)


@router.post("", response_model=InteractionOut, status_code=201)
def create_interaction(
    payload: InteractionCreate, db: Session = Depends(get_session), user: User = Depends(get_current_user)
):
    return crud.create_interaction(db, user.id, payload.model_dump())


@router.put("/{interaction_id}", response_model=InteractionOut)
def update_interaction(
    interaction_id: int,
    payload: InteractionUpdate,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    return crud.update_interaction(db, user.id, interaction_id, payload.model_dump(exclude_unset=True))


@router.delete("/{interaction_id}")
def delete_interaction(interaction_id: int, db: Session = Depends(get_session), user: User = Depends(get_current_user)):
    crud.delete_interaction(db, user.id, interaction_id)
    return {"message": "Interaction deleted successfully"}
