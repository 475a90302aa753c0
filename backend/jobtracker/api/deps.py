# backend/jobtracker/api/deps.py
"""
Shared FastAPI dependencies.
- get_session: one SQLAlchemy session per request (503 when the DB is disabled)
- get_current_user: X-User-Id header, else the configured default user
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from ..core.config import get_default_user
from ..db import crud
from ..db.models import User
from ..db.session import get_session
from ..schemas import ErrorResponse

# documented error bodies ({"error": ...}) for every router
ERROR_RESPONSES = {code: {"model": ErrorResponse} for code in (404, 409, 422, 503)}


def get_current_user(
    x_user_id: Optional[int] = Header(default=None),
    db: Session = Depends(get_session),
) -> User:
    if x_user_id is not None:
        return crud.get_user(db, x_user_id)
    default = get_default_user()
    return crud.get_or_create_user(db, default["email"], default["name"])


__all__ = ["get_session", "get_current_user", "ERROR_RESPONSES"]
