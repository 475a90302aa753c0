# backend/jobtracker/db/session.py
"""
SQLAlchemy session/engine bootstrap.
- Reads DATABASE_URL from env (Postgres in production, SQLite for local/dev/tests).
- Exposes: engine, SessionLocal, get_session(), session_scope(), ensure_tables().
- Without DATABASE_URL the DB layer is disabled; every DB-backed endpoint then
  answers 503 "Database not configured" instead of crashing at import.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import Iterator, Optional

from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session, DeclarativeBase

from ..core.errors import DatabaseUnavailable

load_dotenv(override=False)

logger = logging.getLogger(__name__)

# --- config from env ---------------------------------------------------------

DATABASE_URL = (os.getenv("DATABASE_URL") or "").strip()
DB_ECHO = (os.getenv("DB_ECHO") or "false").lower() == "true"

# --- SQLAlchemy base ---------------------------------------------------------

class Base(DeclarativeBase):
    pass

# --- engine & session --------------------------------------------------------

engine = None
SessionLocal: Optional[sessionmaker[Session]] = None
DB_ENABLED = False

if DATABASE_URL:
    try:
        # request handlers run in a threadpool; sqlite connections must be shareable
        connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
        engine = create_engine(
            DATABASE_URL, echo=DB_ECHO, pool_pre_ping=True, future=True, connect_args=connect_args
        )
        SessionLocal = sessionmaker(bind=engine, class_=Session, autoflush=False, autocommit=False, expire_on_commit=False)
        DB_ENABLED = True
    except Exception as e:
        logger.warning("[db] could not initialize engine: %s", e)
        engine = None
        SessionLocal = None
        DB_ENABLED = False
else:
    logger.warning("[db] DATABASE_URL not set; DB layer disabled.")

# --- helpers ----------------------------------------------------------------

@contextmanager
def session_scope() -> Iterator[Session]:
    """
    Context manager for a DB session, used by the dispatch CLI.
    Example:
        with session_scope() as s:
            run_dispatch(s)
    """
    if not DB_ENABLED or SessionLocal is None:
        raise DatabaseUnavailable()
    ensure_tables()
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

def get_session() -> Iterator[Session]:
    """
    FastAPI dependency style generator.
    Usage:
        @router.get(...)
        def handler(db: Session = Depends(get_session)):
            ...
    Writes commit inside the crud helpers; anything left pending when the
    handler raises is rolled back here.
    """
    if not DB_ENABLED or SessionLocal is None:
        raise DatabaseUnavailable()
    ensure_tables()
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

_tables_ready = False

def ensure_tables() -> None:
    """
    Create tables if needed. Import models lazily to avoid circulars.
    Cheap after the first call.
    """
    global _tables_ready
    if _tables_ready or not DB_ENABLED or engine is None:
        return
    # local import to prevent circular import during module import
    from . import models  # noqa: F401
    Base.metadata.create_all(bind=engine)
    _tables_ready = True

def reset_tables() -> None:
    """Drop and recreate every table (tests and local resets only)."""
    global _tables_ready
    if not DB_ENABLED or engine is None:
        raise DatabaseUnavailable()
    from . import models  # noqa: F401
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    _tables_ready = True

__all__ = [
    "Base",
    "engine",
    "SessionLocal",
    "DB_ENABLED",
    "session_scope",
    "get_session",
    "ensure_tables",
    "reset_tables",
]
