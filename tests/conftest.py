import os
import tempfile
from datetime import timedelta

# Point the app at a throwaway SQLite file before anything imports jobtracker.
_DB_DIR = tempfile.mkdtemp(prefix="jobtracker-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["APP_URL"] = "https://tracker.test"
os.environ["JOBTRACKER_USER_EMAIL"] = "me@example.com"
os.environ["JOBTRACKER_USER_NAME"] = "Me"
os.environ.pop("DISPATCH_SECRET", None)

import pytest
from fastapi.testclient import TestClient

from jobtracker.core.utils import now_utc
from jobtracker.db import crud
from jobtracker.db.models import Reminder, ReminderStatus
from jobtracker.db.session import SessionLocal, reset_tables
from jobtracker.main import app


class FakeMailer:
    """Records deliveries; raises for any subject listed in fail_subjects."""

    def __init__(self, fail_subjects=()):
        self.fail_subjects = set(fail_subjects)
        self.attempts = []
        self.sent = []

    def send(self, to_email, subject, html_body):
        self.attempts.append(subject)
        if subject in self.fail_subjects:
            raise RuntimeError(f"smtp exploded on {subject}")
        self.sent.append({"to": to_email, "subject": subject, "html": html_body})
        return {"id": f"msg-{len(self.sent)}"}


@pytest.fixture(autouse=True)
def fresh_db():
    reset_tables()
    yield


@pytest.fixture
def db():
    s = SessionLocal()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def user(db):
    return crud.get_or_create_user(db, "me@example.com", "Me")


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def make_mailer():
    return FakeMailer


@pytest.fixture
def make_reminder(db, user):
    """Insert a reminder row directly (no lead-time checks), due `minutes` from now."""

    def _make(subject="Follow up", minutes=-1, status=ReminderStatus.pending.value, **kw):
        row = Reminder(
            user_id=kw.pop("user_id", user.id),
            subject=subject,
            user_message=kw.pop("user_message", "Hi, just checking in."),
            body=kw.pop("body", "Reminder body"),
            timezone=kw.pop("timezone", "America/New_York"),
            scheduled_time=now_utc() + timedelta(minutes=minutes),
            status=status,
            **kw,
        )
        db.add(row)
        db.commit()
        return row

    return _make
