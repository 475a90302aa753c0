import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import OperationalError

from jobtracker.api import reminders as reminders_api
from jobtracker.core.errors import DatabaseUnavailable
from jobtracker.db import crud
from jobtracker.db.session import get_session
from jobtracker.main import app


def _in(**delta):
    return (datetime.now(timezone.utc) + timedelta(**delta)).isoformat()


def _job(client, **kw):
    body = {"company": "Acme", "position": "Engineer", **kw}
    r = client.post("/api/v1/jobs", json=body)
    assert r.status_code == 201, r.text
    return r.json()


def _contact(client, **kw):
    body = {"name": "Alice", "email": "alice@acme.test", **kw}
    r = client.post("/api/v1/contacts", json=body)
    assert r.status_code == 201, r.text
    return r.json()


# --- health ------------------------------------------------------------------

def test_health_and_config(client):
    r = client.get("/api/v1/health")
    assert r.status_code == 200
    assert r.json()["ok"] is True
    assert r.json()["db_enabled"] is True
    assert client.get("/api/v1/config").json()["db_enabled"] is True


# --- jobs --------------------------------------------------------------------

def test_job_crud(client):
    job = _job(client, location="Remote")
    assert job["status"] == "interested"

    r = client.put(f"/api/v1/jobs/{job['id']}", json={"status": "applied", "notes": "sent CV"})
    assert r.status_code == 200
    assert r.json()["status"] == "applied"
    assert r.json()["location"] == "Remote"

    _job(client, company="Globex", position="Designer", status="rejected")
    assert len(client.get("/api/v1/jobs").json()) == 2
    assert [j["company"] for j in client.get("/api/v1/jobs", params={"status": "applied"}).json()] == ["Acme"]
    assert [j["company"] for j in client.get("/api/v1/jobs", params={"search": "design"}).json()] == ["Globex"]

    assert client.delete(f"/api/v1/jobs/{job['id']}").json() == {"message": "Job deleted successfully"}
    r = client.get(f"/api/v1/jobs/{job['id']}")
    assert r.status_code == 404
    assert r.json() == {"error": f"Job {job['id']} not found"}


def test_job_validation(client):
    r = client.post("/api/v1/jobs", json={"company": "Acme"})
    assert r.status_code == 422
    assert "position" in r.json()["error"]

    r = client.post("/api/v1/jobs", json={"company": "Acme", "position": "Eng", "status": "ghosted"})
    assert r.status_code == 422

    job = _job(client)
    r = client.put(f"/api/v1/jobs/{job['id']}", json={"company": "  "})
    assert r.status_code == 422
    assert r.json() == {"error": "company cannot be empty"}


# --- contacts, links, interactions ---------------------------------------------

def test_contact_links_and_interactions(client):
    job = _job(client)
    contact = _contact(client, associated_job_id=job["id"])
    cid = contact["id"]
    assert contact["interactions"] == []

    r = client.post(f"/api/v1/contacts/{cid}/jobs/{job['id']}")
    assert r.status_code == 201
    assert r.json()["contact_id"] == cid
    assert client.post(f"/api/v1/contacts/{cid}/jobs/{job['id']}").status_code == 409

    assert [j["id"] for j in client.get(f"/api/v1/contacts/{cid}/jobs").json()] == [job["id"]]
    assert [c["id"] for c in client.get(f"/api/v1/jobs/{job['id']}/contacts").json()] == [cid]

    for day, kind in (("2026-01-02", "email"), ("2026-01-09", "phone"), ("2026-01-05", "email")):
        r = client.post("/api/v1/interactions", json={
            "contact_id": cid, "type": kind, "date": day, "summary": f"{kind} on {day}",
        })
        assert r.status_code == 201, r.text

    listed = client.get("/api/v1/contacts").json()
    assert [i["date"] for i in listed[0]["interactions"]] == ["2026-01-09", "2026-01-05", "2026-01-02"]

    stats = client.get(f"/api/v1/contacts/{cid}/interactions/stats").json()
    assert stats == {
        "contact_id": cid,
        "total": 3,
        "by_type": {"email": 2, "phone": 1},
        "last_interaction": "2026-01-09",
    }

    assert client.delete(f"/api/v1/contacts/{cid}/jobs/{job['id']}").status_code == 200
    assert client.delete(f"/api/v1/contacts/{cid}/jobs/{job['id']}").status_code == 404
    assert client.get(f"/api/v1/contacts/{cid}/jobs").json() == []


def test_interaction_crud(client):
    contact = _contact(client)
    r = client.post("/api/v1/interactions", json={
        "contact_id": contact["id"], "type": "linkedin", "date": "2026-02-01", "summary": "Connected",
    })
    iid = r.json()["id"]

    r = client.put(f"/api/v1/interactions/{iid}", json={"summary": "Connected and chatted"})
    assert r.json()["summary"] == "Connected and chatted"
    assert r.json()["type"] == "linkedin"

    assert len(client.get("/api/v1/interactions", params={"contact_id": contact["id"]}).json()) == 1
    assert client.delete(f"/api/v1/interactions/{iid}").status_code == 200
    assert client.get("/api/v1/interactions").json() == []


def test_interaction_for_unknown_contact(client):
    r = client.post("/api/v1/interactions", json={
        "contact_id": 42, "type": "email", "date": "2026-02-01", "summary": "x",
    })
    assert r.status_code == 422
    assert r.json() == {"error": "Contact 42 does not exist"}


def test_deleting_contact_removes_interactions(client):
    contact = _contact(client)
    client.post("/api/v1/interactions", json={
        "contact_id": contact["id"], "type": "meeting", "date": "2026-02-01", "summary": "Coffee",
    })
    assert client.delete(f"/api/v1/contacts/{contact['id']}").json() == {"message": "Contact deleted successfully"}
    assert client.get("/api/v1/interactions").json() == []


def test_deleting_job_nulls_associated_contact(client):
    job = _job(client)
    contact = _contact(client, associated_job_id=job["id"])
    client.delete(f"/api/v1/jobs/{job['id']}")
    assert client.get(f"/api/v1/contacts/{contact['id']}").json()["associated_job_id"] is None


def test_unknown_user_header(client):
    r = client.get("/api/v1/jobs", headers={"X-User-Id": "999"})
    assert r.status_code == 404
    assert r.json() == {"error": "User 999 not found"}


def test_me_is_default_user(client):
    me = client.get("/api/v1/me").json()
    assert me["email"] == "me@example.com"
    assert client.get("/api/v1/me", headers={"X-User-Id": str(me["id"])}).json() == me


# --- reminders -----------------------------------------------------------------

def test_reminder_lifecycle_over_http(client):
    contact = _contact(client, name="Bob", company="Initech")
    r = client.post("/api/v1/reminders", json={
        "scheduled_time": _in(days=1),
        "subject": "Follow up with Bob",
        "user_message": "Hi Bob!",
        "contact_id": contact["id"],
    })
    assert r.status_code == 201, r.text
    rem = r.json()
    assert rem["status"] == "pending"
    assert rem["timezone"] == "America/New_York"
    assert rem["contact_name"] == "Bob"
    assert rem["contact_company"] == "Initech"
    assert rem["is_overdue"] is False

    r = client.put(f"/api/v1/reminders/{rem['id']}", json={"user_message": "Hi again Bob!"})
    assert r.status_code == 200
    assert r.json()["user_message"] == "Hi again Bob!"

    page = client.get("/api/v1/reminders", params={"search": "initech"}).json()
    assert page["total"] == 1
    assert page["items"][0]["id"] == rem["id"]

    r = client.delete(f"/api/v1/reminders/{rem['id']}")
    assert r.status_code == 200
    assert r.json()["status"] == "cancelled"

    r = client.put(f"/api/v1/reminders/{rem['id']}", json={"subject": "too late"})
    assert r.status_code == 409

    stats = client.get("/api/v1/reminders/stats").json()
    assert stats["total"] == 1
    assert stats["by_status"]["cancelled"] == 1


def test_reminder_too_soon_is_422(client):
    r = client.post("/api/v1/reminders", json={
        "scheduled_time": _in(minutes=1), "subject": "s", "user_message": "m",
    })
    assert r.status_code == 422
    assert r.json() == {"error": "Scheduled time must be at least 5 minutes from now"}


def test_reminder_list_params_are_validated(client):
    assert client.get("/api/v1/reminders", params={"status": "bogus"}).status_code == 422
    assert client.get("/api/v1/reminders", params={"sort_by": "subject"}).status_code == 422
    assert client.get("/api/v1/reminders", params={"limit": 0}).status_code == 422


def test_reminder_list_pagination(client):
    for h in (3, 1, 2):
        client.post("/api/v1/reminders", json={
            "scheduled_time": _in(hours=h), "subject": f"in {h}h", "user_message": "m",
        })
    page = client.get("/api/v1/reminders", params={"limit": 2, "sort_order": "desc"}).json()
    assert page["total"] == 3
    assert page["limit"] == 2
    assert [i["subject"] for i in page["items"]] == ["in 3h", "in 2h"]


def test_cancel_sent_reminder_conflicts(client, make_reminder):
    sent = make_reminder(status="sent")
    r = client.delete(f"/api/v1/reminders/{sent.id}")
    assert r.status_code == 409
    assert "cannot be cancelled" in r.json()["error"]
    assert client.get(f"/api/v1/reminders/{sent.id}").json()["status"] == "sent"


def test_missing_reminder_is_404(client):
    assert client.get("/api/v1/reminders/12345").status_code == 404


# --- dispatch trigger ------------------------------------------------------------

def test_dispatch_endpoint(client, make_reminder, mailer):
    app.dependency_overrides[reminders_api.get_mailer] = lambda: mailer
    due = make_reminder(subject="Due now")

    r = client.post("/api/v1/reminders/dispatch")
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["processed"] == 1
    assert body["results"] == [{"reminder_id": due.id, "status": "sent"}]
    assert client.get(f"/api/v1/reminders/{due.id}").json()["status"] == "sent"


def test_dispatch_secret(client, make_reminder, mailer, monkeypatch):
    monkeypatch.setenv("DISPATCH_SECRET", "s3cret")
    app.dependency_overrides[reminders_api.get_mailer] = lambda: mailer
    make_reminder()

    assert client.post("/api/v1/reminders/dispatch").status_code == 404
    assert client.post("/api/v1/reminders/dispatch", headers={"X-Dispatch-Secret": "nope"}).status_code == 404
    assert mailer.attempts == []

    r = client.post("/api/v1/reminders/dispatch", headers={"X-Dispatch-Secret": "s3cret"})
    assert r.status_code == 200
    assert r.json()["processed"] == 1


def test_dispatch_without_credentials_is_500(client, make_reminder, monkeypatch):
    for name in ("GMAIL_SERVICE_ACCOUNT_FILE", "GMAIL_CLIENT_EMAIL", "GMAIL_PRIVATE_KEY", "GMAIL_PROJECT_ID"):
        monkeypatch.delenv(name, raising=False)
    make_reminder()

    r = client.post("/api/v1/reminders/dispatch")
    assert r.status_code == 500
    assert r.json() == {"success": False, "error": "Gmail credentials not configured"}


def test_dispatch_with_malformed_key_file_is_500(client, make_reminder, monkeypatch, tmp_path):
    key = tmp_path / "sa.json"
    key.write_text("not json")
    monkeypatch.setenv("GMAIL_SERVICE_ACCOUNT_FILE", str(key))
    make_reminder()

    r = client.post("/api/v1/reminders/dispatch")
    assert r.status_code == 500
    assert r.json()["success"] is False
    assert r.json()["error"].startswith("Invalid Gmail service account file")

    r = client.get("/api/v1/config")
    assert r.status_code == 200
    assert r.json()["gmail_configured"] is False


# --- database errors ---------------------------------------------------------------

def test_database_not_configured_is_503(client):
    def _no_database():
        raise DatabaseUnavailable()

    app.dependency_overrides[get_session] = _no_database
    r = client.get("/api/v1/jobs")
    assert r.status_code == 503
    assert r.json() == {"error": "Database not configured"}


def test_sqlalchemy_error_is_logged_500(client, monkeypatch, caplog):
    def _broken(*args, **kwargs):
        raise OperationalError("SELECT * FROM jobs", {}, Exception("disk I/O error"))

    monkeypatch.setattr(crud, "list_jobs", _broken)
    with caplog.at_level(logging.ERROR):
        r = client.get("/api/v1/jobs")
    assert r.status_code == 500
    assert r.json() == {"error": "Database error"}
    assert any("[db] GET /api/v1/jobs failed" in rec.getMessage() for rec in caplog.records)
