import base64
import email
from datetime import datetime
from types import SimpleNamespace

from jobtracker.dispatch.gmail import GmailMailer, build_message
from jobtracker.dispatch.render import compose_body, render_reminder_email


def _reminder(**kw):
    data = dict(
        subject="Check in",
        user_message="Hi <b>Sam</b>,\nany update?",
        scheduled_time=datetime(2026, 1, 5, 20, 4),
        timezone="America/New_York",
        contact_id=None, contact=None,
        job_id=None, job=None,
    )
    data.update(kw)
    return SimpleNamespace(**data)


def test_render_escapes_user_text():
    subject, html = render_reminder_email(_reminder(), "me@example.com", "https://tracker.test")
    assert subject == "Check in"
    assert "Hi &lt;b&gt;Sam&lt;/b&gt;" in html
    assert "<b>Sam</b>" not in html
    assert "Monday, January 5, 2026 at 3:04 PM EST" in html
    assert "<strong>me@example.com</strong>" in html
    assert "View Contact" not in html
    assert "View Job" not in html


def test_render_contact_context():
    contact = SimpleNamespace(name="Sam & Co", email="sam@acme.test", company="Acme")
    _, html = render_reminder_email(
        _reminder(contact_id=7, contact=contact), "me@example.com", "https://tracker.test"
    )
    assert "Sam &amp; Co" in html
    assert 'href="mailto:sam@acme.test"' in html
    assert 'href="https://tracker.test?contact=7"' in html


def test_render_job_context():
    job = SimpleNamespace(position="Engineer", company="Acme", location=None)
    _, html = render_reminder_email(_reminder(job_id=3, job=job), "me@example.com", "https://tracker.test")
    assert "<strong>Position:</strong> Engineer" in html
    assert "Location" not in html
    assert 'href="https://tracker.test?job=3"' in html


def test_render_unknown_timezone_falls_back_to_utc():
    _, html = render_reminder_email(_reminder(timezone="Nowhere/Land"), "me@example.com", "https://x.test")
    assert "Monday, January 5, 2026 at 8:04 PM UTC" in html


def test_compose_body():
    contact = SimpleNamespace(name="Sam", company=None)
    job = SimpleNamespace(position="Engineer", company="Acme")
    assert compose_body(contact, None, "hello") == "Reminder: follow up with Sam\n\nhello"
    assert compose_body(None, job, "hello") == "Reminder: follow up on Engineer at Acme\n\nhello"
    assert compose_body(None, None, "hello") == "Reminder: general follow-up\n\nhello"


def test_build_message_is_base64url_mime():
    body = build_message("me@example.com", "Check in", "<p>hi</p>", "bot@example.com")
    msg = email.message_from_bytes(base64.urlsafe_b64decode(body["raw"]))
    assert msg["to"] == "me@example.com"
    assert msg["subject"] == "Check in"
    assert msg["from"] == "Job Tracker <bot@example.com>"
    assert msg.get_content_type() == "text/html"
    assert msg.get_payload(decode=True).decode("utf-8") == "<p>hi</p>"


def test_gmail_mailer_uses_injected_service():
    calls = []

    class _Req:
        def __init__(self, body):
            self.body = body

        def execute(self):
            calls.append(self.body)
            return {"id": "abc"}

    class _Messages:
        def send(self, userId, body):
            assert userId == "me"
            return _Req(body)

    class _Users:
        def messages(self):
            return _Messages()

    class _Service:
        def users(self):
            return _Users()

    mailer = GmailMailer(credentials=None, from_email="bot@example.com")
    mailer._service = _Service()
    assert mailer.send("me@example.com", "Hi", "<p>x</p>") == {"id": "abc"}
    assert list(calls[0]) == ["raw"]
