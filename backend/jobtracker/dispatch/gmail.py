# backend/jobtracker/dispatch/gmail.py
"""
Gmail API mailer authenticated with a Google service account.
- Credentials come from core.config.get_gmail_credentials()
- The service account impersonates GMAIL_DELEGATED_USER (defaults to the sender)
- send() builds an RFC 2822 HTML message and posts it to users.messages.send
"""

from __future__ import annotations

import base64
import logging
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Any, Dict, Optional

from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from ..core.config import (
    GMAIL_SCOPES,
    get_gmail_credentials,
    get_gmail_delegated_user,
    get_gmail_from_email,
)
from ..core.errors import MailerError

logger = logging.getLogger(__name__)

SENDER_NAME = "Job Tracker"


def build_message(to_email: str, subject: str, html_body: str, from_email: str) -> Dict[str, str]:
    """Gmail `messages.send` body: {"raw": base64url(RFC 2822)}."""
    message = MIMEText(html_body, "html", "utf-8")
    message["to"] = to_email
    message["from"] = formataddr((SENDER_NAME, from_email))
    message["subject"] = subject
    raw = base64.urlsafe_b64encode(message.as_bytes()).decode()
    return {"raw": raw}


class GmailMailer:
    def __init__(self, credentials: Any, from_email: str):
        self.credentials = credentials
        self.from_email = from_email
        self._service = None

    @classmethod
    def from_config(cls, info: Optional[Dict[str, Any]] = None) -> "GmailMailer":
        info = info or get_gmail_credentials()
        if not info:
            raise MailerError("Gmail credentials not configured")
        try:
            creds = service_account.Credentials.from_service_account_info(info, scopes=GMAIL_SCOPES)
        except (ValueError, KeyError) as e:
            raise MailerError(f"Invalid Gmail service account credentials: {e}")
        delegated = get_gmail_delegated_user()
        if delegated:
            creds = creds.with_subject(delegated)
        return cls(creds, get_gmail_from_email())

    @property
    def service(self):
        if self._service is None:
            self._service = build("gmail", "v1", credentials=self.credentials, cache_discovery=False)
        return self._service

    def send(self, to_email: str, subject: str, html_body: str) -> Dict[str, Any]:
        body = build_message(to_email, subject, html_body, self.from_email)
        try:
            return self.service.users().messages().send(userId="me", body=body).execute()
        except HttpError as e:
            status = getattr(e.resp, "status", "?")
            raise MailerError(f"Gmail API error: {status} - {e}")


__all__ = ["GmailMailer", "build_message", "SENDER_NAME"]
