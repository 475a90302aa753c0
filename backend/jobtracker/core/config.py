# backend/jobtracker/core/config.py
"""
Central config & environment helpers.
- Loads env (.env) early
- Exposes reminder scheduling rules, dispatcher options and mail credentials
- Values are read from the environment on every call so a running process
  (or a test) sees the current env without re-importing
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from .errors import MailerError

# Load .env once for the whole app
load_dotenv(override=False)


def _env_str(name: str, default: str = "") -> str:
    return (os.getenv(name) or default).strip()


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


# --- App / CORS --------------------------------------------------------------

_DEFAULT_ORIGINS = {
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
}


def get_allowed_origins() -> List[str]:
    extra = {o.strip() for o in _env_str("ALLOWED_ORIGINS").split(",") if o.strip()}
    return sorted(_DEFAULT_ORIGINS | extra)


def get_app_url() -> str:
    """Base URL of the web UI, used for quick-action links inside emails."""
    return _env_str("APP_URL", "http://localhost:3000").rstrip("/")


def get_default_user() -> Dict[str, str]:
    return {
        "email": _env_str("JOBTRACKER_USER_EMAIL", "me@example.com"),
        "name": _env_str("JOBTRACKER_USER_NAME", "Me"),
    }


def get_log_level() -> str:
    return _env_str("LOG_LEVEL", "INFO").upper()


# --- Reminder rules ------------------------------------------------------------

DEFAULT_REMINDER_RULES: Dict[str, Any] = {
    "min_lead_minutes": 5,
    "max_horizon_months": 12,   # a month counts as 30 days
    "subject_max_length": 200,
    "user_message_max_length": 2000,
    "default_timezone": "America/New_York",
}


def get_reminder_rules() -> Dict[str, Any]:
    rules = dict(DEFAULT_REMINDER_RULES)
    rules["min_lead_minutes"] = _env_int("REMINDER_MIN_LEAD_MINUTES", rules["min_lead_minutes"])
    rules["max_horizon_months"] = _env_int("REMINDER_MAX_HORIZON_MONTHS", rules["max_horizon_months"])
    rules["default_timezone"] = _env_str("REMINDER_DEFAULT_TIMEZONE", rules["default_timezone"])
    return rules


# --- Dispatcher ----------------------------------------------------------------

DEFAULT_DISPATCH_OPTIONS: Dict[str, Any] = {
    "lookahead_minutes": 5,
    "batch_size": 50,
}


def get_dispatch_options() -> Dict[str, Any]:
    opts = dict(DEFAULT_DISPATCH_OPTIONS)
    opts["lookahead_minutes"] = _env_int("DISPATCH_LOOKAHEAD_MINUTES", opts["lookahead_minutes"])
    opts["batch_size"] = max(1, _env_int("DISPATCH_BATCH_SIZE", opts["batch_size"]))
    return opts


def get_dispatch_secret() -> str:
    return _env_str("DISPATCH_SECRET")


# --- Gmail -----------------------------------------------------------------------

GMAIL_SCOPES = ["https://www.googleapis.com/auth/gmail.send"]
GMAIL_TOKEN_URI = "https://oauth2.googleapis.com/token"


def get_gmail_from_email() -> str:
    return _env_str("GMAIL_FROM_EMAIL", "jobtracker@example.com")


def get_gmail_credentials() -> Optional[Dict[str, Any]]:
    """
    Service-account info for the Gmail API, or None when not configured.
    An unreadable or malformed key file raises MailerError.

    Resolution order:
      1) GMAIL_SERVICE_ACCOUNT_FILE (JSON key file downloaded from Google Cloud)
      2) GMAIL_CLIENT_EMAIL + GMAIL_PRIVATE_KEY + GMAIL_PROJECT_ID
    """
    key_file = _env_str("GMAIL_SERVICE_ACCOUNT_FILE")
    if key_file:
        path = Path(key_file)
        if not path.exists():
            return None
        try:
            info = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise MailerError(f"Invalid Gmail service account file: {e}")
        if not isinstance(info, dict):
            raise MailerError("Invalid Gmail service account file: expected a JSON object")
        return info

    client_email = _env_str("GMAIL_CLIENT_EMAIL")
    private_key = _env_str("GMAIL_PRIVATE_KEY")
    project_id = _env_str("GMAIL_PROJECT_ID")
    if not (client_email and private_key and project_id):
        return None

    return {
        "type": "service_account",
        "project_id": project_id,
        "client_email": client_email,
        # secrets stores often keep the PEM on one line with literal \n
        "private_key": private_key.replace("\\n", "\n"),
        "token_uri": GMAIL_TOKEN_URI,
    }


def get_gmail_delegated_user() -> str:
    """Mailbox the service account impersonates (domain-wide delegation)."""
    return _env_str("GMAIL_DELEGATED_USER") or get_gmail_from_email()


def _gmail_configured() -> bool:
    try:
        return get_gmail_credentials() is not None
    except MailerError:
        return False


def public_config() -> Dict[str, Any]:
    """Non-secret view of the effective configuration."""
    return {
        "app_url": get_app_url(),
        "default_user_email": get_default_user()["email"],
        "reminder_rules": get_reminder_rules(),
        "dispatch": get_dispatch_options(),
        "dispatch_secret_set": bool(get_dispatch_secret()),
        "gmail_configured": _gmail_configured(),
        "gmail_from_email": get_gmail_from_email(),
    }


__all__ = [
    "get_allowed_origins",
    "get_app_url",
    "get_default_user",
    "get_log_level",
    "DEFAULT_REMINDER_RULES",
    "get_reminder_rules",
    "DEFAULT_DISPATCH_OPTIONS",
    "get_dispatch_options",
    "get_dispatch_secret",
    "GMAIL_SCOPES",
    "get_gmail_from_email",
    "get_gmail_credentials",
    "get_gmail_delegated_user",
    "public_config",
]
