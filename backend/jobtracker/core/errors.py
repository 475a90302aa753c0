# backend/jobtracker/core/errors.py
"""
Domain exceptions. Each carries the HTTP status the API maps it to, so the
handlers in main.py stay a single lookup.
"""

from __future__ import annotations


class JobTrackerError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(JobTrackerError):
    status_code = 422


class NotFoundError(JobTrackerError):
    status_code = 404


class ConflictError(JobTrackerError):
    status_code = 409


class DatabaseUnavailable(JobTrackerError):
    status_code = 503

    def __init__(self, message: str = "Database not configured"):
        super().__init__(message)


class MailerError(JobTrackerError):
    status_code = 502


__all__ = [
    "JobTrackerError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "DatabaseUnavailable",
    "MailerError",
]
