# backend/jobtracker/dispatch/dispatcher.py
"""
Reminder dispatcher (batch).

One run:
  1) due_reminders: pending rows with scheduled_time <= now + lookahead, oldest first, capped
  2) for each, sequentially: re-read the row (skip if no longer pending) ->
     resolve the owner's email -> render -> send -> mark sent/failed
  3) return a summary {success, processed, errors, skipped, total, results}

A failing reminder is marked failed and the run moves on. Each status update
commits on its own. Delivery is at-least-once: a crash between send and the
status update, or two overlapping runs, can send a reminder twice.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Protocol

from sqlalchemy.orm import Session

from ..core.config import get_app_url, get_dispatch_options
from ..core.errors import ConflictError, MailerError
from ..core.utils import now_utc
from ..db import reminders as store
from ..db.models import Reminder, ReminderStatus
from .render import render_reminder_email

logger = logging.getLogger(__name__)


class Mailer(Protocol):
    def send(self, to_email: str, subject: str, html_body: str) -> Any: ...


class ReminderDispatcher:
    def __init__(
        self,
        session: Session,
        mailer: Mailer,
        app_url: Optional[str] = None,
        options: Optional[Dict[str, Any]] = None,
        clock: Callable[[], datetime] = now_utc,
    ):
        self.session = session
        self.mailer = mailer
        self.app_url = app_url or get_app_url()
        self.options = {**get_dispatch_options(), **(options or {})}
        self.clock = clock

    def due(self) -> List[Reminder]:
        return store.due_reminders(
            self.session,
            now=self.clock(),
            lookahead_minutes=int(self.options["lookahead_minutes"]),
            batch_size=int(self.options["batch_size"]),
        )

    def deliver(self, reminder: Reminder) -> Dict[str, Any]:
        """
        Send one reminder and mark it sent; returns its result entry.
        Rows that stopped being pending since `due()` are skipped without
        sending. Raises on any delivery failure.
        """
        reminder_id = reminder.id
        self.session.refresh(reminder)
        if reminder.status != ReminderStatus.pending.value:
            logger.info("[dispatch] reminder %s is %s; skipping", reminder_id, reminder.status)
            return {"reminder_id": reminder_id, "status": "skipped", "reason": f"Reminder is {reminder.status}"}

        user = reminder.user
        if user is None or not user.email:
            raise MailerError(f"Unable to get user email for reminder {reminder_id}")
        subject, html = render_reminder_email(reminder, user.email, self.app_url)
        self.mailer.send(user.email, subject, html)
        try:
            store.mark_sent(self.session, reminder, sent_at=self.clock())
        except ConflictError as e:
            # the mail is out; the row was finalized elsewhere while sending
            logger.warning("[dispatch] reminder %s sent but not recorded: %s", reminder_id, e.message)
            return {"reminder_id": reminder_id, "status": "sent", "warning": e.message}
        return {"reminder_id": reminder_id, "status": "sent"}

    def _fail(self, reminder_id: int, error: Exception) -> None:
        # the failed attempt may have left the transaction unusable
        self.session.rollback()
        reminder = self.session.get(Reminder, reminder_id)
        if reminder is None:
            return
        try:
            store.mark_failed(self.session, reminder, str(error) or error.__class__.__name__)
        except ConflictError:
            # finalized elsewhere in the meantime (e.g. sent, then the commit raised)
            logger.warning("[dispatch] reminder %s already finalized; leaving status %s", reminder_id, reminder.status)

    def run(self) -> Dict[str, Any]:
        reminders = self.due()
        logger.info("[dispatch] found %d reminder(s) to process", len(reminders))

        results: List[Dict[str, Any]] = []
        processed = errors = skipped = 0
        for reminder in reminders:
            reminder_id = reminder.id
            try:
                result = self.deliver(reminder)
            except Exception as e:
                errors += 1
                logger.error("[dispatch] error processing reminder %s: %s", reminder_id, e)
                results.append({"reminder_id": reminder_id, "status": "failed", "error": str(e)})
                try:
                    self._fail(reminder_id, e)
                except Exception:
                    logger.exception("[dispatch] could not mark reminder %s as failed", reminder_id)
                continue
            if result["status"] == "skipped":
                skipped += 1
            else:
                processed += 1
                logger.info("[dispatch] sent reminder %s", reminder_id)
            results.append(result)

        logger.info("[dispatch] complete: %d sent, %d failed, %d skipped", processed, errors, skipped)
        return {
            "success": True,
            "processed": processed,
            "errors": errors,
            "skipped": skipped,
            "total": len(reminders),
            "results": results,
        }


def run_dispatch(
    session: Session,
    mailer: Optional[Mailer] = None,
    options: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Main entry used by the HTTP trigger and the CLI.
    Without a mailer, the Gmail mailer is built from env; missing credentials
    fail the whole run before any reminder is touched.
    """
    if mailer is None:
        from .gmail import GmailMailer

        mailer = GmailMailer.from_config()
    return ReminderDispatcher(session, mailer, options=options).run()


__all__ = ["Mailer", "ReminderDispatcher", "run_dispatch"]
