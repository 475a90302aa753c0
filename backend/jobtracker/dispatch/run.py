# backend/jobtracker/dispatch/run.py
"""
CLI for the external scheduler (cron, systemd timer, k8s CronJob):

    python -m jobtracker.dispatch.run
    jobtracker-dispatch            # console script

Prints the run summary as JSON; exit code 1 when the run failed as a whole.
"""

from __future__ import annotations

import json
import logging
import sys

from ..core.errors import JobTrackerError
from ..core.log import setup_logging
from ..db.session import session_scope
from .dispatcher import run_dispatch

logger = logging.getLogger(__name__)


def main() -> int:
    setup_logging()
    try:
        with session_scope() as s:
            summary = run_dispatch(s)
    except JobTrackerError as e:
        logger.error("[dispatch] run aborted: %s", e.message)
        summary = {"success": False, "error": e.message}
    print(json.dumps(summary, indent=2, default=str))
    return 0 if summary.get("success") else 1


if __name__ == "__main__":
    sys.exit(main())
