# backend/jobtracker/core/log.py
"""Process-wide logging setup (called once by the API and the dispatch CLI)."""

from __future__ import annotations

import logging
from typing import Optional

from .config import get_log_level

_configured = False


def setup_logging(level: Optional[str] = None) -> None:
    global _configured
    if _configured:
        return
    logging.basicConfig(
        level=(level or get_log_level()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    _configured = True
