"""
Audit logging for privacy-relevant events.

Logs to a separate audit.log file with 90-day retention.
Events: telemetry opt-out, telemetry opt-in.
"""

import logging
import logging.handlers
from pathlib import Path
from typing import Optional


def get_audit_logger() -> logging.Logger:
    """Get or create the audit logger with dedicated file handler."""
    logger = logging.getLogger("audit")

    if not logger.handlers:
        logs_dir = Path("logs")
        logs_dir.mkdir(exist_ok=True)

        handler = logging.handlers.TimedRotatingFileHandler(
            logs_dir / "audit.log",
            when="midnight",
            interval=1,
            backupCount=90,
        )
        handler.setLevel(logging.INFO)
        formatter = logging.Formatter(
            "%(asctime)s - AUDIT - %(levelname)s - %(message)s"
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        logger.propagate = False  # Don't send to root logger

    return logger


def audit_log(event: str, owner_hash: Optional[str] = None, details: Optional[str] = None) -> None:
    """Log a privacy-relevant event.

    Args:
        event: Event type (e.g., "ml_opt_out", "ml_opt_in")
        owner_hash: Salted owner hash; the raw owner id is never written here
        details: Additional context
    """
    logger = get_audit_logger()
    parts = [f"event={event}"]
    parts.append(f"owner={owner_hash}" if owner_hash else "owner=<redacted>")
    if details:
        parts.append(f"details={details}")
    logger.info(" | ".join(parts))
