import logging
import logging.handlers
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

import structlog

TELEMETRY_LOGGER_NAME = "review_telemetry"


def setup_logging(log_level: str = "INFO", log_to_file: bool = True) -> None:
    """Set up logging configuration for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_to_file: Whether to log to files in addition to console
    """
    level = getattr(logging, log_level.upper())

    # Configure structlog
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.set_exc_info,
            (
                structlog.processors.JSONRenderer()
                if log_to_file
                else structlog.dev.ConsoleRenderer()
            ),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)
    root_logger.addHandler(console_handler)

    if log_to_file:
        logs_dir = Path("logs")
        logs_dir.mkdir(exist_ok=True)

        app_handler = logging.handlers.RotatingFileHandler(
            logs_dir / "app.log", maxBytes=10 * 1024 * 1024, backupCount=5  # 10MB
        )
        app_handler.setLevel(logging.INFO)
        app_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
            )
        )
        root_logger.addHandler(app_handler)

        # Telemetry warnings get their own file so analytics gaps are easy to audit
        telemetry_handler = logging.handlers.RotatingFileHandler(
            logs_dir / "telemetry.log",
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=10,
        )
        telemetry_handler.setLevel(logging.DEBUG)
        telemetry_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s")
        )
        telemetry_logger = logging.getLogger(TELEMETRY_LOGGER_NAME)
        telemetry_logger.addHandler(telemetry_handler)
        telemetry_logger.propagate = True

        error_handler = logging.handlers.RotatingFileHandler(
            logs_dir / "errors.log", maxBytes=5 * 1024 * 1024, backupCount=10  # 5MB
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s - %(exc_info)s"
            )
        )
        root_logger.addHandler(error_handler)


def get_telemetry_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    """Get a structured logger for the review telemetry path.

    Args:
        name: Logger name (defaults to the shared telemetry logger)
    """
    return structlog.get_logger(name or TELEMETRY_LOGGER_NAME)


def log_review_step(
    step: str, details: Dict[str, Any], logger: structlog.BoundLogger = None
) -> None:
    """Log a review operation step."""
    if logger is None:
        logger = get_telemetry_logger("review_session")

    logger.info(f"Review step: {step}", step=step, **details)


def log_review_error(
    error: Exception, context: Dict[str, Any], logger: structlog.BoundLogger = None
) -> None:
    """Log a failed review operation with its context."""
    if logger is None:
        logger = get_telemetry_logger("review_session")

    logger.warning(
        "Review operation failed",
        error_type=type(error).__name__,
        error_message=str(error),
        **context,
    )


class ReviewLogContext:
    """Context manager that logs start, duration and outcome of a review operation.

    Never put raw owner ids in the context; pass the owner hash or nothing.
    """

    def __init__(self, operation: str, **context):
        self.operation = operation
        self.context = context
        self.logger = get_telemetry_logger("review_session")
        self.start_time: Optional[datetime] = None

    def __enter__(self):
        self.start_time = datetime.now()
        log_review_step(f"{self.operation} - START", self.context, self.logger)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = (datetime.now() - self.start_time).total_seconds()
        if exc_type is not None:
            log_review_error(
                exc_val,
                {"operation": self.operation, "duration_seconds": duration, **self.context},
                self.logger,
            )
        else:
            log_review_step(
                f"{self.operation} - DONE",
                {"duration_seconds": duration, **self.context},
                self.logger,
            )
        return False
