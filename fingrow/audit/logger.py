"""
Audit Logger

DESIGN DECISION: Every ledger mutation and every AI request is logged.
This provides:
1. Complete traceability
2. Debugging capability
3. A recent-activity list the settings page can show

The audit logger:
- Is synchronous; ledger mutations are synchronous too
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

import logging
import sys
from collections import deque
from uuid import UUID, uuid4

import structlog

from fingrow.models.audit import AuditEvent, AuditSeverity


def configure_logging(level: str = "INFO") -> None:
    """
    Configure the stdlib root logger and structlog on top of it.

    Called at import with INFO and again by the application factory with the
    configured level.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=logging.INFO,
    )
    logging.getLogger().setLevel(getattr(logging, level.upper(), logging.INFO))
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()


class AuditLogger:
    """
    Central audit logging service.

    Logs events to the structured local log and keeps the most recent ones
    in memory for display.
    """

    def __init__(self, history_size: int = 200):
        """
        Initialize audit logger.

        Args:
            history_size: How many recent events to keep in memory.
        """
        self._logger = structlog.get_logger(__name__)
        self._history: deque[AuditEvent] = deque(maxlen=history_size)

    @property
    def history(self) -> list[AuditEvent]:
        """Recent events, oldest first."""
        return list(self._history)

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns False if the structured log write failed. Never raises.
        """
        self._history.append(event)
        log_dict = event.to_log_dict()

        try:
            if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            elif event.severity == AuditSeverity.DEBUG:
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception:
            return False

        return True


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., an advisor question).
    Pass it through all subsequent operations.
    """
    return uuid4()
