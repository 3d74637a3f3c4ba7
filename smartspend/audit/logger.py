"""
Audit Logger

DESIGN DECISION: Every transition attempt is logged, applied or rejected.
This provides:
1. Complete traceability of who changed what
2. Debugging capability
3. A record of refused operations (permission errors, lockouts)

The audit logger:
- Gracefully handles failures (doesn't break a transition if logging fails)
- Supports correlation IDs to trace related events
- Never receives secrets; callers strip them before building events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from smartspend.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from smartspend.services.storage import AuditStorageInterface


# Configure structlog for local logging
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


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit storage backend, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("smartspend.audit")

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                stored = self._storage.append_event(event)
            except Exception as e:
                stored = False
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
            if not stored:
                self._logger.warning(
                    "audit_event_not_persisted",
                    event_id=str(event.event_id),
                )
            return stored

        return True

    def log_transition_applied(
        self,
        transition: str,
        actor_id: Optional[str],
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.transition_applied(
            transition=transition,
            actor_id=actor_id,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_transition_rejected(
        self,
        transition: str,
        actor_id: Optional[str],
        error_code: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.transition_rejected(
            transition=transition,
            actor_id=actor_id,
            error_code=error_code,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_state_loaded(
        self,
        bootstrapped: bool,
        user_count: int,
        workspace_count: int,
        expense_count: int,
    ) -> None:
        self.log(AuditEventBuilder.state_loaded(
            bootstrapped=bootstrapped,
            user_count=user_count,
            workspace_count=workspace_count,
            expense_count=expense_count,
        ))

    def log_state_saved(
        self,
        transition: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.state_saved(transition, correlation_id))

    def log_save_failed(
        self,
        transition: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.save_failed(transition, error_message, correlation_id))

    def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        event = AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., an AI-assisted
    expense entry). Pass it through all subsequent operations.
    """
    return uuid4()
