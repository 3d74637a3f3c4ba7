"""
Audit Models for SmartSpend

Every applied or rejected transition is logged for audit purposes.
This provides:
1. Complete traceability of who changed what
2. Debugging information when things go wrong
3. Ability to reconstruct history

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
Secrets never appear in event details.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Each transition kind has its own event type, plus one shared type for
    rejections.
    """
    # Directory
    USER_REGISTERED = "user_registered"
    USER_AUTHENTICATED = "user_authenticated"
    USER_LOGGED_OUT = "user_logged_out"
    PROFILE_UPDATED = "profile_updated"
    THEME_UPDATED = "theme_updated"
    USER_DELETED = "user_deleted"

    # Credentials
    CREDENTIAL_RESET_ISSUED = "credential_reset_issued"
    CREDENTIAL_RESET_COMPLETED = "credential_reset_completed"

    # Workspaces
    WORKSPACE_CREATED = "workspace_created"
    WORKSPACE_SWITCHED = "workspace_switched"
    WORKSPACE_SETTINGS_UPDATED = "workspace_settings_updated"
    MEMBERSHIP_TOGGLED = "membership_toggled"
    VIEW_CHANGED = "view_changed"

    # Ledger
    EXPENSE_ADDED = "expense_added"
    EXPENSE_DELETED = "expense_deleted"
    EXPENSES_BULK_DELETED = "expenses_bulk_deleted"

    # Rejections
    TRANSITION_REJECTED = "transition_rejected"

    # Persistence
    STATE_LOADED = "state_loaded"
    STATE_BOOTSTRAPPED = "state_bootstrapped"
    STATE_SAVED = "state_saved"
    SAVE_FAILED = "save_failed"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


# Transition kind -> event type for applied transitions
TRANSITION_EVENT_TYPES: dict[str, AuditEventType] = {
    "register_user": AuditEventType.USER_REGISTERED,
    "authenticate": AuditEventType.USER_AUTHENTICATED,
    "logout": AuditEventType.USER_LOGGED_OUT,
    "update_own_profile": AuditEventType.PROFILE_UPDATED,
    "update_own_theme": AuditEventType.THEME_UPDATED,
    "delete_user": AuditEventType.USER_DELETED,
    "issue_credential_reset": AuditEventType.CREDENTIAL_RESET_ISSUED,
    "reset_credential": AuditEventType.CREDENTIAL_RESET_COMPLETED,
    "create_workspace": AuditEventType.WORKSPACE_CREATED,
    "switch_workspace": AuditEventType.WORKSPACE_SWITCHED,
    "update_workspace_settings": AuditEventType.WORKSPACE_SETTINGS_UPDATED,
    "toggle_workspace_membership": AuditEventType.MEMBERSHIP_TOGGLED,
    "set_active_view": AuditEventType.VIEW_CHANGED,
    "add_expense": AuditEventType.EXPENSE_ADDED,
    "delete_expense": AuditEventType.EXPENSE_DELETED,
    "delete_expenses": AuditEventType.EXPENSES_BULK_DELETED,
}


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every transition attempt creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - who did it, and to what?
    actor_id: Optional[str] = Field(
        default=None,
        description="Active user at the time of the event"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'user', 'workspace', 'expense')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one entry flow)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "actor_id": self.actor_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, actor_id, entity_type,
         entity_id, correlation_id, description, details_json, error_code,
         error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.actor_id or "",
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_code or "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transition_applied("add_expense", ...)
        event = AuditEventBuilder.transition_rejected("delete_user", ...)
    """

    @staticmethod
    def transition_applied(
        transition: str,
        actor_id: Optional[str],
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        event_type = TRANSITION_EVENT_TYPES.get(transition, AuditEventType.SYSTEM_ERROR)
        return AuditEvent(
            event_type=event_type,
            actor_id=actor_id,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Transition applied: {transition}",
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def transition_rejected(
        transition: str,
        actor_id: Optional[str],
        error_code: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSITION_REJECTED,
            severity=AuditSeverity.WARNING,
            actor_id=actor_id,
            correlation_id=correlation_id,
            description=f"Transition rejected: {transition} ({error_code})",
            details={"transition": transition},
            error_code=error_code,
            error_message=error_message,
            is_user_action=True,
        )

    @staticmethod
    def state_loaded(
        bootstrapped: bool,
        user_count: int,
        workspace_count: int,
        expense_count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.STATE_BOOTSTRAPPED
                if bootstrapped
                else AuditEventType.STATE_LOADED
            ),
            description=(
                "No stored state found, bootstrapped defaults"
                if bootstrapped
                else "Stored state loaded"
            ),
            details={
                "users": user_count,
                "workspaces": workspace_count,
                "expenses": expense_count,
            },
        )

    @staticmethod
    def state_saved(
        transition: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATE_SAVED,
            severity=AuditSeverity.DEBUG,
            correlation_id=correlation_id,
            description=f"Snapshot saved after {transition}",
            details={"transition": transition},
        )

    @staticmethod
    def save_failed(
        transition: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"Snapshot could not be saved after {transition}",
            details={"transition": transition},
            error_message=error_message,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.WARNING,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
