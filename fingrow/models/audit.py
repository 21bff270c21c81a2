"""
Audit Models for FinGrow

Every change to the ledger, every rejected change and every call to the AI
advisor produces an audit event. This provides:
1. Traceability of who changed what and when
2. Debugging information when storage or the AI service misbehaves
3. A visible activity history in the UI

DESIGN DECISION: Audit events are append-only. We never modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.
    """
    # Ledger mutations
    ENTITY_ADDED = "entity_added"
    ENTITY_UPDATED = "entity_updated"
    ENTITY_DELETED = "entity_deleted"
    MUTATION_REJECTED = "mutation_rejected"
    BUDGET_LIMIT_UPDATED = "budget_limit_updated"
    PREFERENCE_UPDATED = "preference_updated"

    # Persistence
    STORE_DEFAULT_INSTALLED = "store_default_installed"
    STORE_READ_FAILED = "store_read_failed"
    STORE_WRITE_FAILED = "store_write_failed"

    # AI collaborator
    ADVISOR_REPLY_COMPLETED = "advisor_reply_completed"
    ADVISOR_REPLY_FAILED = "advisor_reply_failed"
    INVESTMENT_SEARCH_COMPLETED = "investment_search_completed"
    INVESTMENT_SEARCH_FAILED = "investment_search_failed"
    INVESTMENT_SEARCH_SUPERSEDED = "investment_search_superseded"
    AI_UNAVAILABLE = "ai_unavailable"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
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

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'budget', 'store')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID or key of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one advisor request)"
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
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.entity_added("transaction", item_id)
        event = AuditEventBuilder.store_default_installed("budgets", "missing")
    """

    @staticmethod
    def entity_added(entity_type: str, entity_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_ADDED,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{entity_type.capitalize()} added",
            is_user_action=True,
        )

    @staticmethod
    def entity_updated(entity_type: str, entity_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_UPDATED,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{entity_type.capitalize()} updated",
            is_user_action=True,
        )

    @staticmethod
    def entity_deleted(entity_type: str, entity_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_DELETED,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{entity_type.capitalize()} deleted",
            is_user_action=True,
        )

    @staticmethod
    def mutation_rejected(
        entity_type: str,
        entity_id: Optional[str],
        reason: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MUTATION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{entity_type.capitalize()} change ignored: {reason}",
            details={"reason": reason, **(details or {})},
            is_user_action=True,
        )

    @staticmethod
    def budget_limit_updated(category: str, old_limit: str, new_limit: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_LIMIT_UPDATED,
            entity_type="budget",
            entity_id=category,
            description=f"Budget for {category} changed from {old_limit} to {new_limit}",
            details={
                "old_limit": old_limit,
                "new_limit": new_limit,
            },
            is_user_action=True,
        )

    @staticmethod
    def preference_updated(name: str, old_value: str, new_value: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PREFERENCE_UPDATED,
            entity_type="preference",
            entity_id=name,
            description=f"Preference {name} set to {new_value}",
            details={
                "old_value": old_value,
                "new_value": new_value,
            },
            is_user_action=True,
        )

    @staticmethod
    def store_default_installed(key: str, reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_DEFAULT_INSTALLED,
            severity=AuditSeverity.WARNING if reason != "missing" else AuditSeverity.INFO,
            entity_type="store",
            entity_id=key,
            description=f"Default value installed for '{key}' ({reason})",
            details={"reason": reason},
        )

    @staticmethod
    def store_read_failed(key: str, backend: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_READ_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="store",
            entity_id=key,
            description=f"Could not read '{key}' from {backend}",
            error_message=error_message,
            details={"backend": backend},
        )

    @staticmethod
    def store_write_failed(key: str, backend: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_WRITE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="store",
            entity_id=key,
            description=f"Could not write '{key}' to {backend}",
            error_message=error_message,
            details={"backend": backend},
        )

    @staticmethod
    def advisor_reply_completed(
        correlation_id: UUID,
        context_size: int,
        reply_length: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ADVISOR_REPLY_COMPLETED,
            entity_type="advisor",
            correlation_id=correlation_id,
            description=f"Advisor replied ({reply_length} chars)",
            details={
                "context_transactions": context_size,
                "reply_length": reply_length,
            },
            is_user_action=True,
        )

    @staticmethod
    def investment_search_completed(
        correlation_id: UUID,
        query: str,
        source_count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INVESTMENT_SEARCH_COMPLETED,
            entity_type="investment_search",
            correlation_id=correlation_id,
            description=f"Investment search returned {source_count} sources",
            details={
                "query": query,
                "source_count": source_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def investment_search_superseded(
        correlation_id: UUID,
        sequence: int,
        latest_sequence: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INVESTMENT_SEARCH_SUPERSEDED,
            entity_type="investment_search",
            correlation_id=correlation_id,
            description="Discarded result of a superseded investment search",
            details={
                "sequence": sequence,
                "latest_sequence": latest_sequence,
            },
        )

    @staticmethod
    def ai_unavailable(feature: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AI_UNAVAILABLE,
            severity=AuditSeverity.WARNING,
            entity_type=feature,
            description=f"{feature} requested but no Gemini API key is configured",
        )

    @staticmethod
    def external_service_error(
        event_type: AuditEventType,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
