"""
Audit Models for Secure Retire

Events mirror rows of the audit_logs table. They give us:
1. Traceability of changes to financial records
2. Debugging information when a hosted service misbehaves
3. A record of credit spending the user can inspect

DESIGN DECISION: The audit trail is append-only. Nothing updates or
deletes an event once written.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.
    """
    # Session
    USER_SIGNED_IN = "user_signed_in"
    USER_SIGNED_OUT = "user_signed_out"

    # Registration wizard
    REGISTRATION_STEP_COMPLETED = "registration_step_completed"
    REGISTRATION_COMPLETED = "registration_completed"
    REGISTRATION_FAILED = "registration_failed"

    # Financial records
    RECORD_CREATED = "record_created"
    RECORD_UPDATED = "record_updated"
    RECORD_DELETED = "record_deleted"

    # Documents
    DOCUMENT_UPLOADED = "document_uploaded"
    DOCUMENT_REJECTED = "document_rejected"
    DOCUMENT_DELETED = "document_deleted"
    OCR_COMPLETED = "ocr_completed"
    OCR_FAILED = "ocr_failed"

    # Validation
    VALIDATION_FAILED = "validation_failed"

    # Paywall
    CREDITS_SPENT = "credits_spent"
    CREDITS_DENIED = "credits_denied"
    CREDITS_RESET = "credits_reset"
    CHECKOUT_STARTED = "checkout_started"
    CHECKOUT_COMPLETED = "checkout_completed"
    SETTINGS_UPDATED = "settings_updated"

    # Outputs
    REPORT_GENERATED = "report_generated"
    INSIGHTS_GENERATED = "insights_generated"

    # Account data
    DATA_EXPORTED = "data_exported"
    ACCOUNT_DELETED = "account_deleted"

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


class AuditEvent(BaseModel):
    """
    One audit_logs row; see to_row for the column mapping.
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
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Who and what
    user_id: Optional[UUID] = None
    entity_type: Optional[str] = Field(
        default=None,
        description="Table or object kind (e.g., 'assets', 'document')"
    )
    entity_id: Optional[UUID] = None

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one registration)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)

    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = False

    def to_log_dict(self) -> dict:
        """Flat, JSON-safe fields for the structlog line."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "user_id": str(self.user_id) if self.user_id else None,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_row(self) -> dict:
        """
        Convert to an audit_logs row.

        The table columns are operation / table_name / record_id / new_data;
        the full event travels in new_data so it can be rebuilt on read.
        """
        return {
            "id": str(self.event_id),
            "user_id": str(self.user_id) if self.user_id else None,
            "operation": self.event_type.value,
            "table_name": self.entity_type,
            "record_id": str(self.entity_id) if self.entity_id else None,
            "new_data": self.model_dump(mode="json"),
            "created_at": self.timestamp.isoformat(),
        }

    @classmethod
    def from_row(cls, row: dict) -> "AuditEvent":
        return cls.model_validate(row["new_data"])


class AuditEventBuilder:
    """
    Factory methods, one per kind of event.

    Usage:
        event = AuditEventBuilder.record_changed(
            AuditEventType.RECORD_CREATED, user_id, "assets", asset.id,
        )
        event = AuditEventBuilder.credits_spent(user_id, "AI_INSIGHT", 1, 99)
    """

    @staticmethod
    def user_signed_in(user_id: UUID, email: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_SIGNED_IN,
            user_id=user_id,
            entity_type="user",
            entity_id=user_id,
            description=f"User signed in: {email}",
            is_user_action=True,
        )

    @staticmethod
    def registration_step_completed(
        step: int,
        step_name: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REGISTRATION_STEP_COMPLETED,
            entity_type="registration",
            correlation_id=correlation_id,
            description=f"Registration step {step} completed: {step_name}",
            details={"step": step, "step_name": step_name},
            is_user_action=True,
        )

    @staticmethod
    def registration_completed(
        user_id: UUID,
        plan: str,
        record_counts: dict[str, int],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REGISTRATION_COMPLETED,
            user_id=user_id,
            entity_type="user",
            entity_id=user_id,
            correlation_id=correlation_id,
            description=f"Registration completed on {plan} plan",
            details={"plan": plan, "records": record_counts},
            is_user_action=True,
        )

    @staticmethod
    def record_changed(
        event_type: AuditEventType,
        user_id: Optional[UUID],
        table: str,
        record_id: UUID,
        correlation_id: Optional[UUID] = None,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        verb = {
            AuditEventType.RECORD_CREATED: "created",
            AuditEventType.RECORD_UPDATED: "updated",
            AuditEventType.RECORD_DELETED: "deleted",
        }.get(event_type, "changed")
        return AuditEvent(
            event_type=event_type,
            user_id=user_id,
            entity_type=table,
            entity_id=record_id,
            correlation_id=correlation_id,
            description=f"Record {verb} in {table}",
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def document_uploaded(
        user_id: Optional[UUID],
        document_id: UUID,
        filename: str,
        file_size: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DOCUMENT_UPLOADED,
            user_id=user_id,
            entity_type="document",
            entity_id=document_id,
            correlation_id=correlation_id,
            description=f"Document uploaded: {filename}",
            details={
                "filename": filename,
                "file_size_bytes": file_size,
            },
            is_user_action=True,
        )

    @staticmethod
    def document_rejected(
        filename: str,
        issues: list[dict],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DOCUMENT_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="document",
            correlation_id=correlation_id,
            description=f"Document rejected: {filename}",
            details={"filename": filename, "issues": issues},
        )

    @staticmethod
    def ocr_completed(
        upload_id: UUID,
        characters: int,
        confidence: float,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OCR_COMPLETED,
            entity_type="document",
            entity_id=upload_id,
            correlation_id=correlation_id,
            description=f"OCR completed with {confidence:.0%} confidence",
            details={
                "characters": characters,
                "confidence_score": confidence,
            },
        )

    @staticmethod
    def ocr_failed(
        upload_id: UUID,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OCR_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="document",
            entity_id=upload_id,
            correlation_id=correlation_id,
            description="OCR failed, document stored without text",
            error_message=error_message,
        )

    @staticmethod
    def validation_failed(
        subject: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=subject,
            correlation_id=correlation_id,
            description=f"Validation of {subject} failed with {len(issues)} issues",
            details={"issues": issues},
        )

    @staticmethod
    def credits_spent(
        user_id: Optional[UUID],
        operation: str,
        amount: int,
        remaining: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CREDITS_SPENT,
            user_id=user_id,
            entity_type="credits",
            description=f"{amount} credit(s) spent on {operation}",
            details={
                "operation": operation,
                "amount": amount,
                "remaining": remaining,
            },
            is_user_action=True,
        )

    @staticmethod
    def credits_denied(
        user_id: Optional[UUID],
        operation: str,
        required: int,
        available: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CREDITS_DENIED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="credits",
            description=f"Not enough credits for {operation}",
            details={
                "operation": operation,
                "required": required,
                "available": available,
            },
        )

    @staticmethod
    def checkout_started(
        user_id: Optional[UUID],
        plan: str,
        amount: str,
        currency: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CHECKOUT_STARTED,
            user_id=user_id,
            entity_type="subscription",
            description=f"Checkout started for {plan} plan ({amount} {currency})",
            details={"plan": plan, "amount": amount, "currency": currency},
            is_user_action=True,
        )

    @staticmethod
    def checkout_completed(user_id: Optional[UUID], plan: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CHECKOUT_COMPLETED,
            user_id=user_id,
            entity_type="subscription",
            description=f"Checkout completed for {plan} plan",
            details={"plan": plan},
            is_user_action=True,
        )

    @staticmethod
    def data_exported(user_id: Optional[UUID], sections: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_EXPORTED,
            user_id=user_id,
            entity_type="account",
            description=f"Data exported: {', '.join(sections)}",
            details={"sections": sections},
            is_user_action=True,
        )

    @staticmethod
    def account_deleted(user_id: Optional[UUID], rows_removed: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_DELETED,
            user_id=user_id,
            entity_type="account",
            severity=AuditSeverity.WARNING,
            description=f"Account data deleted ({rows_removed} rows)",
            details={"rows_removed": rows_removed},
            is_user_action=True,
        )

    @staticmethod
    def report_generated(
        user_id: Optional[UUID],
        report: str,
        size_bytes: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REPORT_GENERATED,
            user_id=user_id,
            entity_type="report",
            description=f"Report generated: {report}",
            details={"report": report, "size_bytes": size_bytes},
            is_user_action=True,
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

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )

    @staticmethod
    def user_signed_out(user_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_SIGNED_OUT,
            user_id=user_id,
            entity_type="user",
            entity_id=user_id,
            description="User signed out",
            is_user_action=True,
        )

    @staticmethod
    def registration_failed(
        step: int,
        error_message: str,
        correlation_id: UUID,
        user_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REGISTRATION_FAILED,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            entity_type="registration",
            correlation_id=correlation_id,
            description=f"Registration failed at step {step}",
            details={"step": step},
            error_message=error_message,
        )

    @staticmethod
    def document_deleted(
        user_id: Optional[UUID],
        document_id: UUID,
        filename: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DOCUMENT_DELETED,
            user_id=user_id,
            entity_type="document",
            entity_id=document_id,
            description=f"Document deleted: {filename}",
            details={"filename": filename},
            is_user_action=True,
        )

    @staticmethod
    def credits_reset(
        user_id: Optional[UUID],
        available: int,
        next_reset: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CREDITS_RESET,
            user_id=user_id,
            entity_type="credits",
            description=f"Monthly credits reset to {available}",
            details={"available": available, "next_reset": next_reset},
        )

    @staticmethod
    def settings_updated(
        user_id: Optional[UUID],
        changes: dict[str, Any],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTINGS_UPDATED,
            user_id=user_id,
            entity_type="settings",
            description=f"Settings updated: {', '.join(sorted(changes)) or 'none'}",
            details={"changes": changes},
            is_user_action=True,
        )

    @staticmethod
    def insights_generated(
        user_id: Optional[UUID],
        count: int,
        source: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INSIGHTS_GENERATED,
            user_id=user_id,
            entity_type="insights",
            description=f"{count} insight(s) generated ({source})",
            details={"count": count, "source": source},
        )
