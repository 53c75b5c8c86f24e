"""
Audit Logger

DESIGN DECISION: Anything that changes a user's data or spends their
credits leaves an event. That gives us:
1. Complete traceability of changes to financial records
2. Debugging capability when a hosted service misbehaves
3. A history of credit spending the user can inspect

Writes are async so flows await them next to storage calls. A failed
write is logged and swallowed; an audit outage never blocks the user.
A correlation id groups the events of one action.
"""

from typing import Any, Optional
from uuid import UUID, uuid4

import structlog

from secure_retire.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from secure_retire.services.storage import AuditStorageInterface


# JSON lines on the stdlib logger; ISO timestamps
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
    Writes every event to the structlog stream, and to the audit_logs
    table when a storage backend is given.
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        self._storage = storage
        self._logger = structlog.get_logger("secure_retire.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Emit locally, then persist.

        Returns False only when a configured storage write failed.
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def history(
        self,
        user_id: Optional[UUID] = None,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Recent persisted events, newest first; empty without storage."""
        if self._storage is None:
            return []
        return await self._storage.get_recent_events(user_id=user_id, limit=limit)

    async def log_signed_in(self, user_id: UUID, email: str) -> None:
        await self.log(AuditEventBuilder.user_signed_in(user_id, email))

    async def log_signed_out(self, user_id: UUID) -> None:
        await self.log(AuditEventBuilder.user_signed_out(user_id))

    async def log_registration_step(
        self,
        step: int,
        step_name: str,
        correlation_id: UUID,
    ) -> None:
        """Log a wizard step passing validation."""
        event = AuditEventBuilder.registration_step_completed(
            step=step,
            step_name=step_name,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_registration_completed(
        self,
        user_id: UUID,
        plan: str,
        record_counts: dict[str, int],
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.registration_completed(
            user_id=user_id,
            plan=plan,
            record_counts=record_counts,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_registration_failed(
        self,
        step: int,
        error_message: str,
        correlation_id: UUID,
        user_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.registration_failed(
            step=step,
            error_message=error_message,
            correlation_id=correlation_id,
            user_id=user_id,
        )
        await self.log(event)

    async def log_record_changed(
        self,
        event_type: AuditEventType,
        user_id: Optional[UUID],
        table: str,
        record_id: UUID,
        correlation_id: Optional[UUID] = None,
        details: Optional[dict] = None,
    ) -> None:
        """Log a create/update/delete on one of the financial tables."""
        event = AuditEventBuilder.record_changed(
            event_type=event_type,
            user_id=user_id,
            table=table,
            record_id=record_id,
            correlation_id=correlation_id,
            details=details,
        )
        await self.log(event)

    async def log_document_uploaded(
        self,
        user_id: Optional[UUID],
        document_id: UUID,
        filename: str,
        file_size: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.document_uploaded(
            user_id=user_id,
            document_id=document_id,
            filename=filename,
            file_size=file_size,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_document_rejected(
        self,
        filename: str,
        issues: list[dict],
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.document_rejected(
            filename=filename,
            issues=issues,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_document_deleted(
        self,
        user_id: Optional[UUID],
        document_id: UUID,
        filename: str,
    ) -> None:
        await self.log(AuditEventBuilder.document_deleted(user_id, document_id, filename))

    async def log_ocr_completed(
        self,
        upload_id: UUID,
        characters: int,
        confidence: float,
        correlation_id: UUID,
    ) -> None:
        """Log OCR completion."""
        event = AuditEventBuilder.ocr_completed(
            upload_id=upload_id,
            characters=characters,
            confidence=confidence,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_ocr_failed(
        self,
        upload_id: UUID,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.ocr_failed(
            upload_id=upload_id,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_validation_failed(
        self,
        subject: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.validation_failed(
            subject=subject,
            issues=issues,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_credits_spent(
        self,
        user_id: Optional[UUID],
        operation: str,
        amount: int,
        remaining: int,
    ) -> None:
        await self.log(AuditEventBuilder.credits_spent(user_id, operation, amount, remaining))

    async def log_credits_denied(
        self,
        user_id: Optional[UUID],
        operation: str,
        required: int,
        available: int,
    ) -> None:
        await self.log(AuditEventBuilder.credits_denied(user_id, operation, required, available))

    async def log_credits_reset(
        self,
        user_id: Optional[UUID],
        available: int,
        next_reset: str,
    ) -> None:
        await self.log(AuditEventBuilder.credits_reset(user_id, available, next_reset))

    async def log_checkout_started(
        self,
        user_id: Optional[UUID],
        plan: str,
        amount: str,
        currency: str,
    ) -> None:
        await self.log(AuditEventBuilder.checkout_started(user_id, plan, amount, currency))

    async def log_checkout_completed(self, user_id: Optional[UUID], plan: str) -> None:
        await self.log(AuditEventBuilder.checkout_completed(user_id, plan))

    async def log_data_exported(self, user_id: Optional[UUID], sections: list[str]) -> None:
        await self.log(AuditEventBuilder.data_exported(user_id, sections))

    async def log_account_deleted(self, user_id: Optional[UUID], rows_removed: int) -> None:
        await self.log(AuditEventBuilder.account_deleted(user_id, rows_removed))

    async def log_settings_updated(
        self,
        user_id: Optional[UUID],
        changes: dict[str, Any],
    ) -> None:
        await self.log(AuditEventBuilder.settings_updated(user_id, changes))

    async def log_report_generated(
        self,
        user_id: Optional[UUID],
        report: str,
        size_bytes: int,
    ) -> None:
        await self.log(AuditEventBuilder.report_generated(user_id, report, size_bytes))

    async def log_insights_generated(
        self,
        user_id: Optional[UUID],
        count: int,
        source: str,
    ) -> None:
        await self.log(AuditEventBuilder.insights_generated(user_id, count, source))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """New id for one user action, such as a registration or an upload."""
    return uuid4()
