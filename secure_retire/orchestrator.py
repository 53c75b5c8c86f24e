"""
Main Orchestrator for Secure Retire

This module ties together all the components and defines the
end-to-end flows the pages call:
1. Auth (sign up, sign in, sign out, password reset)
2. Financial data (CRUD on every record table, snapshot, summary)
3. Documents (validate → store → OCR → save metadata; delete; renewals)
4. Planning (retirement projection, tax estimate, rebalancing,
   investment recommendations, budget)
5. Assistant (consultation chat, personal advice)
6. Dashboard and reports (insights, overview PDF, will PDF, will to vault)
7. Account (settings, plan, credits, checkout confirmation)
8. Data management (export, account deletion)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Credit-priced features spend credits before they run, never after
- Every mutation is audited with the acting user
- A failing optional step (OCR, translation, LLM) never loses user data

This is the "glue" that ensures the system works correctly
even when individual components might behave unexpectedly.
"""

from datetime import date, datetime, timedelta
from typing import Any, Optional
from uuid import UUID

import structlog

from secure_retire.agents import AdvisorAgent, InsightAgent, consultation_reply
from secure_retire.audit import AuditLogger, create_correlation_id
from secure_retire.billing import CreditGate, InsufficientCreditsError, SubscriptionStatus
from secure_retire.calculators import (
    BudgetPlan,
    InvestmentAnalysis,
    RebalanceRecommendation,
    RetirementGoals,
    RetirementProjection,
    TaxEstimate,
    TaxInput,
    build_budget,
    calculate_financial_summary,
    estimate_taxes,
    investment_recommendations,
    project_retirement,
    rebalancing_recommendations,
)
from secure_retire.config import get_settings
from secure_retire.currency import CurrencyConverter
from secure_retire.i18n import Translator
from secure_retire.models.account import Notification, PlanType, UserSettings
from secure_retire.models.audit import AuditEventType
from secure_retire.models.documents import (
    DocumentType,
    DocumentUpload,
    StoredDocument,
    WillData,
)
from secure_retire.models.financial import (
    Beneficiary,
    FinancialInsight,
    FinancialSnapshot,
    FinancialSummary,
    PortfolioAllocation,
    RecordBase,
    UserProfile,
)
from secure_retire.models.validation import ValidationResult
from secure_retire.notifications import NotificationCenter
from secure_retire.registration import RegistrationDraft, RegistrationWizard
from secure_retire.reports import InvalidWillError, overview_report, will_document
from secure_retire.services.auth import AuthUser, SupabaseAuthService
from secure_retire.services.functions import EdgeFunctionClient
from secure_retire.services.ocr import MindeeOCRService, OCRError
from secure_retire.services.storage import (
    AccountStorageInterface,
    DocumentStorageInterface,
    FinancialStorageInterface,
    InMemoryAccountStorage,
    InMemoryAuditStorage,
    InMemoryDocumentStorage,
    InMemoryFinancialStorage,
    InMemoryTranslationStorage,
    NotFoundError,
    RECORD_TABLES,
    StorageError,
    SupabaseAccountStorage,
    SupabaseAuditStorage,
    SupabaseClient,
    SupabaseDocumentStorage,
    SupabaseFinancialStorage,
    SupabaseTranslationStorage,
    TranslationStorageInterface,
    table_for,
)
from secure_retire.validation import DocumentUploadValidator, WillValidator


logger = structlog.get_logger(__name__)


class AuthFlow:
    """Session handling; every sign-in and sign-out is audited."""

    def __init__(
        self,
        auth_service: SupabaseAuthService,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._auth = auth_service
        self._audit_logger = audit_logger or AuditLogger()

    async def sign_up(self, email: str, password: str, full_name: str = "") -> AuthUser:
        return await self._auth.sign_up(email, password, full_name)

    async def sign_in(self, email: str, password: str) -> AuthUser:
        user = await self._auth.sign_in(email, password)
        await self._audit_logger.log_signed_in(user.id, user.email)
        return user

    async def sign_out(self, user_id: Optional[UUID] = None) -> None:
        await self._auth.sign_out()
        if user_id is not None:
            await self._audit_logger.log_signed_out(user_id)

    async def current_user(self) -> Optional[AuthUser]:
        return await self._auth.current_user()

    async def reset_password(self, email: str) -> None:
        await self._auth.send_password_reset(email)


class FinancialDataFlow:
    """
    CRUD over the financial tables for one user.

    Records passed in are stamped with the user's id, so forms never
    have to carry it.
    """

    def __init__(
        self,
        user_id: UUID,
        storage: FinancialStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._user_id = user_id
        self._storage = storage
        self._audit_logger = audit_logger or AuditLogger()

    async def get_profile(self) -> Optional[UserProfile]:
        return await self._storage.get_profile(self._user_id)

    async def save_profile(self, profile: UserProfile) -> UserProfile:
        profile = profile.model_copy(update={"id": self._user_id})
        await self._storage.save_profile(profile)
        await self._audit_logger.log_record_changed(
            AuditEventType.RECORD_UPDATED, self._user_id, "users", self._user_id,
        )
        return profile

    async def create(self, record: RecordBase) -> RecordBase:
        record = record.model_copy(update={"user_id": self._user_id})
        await self._storage.save_record(record)
        await self._audit_logger.log_record_changed(
            AuditEventType.RECORD_CREATED, self._user_id, table_for(type(record)), record.id,
        )
        return record

    async def list_records(self, record_type: type[RecordBase], limit: int = 100) -> list:
        return await self._storage.list_records(record_type, self._user_id, limit=limit)

    async def update(self, record: RecordBase, **changes: Any) -> RecordBase:
        """
        Apply changes and save. Changes are re-validated through the model.

        Raises:
            NotFoundError: If the record doesn't exist or isn't this user's
        """
        existing = await self._storage.get_record(type(record), record.id)
        if existing is None or existing.user_id != self._user_id:
            raise NotFoundError(f"{type(record).__name__} {record.id} not found")

        merged = type(record).model_validate({
            **record.model_dump(),
            **changes,
            "user_id": self._user_id,
            "updated_at": datetime.utcnow(),
        })
        await self._storage.update_record(merged)
        await self._audit_logger.log_record_changed(
            AuditEventType.RECORD_UPDATED,
            self._user_id,
            table_for(type(record)),
            record.id,
            details={"fields": sorted(changes)},
        )
        return merged

    async def delete(self, record_type: type[RecordBase], record_id: UUID) -> bool:
        existing = await self._storage.get_record(record_type, record_id)
        if existing is None or existing.user_id != self._user_id:
            return False
        deleted = await self._storage.delete_record(record_type, record_id)
        if deleted:
            await self._audit_logger.log_record_changed(
                AuditEventType.RECORD_DELETED, self._user_id, table_for(record_type), record_id,
            )
        return deleted

    async def snapshot(self) -> FinancialSnapshot:
        return await self._storage.load_snapshot(self._user_id)

    async def summary(
        self,
        display_currency: str,
        converter: Optional[CurrencyConverter] = None,
        today: Optional[date] = None,
    ) -> tuple[FinancialSnapshot, FinancialSummary]:
        """
        Snapshot plus dashboard figures in one display currency.

        Assets and income carry their own currency and are converted;
        debts and retirement balances are taken as entered.
        """
        snapshot = await self.snapshot()
        converter = converter or CurrencyConverter()
        converted = snapshot.model_copy(update={
            "assets": [
                a.model_copy(update={
                    "amount": converter.convert(a.amount, a.currency, display_currency),
                })
                for a in snapshot.assets
            ],
            "income_sources": [
                i.model_copy(update={
                    "amount": converter.convert(i.amount, i.currency, display_currency),
                })
                for i in snapshot.income_sources
            ],
        })
        return snapshot, calculate_financial_summary(converted, today)


def suggest_renewal_date(detected_dates: list[date], today: date) -> Optional[date]:
    """The earliest date read from a document that is still in the future."""
    upcoming = sorted(d for d in detected_dates if d > today)
    return upcoming[0] if upcoming else None


class DocumentFlow:
    """
    Orchestrates document upload and management.

    Flow:
    1. Validate → size, type, and a Pillow check for images
    2. Store → bucket path {user_id}/{timestamp}.{ext}
    3. Extract → Mindee OCR for PDFs and images (failure = empty text);
       without a renewal date, the first future date found is used
    4. Save → metadata row with original_name and upload_date

    If step 3 or 4 raises, the stored object is removed again.
    """

    def __init__(
        self,
        user_id: UUID,
        storage: DocumentStorageInterface,
        ocr_service: Optional[MindeeOCRService] = None,
        validator: Optional[DocumentUploadValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._user_id = user_id
        self._storage = storage
        self._ocr_service = ocr_service
        self._validator = validator or DocumentUploadValidator()
        self._audit_logger = audit_logger or AuditLogger()

    def storage_path(self, upload: DocumentUpload, now: Optional[datetime] = None) -> str:
        now = now or datetime.utcnow()
        timestamp = int(now.timestamp() * 1000)
        return f"{self._user_id}/{timestamp}.{upload.extension}"

    async def _extract(
        self,
        upload: DocumentUpload,
        data: bytes,
        correlation_id: UUID,
    ) -> tuple[str, str, list[date]]:
        """Returns (text, review_message, detected_dates); an OCR failure gives empty text."""
        if not upload.needs_ocr or self._ocr_service is None:
            return "", "", []
        try:
            result = await self._ocr_service.extract_text(
                data, upload.original_filename, upload.upload_id
            )
        except OCRError as e:
            await self._audit_logger.log_ocr_failed(upload.upload_id, str(e), correlation_id)
            return "", "⚠️ Text could not be extracted. The document was stored without searchable text.", []

        await self._audit_logger.log_ocr_completed(
            upload.upload_id, len(result.text), result.confidence, correlation_id,
        )
        _, message = self._ocr_service.review_message(result)
        return result.text, message, result.detected_dates

    async def _discard(self, path: str) -> None:
        try:
            await self._storage.remove_file(path)
        except StorageError as e:
            logger.error("orphaned_upload", path=path, error=str(e))

    async def upload(
        self,
        data: bytes,
        filename: str,
        mime_type: str,
        document_type: DocumentType = DocumentType.OTHER,
        renewal_date: Optional[date] = None,
        tags: Optional[list[str]] = None,
        now: Optional[datetime] = None,
    ) -> tuple[Optional[StoredDocument], ValidationResult, str]:
        """
        Validate, store and index one file.

        Returns:
            (document, validation_result, ocr_message). document is None
            when validation failed; nothing is stored in that case.
        """
        correlation_id = create_correlation_id()
        upload = DocumentUpload(
            original_filename=filename,
            file_size_bytes=len(data),
            mime_type=mime_type,
            document_type=document_type,
            renewal_date=renewal_date,
            tags=tags or [],
        )

        result = self._validator.validate_upload(upload, data)
        if not result.is_valid:
            await self._audit_logger.log_document_rejected(
                filename,
                [i.model_dump() for i in result.issues],
                correlation_id,
            )
            return None, result, ""

        now = now or datetime.utcnow()
        path = self.storage_path(upload, now)
        file_url = await self._storage.upload_file(path, data, upload.mime_type)

        # The object must not outlive a failed upload
        try:
            text, ocr_message, detected_dates = await self._extract(upload, data, correlation_id)

            metadata = {
                "original_name": filename,
                "upload_date": now.isoformat(),
            }
            if renewal_date is None:
                renewal_date = suggest_renewal_date(detected_dates, now.date())
                if renewal_date is not None:
                    metadata["renewal_date_detected"] = True
                    ocr_message = " ".join(filter(None, [
                        ocr_message,
                        f"📅 Renewal date {renewal_date.isoformat()} was read from the document.",
                    ]))

            document = StoredDocument(
                user_id=self._user_id,
                type=document_type,
                name=filename,
                file_url=file_url,
                storage_path=path,
                size_bytes=len(data),
                mime_type=upload.mime_type,
                ocr_text=text,
                renewal_date=renewal_date,
                tags=upload.tags,
                metadata=metadata,
                created_at=now,
            )
            await self._storage.save_document(document)
        except Exception:
            await self._discard(path)
            raise

        await self._audit_logger.log_document_uploaded(
            self._user_id, document.id, filename, len(data), correlation_id,
        )
        return document, result, ocr_message

    async def list_documents(self) -> list[StoredDocument]:
        return await self._storage.list_documents(self._user_id)

    async def delete(self, document_id: UUID) -> bool:
        """Remove the stored object and its row."""
        document = await self._storage.get_document(document_id)
        if document is None or document.user_id != self._user_id:
            return False
        await self._storage.remove_file(document.storage_path)
        deleted = await self._storage.delete_document(document_id)
        if deleted:
            await self._audit_logger.log_document_deleted(self._user_id, document_id, document.name)
        return deleted

    async def upcoming_renewals(
        self,
        today: Optional[date] = None,
        days: Optional[int] = None,
    ) -> list[StoredDocument]:
        """Documents renewing between today and today + days, soonest first."""
        today = today or date.today()
        horizon = today + timedelta(days=days or get_settings().app.renewal_reminder_days)
        due = [
            d for d in await self.list_documents()
            if d.renewal_date is not None and today <= d.renewal_date <= horizon
        ]
        return sorted(due, key=lambda d: d.renewal_date)

    async def search(
        self,
        document_type: Optional[DocumentType] = None,
        tag: Optional[str] = None,
        name: Optional[str] = None,
    ) -> list[StoredDocument]:
        """Filters combine; name matches case-insensitively as a substring."""
        results = await self.list_documents()
        if document_type is not None:
            results = [d for d in results if d.type == document_type]
        if tag:
            wanted = tag.strip().lower()
            results = [d for d in results if wanted in (t.lower() for t in d.tags)]
        if name:
            needle = name.strip().lower()
            results = [d for d in results if needle in d.name.lower()]
        return results

    async def remind_renewals(
        self,
        center: NotificationCenter,
        today: Optional[date] = None,
    ):
        return await center.notify_renewals(await self.upcoming_renewals(today), today)


class PlanningFlow:
    """Credit-priced calculators."""

    def __init__(self, gate: CreditGate):
        self._gate = gate

    async def retirement(
        self,
        goals: RetirementGoals,
        seed: Optional[int] = None,
    ) -> RetirementProjection:
        await self._gate.spend("RETIREMENT_CALCULATION")
        return project_retirement(goals, seed=seed)

    async def taxes(self, data: TaxInput) -> TaxEstimate:
        await self._gate.spend("TAX_ESTIMATION")
        return estimate_taxes(data)

    async def rebalance(
        self,
        allocations: list[PortfolioAllocation],
    ) -> list[RebalanceRecommendation]:
        await self._gate.spend("PORTFOLIO_ANALYSIS")
        return rebalancing_recommendations(allocations)

    async def investments(
        self,
        allocations: list[PortfolioAllocation],
        risk_tolerance: int = 3,
        portfolio_value: float = 100000,
        asset_classes: tuple[str, ...] = (),
    ) -> InvestmentAnalysis:
        await self._gate.spend("INVESTMENT_RECOMMENDATION")
        return investment_recommendations(allocations, risk_tolerance, portfolio_value, asset_classes)

    def budget(
        self,
        monthly_income,
        spent: Optional[dict] = None,
        custom_budgets: Optional[dict] = None,
    ) -> BudgetPlan:
        # Free
        return build_budget(monthly_income, spent, custom_budgets)


class AssistantFlow:
    """Consultation chat and personal advice, both credit-priced."""

    def __init__(
        self,
        gate: CreditGate,
        agent: Optional[AdvisorAgent] = None,
    ):
        self._gate = gate
        self._agent = agent or AdvisorAgent()

    async def consultation(self, message: str) -> str:
        """
        Raises:
            ValueError: For an empty message (nothing is charged)
            InsufficientCreditsError: If the user can't afford it
        """
        if not message.strip():
            raise ValueError("Message cannot be empty")
        await self._gate.spend("AI_CONSULTATION")
        return consultation_reply(message)

    async def advice(
        self,
        question: str,
        summary: FinancialSummary,
        currency: str,
    ) -> tuple[str, str]:
        """Returns (answer, source). A question the agent would reject costs nothing."""
        AdvisorAgent.check_question(question)
        await self._gate.spend("FINANCIAL_ADVICE")
        return await self._agent.answer(question, summary, currency)


class DashboardFlow:
    """Insights for the overview page."""

    def __init__(
        self,
        user_id: UUID,
        gate: CreditGate,
        agent: Optional[InsightAgent] = None,
        translator: Optional[Translator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._user_id = user_id
        self._gate = gate
        self._agent = agent or InsightAgent()
        self._translator = translator
        self._audit_logger = audit_logger or AuditLogger()

    async def insights(
        self,
        summary: FinancialSummary,
        currency: str,
    ) -> list[FinancialInsight]:
        """
        Spend the AI_INSIGHT credit, then generate.

        Raises:
            InsufficientCreditsError: If the user can't afford it
        """
        await self._gate.spend("AI_INSIGHT")
        insights, source = await self._agent.generate(summary, currency)

        if self._translator is not None and self._translator.machine_translates:
            insights = await self._translate(insights)

        await self._audit_logger.log_insights_generated(self._user_id, len(insights), source)
        return insights

    async def _translate(self, insights: list[FinancialInsight]) -> list[FinancialInsight]:
        """One TRANSLATION credit per batch; without it the English text is kept."""
        try:
            await self._gate.spend("TRANSLATION")
        except InsufficientCreditsError as e:
            logger.info("translation_skipped", user_id=str(self._user_id), reason=str(e))
            return insights

        translated = []
        for insight in insights:
            translated.append(insight.model_copy(update={
                "title": await self._translator.translate_text(insight.title),
                "description": await self._translator.translate_text(insight.description),
            }))
        return translated


class ReportFlow:
    """PDF downloads."""

    def __init__(
        self,
        user_id: UUID,
        gate: CreditGate,
        audit_logger: Optional[AuditLogger] = None,
        document_storage: Optional[DocumentStorageInterface] = None,
    ):
        self._user_id = user_id
        self._gate = gate
        self._audit_logger = audit_logger or AuditLogger()
        self._document_storage = document_storage

    async def overview(
        self,
        snapshot: FinancialSnapshot,
        summary: FinancialSummary,
        currency: str,
        insights: Optional[list[FinancialInsight]] = None,
    ) -> bytes:
        pdf = overview_report(
            summary,
            currency,
            assets=snapshot.assets,
            debts=snapshot.debts,
            insights=insights or [],
            full_name=snapshot.profile.full_name if snapshot.profile else "",
        )
        await self._audit_logger.log_report_generated(self._user_id, "overview", len(pdf))
        return pdf

    async def will(
        self,
        will: WillData,
        beneficiaries: list[Beneficiary],
        today: Optional[date] = None,
    ) -> bytes:
        """
        Validates before charging, so a rejected form costs nothing.

        Raises:
            InvalidWillError: If the form or beneficiary split is invalid
            InsufficientCreditsError: If the user can't afford it
        """
        result = WillValidator(beneficiaries).validate(will)
        if not result.is_valid:
            await self._audit_logger.log_validation_failed(
                result.subject, [i.model_dump() for i in result.issues],
            )
            raise InvalidWillError(result)

        await self._gate.spend("WILL_GENERATION")
        pdf = will_document(will, beneficiaries, today)
        await self._audit_logger.log_report_generated(self._user_id, "will", len(pdf))
        return pdf

    async def save_will(
        self,
        will: WillData,
        beneficiaries: list[Beneficiary],
        pdf: bytes,
        now: Optional[datetime] = None,
    ) -> StoredDocument:
        """
        File a generated will in the document vault.

        Raises:
            ValueError: Without document storage
            InsufficientCreditsError: If the user can't afford it
        """
        if self._document_storage is None:
            raise ValueError("Saving documents requires document storage")

        await self._gate.spend("DOCUMENT_GENERATION")
        now = now or datetime.utcnow()
        path = f"{self._user_id}/{int(now.timestamp() * 1000)}.pdf"
        name = f"Last Will - {will.testator_name or 'Unnamed'}.pdf"
        file_url = await self._document_storage.upload_file(path, pdf, "application/pdf")

        document = StoredDocument(
            user_id=self._user_id,
            type=DocumentType.WILL,
            name=name,
            file_url=file_url,
            storage_path=path,
            size_bytes=len(pdf),
            mime_type="application/pdf",
            tags=["will", "generated"],
            metadata={
                "original_name": name,
                "jurisdiction": will.jurisdiction,
                "testator": will.testator_name,
                "executor": will.executor_name,
                "beneficiary_count": len(beneficiaries),
                "generated_at": now.isoformat(),
            },
            created_at=now,
        )
        try:
            await self._document_storage.save_document(document)
        except Exception:
            await self._document_storage.remove_file(path)
            raise

        await self._audit_logger.log_document_uploaded(
            self._user_id, document.id, name, len(pdf), create_correlation_id(),
        )
        return document


class AccountFlow:
    """Settings, plan and credits for the profile page."""

    def __init__(
        self,
        user_id: UUID,
        storage: AccountStorageInterface,
        gate: CreditGate,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._user_id = user_id
        self._storage = storage
        self._gate = gate
        self._audit_logger = audit_logger or AuditLogger()

    async def user_settings(self) -> UserSettings:
        existing = await self._storage.get_user_settings(self._user_id)
        if existing is not None:
            return existing
        app = get_settings().app
        return UserSettings(
            user_id=self._user_id,
            currency=app.default_currency,
            language=app.default_language,
        )

    async def update_settings(self, **changes: Any) -> UserSettings:
        current = await self.user_settings()
        updated = UserSettings.model_validate({
            **current.model_dump(),
            **changes,
            "user_id": self._user_id,
        })
        await self._storage.save_user_settings(updated)
        await self._audit_logger.log_settings_updated(
            self._user_id,
            {k: (v.value if hasattr(v, "value") else v) for k, v in changes.items()
             if not isinstance(v, dict)},
        )
        return updated

    async def status(self, today: Optional[date] = None) -> SubscriptionStatus:
        """Current plan and balance, applying the monthly refill if due."""
        return await self._gate.refresh_monthly(today)

    async def upgrade(self, currency: str) -> str:
        return await self._gate.create_checkout_link(PlanType.PRO, currency)

    async def downgrade(self) -> SubscriptionStatus:
        return await self._gate.downgrade_to_free()

    async def confirm_checkout(self) -> SubscriptionStatus:
        return await self._gate.confirm_checkout()

    async def reminders(
        self,
        center: NotificationCenter,
        documents: DocumentFlow,
        today: Optional[date] = None,
    ) -> list[Notification]:
        """
        Renewal and low-credit notifications, as the user's preferences allow.

        Both kinds are skipped while an earlier one is still unread.
        """
        preferences = (await self.user_settings()).notifications
        created: list[Notification] = []
        if not preferences.in_app:
            return created

        if preferences.document_renewals:
            created.extend(await documents.remind_renewals(center, today))

        if preferences.low_credits:
            status = await self.status(today)
            if status.is_low:
                warning = await center.notify_low_credits(status.remaining_credits)
                if warning is not None:
                    created.append(warning)
        return created


EXPORT_VERSION = "1.0"

EXPORT_SECTIONS = ["profile", *RECORD_TABLES.values(), "documents", "settings"]


class DataManagementFlow:
    """
    Export everything stored for a user, or delete it.

    Deletion removes bucket objects first, then document rows, record
    tables, the profile and the account rows. The auth user itself is
    left to the backend, which needs the service key to remove it.
    """

    def __init__(
        self,
        user_id: UUID,
        financial_storage: FinancialStorageInterface,
        account_storage: AccountStorageInterface,
        document_storage: DocumentStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._user_id = user_id
        self._financial = financial_storage
        self._account = account_storage
        self._documents = document_storage
        self._audit_logger = audit_logger or AuditLogger()

    async def export_data(
        self,
        sections: Optional[list[str]] = None,
        now: Optional[datetime] = None,
    ) -> dict[str, Any]:
        """
        JSON-ready dump of the chosen sections (all by default).

        Raises:
            ValueError: For an unknown section
        """
        sections = sections or list(EXPORT_SECTIONS)
        unknown = [s for s in sections if s not in EXPORT_SECTIONS]
        if unknown:
            raise ValueError(f"Unknown export sections: {', '.join(unknown)}")

        tables = {table: record_type for record_type, table in RECORD_TABLES.items()}
        export: dict[str, Any] = {}
        for section in sections:
            if section == "profile":
                profile = await self._financial.get_profile(self._user_id)
                export[section] = profile.model_dump(mode="json") if profile else None
            elif section == "documents":
                documents = await self._documents.list_documents(self._user_id)
                export[section] = [d.model_dump(mode="json") for d in documents]
            elif section == "settings":
                settings = await self._account.get_user_settings(self._user_id)
                export[section] = settings.model_dump(mode="json") if settings else None
            else:
                records = await self._financial.list_records(tables[section], self._user_id, limit=10000)
                export[section] = [r.model_dump(mode="json") for r in records]

        export["_metadata"] = {
            "exportDate": (now or datetime.utcnow()).isoformat(),
            "userId": str(self._user_id),
            "version": EXPORT_VERSION,
            "dataTypes": sections,
        }
        await self._audit_logger.log_data_exported(self._user_id, sections)
        return export

    async def delete_account(self) -> int:
        """Returns the number of rows and objects removed."""
        removed = 0
        for document in await self._documents.list_documents(self._user_id):
            if await self._documents.remove_file(document.storage_path):
                removed += 1
            if await self._documents.delete_document(document.id):
                removed += 1

        removed += await self._financial.delete_user_data(self._user_id)
        removed += await self._account.delete_account_rows(self._user_id)
        await self._audit_logger.log_account_deleted(self._user_id, removed)
        logger.warning("account_deleted", user_id=str(self._user_id), rows_removed=removed)
        return removed


class AppComponents:
    """
    Backends and shared services for one app session.

    Per-user flows are built on demand by the methods below.
    """

    def __init__(
        self,
        financial_storage: FinancialStorageInterface,
        account_storage: AccountStorageInterface,
        document_storage: DocumentStorageInterface,
        translation_storage: TranslationStorageInterface,
        audit_logger: AuditLogger,
        auth_service: Optional[SupabaseAuthService] = None,
        functions: Optional[EdgeFunctionClient] = None,
        ocr_service: Optional[MindeeOCRService] = None,
        insight_agent: Optional[InsightAgent] = None,
        converter: Optional[CurrencyConverter] = None,
        advisor_agent: Optional[AdvisorAgent] = None,
    ):
        self.financial_storage = financial_storage
        self.account_storage = account_storage
        self.document_storage = document_storage
        self.translation_storage = translation_storage
        self.audit_logger = audit_logger
        self.auth_service = auth_service
        self.functions = functions
        self.ocr_service = ocr_service
        self.insight_agent = insight_agent or InsightAgent()
        self.converter = converter or CurrencyConverter()
        self.advisor_agent = advisor_agent or AdvisorAgent()

    @property
    def is_connected(self) -> bool:
        return self.auth_service is not None

    def auth_flow(self) -> Optional[AuthFlow]:
        if self.auth_service is None:
            return None
        return AuthFlow(self.auth_service, self.audit_logger)

    def translator(self, language: Optional[str] = None) -> Translator:
        return Translator(language, self.translation_storage, self.functions)

    def wizard(self, draft: Optional[RegistrationDraft] = None) -> RegistrationWizard:
        return RegistrationWizard(
            draft=draft,
            financial_storage=self.financial_storage,
            account_storage=self.account_storage,
            functions=self.functions,
            audit_logger=self.audit_logger,
        )

    def credit_gate(self, user_id: UUID) -> CreditGate:
        return CreditGate(user_id, self.account_storage, self.functions, self.audit_logger)

    def financial(self, user_id: UUID) -> FinancialDataFlow:
        return FinancialDataFlow(user_id, self.financial_storage, self.audit_logger)

    def documents(self, user_id: UUID) -> DocumentFlow:
        return DocumentFlow(
            user_id,
            self.document_storage,
            ocr_service=self.ocr_service,
            audit_logger=self.audit_logger,
        )

    def planning(self, user_id: UUID) -> PlanningFlow:
        return PlanningFlow(self.credit_gate(user_id))

    def dashboard(self, user_id: UUID, language: Optional[str] = None) -> DashboardFlow:
        return DashboardFlow(
            user_id,
            self.credit_gate(user_id),
            agent=self.insight_agent,
            translator=self.translator(language),
            audit_logger=self.audit_logger,
        )

    def assistant(self, user_id: UUID) -> AssistantFlow:
        return AssistantFlow(self.credit_gate(user_id), self.advisor_agent)

    def reports(self, user_id: UUID) -> ReportFlow:
        return ReportFlow(
            user_id,
            self.credit_gate(user_id),
            self.audit_logger,
            document_storage=self.document_storage,
        )

    def account(self, user_id: UUID) -> AccountFlow:
        return AccountFlow(user_id, self.account_storage, self.credit_gate(user_id), self.audit_logger)

    def data_management(self, user_id: UUID) -> DataManagementFlow:
        return DataManagementFlow(
            user_id,
            self.financial_storage,
            self.account_storage,
            self.document_storage,
            self.audit_logger,
        )

    def notifications(self, user_id: UUID) -> NotificationCenter:
        return NotificationCenter(user_id, self.account_storage)


def _in_memory_components() -> AppComponents:
    return AppComponents(
        financial_storage=InMemoryFinancialStorage(),
        account_storage=InMemoryAccountStorage(),
        document_storage=InMemoryDocumentStorage(),
        translation_storage=InMemoryTranslationStorage(),
        audit_logger=AuditLogger(InMemoryAuditStorage()),
    )


def create_app_components(use_storage: bool = True) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to connect to the hosted backend.
                    Set to False for testing or an offline demo.

    Returns:
        AppComponents backed by Supabase, or by in-memory storage if the
        backend isn't configured
    """
    if not use_storage:
        return _in_memory_components()

    try:
        client = SupabaseClient()
        client.connect()
    except Exception as e:
        # Backend not configured - continue with in-memory storage
        logger.warning("backend_not_configured", error=str(e))
        return _in_memory_components()

    try:
        get_settings().mindee
        ocr_service = MindeeOCRService()
    except Exception as e:
        logger.warning("ocr_not_configured", error=str(e))
        ocr_service = None

    return AppComponents(
        financial_storage=SupabaseFinancialStorage(client),
        account_storage=SupabaseAccountStorage(client),
        document_storage=SupabaseDocumentStorage(client),
        translation_storage=SupabaseTranslationStorage(client),
        audit_logger=AuditLogger(SupabaseAuditStorage(client)),
        auth_service=SupabaseAuthService(client),
        functions=EdgeFunctionClient(client),
        ocr_service=ocr_service,
    )
