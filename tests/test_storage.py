"""
Tests for the storage backends.

The Supabase classes run against a fake client that records the query
chain; nothing touches the network.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from secure_retire.models.account import CreditBalance, Notification
from secure_retire.models.audit import AuditEventBuilder, AuditEventType
from secure_retire.models.documents import StoredDocument
from secure_retire.models.financial import (
    Address,
    Asset,
    AssetType,
    Beneficiary,
    Consultation,
    Debt,
    DebtType,
    IncomeSource,
    RelationshipType,
    UserProfile,
)
from secure_retire.services.storage import (
    DuplicateError,
    InMemoryAccountStorage,
    InMemoryDocumentStorage,
    InMemoryFinancialStorage,
    NotFoundError,
    StorageError,
    SupabaseAccountStorage,
    SupabaseAuditStorage,
    SupabaseClient,
    SupabaseDocumentStorage,
    SupabaseFinancialStorage,
    SupabaseTranslationStorage,
    table_for,
)


class FakeQuery:
    """Chainable stand-in for a PostgREST query builder."""

    def __init__(self, data=None, error: Exception = None):
        self.data = data if data is not None else []
        self.error = error
        self.calls = []

    def __getattr__(self, name):
        def method(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self
        return method

    def execute(self):
        if self.error is not None:
            raise self.error
        return SimpleNamespace(data=self.data)

    def called(self, name):
        return [c for c in self.calls if c[0] == name]


# Columns of the hosted tables this package writes
TABLE_COLUMNS = {
    "beneficiaries": {"id", "user_id", "full_name", "relationship", "date_of_birth", "percentage",
                      "is_primary", "contact_email", "created_at", "updated_at"},
    "consultations": {"id", "user_id", "consultant_id", "date", "status", "notes", "meeting_url",
                      "created_at", "updated_at"},
    "debts": {"id", "user_id", "debt_type", "balance", "interest_rate", "monthly_payment", "due_date",
              "created_at", "updated_at"},
    "documents": {"id", "user_id", "type", "file_url", "mime_type", "size_bytes", "ocr_text",
                  "renewal_date", "is_template", "tags", "metadata", "encryption_key",
                  "created_at", "updated_at"},
}


class FakeSupabase:
    def __init__(self):
        self.tables = {}
        self.storage = MagicMock()

    def table(self, name):
        return self.tables.setdefault(name, FakeQuery())


@pytest.fixture
def fake_client(monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "https://project.supabase.co/")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "anon-key")
    raw = FakeSupabase()
    return raw, SupabaseClient(client=raw)


class TestInMemoryStorage:
    """The offline backend."""

    @pytest.mark.asyncio
    async def test_record_lifecycle(self):
        """Test save, duplicate, update, list and delete."""
        storage = InMemoryFinancialStorage()
        user_id = uuid4()
        asset = Asset(user_id=user_id, type=AssetType.SAVINGS, institution_name="HNB",
                      amount=Decimal("10.00"))
        await storage.save_record(asset)
        with pytest.raises(DuplicateError):
            await storage.save_record(asset)

        changed = asset.model_copy(update={"amount": Decimal("20.00")})
        await storage.update_record(changed)
        assert (await storage.get_record(Asset, asset.id)).amount == Decimal("20.00")
        assert len(await storage.list_records(Asset, user_id)) == 1
        assert await storage.list_records(Asset, uuid4()) == []

        assert await storage.delete_record(Asset, asset.id) is True
        with pytest.raises(NotFoundError):
            await storage.update_record(changed)

    @pytest.mark.asyncio
    async def test_profile_needs_id(self):
        """Test profiles are keyed by the auth user id."""
        with pytest.raises(ValueError):
            await InMemoryFinancialStorage().save_profile(UserProfile())

    @pytest.mark.asyncio
    async def test_snapshot(self):
        """Test the snapshot collects every table for the user."""
        storage = InMemoryFinancialStorage()
        user_id = uuid4()
        await storage.save_profile(UserProfile(id=user_id, full_name="Kamal"))
        await storage.save_record(Debt(user_id=user_id, debt_type=DebtType.MORTGAGE,
                                       balance=Decimal("1000.00")))
        await storage.save_record(IncomeSource(user_id=user_id, source_type="Salary",
                                               amount=Decimal("500.00")))
        snapshot = await storage.load_snapshot(user_id)
        assert snapshot.profile.full_name == "Kamal"
        assert len(snapshot.debts) == 1
        assert len(snapshot.income_sources) == 1
        assert snapshot.assets == []

    @pytest.mark.asyncio
    async def test_returned_copies_are_detached(self):
        """Test mutating a returned model leaves storage alone."""
        storage = InMemoryFinancialStorage()
        user_id = uuid4()
        await storage.save_profile(UserProfile(id=user_id, full_name="Kamal"))
        profile = await storage.get_profile(user_id)
        profile.full_name = "Changed"
        assert (await storage.get_profile(user_id)).full_name == "Kamal"

    @pytest.mark.asyncio
    async def test_documents(self):
        """Test object upload and duplicate paths."""
        storage = InMemoryDocumentStorage()
        url = await storage.upload_file("u/1.pdf", b"%PDF", "application/pdf")
        assert url == "memory://documents/u/1.pdf"
        with pytest.raises(DuplicateError):
            await storage.upload_file("u/1.pdf", b"%PDF", "application/pdf")
        assert await storage.remove_file("u/1.pdf") is True
        assert await storage.remove_file("u/1.pdf") is False

    @pytest.mark.asyncio
    async def test_delete_user_data(self):
        """Test deleting one user leaves other users alone."""
        storage = InMemoryFinancialStorage()
        user_id, other_id = uuid4(), uuid4()
        await storage.save_profile(UserProfile(id=user_id, full_name="Kamal"))
        await storage.save_record(Asset(user_id=user_id, type=AssetType.SAVINGS,
                                        institution_name="HNB", amount=Decimal("10.00")))
        await storage.save_record(Asset(user_id=other_id, type=AssetType.SAVINGS,
                                        institution_name="BOC", amount=Decimal("5.00")))

        assert await storage.delete_user_data(user_id) == 2
        assert await storage.get_profile(user_id) is None
        assert len(await storage.list_records(Asset, other_id)) == 1

    @pytest.mark.asyncio
    async def test_delete_account_rows(self):
        """Test notifications, credits and settings go with the account."""
        storage = InMemoryAccountStorage()
        user_id = uuid4()
        await storage.save_credits(CreditBalance(user_id=user_id))
        await storage.save_notification(Notification(user_id=user_id, title="Hi", message="there"))

        assert await storage.delete_account_rows(user_id) == 2
        assert await storage.get_credits(user_id) is None
        assert await storage.list_notifications(user_id) == []

    def test_table_for_unknown_type(self):
        """Test unregistered models are refused."""
        assert table_for(Asset) == "assets"
        with pytest.raises(StorageError):
            table_for(UserProfile)


class TestSupabaseFinancialStorage:
    """Row mapping for profiles and records."""

    @pytest.mark.asyncio
    async def test_save_profile_row(self, fake_client):
        """Test national_id goes to ssn and address is a JSON object."""
        raw, client = fake_client
        user_id = uuid4()
        profile = UserProfile(
            id=user_id,
            full_name="Kamal Silva",
            date_of_birth=date(1980, 5, 17),
            national_id="801234567V",
            address=Address(street="45 Galle Road", city="Colombo", country="LK"),
        )
        assert await SupabaseFinancialStorage(client).save_profile(profile) is True

        row = raw.tables["users"].called("upsert")[0][1][0]
        assert row["id"] == str(user_id)
        assert row["ssn"] == "801234567V"
        assert row["phone"] is None
        assert row["date_of_birth"] == "1980-05-17"
        assert row["address"]["city"] == "Colombo"

    @pytest.mark.asyncio
    async def test_get_profile_from_row(self, fake_client):
        """Test a users row is mapped back."""
        raw, client = fake_client
        user_id = uuid4()
        raw.tables["users"] = FakeQuery([{
            "id": str(user_id),
            "email": "kamal@example.com",
            "full_name": "Kamal Silva",
            "date_of_birth": "1980-05-17",
            "ssn": "801234567V",
            "phone": None,
            "address": {"street": "45 Galle Road", "city": "Colombo"},
            "country": None,
            "currency": "LKR",
        }])
        profile = await SupabaseFinancialStorage(client).get_profile(user_id)
        assert profile.national_id == "801234567V"
        assert profile.date_of_birth == date(1980, 5, 17)
        assert profile.address.street == "45 Galle Road"
        assert profile.country == "LK"
        assert profile.phone == ""

    @pytest.mark.asyncio
    async def test_save_record_inserts_json(self, fake_client):
        """Test records are inserted into their table as JSON."""
        raw, client = fake_client
        asset = Asset(user_id=uuid4(), type=AssetType.SAVINGS, institution_name="HNB",
                      amount=Decimal("10.50"))
        await SupabaseFinancialStorage(client).save_record(asset)
        row = raw.tables["assets"].called("insert")[0][1][0]
        assert row["id"] == str(asset.id)
        assert row["type"] == "savings"

    @pytest.mark.asyncio
    async def test_inserted_rows_fit_table_columns(self, fake_client):
        """Test every inserted key is a column of its table."""
        raw, client = fake_client
        user_id = uuid4()
        storage = SupabaseFinancialStorage(client)
        await storage.save_record(Beneficiary(user_id=user_id, full_name="Nimal", percentage=Decimal("50"),
                                              relationship=RelationshipType.CHILD))
        await storage.save_record(Consultation(user_id=user_id, scheduled_at=datetime(2026, 11, 2, 10, 0)))
        await storage.save_record(Debt(user_id=user_id, debt_type=DebtType.MORTGAGE, balance=Decimal("5.00")))
        await SupabaseDocumentStorage(client).save_document(StoredDocument(
            user_id=user_id, name="Policy", file_url="https://x/u/p.pdf",
            storage_path="u/p.pdf", mime_type="application/pdf",
        ))

        for table in ("beneficiaries", "consultations", "debts"):
            row = raw.tables[table].called("insert")[0][1][0]
            assert set(row) <= TABLE_COLUMNS[table], table
        row = raw.tables["documents"].called("upsert")[0][1][0]
        assert set(row) <= TABLE_COLUMNS["documents"]

    @pytest.mark.asyncio
    async def test_consultation_date_column(self, fake_client):
        """Test scheduled_at is written to and read from the date column."""
        raw, client = fake_client
        user_id = uuid4()
        storage = SupabaseFinancialStorage(client)
        consultation = Consultation(user_id=user_id, scheduled_at=datetime(2026, 11, 2, 10, 0, tzinfo=timezone.utc))
        await storage.save_record(consultation)
        row = raw.tables["consultations"].called("insert")[0][1][0]
        assert "scheduled_at" not in row
        assert row["date"].startswith("2026-11-02T10:00")

        raw.tables["consultations"] = FakeQuery([{**row, "consultant_id": None, "meeting_url": None}])
        listed = await storage.list_records(Consultation, user_id)
        assert listed[0].scheduled_at == consultation.scheduled_at

    @pytest.mark.asyncio
    async def test_update_missing_row(self, fake_client):
        """Test an update that touches nothing is a NotFoundError."""
        _, client = fake_client
        debt = Debt(debt_type=DebtType.MORTGAGE, balance=Decimal("1.00"))
        with pytest.raises(NotFoundError):
            await SupabaseFinancialStorage(client).update_record(debt)

    @pytest.mark.asyncio
    async def test_list_skips_malformed_rows(self, fake_client):
        """Test bad rows are logged and skipped."""
        raw, client = fake_client
        user_id = uuid4()
        good = Asset(user_id=user_id, type=AssetType.SAVINGS, institution_name="HNB",
                     amount=Decimal("1.00")).model_dump(mode="json")
        raw.tables["assets"] = FakeQuery([good, {"id": "x", "type": "yacht"}])

        records = await SupabaseFinancialStorage(client).list_records(Asset, user_id, limit=10, offset=20)
        assert len(records) == 1
        assert raw.tables["assets"].called("range")[0][1] == (20, 29)

    @pytest.mark.asyncio
    async def test_query_failure_becomes_storage_error(self, fake_client):
        """Test client errors are wrapped."""
        raw, client = fake_client
        raw.tables["debts"] = FakeQuery(error=RuntimeError("boom"))
        with pytest.raises(StorageError, match="Failed to delete debts row"):
            await SupabaseFinancialStorage(client).delete_record(Debt, uuid4())

    @pytest.mark.asyncio
    async def test_delete_user_data(self, fake_client):
        """Test every record table and the profile row are cleared by user."""
        raw, client = fake_client
        user_id = uuid4()
        raw.tables["assets"] = FakeQuery([{"id": "a"}, {"id": "b"}])
        raw.tables["users"] = FakeQuery([{"id": str(user_id)}])

        removed = await SupabaseFinancialStorage(client).delete_user_data(user_id)

        assert removed == 3
        assert ("eq", ("user_id", str(user_id)), {}) in raw.tables["consultations"].calls
        assert ("eq", ("id", str(user_id)), {}) in raw.tables["users"].calls
        assert raw.tables["portfolio_allocations"].called("delete")

    @pytest.mark.asyncio
    async def test_delete_user_data_failure(self, fake_client):
        """Test a failed delete is wrapped."""
        raw, client = fake_client
        raw.tables["debts"] = FakeQuery(error=RuntimeError("boom"))
        with pytest.raises(StorageError, match="Failed to delete user data"):
            await SupabaseFinancialStorage(client).delete_user_data(uuid4())


class TestSupabaseAccountStorage:
    """Account tables."""

    @pytest.mark.asyncio
    async def test_credits_round_trip(self, fake_client):
        """Test credits are read by user and upserted on user_id."""
        raw, client = fake_client
        user_id = uuid4()
        storage = SupabaseAccountStorage(client)
        await storage.save_credits(CreditBalance(user_id=user_id, used_credits=4))
        upsert = raw.tables["credits"].called("upsert")[0]
        assert upsert[2] == {"on_conflict": "user_id"}

        raw.tables["credits"] = FakeQuery([{"user_id": str(user_id), "available_credits": 100,
                                            "used_credits": 4, "reset_date": "2026-11-01"}])
        credits = await storage.get_credits(user_id)
        assert credits.reset_date == date(2026, 11, 1)

    @pytest.mark.asyncio
    async def test_notifications(self, fake_client):
        """Test notification queries."""
        raw, client = fake_client
        user_id = uuid4()
        storage = SupabaseAccountStorage(client)
        note = Notification(user_id=user_id, title="Hi", message="there")
        raw.tables["notifications"] = FakeQuery([note.model_dump(mode="json")])

        listed = await storage.list_notifications(user_id, limit=5)
        assert listed[0].title == "Hi"
        assert await storage.mark_all_notifications_read(user_id) == 1
        assert ("eq", ("read", False), {}) in raw.tables["notifications"].calls

    @pytest.mark.asyncio
    async def test_delete_account_rows(self, fake_client):
        """Test account tables are cleared by user."""
        raw, client = fake_client
        user_id = uuid4()
        raw.tables["credits"] = FakeQuery([{"user_id": str(user_id)}])
        raw.tables["settings"] = FakeQuery([{"user_id": str(user_id)}])

        assert await SupabaseAccountStorage(client).delete_account_rows(user_id) == 2
        for table in ("notifications", "settings", "credits", "subscriptions"):
            assert ("eq", ("user_id", str(user_id)), {}) in raw.tables[table].calls


class TestSupabaseDocumentStorage:
    """Bucket uploads and document rows."""

    @pytest.mark.asyncio
    async def test_upload_file(self, fake_client):
        """Test uploads go to the configured bucket and return the public URL."""
        raw, client = fake_client
        bucket = raw.storage.from_.return_value
        bucket.get_public_url.return_value = "https://project.supabase.co/storage/v1/object/public/documents/u/1.pdf"

        url = await SupabaseDocumentStorage(client).upload_file("u/1.pdf", b"%PDF", "application/pdf")

        raw.storage.from_.assert_called_with("documents")
        bucket.upload.assert_called_once_with(
            path="u/1.pdf", file=b"%PDF", file_options={"content-type": "application/pdf"},
        )
        assert url.endswith("/documents/u/1.pdf")

    @pytest.mark.asyncio
    async def test_list_documents(self, fake_client):
        """Test the name and object key come back out of metadata."""
        raw, client = fake_client
        user_id = uuid4()
        doc = StoredDocument(user_id=user_id, name="Policy", file_url="https://x/u/p.pdf",
                             storage_path="u/p.pdf", mime_type="application/pdf")
        storage = SupabaseDocumentStorage(client)
        await storage.save_document(doc)
        row = raw.tables["documents"].called("upsert")[0][1][0]
        assert row["metadata"]["original_name"] == "Policy"
        assert "name" not in row

        raw.tables["documents"] = FakeQuery([row])
        documents = await storage.list_documents(user_id)
        assert documents[0].id == doc.id
        assert documents[0].name == "Policy"
        assert documents[0].storage_path == "u/p.pdf"

    @pytest.mark.asyncio
    async def test_web_client_rows(self, fake_client):
        """Test rows uploaded by the web client are readable."""
        raw, client = fake_client
        user_id = uuid4()
        raw.tables["documents"] = FakeQuery([
            {
                "id": str(uuid4()),
                "user_id": str(user_id),
                "type": "insurance_policy",
                "file_url": f"https://project.supabase.co/storage/v1/object/public/documents/{user_id}/1700000000.pdf",
                "mime_type": None,
                "size_bytes": None,
                "ocr_text": None,
                "renewal_date": None,
                "is_template": False,
                "tags": None,
                "metadata": {"original_name": "Life policy.pdf"},
                "encryption_key": None,
                "created_at": "2026-01-05T09:00:00+00:00",
                "updated_at": "2026-01-05T09:00:00+00:00",
            },
            {"id": "broken", "metadata": None},
        ])
        documents = await SupabaseDocumentStorage(client).list_documents(user_id)
        assert len(documents) == 1
        assert documents[0].name == "Life policy.pdf"
        assert documents[0].storage_path == f"{user_id}/1700000000.pdf"
        assert documents[0].tags == []


class TestSupabaseTranslationAndAudit:
    """Translation cache and audit log tables."""

    @pytest.mark.asyncio
    async def test_translation(self, fake_client):
        """Test lookups by key and language."""
        raw, client = fake_client
        storage = SupabaseTranslationStorage(client)
        assert await storage.get_translation("Hello-en-es", "es") is None
        raw.tables["translations"] = FakeQuery([{"value": "Hola"}])
        assert await storage.get_translation("Hello-en-es", "es") == "Hola"
        await storage.save_translation("Bye-en-es", "es", "Adiós")
        upsert = raw.tables["translations"].called("upsert")[0]
        assert upsert[2] == {"on_conflict": "key,language"}

    @pytest.mark.asyncio
    async def test_audit_write_failure_is_swallowed(self, fake_client):
        """Test a failed audit insert reports False instead of raising."""
        raw, client = fake_client
        raw.tables["audit_logs"] = FakeQuery(error=RuntimeError("rls denied"))
        event = AuditEventBuilder.user_signed_out(uuid4())
        assert await SupabaseAuditStorage(client).append_event(event) is False

    @pytest.mark.asyncio
    async def test_recent_events_rebuilt_from_rows(self, fake_client):
        """Test events come back from new_data and foreign rows are skipped."""
        raw, client = fake_client
        user_id = uuid4()
        event = AuditEventBuilder.credits_denied(user_id, "AI_INSIGHT", 1, 0)
        raw.tables["audit_logs"] = FakeQuery([event.to_row(), {"operation": "INSERT"}])

        events = await SupabaseAuditStorage(client).get_recent_events(user_id=user_id, limit=10)
        assert len(events) == 1
        assert events[0].event_type == AuditEventType.CREDITS_DENIED
        assert ("eq", ("user_id", str(user_id)), {}) in raw.tables["audit_logs"].calls
