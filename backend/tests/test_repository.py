"""Tests for the SQLAlchemy repository: row mapping and mutation writes (no database)."""

from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from loan_review.models import (
    ApplicantProfile,
    ApplicationReference,
    ApplicationStatus,
    AuditLog,
    BankAccount,
    CreditProduct,
    Document,
    DocumentStatus,
    FieldVerification,
    LoanApplication,
    PaymentFrequency,
    ReferenceStatus,
    VerificationStatus,
)
from loan_review.models.reference import ReferenceCheckResult
from loan_review.services.review.domain import KycMetadata, FieldVerificationRecord
from loan_review.services.review.errors import NotFoundError, UpstreamFailure
from loan_review.services.review.events import FieldVerificationEventData, ExtensionEventData
from loan_review.services.review.mutations import (
    DocumentStatusChange,
    FieldVerificationChange,
    MutationBatch,
    ReferenceVerificationChange,
    StatusTransition,
)
from loan_review.services.review.repository import SqlAlchemyApplicationRepository, to_domain

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _row() -> LoanApplication:
    row = LoanApplication(
        id=1,
        folio="SOL-2026-0001",
        tenant_id="acme",
        requested_amount=Decimal("50000.00"),
        term_months=12,
        payment_frequency=PaymentFrequency.BIWEEKLY,
        interest_rate=Decimal("36.00"),
        status=ApplicationStatus.IN_REVIEW,
        status_history=[{
            "from": "SUBMITTED", "to": "IN_REVIEW", "changed_by": 9,
            "changed_at": "2026-02-28T10:00:00+00:00", "note": None, "trigger": "manual",
        }],
    )
    row.credit_product = CreditProduct(name="Personal", product_type="PERSONAL",
                                       required_documents=["INE_FRONT", "SELFIE", "SIGNATURE"])
    row.profile = ApplicantProfile(first_name="Ana", last_name_1="Garcia", curp="GAXA900101MDFRRN09")
    row.documents = [
        Document(id=5, document_type="SELFIE", file_name="selfie.jpg", file_path="1/selfie.jpg",
                 status=DocumentStatus.APPROVED, is_kyc_locked=False,
                 metadata_json={"face_match_passed": True, "face_match_score": 98}),
    ]
    row.references = [
        ApplicationReference(id=8, full_name="Maria Lopez", relationship_type="SIBLING",
                             phone="5512345678", verification_status=ReferenceStatus.PENDING),
    ]
    row.bank_accounts = [
        BankAccount(id=30, bank_name="BBVA", clabe="012180001234567891", is_primary=True, is_verified=False),
    ]
    row.field_verifications = [
        FieldVerification(field_name="curp", status=VerificationStatus.VERIFIED, method="KYC_INE_OCR"),
    ]
    row.notes = []
    return row


class TestToDomain:

    def test_maps_aggregate(self):
        app = to_domain(_row(), [])
        assert app.folio == "SOL-2026-0001"
        assert app.loan.payment_frequency == PaymentFrequency.BIWEEKLY
        assert app.required_documents == ["INE_FRONT", "SELFIE", "SIGNATURE"]
        assert app.requires_signature
        assert app.applicant.full_name == "Ana Garcia"
        assert app.address is None
        assert app.documents[0].id == "5"
        assert isinstance(app.documents[0].metadata, KycMetadata)
        assert app.references[0].relationship == "SIBLING"
        assert app.bank_accounts[0].masked_clabe == "***7891"
        assert app.verifications["curp"].is_locked
        assert app.status_history[0].to_status == ApplicationStatus.IN_REVIEW

    def test_timeline_metadata_is_typed(self):
        rows = [
            AuditLog(entity_type="loan_application", entity_id=1, action="data_verified",
                     details="Field 'curp' verified", metadata_json={
                         "kind": "field_verification", "field": "curp",
                         "old_status": "PENDING", "new_status": "VERIFIED", "method": "MANUAL",
                     }),
            AuditLog(entity_type="loan_application", entity_id=1, action="legacy_import",
                     details="Imported", metadata_json={"batch": 4}),
        ]
        app = to_domain(_row(), rows)
        assert isinstance(app.timeline[0].metadata, FieldVerificationEventData)
        assert isinstance(app.timeline[1].metadata, ExtensionEventData)
        assert app.timeline[1].metadata.values == {"batch": 4}

    def test_unreadable_kyc_score_does_not_break_mapping(self):
        row = _row()
        row.documents[0].metadata_json = {"face_match_passed": True, "face_match_score": "pending"}
        metadata = to_domain(row, []).documents[0].metadata
        assert metadata.face_match_score is None
        assert metadata.extra["face_match_score"] == "pending"

    def test_malformed_history_entry_skipped(self):
        row = _row()
        row.status_history = [{"from": "NOPE"}]
        assert to_domain(row, []).status_history == []


def _repo(row):
    db = AsyncMock()
    db.add = MagicMock()
    repo = SqlAlchemyApplicationRepository(db)
    repo._fetch = AsyncMock(return_value=row)
    return repo, db


class TestSaveMutation:

    @pytest.mark.asyncio
    async def test_writes_batch_and_commits_once(self):
        row = _row()
        repo, db = _repo(row)
        batch = MutationBatch((
            DocumentStatusChange(
                action="document_rejected", document_id="5", document_type="SELFIE",
                old_status=DocumentStatus.APPROVED, new_status=DocumentStatus.PENDING,
                changed_at=NOW, reviewed_by=7,
            ),
            StatusTransition(old_status=ApplicationStatus.IN_REVIEW,
                             new_status=ApplicationStatus.DOCS_PENDING, changed_at=NOW,
                             changed_by=7, trigger="document_rejected"),
        ))
        await repo.save_mutation(1, batch)

        assert row.documents[0].status == DocumentStatus.PENDING
        assert row.documents[0].reviewed_at is None
        assert row.status == ApplicationStatus.DOCS_PENDING
        assert row.status_history[-1]["trigger"] == "document_rejected"
        db.commit.assert_awaited_once()
        db.rollback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_new_field_record_added(self):
        row = _row()
        repo, db = _repo(row)
        record = FieldVerificationRecord(field="rfc", status=VerificationStatus.REJECTED,
                                         method="MANUAL", verified_at=NOW, verified_by=7,
                                         rejection_reason="typo")
        await repo.save_mutation(1, MutationBatch((FieldVerificationChange("data_rejected", record, "PENDING"),)))
        added = [fv for fv in row.field_verifications if fv.field_name == "rfc"]
        assert len(added) == 1
        assert added[0].rejection_reason == "typo"

    @pytest.mark.asyncio
    async def test_reference_written(self):
        row = _row()
        repo, _ = _repo(row)
        change = ReferenceVerificationChange(
            reference_id="8", full_name="Maria Lopez", result=ReferenceCheckResult.NO_ANSWER,
            old_status=ReferenceStatus.PENDING, verified_at=NOW, verified_by=7,
        )
        await repo.save_mutation(1, MutationBatch((change,)))
        assert row.references[0].verification_status == ReferenceStatus.UNREACHABLE

    @pytest.mark.asyncio
    async def test_unknown_document_rolls_back(self):
        repo, db = _repo(_row())
        change = DocumentStatusChange(
            action="document_approved", document_id="99", document_type="INE_FRONT",
            old_status=DocumentStatus.PENDING, new_status=DocumentStatus.APPROVED, changed_at=NOW,
        )
        with pytest.raises(NotFoundError):
            await repo.save_mutation(1, MutationBatch((change,)))
        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_commit_failure_is_upstream(self, monkeypatch):
        logged = AsyncMock()
        monkeypatch.setattr("loan_review.services.review.repository.log_error_standalone", logged)
        repo, db = _repo(_row())
        db.commit.side_effect = RuntimeError("deadlock detected")
        change = StatusTransition(old_status=ApplicationStatus.IN_REVIEW,
                                  new_status=ApplicationStatus.CANCELLED, changed_at=NOW)
        with pytest.raises(UpstreamFailure):
            await repo.save_mutation(1, MutationBatch((change,)))
        db.rollback.assert_awaited_once()
        logged.assert_awaited_once()


class TestLoad:

    @pytest.mark.asyncio
    async def test_load_maps_row_and_timeline(self):
        repo, db = _repo(_row())
        result = MagicMock()
        result.scalars.return_value.all.return_value = []
        db.execute.return_value = result
        app = await repo.load_application(1)
        assert app.id == 1
        assert app.timeline == []

    @pytest.mark.asyncio
    async def test_missing_application_passes_through(self):
        repo, _ = _repo(None)
        repo._fetch.side_effect = NotFoundError("Application 2 not found")
        with pytest.raises(NotFoundError):
            await repo.load_application(2)
