"""Tests for the completeness projection and approval readiness."""

from datetime import datetime, timezone

import pytest

from loan_review.models.document import DocumentStatus
from loan_review.models.reference import ReferenceStatus
from loan_review.models.verification import VerificationStatus
from loan_review.services.review.completeness import (
    CategoryState,
    approval_readiness,
    calculate_completeness,
    review_outstanding,
)
from loan_review.services.review.document_review import DocumentReviewEngine
from loan_review.services.review.domain import Actor

from conftest import make_application, make_document, make_record, make_reference

STAFF = Actor(id=7)
REQUIRED = ["INE_FRONT", "INE_BACK", "PROOF_OF_ADDRESS"]


class TestCategories:

    def test_sections_count_presence_not_verification(self):
        snapshot = calculate_completeness(make_application())
        assert snapshot.personal_data and snapshot.address and snapshot.employment

    def test_missing_sections(self):
        snapshot = calculate_completeness(make_application(with_sections=False))
        assert not snapshot.personal_data
        assert not snapshot.address
        assert not snapshot.employment

    def test_references_need_two_verified(self):
        refs = [make_reference(1, ReferenceStatus.VERIFIED), make_reference(2), make_reference(3)]
        snapshot = calculate_completeness(make_application(references=refs))
        assert snapshot.references.count == 3
        assert snapshot.references.verified == 1
        assert snapshot.references.state == CategoryState.PARTIAL

    def test_single_reference_is_missing(self):
        snapshot = calculate_completeness(make_application(references=[make_reference(1)]))
        assert snapshot.references.state == CategoryState.MISSING

    def test_unreachable_references_do_not_count(self):
        refs = [make_reference(1, ReferenceStatus.UNREACHABLE), make_reference(2, ReferenceStatus.VERIFIED)]
        assert calculate_completeness(make_application(references=refs)).references.verified == 1

    def test_documents_partial_when_uploaded_but_not_approved(self):
        docs = [make_document(i, t) for i, t in enumerate(REQUIRED, start=1)]
        snapshot = calculate_completeness(make_application(required_documents=REQUIRED, documents=docs))
        assert snapshot.documents.uploaded == 3
        assert snapshot.documents.state == CategoryState.PARTIAL

    def test_optional_documents_do_not_count(self):
        docs = [make_document(1, "BANK_STATEMENT", DocumentStatus.APPROVED)]
        snapshot = calculate_completeness(make_application(required_documents=REQUIRED, documents=docs))
        assert snapshot.documents.uploaded == 0
        assert snapshot.documents.approved == 0


class TestPercentage:

    def test_denominator_is_five_without_signature(self):
        snapshot = calculate_completeness(make_application(required_documents=REQUIRED))
        assert snapshot.signature is None
        assert snapshot.total_categories == 5
        # personal, address, employment complete; documents and references missing
        assert snapshot.percentage == 60

    def test_signature_adds_sixth_category(self):
        app = make_application(required_documents=REQUIRED + ["SIGNATURE"])
        snapshot = calculate_completeness(app)
        assert snapshot.total_categories == 6
        assert snapshot.signature is False
        assert snapshot.percentage == 50

    def test_signed_application(self):
        app = make_application(required_documents=["SIGNATURE"],
                               signed_at=datetime(2026, 2, 1, tzinfo=timezone.utc))
        snapshot = calculate_completeness(app)
        # SIGNATURE is not a documents-category requirement, so documents is complete too
        assert snapshot.documents.required == 0
        assert snapshot.signature is True
        assert snapshot.percentage == 83

    def test_rounding_half_up(self):
        # 1 of 6 -> 16.67 -> 17; 5 of 6 -> 83.33 -> 83
        app = make_application(with_sections=False, required_documents=["INE_FRONT", "SIGNATURE"],
                               signed_at=datetime(2026, 2, 1, tzinfo=timezone.utc))
        assert calculate_completeness(app).percentage == 17


class TestMonotonicity:

    @pytest.mark.parametrize("verified_before", [0, 1])
    def test_verifying_reference_never_decreases(self, verified_before):
        refs = [make_reference(i, ReferenceStatus.VERIFIED) for i in range(verified_before)]
        refs += [make_reference(10 + i) for i in range(2)]
        app = make_application(references=refs)
        before = calculate_completeness(app).percentage

        app.references[-1].verification_status = ReferenceStatus.VERIFIED
        assert calculate_completeness(app).percentage >= before

    def test_approving_required_documents_never_decreases(self):
        docs = [make_document(i, t) for i, t in enumerate(REQUIRED, start=1)]
        app = make_application(required_documents=REQUIRED, documents=docs)
        engine = DocumentReviewEngine(app)
        previous = calculate_completeness(app).percentage
        for doc in docs:
            engine.approve(doc.id, STAFF).apply(app)
            current = calculate_completeness(app).percentage
            assert current >= previous
            previous = current


class TestEndToEndDocuments:

    def test_documents_category_fills_as_documents_are_approved(self):
        app = make_application(required_documents=REQUIRED)
        snapshot = calculate_completeness(app)
        assert snapshot.to_dict()["documents"] == {"uploaded": 0, "required": 3, "approved": 0}
        assert snapshot.documents.state == CategoryState.MISSING
        assert snapshot.percentage == 60

        app.documents = [make_document(i, t) for i, t in enumerate(REQUIRED, start=1)]
        engine = DocumentReviewEngine(app)
        for doc in list(app.documents):
            engine.approve(doc.id, STAFF).apply(app)

        snapshot = calculate_completeness(app)
        assert snapshot.to_dict()["documents"] == {"uploaded": 3, "required": 3, "approved": 3}
        assert snapshot.documents.state == CategoryState.COMPLETE
        assert snapshot.percentage == 80


class TestApprovalReadiness:

    def test_blockers_listed(self):
        app = make_application(
            required_documents=["INE_FRONT"],
            verifications={"rfc": make_record("rfc", VerificationStatus.REJECTED, rejection_reason="typo")},
        )
        readiness = approval_readiness(app, ["first_name", "curp"])
        assert not readiness.is_ready
        assert "field 'rfc' is rejected" in readiness.blockers
        assert "field 'first_name' is not verified" in readiness.blockers
        assert "document INE_FRONT is not approved" in readiness.blockers

    def test_ready(self):
        app = make_application(
            required_documents=["INE_FRONT"],
            documents=[make_document(1, "INE_FRONT", DocumentStatus.APPROVED)],
            verifications={"curp": make_record("curp", method="KYC_INE_OCR")},
        )
        assert approval_readiness(app, ["curp"]).is_ready


class TestReviewOutstanding:

    def test_pending_document_is_outstanding(self):
        app = make_application(documents=[make_document(1, "INE_FRONT")])
        assert review_outstanding(app)

    def test_missing_required_is_outstanding(self):
        assert review_outstanding(make_application(required_documents=["INE_BACK"]))

    def test_clear(self):
        app = make_application(required_documents=["INE_BACK"],
                               documents=[make_document(1, "INE_BACK", DocumentStatus.APPROVED)])
        assert not review_outstanding(app)
