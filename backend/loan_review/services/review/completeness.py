"""Read-side projections: completeness score and approval readiness.

Completeness measures whether things were provided, not whether they were
verified. It is advisory. Approval readiness is the hard gate checked
before an application can move to APPROVED.
"""

import enum
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from loan_review.models.document import DocumentStatus, DocumentType
from loan_review.models.reference import ReferenceStatus
from loan_review.models.verification import VerificationStatus
from loan_review.services.review.domain import Application

MIN_VERIFIED_REFERENCES = 2


class CategoryState(str, enum.Enum):
    COMPLETE = "complete"
    PARTIAL = "partial"
    MISSING = "missing"


@dataclass(frozen=True)
class DocumentCounts:
    uploaded: int
    required: int
    approved: int

    @property
    def state(self) -> CategoryState:
        if self.approved >= self.required:
            return CategoryState.COMPLETE
        if self.uploaded >= self.required:
            return CategoryState.PARTIAL
        return CategoryState.MISSING


@dataclass(frozen=True)
class ReferenceCounts:
    count: int
    verified: int

    @property
    def state(self) -> CategoryState:
        if self.verified >= MIN_VERIFIED_REFERENCES:
            return CategoryState.COMPLETE
        if self.count >= MIN_VERIFIED_REFERENCES:
            return CategoryState.PARTIAL
        return CategoryState.MISSING


@dataclass(frozen=True)
class CompletenessSnapshot:
    personal_data: bool
    address: bool
    employment: bool
    documents: DocumentCounts
    references: ReferenceCounts
    # None when the product does not require a signature
    signature: Optional[bool]

    @property
    def total_categories(self) -> int:
        return 5 if self.signature is None else 6

    @property
    def completed_categories(self) -> int:
        done = [
            self.personal_data,
            self.address,
            self.employment,
            self.documents.state == CategoryState.COMPLETE,
            self.references.state == CategoryState.COMPLETE,
        ]
        if self.signature is not None:
            done.append(self.signature)
        return sum(1 for item in done if item)

    @property
    def percentage(self) -> int:
        ratio = Decimal(100 * self.completed_categories) / Decimal(self.total_categories)
        return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    def to_dict(self) -> dict:
        return {
            "personal_data": self.personal_data,
            "address": self.address,
            "employment": self.employment,
            "documents": {
                "uploaded": self.documents.uploaded,
                "required": self.documents.required,
                "approved": self.documents.approved,
            },
            "references": {
                "count": self.references.count,
                "verified": self.references.verified,
            },
            "signature": self.signature,
            "percentage": self.percentage,
        }


def required_document_types(application: Application) -> list[str]:
    """Required types that count toward the documents category, in order, deduplicated."""
    seen: list[str] = []
    for doc_type in application.required_documents:
        if doc_type == DocumentType.SIGNATURE.value or doc_type in seen:
            continue
        seen.append(doc_type)
    return seen


def calculate_completeness(application: Application) -> CompletenessSnapshot:
    required = required_document_types(application)
    uploaded_types = {d.type for d in application.documents if not d.is_placeholder}
    approved_types = {
        d.type for d in application.documents
        if not d.is_placeholder and d.status == DocumentStatus.APPROVED
    }

    documents = DocumentCounts(
        uploaded=sum(1 for t in required if t in uploaded_types),
        required=len(required),
        approved=sum(1 for t in required if t in approved_types),
    )
    references = ReferenceCounts(
        count=len(application.references),
        verified=sum(
            1 for r in application.references
            if r.verification_status == ReferenceStatus.VERIFIED
        ),
    )
    return CompletenessSnapshot(
        personal_data=application.applicant is not None,
        address=application.address is not None,
        employment=application.employment is not None,
        documents=documents,
        references=references,
        signature=application.has_signed if application.requires_signature else None,
    )


@dataclass(frozen=True)
class ApprovalReadiness:
    blockers: list[str] = field(default_factory=list)

    @property
    def is_ready(self) -> bool:
        return not self.blockers


def approval_readiness(application: Application, required_fields: Iterable[str]) -> ApprovalReadiness:
    blockers: list[str] = []
    for name, record in sorted(application.verifications.items()):
        if record.status == VerificationStatus.REJECTED:
            blockers.append(f"field '{name}' is rejected")
    for name in required_fields:
        record = application.verifications.get(name)
        if record is None or record.status == VerificationStatus.PENDING:
            blockers.append(f"field '{name}' is not verified")

    approved_types = {
        d.type for d in application.documents if d.status == DocumentStatus.APPROVED
    }
    for doc_type in required_document_types(application):
        if doc_type not in approved_types:
            blockers.append(f"document {doc_type} is not approved")
    return ApprovalReadiness(blockers=blockers)


def review_outstanding(application: Application) -> bool:
    """True while anything still blocks moving back to IN_REVIEW."""
    if any(r.status == VerificationStatus.REJECTED for r in application.verifications.values()):
        return True
    if any(
        d.status in (DocumentStatus.PENDING, DocumentStatus.REJECTED)
        for d in application.documents if not d.is_placeholder
    ):
        return True
    uploaded_types = {d.type for d in application.documents}
    return any(t not in uploaded_types for t in required_document_types(application))
