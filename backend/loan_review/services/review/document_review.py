"""Document review lifecycle.

    PENDING  → APPROVED | REJECTED
    APPROVED → PENDING   (unapprove)
    REJECTED → PENDING   (unreject)

There is no direct REJECTED → APPROVED edge: re-review goes through PENDING.
KYC-locked documents refuse every staff transition.
"""

from datetime import datetime, timezone
from typing import Optional

from loan_review.models.document import DocumentRejectionReason, DocumentStatus
from loan_review.services.review.domain import (
    PLACEHOLDER_PREFIX,
    Actor,
    Application,
    Document,
)
from loan_review.services.review.errors import (
    DocumentLockedError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from loan_review.services.review.locks import is_document_kyc_locked
from loan_review.services.review.mutations import DocumentStatusChange

REVIEW_TRANSITIONS: dict[DocumentStatus, frozenset[DocumentStatus]] = {
    DocumentStatus.PENDING: frozenset({DocumentStatus.APPROVED, DocumentStatus.REJECTED}),
    DocumentStatus.APPROVED: frozenset({DocumentStatus.PENDING}),
    DocumentStatus.REJECTED: frozenset({DocumentStatus.PENDING}),
}


def can_transition(current: DocumentStatus, target: DocumentStatus) -> bool:
    return target in REVIEW_TRANSITIONS.get(current, frozenset())


def parse_rejection_reason(reason: "str | DocumentRejectionReason | None") -> DocumentRejectionReason:
    if isinstance(reason, DocumentRejectionReason):
        return reason
    try:
        return DocumentRejectionReason((reason or "").strip().upper())
    except ValueError:
        allowed = ", ".join(r.value for r in DocumentRejectionReason)
        raise ValidationError(
            f"Rejection reason is required and must be one of: {allowed}", reason=reason
        )


class DocumentReviewEngine:
    def __init__(self, application: Application):
        self.application = application

    def review_list(self) -> list[Document]:
        """Uploaded documents followed by a placeholder per missing required type."""
        uploaded_types = {d.type for d in self.application.documents}
        missing = [
            Document.placeholder(doc_type)
            for doc_type in self.application.required_documents
            if doc_type not in uploaded_types
        ]
        return list(self.application.documents) + missing

    def is_locked(self, document: Document) -> bool:
        return is_document_kyc_locked(document, self.application.verifications)

    def get(self, document_id: str) -> Document:
        document_id = str(document_id)
        if document_id.startswith(PLACEHOLDER_PREFIX):
            raise InvalidStateError(
                "Document has not been uploaded yet", document_id=document_id
            )
        document = self.application.find_document(document_id)
        if document is None:
            raise NotFoundError(f"Document {document_id} not found", document_id=document_id)
        return document

    def approve(self, document_id: str, actor: Actor, now: Optional[datetime] = None) -> DocumentStatusChange:
        document = self.get(document_id)
        return self._transition(document, DocumentStatus.APPROVED, "document_approved", actor, now)

    def reject(
        self,
        document_id: str,
        actor: Actor,
        reason: "str | DocumentRejectionReason | None",
        comment: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> DocumentStatusChange:
        parsed = parse_rejection_reason(reason)
        document = self.get(document_id)
        return self._transition(
            document, DocumentStatus.REJECTED, "document_rejected", actor, now,
            rejection_reason=parsed.value,
            rejection_comment=(comment or "").strip() or None,
        )

    def unapprove(self, document_id: str, actor: Actor, now: Optional[datetime] = None) -> DocumentStatusChange:
        document = self.get(document_id)
        if document.status != DocumentStatus.APPROVED:
            raise InvalidStateError(
                f"Only approved documents can be unapproved (document is {document.status.value})",
                document_id=document.id,
            )
        return self._transition(document, DocumentStatus.PENDING, "document_unapproved", actor, now)

    def unreject(self, document_id: str, actor: Actor, now: Optional[datetime] = None) -> DocumentStatusChange:
        document = self.get(document_id)
        if document.status != DocumentStatus.REJECTED:
            raise InvalidStateError(
                f"Only rejected documents can be unrejected (document is {document.status.value})",
                document_id=document.id,
            )
        return self._transition(document, DocumentStatus.PENDING, "document_unrejected", actor, now)

    def _transition(
        self,
        document: Document,
        target: DocumentStatus,
        action: str,
        actor: Actor,
        now: Optional[datetime],
        rejection_reason: Optional[str] = None,
        rejection_comment: Optional[str] = None,
    ) -> DocumentStatusChange:
        if self.is_locked(document):
            raise DocumentLockedError(document.id, document.type)
        if not can_transition(document.status, target):
            raise InvalidStateError(
                f"Cannot move document from {document.status.value} to {target.value}",
                document_id=document.id,
                current=document.status.value,
                target=target.value,
            )
        return DocumentStatusChange(
            action=action,
            document_id=document.id,
            document_type=document.type,
            old_status=document.status,
            new_status=target,
            changed_at=now or datetime.now(timezone.utc),
            reviewed_by=actor.id,
            rejection_reason=rejection_reason,
            rejection_comment=rejection_comment,
        )
