"""Lock resolution for fields and documents.

A field or document is locked when its last verification came from an
automated source (KYC provider, OTP, bureau...). Staff commands must not
touch locked records. Every caller goes through the functions below so the
selfie, document and field views always agree.
"""

from typing import TYPE_CHECKING, Mapping, Optional

from loan_review.models.document import DocumentStatus, DocumentType
from loan_review.models.verification import VerificationMethod, VerificationStatus

if TYPE_CHECKING:
    from loan_review.services.review.domain import Document, FieldVerificationRecord

# Methods written by unknown providers are matched on these fragments
_AUTOMATED_FRAGMENTS = ("KYC", "NUBARIUM", "LIVENESS")

# Field records that prove a document was checked by the KYC provider
DOCUMENT_FIELD_MAP: dict[str, tuple[str, ...]] = {
    DocumentType.INE_FRONT.value: ("curp", "rfc", "first_name", "last_name_1", "ine_clave"),
    DocumentType.INE_BACK.value: ("address",),
    DocumentType.SELFIE.value: ("face_match", "liveness"),
}

DOCUMENT_EVIDENCE_METHODS = frozenset({
    VerificationMethod.KYC_INE_OCR,
    VerificationMethod.KYC_INE_LIST,
    VerificationMethod.KYC_FACE_MATCH,
    VerificationMethod.KYC_LIVENESS,
    VerificationMethod.NUBARIUM,
})


def is_automated_method(method: "str | VerificationMethod | None") -> bool:
    if not method:
        return False
    known = VerificationMethod.parse(method)
    if known is not None:
        return known.is_automated
    upper = str(method).upper()
    return any(fragment in upper for fragment in _AUTOMATED_FRAGMENTS)


def is_field_locked(record: Optional["FieldVerificationRecord"]) -> bool:
    return record is not None and is_automated_method(record.method)


def _has_kyc_field_evidence(
    document_type: str,
    verifications: Mapping[str, "FieldVerificationRecord"],
) -> bool:
    for field_name in DOCUMENT_FIELD_MAP.get(document_type, ()):
        record = verifications.get(field_name)
        if record is None or record.status != VerificationStatus.VERIFIED:
            continue
        if VerificationMethod.parse(record.method) in DOCUMENT_EVIDENCE_METHODS:
            return True
    return False


def is_document_kyc_locked(
    document: "Document",
    verifications: Mapping[str, "FieldVerificationRecord"],
) -> bool:
    """True when any of the three KYC signals marks the document.

    Upstream providers persist the signal in different places: the stored
    flag, the document metadata, or the field records the document backs.
    Any one of them is enough.
    """
    if document.is_placeholder:
        return False
    if document.is_kyc_locked:
        return True

    metadata = document.metadata
    if metadata is not None and metadata.kind == "kyc":
        if document.status != DocumentStatus.PENDING and metadata.reviewed_by_automation:
            return True
        if document.status == DocumentStatus.APPROVED and (
            metadata.signals_automated_pass
            or (document.type == DocumentType.SELFIE.value and metadata.has_face_match_score)
        ):
            return True

    return _has_kyc_field_evidence(document.type, verifications)
