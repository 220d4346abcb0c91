"""In-memory view of an application under review.

These dataclasses are what the review engines operate on. They are loaded
in full from the persistence collaborator and replaced wholesale on reload;
nothing here talks to a database.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar, Optional, Union

from loan_review.models.document import DocumentStatus, DocumentType
from loan_review.models.loan import ApplicationStatus, PaymentFrequency
from loan_review.models.reference import ReferenceStatus
from loan_review.models.user import StaffRole
from loan_review.models.verification import VerificationStatus
from loan_review.services.review.locks import is_automated_method

PLACEHOLDER_PREFIX = "missing-"


@dataclass(frozen=True)
class Actor:
    """The staff member (or automated source) issuing a command."""
    id: int
    name: str = ""
    role: Optional[StaffRole] = None


SYSTEM_ACTOR = Actor(id=0, name="system")


# ── Field verification ───────────────────────────────────────


@dataclass
class FieldVerificationRecord:
    field: str
    status: VerificationStatus = VerificationStatus.PENDING
    method: Optional[str] = None
    verified_at: Optional[datetime] = None
    verified_by: Optional[int] = None
    notes: Optional[str] = None
    rejection_reason: Optional[str] = None

    @property
    def is_locked(self) -> bool:
        return is_automated_method(self.method)


# ── Document metadata (tagged union) ─────────────────────────

_KYC_FLAG_KEYS = (
    "kyc_validated",
    "face_match_passed",
    "face_match",
    "liveness_passed",
    "nubarium_validated",
    "ine_valid",
    "validated_by_kyc",
)

_KYC_KEYS = frozenset(_KYC_FLAG_KEYS + ("face_match_score", "validation_method", "source"))

KYC_SOURCES = frozenset({"kyc", "nubarium"})

# Provider spellings of validation_method outside VerificationMethod
KYC_VALIDATION_METHODS = frozenset({
    "KYC",
    "OCR",
    "FACE_MATCH",
    "LIVENESS",
    "INE_VALIDATION",
    "CURP_VALIDATION",
    "RFC_VALIDATION",
})


def _score(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class KycMetadata:
    """Signals written by the KYC provider when it evaluated the document."""
    kind: ClassVar[str] = "kyc"
    kyc_validated: bool = False
    face_match_passed: Optional[bool] = None
    face_match: Optional[bool] = None
    face_match_score: Optional[float] = None
    liveness_passed: Optional[bool] = None
    nubarium_validated: bool = False
    ine_valid: bool = False
    validated_by_kyc: bool = False
    validation_method: Optional[str] = None
    source: Optional[str] = None
    extra: dict = field(default_factory=dict)

    @property
    def signals_automated_pass(self) -> bool:
        if any(getattr(self, key) is True for key in _KYC_FLAG_KEYS):
            return True
        return (self.source or "").strip().lower() in KYC_SOURCES

    @property
    def has_face_match_score(self) -> bool:
        return self.face_match_score is not None and self.face_match_score > 0

    @property
    def reviewed_by_automation(self) -> bool:
        method = (self.validation_method or "").strip().upper()
        return method in KYC_VALIDATION_METHODS or is_automated_method(method)

    def to_dict(self) -> dict:
        data = dict(self.extra)
        for key in _KYC_KEYS:
            value = getattr(self, key)
            if value is not None and value is not False:
                data[key] = value
        return data


@dataclass(frozen=True)
class ExtensionMetadata:
    """Any other metadata shape, kept as an opaque key-value map."""
    kind: ClassVar[str] = "extension"
    values: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return dict(self.values)


DocumentMetadata = Union[KycMetadata, ExtensionMetadata, None]


def parse_document_metadata(raw: Optional[dict]) -> DocumentMetadata:
    if not raw:
        return None
    if not _KYC_KEYS.intersection(raw):
        return ExtensionMetadata(values=dict(raw))

    score = _score(raw.get("face_match_score"))
    extra = {k: v for k, v in raw.items() if k not in _KYC_KEYS}
    if score is None and raw.get("face_match_score") is not None:
        # Unreadable score: keep it as provided, it carries no signal
        extra["face_match_score"] = raw["face_match_score"]
    return KycMetadata(
        kyc_validated=raw.get("kyc_validated") is True,
        face_match_passed=raw.get("face_match_passed"),
        face_match=raw.get("face_match"),
        face_match_score=score,
        liveness_passed=raw.get("liveness_passed"),
        nubarium_validated=raw.get("nubarium_validated") is True,
        ine_valid=raw.get("ine_valid") is True,
        validated_by_kyc=raw.get("validated_by_kyc") is True,
        validation_method=raw.get("validation_method"),
        source=raw.get("source"),
        extra=extra,
    )


# ── Documents, references, accounts ──────────────────────────


@dataclass
class Document:
    id: str
    type: str
    status: DocumentStatus = DocumentStatus.PENDING
    rejection_reason: Optional[str] = None
    rejection_comment: Optional[str] = None
    metadata: DocumentMetadata = None
    is_kyc_locked: bool = False
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[int] = None
    file_name: Optional[str] = None
    file_path: Optional[str] = None
    mime_type: Optional[str] = None
    uploaded_at: Optional[datetime] = None
    is_placeholder: bool = False

    @classmethod
    def placeholder(cls, document_type: str) -> "Document":
        """Virtual PENDING entry for a required document nobody uploaded."""
        return cls(
            id=f"{PLACEHOLDER_PREFIX}{document_type}",
            type=document_type,
            is_placeholder=True,
        )


@dataclass
class Reference:
    id: str
    full_name: str
    relationship: str
    phone: str
    verification_status: ReferenceStatus = ReferenceStatus.PENDING
    notes: Optional[str] = None
    verified_at: Optional[datetime] = None
    verified_by: Optional[int] = None


@dataclass
class BankAccount:
    id: str
    bank_name: str
    clabe: Optional[str] = None
    account_number: Optional[str] = None
    holder_name: Optional[str] = None
    is_verified: bool = False
    is_primary: bool = False
    verified_at: Optional[datetime] = None
    verified_by: Optional[int] = None

    @property
    def masked_clabe(self) -> str:
        if not self.clabe:
            return "****"
        return f"***{self.clabe[-4:]}"


# ── Applicant snapshot ───────────────────────────────────────


@dataclass
class ApplicantSnapshot:
    first_name: str
    last_name_1: str
    last_name_2: Optional[str] = None
    curp: Optional[str] = None
    rfc: Optional[str] = None
    ine_clave: Optional[str] = None
    birth_date: Optional[date] = None
    phone: Optional[str] = None
    email: Optional[str] = None

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name_1, self.last_name_2) if p)


@dataclass
class Address:
    street: str
    exterior_number: Optional[str] = None
    interior_number: Optional[str] = None
    neighborhood: Optional[str] = None
    postal_code: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    housing_type: Optional[str] = None


@dataclass
class Employment:
    employment_type: str
    employer_name: Optional[str] = None
    job_title: Optional[str] = None
    monthly_income: Optional[Decimal] = None
    seniority_months: Optional[int] = None


@dataclass
class LoanTerms:
    requested_amount: Decimal
    term_months: int
    payment_frequency: PaymentFrequency = PaymentFrequency.MONTHLY
    interest_rate: Optional[Decimal] = None
    monthly_payment: Optional[Decimal] = None
    total_to_pay: Optional[Decimal] = None
    approved_amount: Optional[Decimal] = None
    counter_offer_reason: Optional[str] = None


@dataclass
class Note:
    id: Optional[str]
    content: str
    author_id: int
    created_at: Optional[datetime] = None


@dataclass
class StatusHistoryEntry:
    from_status: ApplicationStatus
    to_status: ApplicationStatus
    changed_by: Optional[int]
    changed_at: datetime
    note: Optional[str] = None
    trigger: str = "manual"


@dataclass
class TimelineEntry:
    action: str
    description: str
    actor_id: Optional[int]
    metadata: object = None
    created_at: Optional[datetime] = None


# ── Aggregate root ───────────────────────────────────────────


@dataclass
class Application:
    id: int
    folio: str
    status: ApplicationStatus
    loan: LoanTerms
    tenant_id: Optional[str] = None
    required_documents: list[str] = field(default_factory=list)
    applicant: Optional[ApplicantSnapshot] = None
    address: Optional[Address] = None
    employment: Optional[Employment] = None
    documents: list[Document] = field(default_factory=list)
    references: list[Reference] = field(default_factory=list)
    bank_accounts: list[BankAccount] = field(default_factory=list)
    notes: list[Note] = field(default_factory=list)
    timeline: list[TimelineEntry] = field(default_factory=list)
    status_history: list[StatusHistoryEntry] = field(default_factory=list)
    verifications: dict[str, FieldVerificationRecord] = field(default_factory=dict)
    assigned_to: Optional[int] = None
    signed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    disbursed_at: Optional[datetime] = None

    @property
    def requires_signature(self) -> bool:
        return DocumentType.SIGNATURE.value in self.required_documents

    @property
    def has_signed(self) -> bool:
        return self.signed_at is not None

    def find_document(self, document_id: str) -> Optional[Document]:
        return next((d for d in self.documents if d.id == str(document_id)), None)

    def find_reference(self, reference_id: str) -> Optional[Reference]:
        return next((r for r in self.references if r.id == str(reference_id)), None)

    def find_bank_account(self, account_id: str) -> Optional[BankAccount]:
        return next((a for a in self.bank_accounts if a.id == str(account_id)), None)
