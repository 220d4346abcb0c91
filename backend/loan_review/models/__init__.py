"""SQLAlchemy models for the loan application review core."""

from loan_review.models.user import StaffUser, StaffRole
from loan_review.models.catalog import CreditProduct
from loan_review.models.loan import (
    LoanApplication,
    ApplicationStatus,
    PaymentFrequency,
    TERMINAL_STATUSES,
)
from loan_review.models.applicant import ApplicantProfile, ApplicantAddress, EmploymentRecord
from loan_review.models.document import (
    Document,
    DocumentType,
    DocumentStatus,
    DocumentRejectionReason,
)
from loan_review.models.reference import (
    ApplicationReference,
    ReferenceStatus,
    ReferenceCheckResult,
)
from loan_review.models.bank_account import BankAccount
from loan_review.models.verification import (
    FieldVerification,
    VerificationStatus,
    VerificationMethod,
    VerifiableField,
)
from loan_review.models.note import ApplicationNote
from loan_review.models.audit import AuditLog
from loan_review.models.error_log import ErrorLog, ErrorSeverity

__all__ = [
    "StaffUser",
    "StaffRole",
    "CreditProduct",
    "LoanApplication",
    "ApplicationStatus",
    "PaymentFrequency",
    "TERMINAL_STATUSES",
    "ApplicantProfile",
    "ApplicantAddress",
    "EmploymentRecord",
    "Document",
    "DocumentType",
    "DocumentStatus",
    "DocumentRejectionReason",
    "ApplicationReference",
    "ReferenceStatus",
    "ReferenceCheckResult",
    "BankAccount",
    "FieldVerification",
    "VerificationStatus",
    "VerificationMethod",
    "VerifiableField",
    "ApplicationNote",
    "AuditLog",
    "ErrorLog",
    "ErrorSeverity",
]
