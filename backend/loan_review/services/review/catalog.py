"""Static vocabulary catalog built from the model enums."""

from loan_review.models.document import DocumentRejectionReason, DocumentType
from loan_review.models.loan import PaymentFrequency
from loan_review.models.reference import ReferenceCheckResult
from loan_review.models.verification import VerifiableField
from loan_review.services.review.collaborators import ReviewCatalog

DOCUMENT_TYPE_LABELS = {
    DocumentType.INE_FRONT: "INE (front)",
    DocumentType.INE_BACK: "INE (back)",
    DocumentType.CURP: "CURP",
    DocumentType.SELFIE: "Selfie",
    DocumentType.SIGNATURE: "Digital signature",
    DocumentType.PROOF_OF_ADDRESS: "Proof of address",
    DocumentType.PROOF_OF_INCOME: "Proof of income",
    DocumentType.BANK_STATEMENT: "Bank statement",
    DocumentType.RFC_CONSTANCIA: "RFC tax certificate",
    DocumentType.TAX_RETURN: "Tax return",
    DocumentType.PAYSLIP_1: "Payslip 1",
    DocumentType.PAYSLIP_2: "Payslip 2",
    DocumentType.PAYSLIP_3: "Payslip 3",
    DocumentType.VEHICLE_INVOICE: "Vehicle invoice",
    DocumentType.BIRTH_CERTIFICATE: "Birth certificate",
    DocumentType.MARRIAGE_CERTIFICATE: "Marriage certificate",
    DocumentType.BUSINESS_LICENSE: "Business license",
    DocumentType.CONSTITUTIVE_ACT: "Articles of incorporation",
    DocumentType.POWER_OF_ATTORNEY: "Power of attorney",
}

REJECTION_REASON_LABELS = {
    DocumentRejectionReason.ILLEGIBLE: "Illegible",
    DocumentRejectionReason.EXPIRED: "Expired",
    DocumentRejectionReason.INCOMPLETE: "Incomplete",
    DocumentRejectionReason.WRONG_DOC: "Wrong document",
    DocumentRejectionReason.MISMATCH: "Data does not match",
    DocumentRejectionReason.LOW_QUALITY: "Low quality",
    DocumentRejectionReason.OUTDATED: "Outdated",
    DocumentRejectionReason.OTHER: "Other",
}

EMPLOYMENT_TYPES = [
    ("EMPLOYEE", "Employee"),
    ("SELF_EMPLOYED", "Self-employed"),
    ("BUSINESS_OWNER", "Business owner"),
    ("RETIRED", "Retired"),
    ("UNEMPLOYED", "Unemployed"),
]

HOUSING_TYPES = [
    ("OWNED", "Owned"),
    ("RENTED", "Rented"),
    ("FAMILY", "Lives with family"),
    ("MORTGAGED", "Mortgaged"),
]

PRODUCT_TYPES = [
    ("PERSONAL", "Personal loan"),
    ("PAYROLL", "Payroll loan"),
    ("AUTO", "Auto loan"),
    ("BUSINESS", "Business loan"),
]


def _title(value: str) -> str:
    return value.replace("_", " ").capitalize()


class StaticCatalog(ReviewCatalog):
    def __init__(self, extra: dict[str, list[tuple[str, str]]] | None = None):
        self._options: dict[str, list[tuple[str, str]]] = {
            "document_types": [(k.value, v) for k, v in DOCUMENT_TYPE_LABELS.items()],
            "rejection_reasons": [(k.value, v) for k, v in REJECTION_REASON_LABELS.items()],
            "reference_results": [(r.value, _title(r.value)) for r in ReferenceCheckResult],
            "payment_frequencies": [(f.value, _title(f.value)) for f in PaymentFrequency],
            "verifiable_fields": [(f.value, _title(f.value)) for f in VerifiableField],
            "employment_types": list(EMPLOYMENT_TYPES),
            "housing_types": list(HOUSING_TYPES),
            "product_types": list(PRODUCT_TYPES),
        }
        for kind, values in (extra or {}).items():
            self._options.setdefault(kind, []).extend(values)

    def options(self, kind: str) -> list[tuple[str, str]]:
        return list(self._options.get(kind, []))
