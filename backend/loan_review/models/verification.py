"""Per-field data verification records and the verification vocabularies."""

import enum
from datetime import datetime

from sqlalchemy import String, Enum, DateTime, ForeignKey, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from loan_review.database import Base


class VerificationStatus(str, enum.Enum):
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"


class VerificationMethod(str, enum.Enum):
    MANUAL = "MANUAL"
    DOCUMENT = "DOCUMENT"
    OTP = "OTP"
    API = "API"
    BUREAU = "BUREAU"
    KYC_INE_OCR = "KYC_INE_OCR"
    KYC_INE_LIST = "KYC_INE_LIST"
    KYC_CURP_RENAPO = "KYC_CURP_RENAPO"
    KYC_RFC_SAT = "KYC_RFC_SAT"
    RENAPO = "RENAPO"
    SAT = "SAT"
    KYC_FACE_MATCH = "KYC_FACE_MATCH"
    KYC_LIVENESS = "KYC_LIVENESS"
    KYC_OFAC = "KYC_OFAC"
    KYC_PLD = "KYC_PLD"
    NUBARIUM = "NUBARIUM"

    @property
    def is_automated(self) -> bool:
        """Automated methods lock the record against staff edits."""
        return self not in _STAFF_METHODS

    @classmethod
    def parse(cls, value: "str | VerificationMethod | None") -> "VerificationMethod | None":
        if value is None or isinstance(value, VerificationMethod):
            return value
        try:
            return cls(value.strip().upper())
        except ValueError:
            return None


_STAFF_METHODS = frozenset({VerificationMethod.MANUAL, VerificationMethod.DOCUMENT})


class VerifiableField(str, enum.Enum):
    FIRST_NAME = "first_name"
    LAST_NAME_1 = "last_name_1"
    LAST_NAME_2 = "last_name_2"
    CURP = "curp"
    RFC = "rfc"
    INE_CLAVE = "ine_clave"
    BIRTH_DATE = "birth_date"
    PHONE = "phone"
    EMAIL = "email"
    ADDRESS = "address"
    EMPLOYMENT = "employment"
    # Only written by the automated KYC provider
    FACE_MATCH = "face_match"
    LIVENESS = "liveness"

    @property
    def is_kyc_only(self) -> bool:
        return self in (VerifiableField.FACE_MATCH, VerifiableField.LIVENESS)


class FieldVerification(Base):
    __tablename__ = "field_verifications"
    __table_args__ = (
        UniqueConstraint("application_id", "field_name", name="uq_field_verification_field"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    application_id: Mapped[int] = mapped_column(
        ForeignKey("loan_applications.id"), nullable=False, index=True
    )
    field_name: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[VerificationStatus] = mapped_column(
        Enum(VerificationStatus), default=VerificationStatus.PENDING, nullable=False
    )
    # Stored as text: upstream providers may write methods outside the enum
    method: Mapped[str | None] = mapped_column(String(50), nullable=True)
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    verified_by_id: Mapped[int | None] = mapped_column(
        ForeignKey("staff_users.id"), nullable=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    loan_application = relationship("LoanApplication", back_populates="field_verifications")
