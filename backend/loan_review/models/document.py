"""Uploaded document model and review enums."""

import enum
from datetime import datetime

from sqlalchemy import String, Integer, Boolean, Enum, DateTime, ForeignKey, Text, JSON, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from loan_review.database import Base


class DocumentType(str, enum.Enum):
    # Identification
    INE_FRONT = "INE_FRONT"
    INE_BACK = "INE_BACK"
    CURP = "CURP"
    SELFIE = "SELFIE"
    SIGNATURE = "SIGNATURE"
    # Address & income
    PROOF_OF_ADDRESS = "PROOF_OF_ADDRESS"
    PROOF_OF_INCOME = "PROOF_OF_INCOME"
    BANK_STATEMENT = "BANK_STATEMENT"
    # Tax
    RFC_CONSTANCIA = "RFC_CONSTANCIA"
    TAX_RETURN = "TAX_RETURN"
    # Employment
    PAYSLIP_1 = "PAYSLIP_1"
    PAYSLIP_2 = "PAYSLIP_2"
    PAYSLIP_3 = "PAYSLIP_3"
    # Other
    VEHICLE_INVOICE = "VEHICLE_INVOICE"
    BIRTH_CERTIFICATE = "BIRTH_CERTIFICATE"
    MARRIAGE_CERTIFICATE = "MARRIAGE_CERTIFICATE"
    BUSINESS_LICENSE = "BUSINESS_LICENSE"
    CONSTITUTIVE_ACT = "CONSTITUTIVE_ACT"
    POWER_OF_ATTORNEY = "POWER_OF_ATTORNEY"


class DocumentStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class DocumentRejectionReason(str, enum.Enum):
    ILLEGIBLE = "ILLEGIBLE"
    EXPIRED = "EXPIRED"
    INCOMPLETE = "INCOMPLETE"
    WRONG_DOC = "WRONG_DOC"
    MISMATCH = "MISMATCH"
    LOW_QUALITY = "LOW_QUALITY"
    OUTDATED = "OUTDATED"
    OTHER = "OTHER"


class Document(Base):
    __tablename__ = "documents"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    application_id: Mapped[int] = mapped_column(
        ForeignKey("loan_applications.id"), nullable=False, index=True
    )

    # Types come from the tenant catalog, so the column is a plain string
    document_type: Mapped[str] = mapped_column(String(50), nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_path: Mapped[str] = mapped_column(String(500), nullable=False)
    mime_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    file_size: Mapped[int | None] = mapped_column(Integer, nullable=True)

    status: Mapped[DocumentStatus] = mapped_column(
        Enum(DocumentStatus), default=DocumentStatus.PENDING, nullable=False
    )
    rejection_reason: Mapped[str | None] = mapped_column(String(50), nullable=True)
    rejection_comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    metadata_json: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)
    is_kyc_locked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_by_id: Mapped[int | None] = mapped_column(
        ForeignKey("staff_users.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    loan_application = relationship("LoanApplication", back_populates="documents")
