"""Loan application aggregate root and workflow enums."""

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    String, Numeric, Integer, Enum, DateTime, ForeignKey, Text, JSON, func
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from loan_review.database import Base


class ApplicationStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    IN_REVIEW = "IN_REVIEW"
    DOCS_PENDING = "DOCS_PENDING"
    CORRECTIONS_PENDING = "CORRECTIONS_PENDING"
    COUNTER_OFFERED = "COUNTER_OFFERED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"
    DISBURSED = "DISBURSED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({
    ApplicationStatus.REJECTED,
    ApplicationStatus.CANCELLED,
    ApplicationStatus.DISBURSED,
})


class PaymentFrequency(str, enum.Enum):
    MONTHLY = "MONTHLY"
    BIWEEKLY = "BIWEEKLY"

    @classmethod
    def normalize(cls, value: "str | PaymentFrequency") -> Optional["PaymentFrequency"]:
        """Accept the canonical names plus the Spanish spellings used by applicants."""
        if isinstance(value, PaymentFrequency):
            return value
        key = (value or "").strip().upper()
        return _FREQUENCY_ALIASES.get(key)

    @property
    def periods_per_year(self) -> int:
        return 24 if self is PaymentFrequency.BIWEEKLY else 12


_FREQUENCY_ALIASES = {
    "MONTHLY": PaymentFrequency.MONTHLY,
    "MENSUAL": PaymentFrequency.MONTHLY,
    "BIWEEKLY": PaymentFrequency.BIWEEKLY,
    "QUINCENAL": PaymentFrequency.BIWEEKLY,
}


class LoanApplication(Base):
    __tablename__ = "loan_applications"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    folio: Mapped[str] = mapped_column(String(20), unique=True, index=True, nullable=False)
    tenant_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    credit_product_id: Mapped[int | None] = mapped_column(
        ForeignKey("credit_products.id"), nullable=True, index=True
    )

    # Loan terms
    requested_amount: Mapped[float] = mapped_column(Numeric(12, 2), nullable=False)
    term_months: Mapped[int] = mapped_column(Integer, nullable=False)
    payment_frequency: Mapped[PaymentFrequency] = mapped_column(
        Enum(PaymentFrequency), default=PaymentFrequency.MONTHLY, nullable=False
    )
    interest_rate: Mapped[float | None] = mapped_column(Numeric(5, 2), nullable=True)
    monthly_payment: Mapped[float | None] = mapped_column(Numeric(12, 2), nullable=True)
    total_to_pay: Mapped[float | None] = mapped_column(Numeric(12, 2), nullable=True)
    approved_amount: Mapped[float | None] = mapped_column(Numeric(12, 2), nullable=True)
    counter_offer_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Status
    status: Mapped[ApplicationStatus] = mapped_column(
        Enum(ApplicationStatus), default=ApplicationStatus.DRAFT, nullable=False, index=True
    )
    status_history: Mapped[list | None] = mapped_column(JSON, nullable=True)
    assigned_to_id: Mapped[int | None] = mapped_column(
        ForeignKey("staff_users.id"), nullable=True, index=True
    )

    # Contract signature
    signed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Timestamps
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    disbursed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    credit_product = relationship("CreditProduct", back_populates="loan_applications")
    assigned_to = relationship("StaffUser", foreign_keys=[assigned_to_id])
    profile = relationship(
        "ApplicantProfile", back_populates="loan_application", uselist=False,
        cascade="all, delete-orphan",
    )
    address = relationship(
        "ApplicantAddress", back_populates="loan_application", uselist=False,
        cascade="all, delete-orphan",
    )
    employment = relationship(
        "EmploymentRecord", back_populates="loan_application", uselist=False,
        cascade="all, delete-orphan",
    )
    documents = relationship("Document", back_populates="loan_application")
    references = relationship("ApplicationReference", back_populates="loan_application")
    bank_accounts = relationship("BankAccount", back_populates="loan_application")
    field_verifications = relationship("FieldVerification", back_populates="loan_application")
    notes = relationship("ApplicationNote", back_populates="loan_application")
