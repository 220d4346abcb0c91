"""Application references model: people who can vouch for the applicant."""

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Enum, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from loan_review.database import Base


class ReferenceStatus(str, enum.Enum):
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"
    UNREACHABLE = "UNREACHABLE"


class ReferenceCheckResult(str, enum.Enum):
    """Outcome reported by the staff member who called the reference."""
    VERIFIED = "VERIFIED"
    NOT_VERIFIED = "NOT_VERIFIED"
    NO_ANSWER = "NO_ANSWER"

    @property
    def reference_status(self) -> ReferenceStatus:
        return _RESULT_TO_STATUS[self]


_RESULT_TO_STATUS = {
    ReferenceCheckResult.VERIFIED: ReferenceStatus.VERIFIED,
    ReferenceCheckResult.NOT_VERIFIED: ReferenceStatus.REJECTED,
    ReferenceCheckResult.NO_ANSWER: ReferenceStatus.UNREACHABLE,
}


class ApplicationReference(Base):
    __tablename__ = "application_references"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    application_id: Mapped[int] = mapped_column(
        ForeignKey("loan_applications.id"), nullable=False, index=True
    )
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    relationship_type: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[str] = mapped_column(String(30), nullable=False)
    verification_status: Mapped[ReferenceStatus] = mapped_column(
        Enum(ReferenceStatus), default=ReferenceStatus.PENDING, nullable=False
    )
    verification_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    verified_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    verified_by_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("staff_users.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    loan_application = relationship("LoanApplication", back_populates="references")
