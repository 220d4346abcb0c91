"""Applicant snapshot models: personal data, address and employment."""

from datetime import datetime, date

from sqlalchemy import String, Numeric, Integer, DateTime, Date, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from loan_review.database import Base


class ApplicantProfile(Base):
    __tablename__ = "applicant_profiles"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    application_id: Mapped[int] = mapped_column(
        ForeignKey("loan_applications.id"), unique=True, nullable=False
    )

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name_1: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name_2: Mapped[str | None] = mapped_column(String(100), nullable=True)
    curp: Mapped[str | None] = mapped_column(String(18), nullable=True, index=True)
    rfc: Mapped[str | None] = mapped_column(String(13), nullable=True)
    ine_clave: Mapped[str | None] = mapped_column(String(20), nullable=True)
    birth_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    loan_application = relationship("LoanApplication", back_populates="profile")


class ApplicantAddress(Base):
    __tablename__ = "applicant_addresses"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    application_id: Mapped[int] = mapped_column(
        ForeignKey("loan_applications.id"), unique=True, nullable=False
    )
    street: Mapped[str] = mapped_column(String(255), nullable=False)
    exterior_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    interior_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    neighborhood: Mapped[str | None] = mapped_column(String(150), nullable=True)
    postal_code: Mapped[str | None] = mapped_column(String(10), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    housing_type: Mapped[str | None] = mapped_column(String(50), nullable=True)

    loan_application = relationship("LoanApplication", back_populates="address")


class EmploymentRecord(Base):
    __tablename__ = "employment_records"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    application_id: Mapped[int] = mapped_column(
        ForeignKey("loan_applications.id"), unique=True, nullable=False
    )
    employment_type: Mapped[str] = mapped_column(String(50), nullable=False)
    employer_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    job_title: Mapped[str | None] = mapped_column(String(100), nullable=True)
    monthly_income: Mapped[float | None] = mapped_column(Numeric(12, 2), nullable=True)
    seniority_months: Mapped[int | None] = mapped_column(Integer, nullable=True)

    loan_application = relationship("LoanApplication", back_populates="employment")
