"""Pydantic schemas for review command input."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, ValidationInfo, field_validator, model_validator

from loan_review.config import Settings, settings
from loan_review.models.loan import PaymentFrequency


# ── Field verification ───────────────────────────────

class FieldVerificationRequest(BaseModel):
    field: str = Field(min_length=1, max_length=50)
    method: str = Field(default="MANUAL", max_length=50)
    notes: Optional[str] = Field(default=None, max_length=1000)


class FieldReasonRequest(BaseModel):
    """Reject / unverify. Blank reasons are refused by the registry."""
    field: str = Field(min_length=1, max_length=50)
    reason: Optional[str] = Field(default=None, max_length=1000)


class AutomatedVerificationRequest(BaseModel):
    field: str = Field(min_length=1, max_length=50)
    method: str = Field(min_length=1, max_length=50)
    status: str = "VERIFIED"
    source: Optional[str] = Field(default=None, max_length=100)
    reason: Optional[str] = Field(default=None, max_length=1000)


# ── Documents ────────────────────────────────────────

class DocumentRejectRequest(BaseModel):
    reason: Optional[str] = None
    comment: Optional[str] = Field(default=None, max_length=1000)


# ── Workflow ─────────────────────────────────────────

class StatusChangeRequest(BaseModel):
    status: str = Field(min_length=1, max_length=30)
    note: Optional[str] = Field(default=None, max_length=1000)


class AssignRequest(BaseModel):
    staff_user_id: int = Field(gt=0)


class ReferenceVerificationRequest(BaseModel):
    result: str = Field(min_length=1, max_length=20)
    notes: Optional[str] = Field(default=None, max_length=1000)


class NoteRequest(BaseModel):
    content: str = Field(min_length=1, max_length=2000)

    @field_validator("content", mode="before")
    @classmethod
    def strip_content(cls, value):
        return value.strip() if isinstance(value, str) else value


class CounterOfferRequest(BaseModel):
    """Counter-offer terms. Bounds come from ``context["config"]`` when given."""
    amount: Decimal = Field(gt=0)
    term_months: int
    interest_rate: Optional[Decimal] = None
    frequency: str = "MONTHLY"
    reason: Optional[str] = Field(default=None, max_length=1000)

    @model_validator(mode="after")
    def check_bounds(self, info: ValidationInfo):
        config: Settings = (info.context or {}).get("config") or settings
        if self.amount < Decimal(str(config.counter_offer_min_amount)):
            raise ValueError(
                f"amount must be at least {config.counter_offer_min_amount:,.0f}"
            )
        if not 1 <= self.term_months <= config.counter_offer_max_term_months:
            raise ValueError(
                f"term_months must be between 1 and {config.counter_offer_max_term_months}"
            )
        if self.interest_rate is not None and not (
            0 <= self.interest_rate <= Decimal(str(config.counter_offer_max_interest_rate))
        ):
            raise ValueError(
                f"interest_rate must be between 0 and {config.counter_offer_max_interest_rate:g}"
            )
        if PaymentFrequency.normalize(self.frequency) is None:
            raise ValueError("frequency must be MONTHLY/MENSUAL or BIWEEKLY/QUINCENAL")
        return self

    @property
    def payment_frequency(self) -> PaymentFrequency:
        return PaymentFrequency.normalize(self.frequency)
