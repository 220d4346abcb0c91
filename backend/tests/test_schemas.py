"""Tests for review command input schemas."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from loan_review.config import Settings
from loan_review.models.loan import PaymentFrequency
from loan_review.schemas import (
    AssignRequest,
    CounterOfferRequest,
    FieldVerificationRequest,
    NoteRequest,
    StatusChangeRequest,
)


class TestNoteRequest:

    def test_content_is_stripped(self):
        assert NoteRequest(content="  Called the employer  ").content == "Called the employer"

    @pytest.mark.parametrize("content", ["", "    ", "x" * 2001])
    def test_invalid_content(self, content):
        with pytest.raises(ValidationError):
            NoteRequest(content=content)

    def test_max_length_accepted(self):
        assert len(NoteRequest(content="x" * 2000).content) == 2000


class TestCounterOfferRequest:

    def test_defaults(self):
        req = CounterOfferRequest(amount=30000, term_months=12)
        assert req.amount == Decimal("30000")
        assert req.interest_rate is None
        assert req.payment_frequency == PaymentFrequency.MONTHLY

    def test_spanish_frequency_alias(self):
        req = CounterOfferRequest(amount=30000, term_months=12, frequency="QUINCENAL")
        assert req.payment_frequency == PaymentFrequency.BIWEEKLY

    @pytest.mark.parametrize("kwargs", [
        {"amount": 999, "term_months": 12},
        {"amount": 0, "term_months": 12},
        {"amount": 30000, "term_months": 0},
        {"amount": 30000, "term_months": 121},
        {"amount": 30000, "term_months": 12, "interest_rate": -1},
        {"amount": 30000, "term_months": 12, "interest_rate": 101},
        {"amount": 30000, "term_months": 12, "frequency": "WEEKLY"},
    ])
    def test_out_of_bounds(self, kwargs):
        with pytest.raises(ValidationError):
            CounterOfferRequest(**kwargs)

    def test_bounds_inclusive(self):
        req = CounterOfferRequest(amount=1000, term_months=120, interest_rate=100)
        assert req.term_months == 120

    def test_bounds_from_validation_context(self):
        config = Settings(counter_offer_max_term_months=24)
        data = {"amount": 30000, "term_months": 36}
        assert CounterOfferRequest.model_validate(data).term_months == 36
        with pytest.raises(ValidationError):
            CounterOfferRequest.model_validate(data, context={"config": config})


class TestOtherRequests:

    def test_field_defaults_to_manual(self):
        assert FieldVerificationRequest(field="curp").method == "MANUAL"

    def test_blank_field_rejected(self):
        with pytest.raises(ValidationError):
            FieldVerificationRequest(field="")

    def test_assign_needs_positive_id(self):
        with pytest.raises(ValidationError):
            AssignRequest(staff_user_id=0)

    def test_status_required(self):
        with pytest.raises(ValidationError):
            StatusChangeRequest(status="")
