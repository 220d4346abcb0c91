"""Tests for the field verification registry and lock resolution."""

import pytest

from loan_review.models.verification import VerificationMethod, VerificationStatus
from loan_review.services.review.domain import Actor, FieldVerificationRecord
from loan_review.services.review.errors import FieldLockedError, ValidationError
from loan_review.services.review.field_registry import FieldVerificationRegistry
from loan_review.services.review.locks import is_automated_method

from conftest import NOW, make_record

STAFF = Actor(id=7, name="Luis")

LOCKING_METHODS = [
    "KYC_INE_OCR", "KYC_FACE_MATCH", "kyc_liveness", "NUBARIUM", "OTP",
    "Kyc_Custom_Provider", "nubarium_v2", "SELFIE_LIVENESS_CHECK",
]


def _registry(**records) -> FieldVerificationRegistry:
    return FieldVerificationRegistry(dict(records))


class TestVerificationMethods:

    def test_staff_methods_are_not_automated(self):
        assert not VerificationMethod.MANUAL.is_automated
        assert not VerificationMethod.DOCUMENT.is_automated

    @pytest.mark.parametrize("method", [m for m in VerificationMethod
                                        if m not in (VerificationMethod.MANUAL, VerificationMethod.DOCUMENT)])
    def test_every_other_member_is_automated(self, method):
        assert method.is_automated

    def test_unknown_method_falls_back_to_substring(self):
        assert is_automated_method("provider_kyc_v3")
        assert is_automated_method("Liveness-Plus")
        assert not is_automated_method("PHONE_CALL")
        assert not is_automated_method(None)
        assert not is_automated_method("")


class TestLockInvariant:

    @pytest.mark.parametrize("method", LOCKING_METHODS)
    def test_all_staff_commands_fail_on_locked_field(self, method):
        original = make_record("curp", method=method)
        registry = _registry(curp=original)
        before = FieldVerificationRecord(**vars(original))

        with pytest.raises(FieldLockedError):
            registry.verify("curp", STAFF)
        with pytest.raises(FieldLockedError):
            registry.reject("curp", STAFF, "Does not match INE")
        with pytest.raises(FieldLockedError):
            registry.unverify("curp", STAFF, "Re-check")

        assert registry.get("curp") == before
        assert registry.is_locked("curp")

    def test_manual_record_is_not_locked(self):
        registry = _registry(phone=make_record("phone", method="MANUAL"))
        assert not registry.is_locked("phone")

    def test_missing_record_is_pending_and_unlocked(self):
        registry = _registry()
        record = registry.get("rfc")
        assert record.status == VerificationStatus.PENDING
        assert record.method is None
        assert not registry.is_locked("rfc")

    def test_locked_error_names_field_and_method(self):
        registry = _registry(phone=make_record("phone", method="OTP"))
        with pytest.raises(FieldLockedError) as exc:
            registry.verify("phone", STAFF)
        assert exc.value.field == "phone"
        assert exc.value.method == "OTP"
        assert exc.value.code == "field_locked"


class TestVerify:

    def test_verify_builds_change_without_mutating(self):
        registry = _registry()
        change = registry.verify("first_name", STAFF, now=NOW)
        assert registry.get("first_name").status == VerificationStatus.PENDING

        registry.apply(change)
        record = registry.get("first_name")
        assert record.status == VerificationStatus.VERIFIED
        assert record.method == "MANUAL"
        assert record.verified_at == NOW
        assert record.verified_by == 7

    def test_verify_clears_rejection_reason(self):
        registry = _registry(rfc=make_record("rfc", VerificationStatus.REJECTED, rejection_reason="typo"))
        registry.apply(registry.verify("rfc", STAFF))
        assert registry.get("rfc").rejection_reason is None

    def test_verify_with_document_method(self):
        registry = _registry()
        change = registry.verify("address", STAFF, method="document")
        assert change.record.method == "DOCUMENT"

    def test_staff_cannot_use_automated_method(self):
        with pytest.raises(ValidationError):
            _registry().verify("curp", STAFF, method="KYC_INE_OCR")

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError, match="Unrecognized field"):
            _registry().verify("shoe_size", STAFF)

    def test_kyc_only_fields_refuse_staff_commands(self):
        registry = _registry()
        with pytest.raises(ValidationError):
            registry.verify("face_match", STAFF)
        with pytest.raises(ValidationError):
            registry.reject("liveness", STAFF, "blurry")


class TestReject:

    @pytest.mark.parametrize("reason", ["", "   ", None])
    def test_reject_requires_reason(self, reason):
        registry = _registry(curp=make_record("curp", VerificationStatus.PENDING, method=None))
        with pytest.raises(ValidationError):
            registry.reject("curp", STAFF, reason)
        assert registry.get("curp").status == VerificationStatus.PENDING

    def test_reject_sets_manual_method_and_reason(self):
        registry = _registry()
        registry.apply(registry.reject("birth_date", STAFF, "  Does not match INE  "))
        record = registry.get("birth_date")
        assert record.status == VerificationStatus.REJECTED
        assert record.method == "MANUAL"
        assert record.rejection_reason == "Does not match INE"
        assert registry.rejected_fields() == ["birth_date"]


class TestUnverify:

    @pytest.mark.parametrize("prior_method", ["MANUAL", "DOCUMENT", None])
    def test_verify_then_unverify_round_trip(self, prior_method):
        registry = _registry()
        if prior_method:
            registry.apply(registry.verify("email", STAFF, method=prior_method))
        else:
            registry.apply(registry.reject("email", STAFF, "bounced"))

        registry.apply(registry.unverify("email", STAFF, "Applicant called with a new email", now=NOW))
        record = registry.get("email")
        assert record.status == VerificationStatus.PENDING
        assert record.method is None
        assert record.verified_at == NOW
        assert record.notes == "Applicant called with a new email"
        assert record.rejection_reason is None

    def test_unverify_requires_reason(self):
        registry = _registry(email=make_record("email"))
        with pytest.raises(ValidationError):
            registry.unverify("email", STAFF, " ")
        assert registry.get("email").status == VerificationStatus.VERIFIED


class TestAutomatedVerification:

    def test_automated_result_creates_lock(self):
        registry = _registry()
        change = registry.record_automated("curp", "KYC_CURP_RENAPO", source="renapo")
        registry.apply(change)
        assert change.action == "data_verified_automatically"
        assert registry.is_locked("curp")
        assert registry.get("curp").verified_by is None

    def test_automated_may_overwrite_locked_record(self):
        registry = _registry(face_match=make_record("face_match", method="KYC_FACE_MATCH"))
        registry.apply(registry.record_automated(
            "face_match", "KYC_FACE_MATCH", "REJECTED", reason="score below threshold"
        ))
        assert registry.get("face_match").status == VerificationStatus.REJECTED

    def test_pending_result_retracts_lock(self):
        registry = _registry(phone=make_record("phone", method="OTP"))
        registry.apply(registry.record_automated("phone", "OTP", "PENDING"))
        assert not registry.is_locked("phone")
        registry.verify("phone", STAFF)

    def test_manual_method_refused(self):
        with pytest.raises(ValidationError):
            _registry().record_automated("curp", "MANUAL")

    def test_automated_rejection_needs_reason(self):
        with pytest.raises(ValidationError):
            _registry().record_automated("curp", "KYC_CURP_RENAPO", "REJECTED")


class TestSnapshot:

    def test_snapshot_is_a_copy(self):
        registry = _registry(rfc=make_record("rfc"))
        snapshot = registry.snapshot()
        snapshot["rfc"].status = VerificationStatus.REJECTED
        assert registry.get("rfc").status == VerificationStatus.VERIFIED
