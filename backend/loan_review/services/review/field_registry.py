"""Per-application field verification registry.

Staff commands return a ``FieldVerificationChange`` describing the new
record; nothing is written to the registry until ``apply`` is called with
that change, which the service does only after persistence succeeded.
"""

from datetime import datetime, timezone
from typing import Optional

from loan_review.models.verification import (
    VerifiableField,
    VerificationMethod,
    VerificationStatus,
)
from loan_review.services.review.domain import Actor, FieldVerificationRecord
from loan_review.services.review.errors import FieldLockedError, ValidationError
from loan_review.services.review.locks import is_automated_method
from loan_review.services.review.mutations import FieldVerificationChange

STAFF_METHODS = (VerificationMethod.MANUAL, VerificationMethod.DOCUMENT)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def parse_field(field: "str | VerifiableField") -> VerifiableField:
    try:
        return VerifiableField((field or "").strip().lower() if isinstance(field, str) else field)
    except ValueError:
        raise ValidationError(f"Unrecognized field '{field}'", field=field)


def _require_text(value: Optional[str], label: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{label} is required")
    return text


class FieldVerificationRegistry:
    """Field name → verification record for one application.

    A missing record is equivalent to PENDING with no method.
    """

    def __init__(self, records: Optional[dict[str, FieldVerificationRecord]] = None):
        self._records = records if records is not None else {}

    def get(self, field: "str | VerifiableField") -> FieldVerificationRecord:
        name = parse_field(field).value
        return self._records.get(name) or FieldVerificationRecord(field=name)

    def is_locked(self, field: "str | VerifiableField") -> bool:
        return self.get(field).is_locked

    def snapshot(self) -> dict[str, FieldVerificationRecord]:
        return {name: FieldVerificationRecord(**vars(rec)) for name, rec in self._records.items()}

    def rejected_fields(self) -> list[str]:
        return sorted(
            name for name, rec in self._records.items()
            if rec.status == VerificationStatus.REJECTED
        )

    # ── Staff commands ───────────────────────────────────────

    def _staff_target(self, field) -> FieldVerificationRecord:
        parsed = parse_field(field)
        if parsed.is_kyc_only:
            raise ValidationError(
                f"Field '{parsed.value}' is only verified by the KYC provider", field=parsed.value
            )
        current = self.get(parsed)
        if current.is_locked:
            raise FieldLockedError(parsed.value, current.method)
        return current

    def verify(
        self,
        field: "str | VerifiableField",
        actor: Actor,
        method: "str | VerificationMethod" = VerificationMethod.MANUAL,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> FieldVerificationChange:
        parsed_method = VerificationMethod.parse(method)
        if parsed_method not in STAFF_METHODS:
            raise ValidationError(
                f"Method '{method}' cannot be used for a staff verification", method=str(method)
            )
        current = self._staff_target(field)
        record = FieldVerificationRecord(
            field=current.field,
            status=VerificationStatus.VERIFIED,
            method=parsed_method.value,
            verified_at=now or _now(),
            verified_by=actor.id,
            notes=(notes or "").strip() or None,
            rejection_reason=None,
        )
        return FieldVerificationChange("data_verified", record, current.status.value)

    def reject(
        self,
        field: "str | VerifiableField",
        actor: Actor,
        reason: Optional[str],
        now: Optional[datetime] = None,
    ) -> FieldVerificationChange:
        parse_field(field)
        text = _require_text(reason, "Rejection reason")
        current = self._staff_target(field)
        record = FieldVerificationRecord(
            field=current.field,
            status=VerificationStatus.REJECTED,
            method=VerificationMethod.MANUAL.value,
            verified_at=now or _now(),
            verified_by=actor.id,
            notes=None,
            rejection_reason=text,
        )
        return FieldVerificationChange("data_rejected", record, current.status.value)

    def unverify(
        self,
        field: "str | VerifiableField",
        actor: Actor,
        reason: Optional[str],
        now: Optional[datetime] = None,
    ) -> FieldVerificationChange:
        """Roll a field back to PENDING. Distinct from never having been reviewed."""
        parse_field(field)
        text = _require_text(reason, "Reason for reverting the verification")
        current = self._staff_target(field)
        record = FieldVerificationRecord(
            field=current.field,
            status=VerificationStatus.PENDING,
            method=None,
            verified_at=now or _now(),
            verified_by=actor.id,
            notes=text,
            rejection_reason=None,
        )
        return FieldVerificationChange("data_unverified", record, current.status.value)

    # ── Automated source ─────────────────────────────────────

    def record_automated(
        self,
        field: "str | VerifiableField",
        method: "str | VerificationMethod",
        status: "str | VerificationStatus" = VerificationStatus.VERIFIED,
        source: Optional[str] = None,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> FieldVerificationChange:
        """Result written by the KYC/OTP provider. May overwrite locked records.

        A PENDING status is a retraction: the method is cleared and the
        record becomes editable by staff again.
        """
        parsed = parse_field(field)
        if not is_automated_method(method):
            raise ValidationError(f"Method '{method}' is not an automated method", method=str(method))
        try:
            new_status = VerificationStatus(status)
        except ValueError:
            raise ValidationError(f"Unrecognized verification status '{status}'")

        rejection_reason = None
        if new_status == VerificationStatus.REJECTED:
            rejection_reason = _require_text(reason, "Rejection reason")

        current = self.get(parsed)
        known = VerificationMethod.parse(method)
        record = FieldVerificationRecord(
            field=parsed.value,
            status=new_status,
            method=None if new_status == VerificationStatus.PENDING else (
                known.value if known else str(method).strip().upper()
            ),
            verified_at=now or _now(),
            verified_by=None,
            notes=f"source: {source}" if source else None,
            rejection_reason=rejection_reason,
        )
        return FieldVerificationChange(
            "data_verified_automatically", record, current.status.value, source=source
        )

    def apply(self, change: FieldVerificationChange) -> None:
        self._records[change.record.field] = FieldVerificationRecord(**vars(change.record))
