"""Reference calls and bank account checks. Always manual, never locked."""

from datetime import datetime, timezone
from typing import Optional

from loan_review.models.reference import ReferenceCheckResult
from loan_review.services.review.domain import Actor, Application, BankAccount, Reference
from loan_review.services.review.errors import NotFoundError, ValidationError
from loan_review.services.review.mutations import (
    BankAccountVerificationChange,
    ReferenceVerificationChange,
)


def parse_reference_result(result: "str | ReferenceCheckResult | None") -> ReferenceCheckResult:
    if isinstance(result, ReferenceCheckResult):
        return result
    try:
        return ReferenceCheckResult((result or "").strip().upper())
    except ValueError:
        allowed = ", ".join(r.value for r in ReferenceCheckResult)
        raise ValidationError(f"Result must be one of: {allowed}", result=result)


def _reference(application: Application, reference_id: str) -> Reference:
    reference = application.find_reference(reference_id)
    if reference is None:
        raise NotFoundError(f"Reference {reference_id} not found", reference_id=str(reference_id))
    return reference


def _bank_account(application: Application, account_id: str) -> BankAccount:
    account = application.find_bank_account(account_id)
    if account is None:
        raise NotFoundError(f"Bank account {account_id} not found", bank_account_id=str(account_id))
    return account


def verify_reference(
    application: Application,
    reference_id: str,
    result: "str | ReferenceCheckResult",
    actor: Actor,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ReferenceVerificationChange:
    """Record the outcome of calling a reference. Overwrites any previous outcome."""
    parsed = parse_reference_result(result)
    reference = _reference(application, reference_id)
    return ReferenceVerificationChange(
        reference_id=reference.id,
        full_name=reference.full_name,
        result=parsed,
        old_status=reference.verification_status,
        verified_at=now or datetime.now(timezone.utc),
        verified_by=actor.id,
        notes=(notes or "").strip() or None,
    )


def verify_bank_account(
    application: Application,
    account_id: str,
    actor: Actor,
    now: Optional[datetime] = None,
) -> BankAccountVerificationChange:
    account = _bank_account(application, account_id)
    return BankAccountVerificationChange(
        account_id=account.id,
        bank_name=account.bank_name,
        masked_clabe=account.masked_clabe,
        is_verified=True,
        verified_at=now or datetime.now(timezone.utc),
        verified_by=actor.id,
    )


def unverify_bank_account(application: Application, account_id: str) -> BankAccountVerificationChange:
    account = _bank_account(application, account_id)
    return BankAccountVerificationChange(
        account_id=account.id,
        bank_name=account.bank_name,
        masked_clabe=account.masked_clabe,
        is_verified=False,
    )
