"""Application status machine.

The workflow graph below drives automatic transitions and the default
role-based allow-list. Manual status changes are validated against the
allow-list supplied by the authorization collaborator, not against this
graph directly. Terminal statuses accept no further changes.
"""

import copy
from datetime import datetime, timezone
from typing import Iterable, Optional

from loan_review.models.document import DocumentStatus
from loan_review.models.loan import ApplicationStatus, TERMINAL_STATUSES
from loan_review.models.verification import VerificationStatus
from loan_review.services.payment_calculator import PaymentQuote
from loan_review.services.review.completeness import review_outstanding
from loan_review.services.review.domain import Actor, Application
from loan_review.services.review.errors import (
    InvalidStateError,
    TerminalStateError,
    ValidationError,
)
from loan_review.services.review.mutations import (
    AssignmentChange,
    CounterOfferCreated,
    DocumentStatusChange,
    FieldVerificationChange,
    MutationBatch,
    StatusTransition,
)

# Valid transitions: from_status -> set of allowed to_statuses
WORKFLOW_TRANSITIONS: dict[ApplicationStatus, set[ApplicationStatus]] = {
    ApplicationStatus.DRAFT: {
        ApplicationStatus.SUBMITTED,
        ApplicationStatus.CANCELLED,
    },
    ApplicationStatus.SUBMITTED: {
        ApplicationStatus.IN_REVIEW,
        ApplicationStatus.DOCS_PENDING,
        ApplicationStatus.CANCELLED,
    },
    ApplicationStatus.IN_REVIEW: {
        ApplicationStatus.DOCS_PENDING,
        ApplicationStatus.CORRECTIONS_PENDING,
        ApplicationStatus.COUNTER_OFFERED,
        ApplicationStatus.APPROVED,
        ApplicationStatus.REJECTED,
        ApplicationStatus.CANCELLED,
    },
    ApplicationStatus.DOCS_PENDING: {
        ApplicationStatus.IN_REVIEW,
        ApplicationStatus.CORRECTIONS_PENDING,
        ApplicationStatus.CANCELLED,
    },
    ApplicationStatus.CORRECTIONS_PENDING: {
        ApplicationStatus.IN_REVIEW,
        ApplicationStatus.CANCELLED,
    },
    ApplicationStatus.COUNTER_OFFERED: {
        ApplicationStatus.IN_REVIEW,
        ApplicationStatus.APPROVED,
        ApplicationStatus.REJECTED,
        ApplicationStatus.CANCELLED,
    },
    ApplicationStatus.APPROVED: {
        ApplicationStatus.DISBURSED,
        ApplicationStatus.CANCELLED,
    },
    ApplicationStatus.REJECTED: set(),
    ApplicationStatus.CANCELLED: set(),
    ApplicationStatus.DISBURSED: set(),
}

# Targets that need the approve/reject capability
RESTRICTED_TARGETS = frozenset({
    ApplicationStatus.APPROVED,
    ApplicationStatus.REJECTED,
    ApplicationStatus.CANCELLED,
    ApplicationStatus.DISBURSED,
})

COUNTER_OFFER_STATUSES = frozenset({ApplicationStatus.IN_REVIEW, ApplicationStatus.DOCS_PENDING})

REVIEW_HOLD_STATUSES = frozenset({
    ApplicationStatus.DOCS_PENDING,
    ApplicationStatus.CORRECTIONS_PENDING,
})


def can_transition(from_status: ApplicationStatus, to_status: ApplicationStatus) -> bool:
    """Check if the workflow graph has an edge from from_status to to_status."""
    return to_status in WORKFLOW_TRANSITIONS.get(from_status, set())


def get_allowed_transitions(from_status: ApplicationStatus) -> set[ApplicationStatus]:
    """Return the set of statuses from_status can transition to."""
    return set(WORKFLOW_TRANSITIONS.get(from_status, set()))


def is_terminal_status(status: ApplicationStatus) -> bool:
    return status in TERMINAL_STATUSES


def parse_status(value: "str | ApplicationStatus") -> ApplicationStatus:
    if isinstance(value, ApplicationStatus):
        return value
    try:
        return ApplicationStatus((value or "").strip().upper())
    except ValueError:
        raise ValidationError(f"Unrecognized application status '{value}'", status=value)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_not_terminal(application: Application) -> None:
    if is_terminal_status(application.status):
        raise TerminalStateError(
            f"Application {application.folio} is {application.status.value} and can no longer change",
            status=application.status.value,
        )


def change_status(
    application: Application,
    new_status: "str | ApplicationStatus",
    actor: Actor,
    allowed_targets: Iterable[ApplicationStatus],
    note: Optional[str] = None,
    now: Optional[datetime] = None,
) -> StatusTransition:
    """Validate a manual status change and build the transition.

    ``allowed_targets`` is the actor-scoped allow-list for the current status.
    """
    target = parse_status(new_status)
    ensure_not_terminal(application)
    if target == application.status:
        raise InvalidStateError(
            f"Application is already {target.value}", status=target.value
        )
    if target not in set(allowed_targets):
        raise InvalidStateError(
            f"Cannot move application from {application.status.value} to {target.value}",
            current=application.status.value,
            target=target.value,
        )
    return _transition(application, target, actor.id, now or _now(), note=note)


def _transition(
    application: Application,
    target: ApplicationStatus,
    actor_id: Optional[int],
    now: datetime,
    note: Optional[str] = None,
    trigger: str = "manual",
) -> StatusTransition:
    approved_amount = None
    if target == ApplicationStatus.APPROVED:
        approved_amount = application.loan.approved_amount or application.loan.requested_amount
    return StatusTransition(
        old_status=application.status,
        new_status=target,
        changed_at=now,
        changed_by=actor_id,
        note=(note or "").strip() or None,
        trigger=trigger,
        approved_amount=approved_amount,
    )


def automatic_transition(
    application: Application,
    target: ApplicationStatus,
    trigger: str,
    actor_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Optional[StatusTransition]:
    """Side-effect transition, only when the workflow graph allows it."""
    if application.status == target or not can_transition(application.status, target):
        return None
    return _transition(application, target, actor_id, now or _now(), trigger=trigger)


def with_workflow_side_effects(
    application: Application,
    change,
    actor_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> MutationBatch:
    """Wrap a review change with the status move it implies, if any.

    The follow-up is evaluated against a projected copy of the application
    with the change applied; the real aggregate is left untouched.
    """
    projected = copy.deepcopy(application)
    change.apply(projected)
    follow_up = None

    if isinstance(change, FieldVerificationChange):
        if change.record.status == VerificationStatus.REJECTED:
            follow_up = automatic_transition(
                projected, ApplicationStatus.CORRECTIONS_PENDING, "field_rejected", actor_id, now
            )
        elif change.record.status == VerificationStatus.VERIFIED:
            follow_up = _advance_when_clear(projected, actor_id, now)
    elif isinstance(change, DocumentStatusChange):
        if change.new_status == DocumentStatus.REJECTED:
            follow_up = automatic_transition(
                projected, ApplicationStatus.DOCS_PENDING, "document_rejected", actor_id, now
            )
        elif change.new_status == DocumentStatus.APPROVED:
            follow_up = _advance_when_clear(projected, actor_id, now)

    if follow_up is None:
        return MutationBatch((change,))
    return MutationBatch((change, follow_up))


def _advance_when_clear(projected: Application, actor_id, now) -> Optional[StatusTransition]:
    if projected.status not in REVIEW_HOLD_STATUSES or review_outstanding(projected):
        return None
    return automatic_transition(
        projected, ApplicationStatus.IN_REVIEW, "verifications_complete", actor_id, now
    )


def create_counter_offer(
    application: Application,
    quote: PaymentQuote,
    actor: Actor,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> MutationBatch:
    """New terms plus the move to COUNTER_OFFERED, persisted together."""
    ensure_not_terminal(application)
    if application.status not in COUNTER_OFFER_STATUSES:
        raise InvalidStateError(
            f"Counter-offers can only be made while the application is IN_REVIEW or DOCS_PENDING "
            f"(currently {application.status.value})",
            status=application.status.value,
        )
    now = now or _now()
    offer = CounterOfferCreated(
        amount=quote.principal,
        term_months=quote.term_months,
        interest_rate=quote.annual_rate,
        frequency=quote.frequency,
        payment=quote.payment,
        total_to_pay=quote.total_to_pay,
        reason=(reason or "").strip() or None,
    )
    transition = StatusTransition(
        old_status=application.status,
        new_status=ApplicationStatus.COUNTER_OFFERED,
        changed_at=now,
        changed_by=actor.id,
        note=offer.reason,
        trigger="counter_offer",
    )
    return MutationBatch((offer, transition))


def assign(
    application: Application,
    assignee_id: int,
    assignee_name: str = "",
) -> AssignmentChange:
    """Reassign the application. The status is not touched."""
    return AssignmentChange(
        assignee_id=assignee_id,
        assignee_name=assignee_name,
        previous_assignee_id=application.assigned_to,
    )
