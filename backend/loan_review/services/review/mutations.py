"""Mutations produced by review commands.

A mutation carries the complete new state of whatever it touches. It is
handed to the persistence collaborator first and applied to the in-memory
aggregate only after the save succeeded.
"""

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional, Union

from loan_review.models.document import DocumentStatus
from loan_review.models.loan import ApplicationStatus, PaymentFrequency
from loan_review.models.reference import ReferenceCheckResult, ReferenceStatus
from loan_review.services.review.domain import (
    Application,
    FieldVerificationRecord,
    Note,
    StatusHistoryEntry,
)
from loan_review.services.review.events import (
    AssignmentEventData,
    BankAccountEventData,
    CounterOfferEventData,
    DocumentReviewEventData,
    FieldVerificationEventData,
    NoteEventData,
    ReferenceEventData,
    StatusChangeEventData,
)


@dataclass(frozen=True)
class FieldVerificationChange:
    action: str
    record: FieldVerificationRecord
    previous_status: str
    source: Optional[str] = None

    def apply(self, application: Application) -> None:
        application.verifications[self.record.field] = dataclasses.replace(self.record)

    def event_data(self) -> FieldVerificationEventData:
        return FieldVerificationEventData(
            field=self.record.field,
            old_status=self.previous_status,
            new_status=self.record.status.value,
            method=self.record.method,
            reason=self.record.rejection_reason or self.record.notes,
            source=self.source,
        )

    def describe(self) -> str:
        verb = {
            "data_verified": "verified",
            "data_rejected": "rejected",
            "data_unverified": "reverted to pending",
            "data_verified_automatically": "verified automatically",
        }.get(self.action, self.action)
        text = f"Field '{self.record.field}' {verb}"
        if self.record.method:
            text += f" ({self.record.method})"
        return text


@dataclass(frozen=True)
class DocumentStatusChange:
    action: str
    document_id: str
    document_type: str
    old_status: DocumentStatus
    new_status: DocumentStatus
    changed_at: datetime
    reviewed_by: Optional[int] = None
    rejection_reason: Optional[str] = None
    rejection_comment: Optional[str] = None

    def apply(self, application: Application) -> None:
        document = application.find_document(self.document_id)
        if document is None:
            return
        document.status = self.new_status
        document.rejection_reason = self.rejection_reason
        document.rejection_comment = self.rejection_comment
        if self.new_status == DocumentStatus.PENDING:
            document.reviewed_at = None
            document.reviewed_by = None
        else:
            document.reviewed_at = self.changed_at
            document.reviewed_by = self.reviewed_by

    def event_data(self) -> DocumentReviewEventData:
        return DocumentReviewEventData(
            document_id=self.document_id,
            document_type=self.document_type,
            old_status=self.old_status.value,
            new_status=self.new_status.value,
            rejection_reason=self.rejection_reason,
            comment=self.rejection_comment,
        )

    def describe(self) -> str:
        verb = self.action.removeprefix("document_")
        text = f"Document {self.document_type} {verb}"
        if self.rejection_reason:
            text += f": {self.rejection_reason}"
        return text


@dataclass(frozen=True)
class ReferenceVerificationChange:
    action = "reference_verified"

    reference_id: str
    full_name: str
    result: ReferenceCheckResult
    old_status: ReferenceStatus
    verified_at: datetime
    verified_by: Optional[int] = None
    notes: Optional[str] = None

    @property
    def new_status(self) -> ReferenceStatus:
        return self.result.reference_status

    def apply(self, application: Application) -> None:
        reference = application.find_reference(self.reference_id)
        if reference is None:
            return
        reference.verification_status = self.new_status
        reference.notes = self.notes
        reference.verified_at = self.verified_at
        reference.verified_by = self.verified_by

    def event_data(self) -> ReferenceEventData:
        return ReferenceEventData(
            reference_id=self.reference_id,
            full_name=self.full_name,
            result=self.result.value,
            old_status=self.old_status.value,
            new_status=self.new_status.value,
            notes=self.notes,
        )

    def describe(self) -> str:
        return f"Reference {self.full_name} checked: {self.result.value}"


@dataclass(frozen=True)
class BankAccountVerificationChange:
    account_id: str
    bank_name: str
    masked_clabe: str
    is_verified: bool
    verified_at: Optional[datetime] = None
    verified_by: Optional[int] = None

    @property
    def action(self) -> str:
        return "bank_account_verified" if self.is_verified else "bank_account_unverified"

    def apply(self, application: Application) -> None:
        account = application.find_bank_account(self.account_id)
        if account is None:
            return
        account.is_verified = self.is_verified
        account.verified_at = self.verified_at
        account.verified_by = self.verified_by

    def event_data(self) -> BankAccountEventData:
        return BankAccountEventData(
            bank_account_id=self.account_id,
            bank_name=self.bank_name,
            masked_clabe=self.masked_clabe,
            is_verified=self.is_verified,
        )

    def describe(self) -> str:
        state = "verified" if self.is_verified else "marked unverified"
        return f"Bank account {self.bank_name} {self.masked_clabe} {state}"


@dataclass(frozen=True)
class StatusTransition:
    action = "status_changed"

    old_status: ApplicationStatus
    new_status: ApplicationStatus
    changed_at: datetime
    changed_by: Optional[int] = None
    note: Optional[str] = None
    trigger: str = "manual"
    approved_amount: Optional[Decimal] = None

    def apply(self, application: Application) -> None:
        application.status = self.new_status
        application.updated_at = self.changed_at
        application.status_history.append(StatusHistoryEntry(
            from_status=self.old_status,
            to_status=self.new_status,
            changed_by=self.changed_by,
            changed_at=self.changed_at,
            note=self.note,
            trigger=self.trigger,
        ))
        if self.new_status == ApplicationStatus.APPROVED:
            application.approved_at = self.changed_at
            if self.approved_amount is not None:
                application.loan.approved_amount = self.approved_amount
        elif self.new_status == ApplicationStatus.REJECTED:
            application.rejected_at = self.changed_at
        elif self.new_status == ApplicationStatus.DISBURSED:
            application.disbursed_at = self.changed_at

    def event_data(self) -> StatusChangeEventData:
        return StatusChangeEventData(
            old_status=self.old_status.value,
            new_status=self.new_status.value,
            trigger=self.trigger,
            note=self.note,
        )

    def describe(self) -> str:
        text = f"Status changed from {self.old_status.value} to {self.new_status.value}"
        if self.trigger != "manual":
            text += f" ({self.trigger})"
        return text


@dataclass(frozen=True)
class AssignmentChange:
    action = "application_assigned"

    assignee_id: int
    assignee_name: str = ""
    previous_assignee_id: Optional[int] = None

    def apply(self, application: Application) -> None:
        application.assigned_to = self.assignee_id

    def event_data(self) -> AssignmentEventData:
        return AssignmentEventData(
            assignee_id=self.assignee_id,
            previous_assignee_id=self.previous_assignee_id,
        )

    def describe(self) -> str:
        return f"Application assigned to {self.assignee_name or self.assignee_id}"


@dataclass(frozen=True)
class CounterOfferCreated:
    action = "counter_offer_created"

    amount: Decimal
    term_months: int
    interest_rate: Decimal
    frequency: PaymentFrequency
    payment: Decimal
    total_to_pay: Decimal
    reason: Optional[str] = None

    def apply(self, application: Application) -> None:
        loan = application.loan
        loan.approved_amount = self.amount
        loan.term_months = self.term_months
        loan.interest_rate = self.interest_rate
        loan.payment_frequency = self.frequency
        loan.monthly_payment = self.payment
        loan.total_to_pay = self.total_to_pay
        loan.counter_offer_reason = self.reason

    def event_data(self) -> CounterOfferEventData:
        return CounterOfferEventData(
            amount=str(self.amount),
            term_months=self.term_months,
            interest_rate=str(self.interest_rate),
            frequency=self.frequency.value,
            payment=str(self.payment),
            total_to_pay=str(self.total_to_pay),
            reason=self.reason,
        )

    def describe(self) -> str:
        return (
            f"Counter-offer: ${self.amount:,.2f} over {self.term_months} months "
            f"at {self.interest_rate}% ({self.frequency.value.lower()} payment ${self.payment:,.2f})"
        )


@dataclass(frozen=True)
class NoteAdded:
    action = "note_added"

    content: str
    author_id: int
    created_at: datetime

    def apply(self, application: Application) -> None:
        application.notes.append(Note(
            id=None, content=self.content, author_id=self.author_id, created_at=self.created_at,
        ))

    def event_data(self) -> NoteEventData:
        return NoteEventData(content=self.content)

    def describe(self) -> str:
        return "Note added"


Mutation = Union[
    FieldVerificationChange,
    DocumentStatusChange,
    ReferenceVerificationChange,
    BankAccountVerificationChange,
    StatusTransition,
    AssignmentChange,
    CounterOfferCreated,
    NoteAdded,
]


@dataclass(frozen=True)
class MutationBatch:
    """Changes that must be persisted together, in order."""
    changes: tuple[Mutation, ...] = field(default_factory=tuple)

    def __iter__(self):
        return iter(self.changes)

    def __len__(self) -> int:
        return len(self.changes)

    def apply(self, application: Application) -> None:
        for change in self.changes:
            change.apply(application)
