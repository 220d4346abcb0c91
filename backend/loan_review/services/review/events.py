"""Typed timeline metadata.

Each timeline action carries one of the shapes below. Rows written by other
systems, or with an unrecognised ``kind``, load as ``ExtensionEventData``.
"""

from dataclasses import asdict, dataclass, field, fields
from typing import ClassVar, Optional, Union


@dataclass(frozen=True)
class FieldVerificationEventData:
    kind: ClassVar[str] = "field_verification"
    field: str
    old_status: str
    new_status: str
    method: Optional[str] = None
    reason: Optional[str] = None
    source: Optional[str] = None


@dataclass(frozen=True)
class DocumentReviewEventData:
    kind: ClassVar[str] = "document_review"
    document_id: str
    document_type: str
    old_status: str
    new_status: str
    rejection_reason: Optional[str] = None
    comment: Optional[str] = None


@dataclass(frozen=True)
class ReferenceEventData:
    kind: ClassVar[str] = "reference"
    reference_id: str
    full_name: str
    result: str
    old_status: str
    new_status: str
    notes: Optional[str] = None


@dataclass(frozen=True)
class BankAccountEventData:
    kind: ClassVar[str] = "bank_account"
    bank_account_id: str
    bank_name: str
    masked_clabe: str
    is_verified: bool


@dataclass(frozen=True)
class StatusChangeEventData:
    kind: ClassVar[str] = "status_change"
    old_status: str
    new_status: str
    trigger: str = "manual"
    note: Optional[str] = None


@dataclass(frozen=True)
class AssignmentEventData:
    kind: ClassVar[str] = "assignment"
    assignee_id: int
    previous_assignee_id: Optional[int] = None


@dataclass(frozen=True)
class CounterOfferEventData:
    kind: ClassVar[str] = "counter_offer"
    amount: str
    term_months: int
    interest_rate: str
    frequency: str
    payment: str
    total_to_pay: str
    reason: Optional[str] = None


@dataclass(frozen=True)
class NoteEventData:
    kind: ClassVar[str] = "note"
    content: str


@dataclass(frozen=True)
class ExtensionEventData:
    kind: ClassVar[str] = "extension"
    values: dict = field(default_factory=dict)


TimelineEventData = Union[
    FieldVerificationEventData,
    DocumentReviewEventData,
    ReferenceEventData,
    BankAccountEventData,
    StatusChangeEventData,
    AssignmentEventData,
    CounterOfferEventData,
    NoteEventData,
    ExtensionEventData,
]

_BY_KIND = {
    cls.kind: cls
    for cls in (
        FieldVerificationEventData,
        DocumentReviewEventData,
        ReferenceEventData,
        BankAccountEventData,
        StatusChangeEventData,
        AssignmentEventData,
        CounterOfferEventData,
        NoteEventData,
    )
}


def event_data_to_dict(data: Optional[TimelineEventData]) -> Optional[dict]:
    if data is None:
        return None
    if isinstance(data, ExtensionEventData):
        return dict(data.values)
    return {"kind": data.kind, **asdict(data)}


def event_data_from_dict(raw: Optional[dict]) -> Optional[TimelineEventData]:
    if raw is None:
        return None
    cls = _BY_KIND.get(raw.get("kind"))
    if cls is None:
        return ExtensionEventData(values=dict(raw))
    names = {f.name for f in fields(cls)}
    try:
        return cls(**{k: v for k, v in raw.items() if k in names})
    except TypeError:
        # Missing required keys: keep the payload rather than dropping it
        return ExtensionEventData(values=dict(raw))
