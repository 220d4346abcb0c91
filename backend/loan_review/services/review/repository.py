"""SQLAlchemy persistence for the review aggregate.

Rows are mapped into the domain dataclasses on load. Mutation batches are
written inside one transaction and committed together.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from loan_review.models.applicant import ApplicantAddress, ApplicantProfile, EmploymentRecord
from loan_review.models.audit import AuditLog
from loan_review.models.document import DocumentStatus
from loan_review.models.loan import ApplicationStatus, LoanApplication
from loan_review.models.note import ApplicationNote
from loan_review.models.user import StaffUser
from loan_review.models.verification import FieldVerification, VerificationStatus
from loan_review.services.error_logger import log_error_standalone
from loan_review.services.review.collaborators import ApplicationRepository
from loan_review.services.review.domain import (
    Actor,
    Address,
    ApplicantSnapshot,
    Application,
    BankAccount,
    Document,
    Employment,
    FieldVerificationRecord,
    LoanTerms,
    Note,
    Reference,
    StatusHistoryEntry,
    TimelineEntry,
    parse_document_metadata,
)
from loan_review.services.review.errors import NotFoundError, ReviewError, UpstreamFailure
from loan_review.services.review.events import event_data_from_dict
from loan_review.services.review.mutations import (
    AssignmentChange,
    BankAccountVerificationChange,
    CounterOfferCreated,
    DocumentStatusChange,
    FieldVerificationChange,
    Mutation,
    MutationBatch,
    NoteAdded,
    ReferenceVerificationChange,
    StatusTransition,
)
from loan_review.services.review.timeline import TIMELINE_ENTITY

logger = logging.getLogger(__name__)


def _decimal(value) -> Optional[Decimal]:
    return None if value is None else Decimal(str(value))


def _history_from_json(raw: Optional[list]) -> list[StatusHistoryEntry]:
    entries = []
    for item in raw or []:
        try:
            entries.append(StatusHistoryEntry(
                from_status=ApplicationStatus(item["from"]),
                to_status=ApplicationStatus(item["to"]),
                changed_by=item.get("changed_by"),
                changed_at=datetime.fromisoformat(item["changed_at"]),
                note=item.get("note"),
                trigger=item.get("trigger", "manual"),
            ))
        except (KeyError, ValueError, TypeError):
            logger.warning("Skipping malformed status history entry: %r", item)
    return entries


def _history_to_json(entry: StatusTransition) -> dict:
    return {
        "from": entry.old_status.value,
        "to": entry.new_status.value,
        "changed_by": entry.changed_by,
        "changed_at": entry.changed_at.isoformat(),
        "note": entry.note,
        "trigger": entry.trigger,
    }


def to_domain(row: LoanApplication, timeline_rows: list[AuditLog]) -> Application:
    profile: Optional[ApplicantProfile] = row.profile
    address: Optional[ApplicantAddress] = row.address
    employment: Optional[EmploymentRecord] = row.employment
    product = row.credit_product

    return Application(
        id=row.id,
        folio=row.folio,
        status=row.status,
        tenant_id=row.tenant_id,
        loan=LoanTerms(
            requested_amount=_decimal(row.requested_amount),
            term_months=row.term_months,
            payment_frequency=row.payment_frequency,
            interest_rate=_decimal(row.interest_rate),
            monthly_payment=_decimal(row.monthly_payment),
            total_to_pay=_decimal(row.total_to_pay),
            approved_amount=_decimal(row.approved_amount),
            counter_offer_reason=row.counter_offer_reason,
        ),
        required_documents=list(product.required_documents or []) if product else [],
        applicant=ApplicantSnapshot(
            first_name=profile.first_name,
            last_name_1=profile.last_name_1,
            last_name_2=profile.last_name_2,
            curp=profile.curp,
            rfc=profile.rfc,
            ine_clave=profile.ine_clave,
            birth_date=profile.birth_date,
            phone=profile.phone,
            email=profile.email,
        ) if profile else None,
        address=Address(
            street=address.street,
            exterior_number=address.exterior_number,
            interior_number=address.interior_number,
            neighborhood=address.neighborhood,
            postal_code=address.postal_code,
            city=address.city,
            state=address.state,
            housing_type=address.housing_type,
        ) if address else None,
        employment=Employment(
            employment_type=employment.employment_type,
            employer_name=employment.employer_name,
            job_title=employment.job_title,
            monthly_income=_decimal(employment.monthly_income),
            seniority_months=employment.seniority_months,
        ) if employment else None,
        documents=[
            Document(
                id=str(d.id),
                type=d.document_type,
                status=d.status,
                rejection_reason=d.rejection_reason,
                rejection_comment=d.rejection_comment,
                metadata=parse_document_metadata(d.metadata_json),
                is_kyc_locked=bool(d.is_kyc_locked),
                reviewed_at=d.reviewed_at,
                reviewed_by=d.reviewed_by_id,
                file_name=d.file_name,
                file_path=d.file_path,
                mime_type=d.mime_type,
                uploaded_at=d.created_at,
            )
            for d in row.documents
        ],
        references=[
            Reference(
                id=str(r.id),
                full_name=r.full_name,
                relationship=r.relationship_type,
                phone=r.phone,
                verification_status=r.verification_status,
                notes=r.verification_notes,
                verified_at=r.verified_at,
                verified_by=r.verified_by_id,
            )
            for r in row.references
        ],
        bank_accounts=[
            BankAccount(
                id=str(a.id),
                bank_name=a.bank_name,
                clabe=a.clabe,
                account_number=a.account_number,
                holder_name=a.holder_name,
                is_verified=bool(a.is_verified),
                is_primary=bool(a.is_primary),
                verified_at=a.verified_at,
                verified_by=a.verified_by_id,
            )
            for a in row.bank_accounts
        ],
        notes=[
            Note(id=str(n.id), content=n.content, author_id=n.author_id, created_at=n.created_at)
            for n in row.notes
        ],
        timeline=[
            TimelineEntry(
                action=t.action,
                description=t.details or "",
                actor_id=t.user_id,
                metadata=event_data_from_dict(t.metadata_json),
                created_at=t.created_at,
            )
            for t in timeline_rows
        ],
        status_history=_history_from_json(row.status_history),
        verifications={
            v.field_name: FieldVerificationRecord(
                field=v.field_name,
                status=v.status,
                method=v.method,
                verified_at=v.verified_at,
                verified_by=v.verified_by_id,
                notes=v.notes,
                rejection_reason=v.rejection_reason,
            )
            for v in row.field_verifications
        },
        assigned_to=row.assigned_to_id,
        signed_at=row.signed_at,
        created_at=row.created_at,
        updated_at=row.updated_at,
        submitted_at=row.submitted_at,
        approved_at=row.approved_at,
        rejected_at=row.rejected_at,
        disbursed_at=row.disbursed_at,
    )


class SqlAlchemyApplicationRepository(ApplicationRepository):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _fetch(self, application_id: int) -> LoanApplication:
        result = await self.db.execute(
            select(LoanApplication)
            .where(LoanApplication.id == application_id)
            .options(
                selectinload(LoanApplication.profile),
                selectinload(LoanApplication.address),
                selectinload(LoanApplication.employment),
                selectinload(LoanApplication.documents),
                selectinload(LoanApplication.references),
                selectinload(LoanApplication.bank_accounts),
                selectinload(LoanApplication.field_verifications),
                selectinload(LoanApplication.notes),
                selectinload(LoanApplication.credit_product),
            )
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        if row is None:
            raise NotFoundError(f"Application {application_id} not found", application_id=application_id)
        return row

    async def load_application(self, application_id: int) -> Application:
        try:
            row = await self._fetch(application_id)
            timeline = await self.db.execute(
                select(AuditLog)
                .where(AuditLog.entity_type == TIMELINE_ENTITY, AuditLog.entity_id == application_id)
                .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            )
            return to_domain(row, list(timeline.scalars().all()))
        except ReviewError:
            raise
        except Exception as e:
            await log_error_standalone(
                e, module="repository", function_name="load_application",
                application_id=application_id,
            )
            raise UpstreamFailure(
                "Could not load application", application_id=application_id
            ) from e

    async def save_mutation(self, application_id: int, mutation: MutationBatch) -> None:
        try:
            row = await self._fetch(application_id)
            for change in mutation:
                await self._write(row, change)
            await self.db.commit()
        except ReviewError:
            await self.db.rollback()
            raise
        except Exception as e:
            await self.db.rollback()
            await log_error_standalone(
                e, module="repository", function_name="save_mutation",
                application_id=application_id,
            )
            raise UpstreamFailure(
                "Could not save changes", application_id=application_id,
                actions=[c.action for c in mutation],
            ) from e

    async def find_active_staff(self, staff_id: int) -> Optional[Actor]:
        try:
            result = await self.db.execute(
                select(StaffUser).where(StaffUser.id == staff_id, StaffUser.is_active.is_(True))
            )
            user = result.scalar_one_or_none()
        except Exception as e:
            await log_error_standalone(e, module="repository", function_name="find_active_staff")
            raise UpstreamFailure("Could not look up staff user", staff_id=staff_id) from e
        if user is None:
            return None
        return Actor(id=user.id, name=user.full_name, role=user.role)

    # ── Writers ──────────────────────────────────────────────

    async def _write(self, row: LoanApplication, change: Mutation) -> None:
        if isinstance(change, FieldVerificationChange):
            self._write_field(row, change)
        elif isinstance(change, DocumentStatusChange):
            self._write_document(row, change)
        elif isinstance(change, ReferenceVerificationChange):
            self._write_reference(row, change)
        elif isinstance(change, BankAccountVerificationChange):
            self._write_bank_account(row, change)
        elif isinstance(change, StatusTransition):
            self._write_status(row, change)
        elif isinstance(change, AssignmentChange):
            row.assigned_to_id = change.assignee_id
        elif isinstance(change, CounterOfferCreated):
            self._write_counter_offer(row, change)
        elif isinstance(change, NoteAdded):
            self.db.add(ApplicationNote(
                application_id=row.id, author_id=change.author_id, content=change.content,
            ))
        else:
            raise TypeError(f"Unsupported mutation: {type(change).__name__}")
        await self.db.flush()

    def _write_field(self, row: LoanApplication, change: FieldVerificationChange) -> None:
        record = change.record
        existing = next((v for v in row.field_verifications if v.field_name == record.field), None)
        if existing is None:
            existing = FieldVerification(application_id=row.id, field_name=record.field)
            row.field_verifications.append(existing)
        existing.status = VerificationStatus(record.status)
        existing.method = record.method
        existing.verified_at = record.verified_at
        existing.verified_by_id = record.verified_by
        existing.notes = record.notes
        existing.rejection_reason = record.rejection_reason

    def _write_document(self, row: LoanApplication, change: DocumentStatusChange) -> None:
        doc = next((d for d in row.documents if str(d.id) == change.document_id), None)
        if doc is None:
            raise NotFoundError(f"Document {change.document_id} not found", document_id=change.document_id)
        doc.status = change.new_status
        doc.rejection_reason = change.rejection_reason
        doc.rejection_comment = change.rejection_comment
        if change.new_status == DocumentStatus.PENDING:
            doc.reviewed_at = None
            doc.reviewed_by_id = None
        else:
            doc.reviewed_at = change.changed_at
            doc.reviewed_by_id = change.reviewed_by

    def _write_reference(self, row: LoanApplication, change: ReferenceVerificationChange) -> None:
        ref = next((r for r in row.references if str(r.id) == change.reference_id), None)
        if ref is None:
            raise NotFoundError(f"Reference {change.reference_id} not found", reference_id=change.reference_id)
        ref.verification_status = change.new_status
        ref.verification_notes = change.notes
        ref.verified_at = change.verified_at
        ref.verified_by_id = change.verified_by

    def _write_bank_account(self, row: LoanApplication, change: BankAccountVerificationChange) -> None:
        account = next((a for a in row.bank_accounts if str(a.id) == change.account_id), None)
        if account is None:
            raise NotFoundError(f"Bank account {change.account_id} not found", bank_account_id=change.account_id)
        account.is_verified = change.is_verified
        account.verified_at = change.verified_at
        account.verified_by_id = change.verified_by

    def _write_status(self, row: LoanApplication, change: StatusTransition) -> None:
        row.status = change.new_status
        # Reassign so the JSON column is flagged as modified
        row.status_history = list(row.status_history or []) + [_history_to_json(change)]
        if change.new_status == ApplicationStatus.APPROVED:
            row.approved_at = change.changed_at
            if change.approved_amount is not None:
                row.approved_amount = change.approved_amount
        elif change.new_status == ApplicationStatus.REJECTED:
            row.rejected_at = change.changed_at
        elif change.new_status == ApplicationStatus.DISBURSED:
            row.disbursed_at = change.changed_at

    def _write_counter_offer(self, row: LoanApplication, change: CounterOfferCreated) -> None:
        row.approved_amount = change.amount
        row.term_months = change.term_months
        row.interest_rate = change.interest_rate
        row.payment_frequency = change.frequency
        row.monthly_payment = change.payment
        row.total_to_pay = change.total_to_pay
        row.counter_offer_reason = change.reason
