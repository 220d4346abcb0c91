"""Review command orchestration.

Every command follows the same path: validate input, load the application
fresh, check the actor's permissions, build the mutation with the pure
engines, persist it, apply it to the in-memory aggregate, then record one
timeline entry per change. Nothing touches the aggregate before the save
succeeded, and every failure reaches the caller.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError

from loan_review.config import Settings, settings
from loan_review.models.loan import ApplicationStatus
from loan_review.schemas import (
    AssignRequest,
    AutomatedVerificationRequest,
    CounterOfferRequest,
    DocumentRejectRequest,
    FieldReasonRequest,
    FieldVerificationRequest,
    NoteRequest,
    ReferenceVerificationRequest,
    StatusChangeRequest,
)
from loan_review.services.error_logger import log_error
from loan_review.services.payment_calculator import PaymentQuote, calculate_payment
from loan_review.services.review import reference_bank, status_machine
from loan_review.services.review.catalog import StaticCatalog
from loan_review.services.review.collaborators import (
    ApplicationRepository,
    AuthorizationProvider,
    DocumentStorage,
    ReviewCatalog,
    StaffPermissions,
    TimelineRecorder,
)
from loan_review.services.review.completeness import (
    ApprovalReadiness,
    CompletenessSnapshot,
    approval_readiness,
    calculate_completeness,
)
from loan_review.services.review.document_review import DocumentReviewEngine
from loan_review.services.review.domain import SYSTEM_ACTOR, Actor, Application, Document
from loan_review.services.review.errors import (
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    ReviewError,
    UpstreamFailure,
    ValidationError,
)
from loan_review.services.review.field_registry import FieldVerificationRegistry
from loan_review.services.review.mutations import MutationBatch, NoteAdded

logger = logging.getLogger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)


def parse_input(schema: Type[SchemaT], *, context: Optional[dict] = None, **data) -> SchemaT:
    """Validate command input, reporting problems as ``ValidationError``."""
    try:
        return schema.model_validate(data, context=context)
    except SchemaValidationError as e:
        messages = []
        for err in e.errors():
            loc = ".".join(str(part) for part in err.get("loc", ()))
            msg = err.get("msg", "invalid value").removeprefix("Value error, ")
            messages.append(f"{loc}: {msg}" if loc else msg)
        raise ValidationError("; ".join(messages), errors=e.errors(include_url=False)) from e


class ReviewService:
    def __init__(
        self,
        repository: ApplicationRepository,
        authorization: AuthorizationProvider,
        timeline: TimelineRecorder,
        storage: Optional[DocumentStorage] = None,
        catalog: Optional[ReviewCatalog] = None,
        config: Settings = settings,
    ):
        self.repository = repository
        self.authorization = authorization
        self.timeline = timeline
        self.storage = storage
        self.catalog = catalog or StaticCatalog()
        self.config = config

    # ── Collaborator plumbing ────────────────────────────────

    async def _call(self, operation: str, awaitable, application_id=None, actor: Optional[Actor] = None):
        try:
            return await awaitable
        except ReviewError:
            raise
        except Exception as e:
            await log_error(
                e, module="review_service", function_name=operation,
                application_id=application_id, actor_id=actor.id if actor else None,
            )
            raise UpstreamFailure(
                f"{operation} failed: {type(e).__name__}", application_id=application_id
            ) from e

    async def _load(self, application_id: int, actor: Optional[Actor] = None) -> Application:
        return await self._call(
            "load_application", self.repository.load_application(application_id),
            application_id, actor,
        )

    async def _permissions(self, actor: Actor) -> StaffPermissions:
        return await self._call("get_permissions", self.authorization.get_permissions(actor), actor=actor)

    async def _require(self, actor: Actor, capability: str) -> StaffPermissions:
        permissions = await self._permissions(actor)
        if not getattr(permissions, capability):
            raise PermissionDeniedError(
                f"You do not have permission to perform this action ({capability})",
                actor_id=actor.id,
                capability=capability,
            )
        return permissions

    async def _commit(self, application: Application, batch: MutationBatch, actor: Actor) -> Application:
        await self._call(
            "save_mutation", self.repository.save_mutation(application.id, batch),
            application.id, actor,
        )
        batch.apply(application)
        for change in batch:
            await self._call(
                "append_timeline_event",
                self.timeline.append_timeline_event(
                    application.id, change.action, change.describe(), actor, change.event_data(),
                ),
                application.id, actor,
            )
            logger.info(
                "application=%s action=%s actor=%s", application.id, change.action, actor.id
            )
        return application

    def _with_side_effects(self, application: Application, change, actor: Actor) -> MutationBatch:
        if not self.config.auto_status_transitions:
            return MutationBatch((change,))
        return status_machine.with_workflow_side_effects(application, change, actor.id)

    # ── Field verification ───────────────────────────────────

    async def verify_field(
        self, application_id: int, actor: Actor, field: str,
        method: str = "MANUAL", notes: Optional[str] = None,
    ) -> Application:
        data = parse_input(FieldVerificationRequest, field=field, method=method, notes=notes)
        await self._require(actor, "can_review_documents")
        application = await self._load(application_id, actor)
        change = FieldVerificationRegistry(application.verifications).verify(
            data.field, actor, method=data.method, notes=data.notes
        )
        return await self._commit(application, self._with_side_effects(application, change, actor), actor)

    async def reject_field(self, application_id: int, actor: Actor, field: str, reason: Optional[str]) -> Application:
        data = parse_input(FieldReasonRequest, field=field, reason=reason)
        await self._require(actor, "can_review_documents")
        application = await self._load(application_id, actor)
        change = FieldVerificationRegistry(application.verifications).reject(data.field, actor, data.reason)
        return await self._commit(application, self._with_side_effects(application, change, actor), actor)

    async def unverify_field(self, application_id: int, actor: Actor, field: str, reason: Optional[str]) -> Application:
        data = parse_input(FieldReasonRequest, field=field, reason=reason)
        await self._require(actor, "can_review_documents")
        application = await self._load(application_id, actor)
        change = FieldVerificationRegistry(application.verifications).unverify(data.field, actor, data.reason)
        return await self._commit(application, MutationBatch((change,)), actor)

    async def record_automated_verification(
        self, application_id: int, field: str, method: str,
        status: str = "VERIFIED", source: Optional[str] = None, reason: Optional[str] = None,
    ) -> Application:
        """Entry point for the KYC/OTP provider. Not subject to staff permissions."""
        data = parse_input(
            AutomatedVerificationRequest,
            field=field, method=method, status=status, source=source, reason=reason,
        )
        application = await self._load(application_id)
        change = FieldVerificationRegistry(application.verifications).record_automated(
            data.field, data.method, data.status, source=data.source, reason=data.reason
        )
        batch = self._with_side_effects(application, change, SYSTEM_ACTOR)
        return await self._commit(application, batch, SYSTEM_ACTOR)

    # ── Documents ────────────────────────────────────────────

    async def approve_document(self, application_id: int, actor: Actor, document_id: str) -> Application:
        await self._require(actor, "can_review_documents")
        application = await self._load(application_id, actor)
        change = DocumentReviewEngine(application).approve(document_id, actor)
        return await self._commit(application, self._with_side_effects(application, change, actor), actor)

    async def reject_document(
        self, application_id: int, actor: Actor, document_id: str,
        reason: Optional[str], comment: Optional[str] = None,
    ) -> Application:
        data = parse_input(DocumentRejectRequest, reason=reason, comment=comment)
        await self._require(actor, "can_review_documents")
        application = await self._load(application_id, actor)
        change = DocumentReviewEngine(application).reject(document_id, actor, data.reason, data.comment)
        return await self._commit(application, self._with_side_effects(application, change, actor), actor)

    async def unapprove_document(self, application_id: int, actor: Actor, document_id: str) -> Application:
        await self._require(actor, "can_review_documents")
        application = await self._load(application_id, actor)
        change = DocumentReviewEngine(application).unapprove(document_id, actor)
        return await self._commit(application, MutationBatch((change,)), actor)

    async def unreject_document(self, application_id: int, actor: Actor, document_id: str) -> Application:
        await self._require(actor, "can_review_documents")
        application = await self._load(application_id, actor)
        change = DocumentReviewEngine(application).unreject(document_id, actor)
        return await self._commit(application, MutationBatch((change,)), actor)

    def _stored_document(self, application: Application, document_id: str) -> Document:
        if self.storage is None:
            raise UpstreamFailure("No document storage configured", application_id=application.id)
        return DocumentReviewEngine(application).get(document_id)

    async def download_document(self, application_id: int, actor: Actor, document_id: str) -> bytes:
        application = await self._load(application_id, actor)
        document = self._stored_document(application, document_id)
        return await self._call(
            "download_document", self.storage.download_document(application.id, document),
            application.id, actor,
        )

    async def get_document_url(self, application_id: int, actor: Actor, document_id: str) -> str:
        application = await self._load(application_id, actor)
        document = self._stored_document(application, document_id)
        return await self._call(
            "get_document_url", self.storage.get_document_url(application.id, document),
            application.id, actor,
        )

    # ── References & bank accounts ───────────────────────────

    async def verify_reference(
        self, application_id: int, actor: Actor, reference_id: str,
        result: str, notes: Optional[str] = None,
    ) -> Application:
        data = parse_input(ReferenceVerificationRequest, result=result, notes=notes)
        await self._require(actor, "can_verify_references")
        application = await self._load(application_id, actor)
        change = reference_bank.verify_reference(application, reference_id, data.result, actor, data.notes)
        return await self._commit(application, MutationBatch((change,)), actor)

    async def verify_bank_account(self, application_id: int, actor: Actor, account_id: str) -> Application:
        await self._require(actor, "can_verify_references")
        application = await self._load(application_id, actor)
        change = reference_bank.verify_bank_account(application, account_id, actor)
        return await self._commit(application, MutationBatch((change,)), actor)

    async def unverify_bank_account(self, application_id: int, actor: Actor, account_id: str) -> Application:
        await self._require(actor, "can_verify_references")
        application = await self._load(application_id, actor)
        change = reference_bank.unverify_bank_account(application, account_id)
        return await self._commit(application, MutationBatch((change,)), actor)

    # ── Workflow ─────────────────────────────────────────────

    async def change_status(
        self, application_id: int, actor: Actor, new_status: str, note: Optional[str] = None,
    ) -> Application:
        data = parse_input(StatusChangeRequest, status=new_status, note=note)
        target = status_machine.parse_status(data.status)
        application = await self._load(application_id, actor)
        status_machine.ensure_not_terminal(application)

        capability = (
            "can_approve_reject_applications"
            if target in status_machine.RESTRICTED_TARGETS
            else "can_change_application_status"
        )
        await self._require(actor, capability)
        allowed = await self._call(
            "get_allowed_status_targets",
            self.authorization.get_allowed_status_targets(actor, application.status),
            application.id, actor,
        )
        transition = status_machine.change_status(application, target, actor, allowed, note=data.note)

        if target == ApplicationStatus.APPROVED and self.config.enforce_approval_readiness:
            readiness = self.get_approval_readiness(application)
            if not readiness.is_ready:
                raise InvalidStateError(
                    "Application is not ready for approval: " + "; ".join(readiness.blockers),
                    blockers=readiness.blockers,
                )
        return await self._commit(application, MutationBatch((transition,)), actor)

    async def assign(self, application_id: int, actor: Actor, staff_user_id: int) -> Application:
        data = parse_input(AssignRequest, staff_user_id=staff_user_id)
        await self._require(actor, "can_assign_applications")
        application = await self._load(application_id, actor)
        assignee = await self._call(
            "find_active_staff", self.repository.find_active_staff(data.staff_user_id),
            application.id, actor,
        )
        if assignee is None:
            raise NotFoundError(
                f"Staff user {data.staff_user_id} not found or inactive",
                staff_user_id=data.staff_user_id,
            )
        change = status_machine.assign(application, assignee.id, assignee.name)
        return await self._commit(application, MutationBatch((change,)), actor)

    def quote_counter_offer(
        self, amount, term_months: int, interest_rate, frequency: str = "MONTHLY",
    ) -> PaymentQuote:
        data = parse_input(
            CounterOfferRequest, context={"config": self.config}, amount=amount, term_months=term_months,
            interest_rate=interest_rate, frequency=frequency,
        )
        if data.interest_rate is None:
            raise ValidationError("interest_rate is required")
        return calculate_payment(data.amount, data.term_months, data.interest_rate, data.payment_frequency)

    async def create_counter_offer(
        self, application_id: int, actor: Actor, amount, term_months: int,
        interest_rate=None, frequency: str = "MONTHLY", reason: Optional[str] = None,
    ) -> Application:
        data = parse_input(
            CounterOfferRequest, context={"config": self.config}, amount=amount, term_months=term_months,
            interest_rate=interest_rate, frequency=frequency, reason=reason,
        )
        await self._require(actor, "can_approve_reject_applications")
        application = await self._load(application_id, actor)

        rate = data.interest_rate
        if rate is None:
            rate = application.loan.interest_rate
        if rate is None:
            raise ValidationError("interest_rate is required: the loan has no rate to default to")

        quote = calculate_payment(data.amount, data.term_months, Decimal(rate), data.payment_frequency)
        batch = status_machine.create_counter_offer(application, quote, actor, reason=data.reason)
        return await self._commit(application, batch, actor)

    async def add_note(self, application_id: int, actor: Actor, content: str) -> Application:
        data = parse_input(NoteRequest, content=content)
        application = await self._load(application_id, actor)
        change = NoteAdded(content=data.content, author_id=actor.id, created_at=datetime.now(timezone.utc))
        return await self._commit(application, MutationBatch((change,)), actor)

    # ── Reads ────────────────────────────────────────────────

    async def get_application(self, application_id: int, actor: Optional[Actor] = None) -> Application:
        return await self._load(application_id, actor)

    async def get_completeness(self, application_id: int, actor: Optional[Actor] = None) -> CompletenessSnapshot:
        return calculate_completeness(await self._load(application_id, actor))

    def get_approval_readiness(self, application: Application) -> ApprovalReadiness:
        return approval_readiness(application, self.config.approval_required_field_list)

    async def get_document_review_list(self, application_id: int, actor: Optional[Actor] = None) -> list[Document]:
        return DocumentReviewEngine(await self._load(application_id, actor)).review_list()

    def get_options(self, kind: str) -> list[tuple[str, str]]:
        """(value, label) pairs for one of the catalog vocabularies."""
        options = self.catalog.options(kind)
        if not options:
            raise ValidationError(f"Unknown vocabulary '{kind}'", kind=kind)
        return options

    def document_label(self, document: Document) -> str:
        return self.catalog.label("document_types", document.type)
