"""Shared builders and collaborator doubles for the review tests."""

import copy
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from unittest.mock import AsyncMock

import pytest

from loan_review.config import Settings
from loan_review.models.document import DocumentStatus
from loan_review.models.loan import ApplicationStatus, PaymentFrequency
from loan_review.models.reference import ReferenceStatus
from loan_review.models.user import StaffRole
from loan_review.models.verification import VerificationStatus
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
    Reference,
)
from loan_review.services.review.errors import NotFoundError
from loan_review.services.review.permissions import RoleBasedAuthorization
from loan_review.services.review.service import ReviewService

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_document(doc_id, doc_type, status=DocumentStatus.PENDING, **kwargs) -> Document:
    return Document(id=str(doc_id), type=doc_type, status=status,
                    file_name=f"{doc_type.lower()}.jpg", file_path=f"1/{doc_type.lower()}.jpg", **kwargs)


def make_reference(ref_id, status=ReferenceStatus.PENDING, name="Maria Lopez") -> Reference:
    return Reference(id=str(ref_id), full_name=name, relationship="SIBLING",
                     phone="5512345678", verification_status=status)


def make_record(field, status=VerificationStatus.VERIFIED, method="MANUAL", **kwargs) -> FieldVerificationRecord:
    return FieldVerificationRecord(field=field, status=status, method=method,
                                   verified_at=NOW, verified_by=7, **kwargs)


def make_application(
    status: ApplicationStatus = ApplicationStatus.IN_REVIEW,
    required_documents: Optional[list[str]] = None,
    documents: Optional[list[Document]] = None,
    references: Optional[list[Reference]] = None,
    verifications: Optional[dict] = None,
    with_sections: bool = True,
    **kwargs,
) -> Application:
    return Application(
        id=1,
        folio="SOL-2026-0001",
        status=status,
        tenant_id="acme",
        loan=LoanTerms(
            requested_amount=Decimal("50000.00"),
            term_months=12,
            payment_frequency=PaymentFrequency.MONTHLY,
            interest_rate=Decimal("36.00"),
        ),
        required_documents=list(required_documents or []),
        applicant=ApplicantSnapshot(first_name="Ana", last_name_1="Garcia", curp="GAXA900101MDFRRN09")
        if with_sections else None,
        address=Address(street="Av. Reforma 100", city="CDMX") if with_sections else None,
        employment=Employment(employment_type="EMPLOYEE", employer_name="Acme SA")
        if with_sections else None,
        documents=list(documents or []),
        references=list(references or []),
        bank_accounts=[
            BankAccount(id="30", bank_name="BBVA", clabe="012180001234567891", is_primary=True),
        ],
        verifications=dict(verifications or {}),
        **kwargs,
    )


class InMemoryRepository(ApplicationRepository):
    """Keeps one stored aggregate; every load returns an independent copy."""

    def __init__(self, application: Application, staff: Optional[list[Actor]] = None):
        self.stored = copy.deepcopy(application)
        self.staff = {s.id: s for s in (staff or [])}
        self.saved = []
        self.loads = 0
        self.fail_with: Optional[Exception] = None

    async def load_application(self, application_id: int) -> Application:
        self.loads += 1
        if application_id != self.stored.id:
            raise NotFoundError(f"Application {application_id} not found")
        return copy.deepcopy(self.stored)

    async def save_mutation(self, application_id: int, mutation) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.saved.append(mutation)
        mutation.apply(self.stored)

    async def find_active_staff(self, staff_id: int) -> Optional[Actor]:
        return self.staff.get(staff_id)


@pytest.fixture
def analyst() -> Actor:
    return Actor(id=7, name="Luis Analyst", role=StaffRole.ANALYST)


@pytest.fixture
def supervisor() -> Actor:
    return Actor(id=9, name="Sofia Supervisor", role=StaffRole.SUPERVISOR)


@pytest.fixture
def timeline():
    return AsyncMock()


def build_service(application: Application, timeline, staff=None, **config) -> tuple[ReviewService, InMemoryRepository]:
    repository = InMemoryRepository(application, staff=staff)
    service = ReviewService(
        repository=repository,
        authorization=RoleBasedAuthorization(),
        timeline=timeline,
        config=Settings(**config),
    )
    return service, repository
