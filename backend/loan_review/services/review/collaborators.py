"""Contracts for the collaborators the review service depends on."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from loan_review.models.loan import ApplicationStatus
from loan_review.services.review.domain import Actor, Application, Document
from loan_review.services.review.events import TimelineEventData
from loan_review.services.review.mutations import MutationBatch


@dataclass(frozen=True)
class StaffPermissions:
    can_assign_applications: bool = False
    can_change_application_status: bool = False
    can_approve_reject_applications: bool = False
    can_review_documents: bool = False
    can_verify_references: bool = False
    can_view_all_applications: bool = False


class ApplicationRepository(ABC):
    """Durable storage of the application aggregate."""

    @abstractmethod
    async def load_application(self, application_id: int) -> Application:
        """Load the full aggregate. Raises NotFoundError when it does not exist."""
        ...

    @abstractmethod
    async def save_mutation(self, application_id: int, mutation: MutationBatch) -> None:
        """Persist every change in the batch, or none of them."""
        ...

    @abstractmethod
    async def find_active_staff(self, staff_id: int) -> Optional[Actor]:
        ...


class AuthorizationProvider(ABC):
    """Per-actor capabilities. Called on every command, never cached."""

    @abstractmethod
    async def get_permissions(self, actor: Actor) -> StaffPermissions:
        ...

    @abstractmethod
    async def get_allowed_status_targets(
        self, actor: Actor, current_status: ApplicationStatus
    ) -> set[ApplicationStatus]:
        ...


class TimelineRecorder(ABC):
    @abstractmethod
    async def append_timeline_event(
        self,
        application_id: int,
        action: str,
        description: str,
        actor: Optional[Actor],
        metadata: Optional[TimelineEventData] = None,
    ) -> None:
        ...


class DocumentStorage(ABC):
    """Read-only access to uploaded evidence."""

    @abstractmethod
    async def download_document(self, application_id: int, document: Document) -> bytes:
        ...

    @abstractmethod
    async def get_document_url(self, application_id: int, document: Document) -> str:
        ...


class ReviewCatalog(ABC):
    """Labels and valid values for the open vocabularies."""

    @abstractmethod
    def options(self, kind: str) -> list[tuple[str, str]]:
        """(value, label) pairs for a vocabulary such as ``document_types``."""
        ...

    def label(self, kind: str, value: str) -> str:
        return dict(self.options(kind)).get(value, value)

    def is_valid(self, kind: str, value: str) -> bool:
        return any(v == value for v, _ in self.options(kind))
