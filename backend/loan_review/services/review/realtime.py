"""Resynchronization on real-time push events.

The session never patches its view from an event payload. Any event scoped
to the same tenant and application means "state may have changed": the
view is thrown away and reloaded in full.
"""

import enum
import logging
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as SchemaValidationError

from loan_review.services.review.collaborators import ApplicationRepository
from loan_review.services.review.completeness import CompletenessSnapshot, calculate_completeness
from loan_review.services.review.domain import Application
from loan_review.services.review.errors import ValidationError

logger = logging.getLogger(__name__)


class RealtimeEventType(str, enum.Enum):
    APPLICATION_STATUS_CHANGED = "ApplicationStatusChanged"
    DOCUMENT_STATUS_CHANGED = "DocumentStatusChanged"
    DOCUMENT_DELETED = "DocumentDeleted"
    DOCUMENT_UPLOADED = "DocumentUploaded"
    REFERENCE_VERIFIED = "ReferenceVerified"
    BANK_ACCOUNT_VERIFIED = "BankAccountVerified"


class RealtimeEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str = Field(min_length=1)
    application_id: int
    tenant_id: Optional[str] = None
    payload: dict = Field(default_factory=dict)

    @property
    def known_type(self) -> Optional[RealtimeEventType]:
        try:
            return RealtimeEventType(self.type)
        except ValueError:
            return None


class ApplicationReviewSession:
    """In-memory view of one application for one staff member."""

    def __init__(
        self,
        repository: ApplicationRepository,
        application_id: int,
        tenant_id: Optional[str] = None,
    ):
        self.repository = repository
        self.application_id = application_id
        self.tenant_id = tenant_id
        self.application: Optional[Application] = None

    async def refresh(self) -> Application:
        # Keep the previous view if the reload fails
        application = await self.repository.load_application(self.application_id)
        self.application = application
        return application

    def matches(self, event: RealtimeEvent) -> bool:
        if event.application_id != self.application_id:
            return False
        if self.tenant_id is not None and event.tenant_id is not None:
            return event.tenant_id == self.tenant_id
        return True

    async def handle_event(self, event: Union[RealtimeEvent, dict]) -> bool:
        """Reload when the event concerns this application. Returns True if reloaded."""
        if not isinstance(event, RealtimeEvent):
            try:
                event = RealtimeEvent.model_validate(event)
            except SchemaValidationError as e:
                raise ValidationError("Malformed real-time event", errors=e.errors(include_url=False)) from e

        if not self.matches(event):
            return False
        if event.known_type is None:
            logger.info(
                "Unknown event type %s for application=%s, reloading", event.type, self.application_id
            )
        await self.refresh()
        return True

    @property
    def completeness(self) -> Optional[CompletenessSnapshot]:
        if self.application is None:
            return None
        return calculate_completeness(self.application)
