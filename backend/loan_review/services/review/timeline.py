"""Timeline recorder backed by the audit_log table."""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from loan_review.models.audit import AuditLog
from loan_review.services.error_logger import log_error
from loan_review.services.review.collaborators import TimelineRecorder
from loan_review.services.review.domain import Actor
from loan_review.services.review.errors import UpstreamFailure
from loan_review.services.review.events import TimelineEventData, event_data_to_dict

logger = logging.getLogger(__name__)

TIMELINE_ENTITY = "loan_application"


class AuditLogTimeline(TimelineRecorder):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def append_timeline_event(
        self,
        application_id: int,
        action: str,
        description: str,
        actor: Optional[Actor],
        metadata: Optional[TimelineEventData] = None,
    ) -> None:
        entry = AuditLog(
            entity_type=TIMELINE_ENTITY,
            entity_id=application_id,
            action=action,
            user_id=actor.id if actor and actor.id else None,
            details=description,
            metadata_json=event_data_to_dict(metadata),
        )
        try:
            self.db.add(entry)
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            await log_error(e, db=None, module="timeline", function_name="append_timeline_event",
                            application_id=application_id)
            raise UpstreamFailure(
                "Could not record timeline event", application_id=application_id, action=action
            ) from e
        logger.debug("Timeline application=%s action=%s", application_id, action)
