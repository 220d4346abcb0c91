"""Authorization collaborators.

Role mapping:
    ANALYST                          review documents, verify references, change status
    SUPERVISOR / ADMIN / SUPER_ADMIN all of the above, plus approve/reject, assign, view all
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from loan_review.models.loan import ApplicationStatus
from loan_review.models.user import StaffRole, StaffUser
from loan_review.services.error_logger import log_error
from loan_review.services.review.collaborators import AuthorizationProvider, StaffPermissions
from loan_review.services.review.domain import Actor
from loan_review.services.review.errors import PermissionDeniedError, UpstreamFailure
from loan_review.services.review.status_machine import RESTRICTED_TARGETS, get_allowed_transitions


NO_PERMISSIONS = StaffPermissions()


def permissions_for_role(role: Optional[StaffRole]) -> StaffPermissions:
    if role is None:
        return NO_PERMISSIONS
    senior = role.is_supervisor_or_above
    return StaffPermissions(
        can_assign_applications=senior,
        can_change_application_status=True,
        can_approve_reject_applications=senior,
        can_review_documents=True,
        can_verify_references=True,
        can_view_all_applications=senior,
    )


def allowed_targets_for(
    permissions: StaffPermissions, current_status: ApplicationStatus
) -> set[ApplicationStatus]:
    """Workflow edges from current_status the permissions cover."""
    allowed = set()
    for target in get_allowed_transitions(current_status):
        if target in RESTRICTED_TARGETS:
            if permissions.can_approve_reject_applications:
                allowed.add(target)
        elif permissions.can_change_application_status:
            allowed.add(target)
    return allowed


class RoleBasedAuthorization(AuthorizationProvider):
    """Uses the role carried on the actor."""

    async def get_permissions(self, actor: Actor) -> StaffPermissions:
        return permissions_for_role(actor.role)

    async def get_allowed_status_targets(
        self, actor: Actor, current_status: ApplicationStatus
    ) -> set[ApplicationStatus]:
        return allowed_targets_for(await self.get_permissions(actor), current_status)


class DatabaseAuthorization(AuthorizationProvider):
    """Reloads the staff member's role on every call; roles can change between requests."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _current_role(self, actor: Actor) -> StaffRole:
        try:
            result = await self.db.execute(select(StaffUser).where(StaffUser.id == actor.id))
            user = result.scalar_one_or_none()
        except Exception as e:
            await log_error(e, db=None, module="permissions", function_name="_current_role",
                            actor_id=actor.id)
            raise UpstreamFailure("Could not load staff permissions", actor_id=actor.id) from e

        if user is None or not user.is_active:
            raise PermissionDeniedError("Staff account is not active", actor_id=actor.id)
        return user.role

    async def get_permissions(self, actor: Actor) -> StaffPermissions:
        return permissions_for_role(await self._current_role(actor))

    async def get_allowed_status_targets(
        self, actor: Actor, current_status: ApplicationStatus
    ) -> set[ApplicationStatus]:
        return allowed_targets_for(await self.get_permissions(actor), current_status)
