"""Resource-specific authorization policies. Each check returns None or raises.

Callers pass the authenticated user (anything with id and role) and the resource.
"""

from typing import Protocol

from app.models.user import ROLE_ADMIN, ROLE_TEAM_LEAD, STATUS_ACTIVE
from app.services.errors import ForbiddenError, SelfProtectionError

PRIVILEGED_ROLES = frozenset({ROLE_ADMIN, ROLE_TEAM_LEAD})


class Actor(Protocol):
    id: str
    role: str


def is_admin(actor: Actor) -> bool:
    return actor.role == ROLE_ADMIN


def is_privileged(actor: Actor) -> bool:
    return actor.role in PRIVILEGED_ROLES


def can_update_finding(actor: Actor, finding) -> bool:
    """Admins, team leads, the reporter, and any assignee may edit a finding."""
    if is_privileged(actor) or finding.reported_by_id == actor.id:
        return True
    return actor.id in (finding.assigned_to or [])


def ensure_can_update_finding(actor: Actor, finding) -> None:
    if not can_update_finding(actor, finding):
        raise ForbiddenError("Only admins, team leads, the reporter or an assignee can edit this finding")


def ensure_can_delete_finding(actor: Actor, finding) -> None:
    if not (is_privileged(actor) or finding.reported_by_id == actor.id):
        raise ForbiddenError("Only admins, team leads or the reporter can delete this finding")


def ensure_can_delete_report(actor: Actor, report) -> None:
    if not (is_privileged(actor) or report.generated_by_id == actor.id):
        raise ForbiddenError("Only admins, team leads or the creator can delete this report")


def ensure_can_delete_attachment(actor: Actor, attachment) -> None:
    if not (is_privileged(actor) or attachment.uploaded_by_id == actor.id):
        raise ForbiddenError("Only admins, team leads or the uploader can delete this attachment")


def ensure_can_modify_message(actor: Actor, message) -> None:
    if not (is_admin(actor) or message.user_id == actor.id):
        raise ForbiddenError("You can only modify your own messages")


def ensure_not_self_demotion(actor: Actor, target_id: str, new_role: str) -> None:
    """An admin may not take the admin role away from their own account."""
    if actor.id == target_id and is_admin(actor) and new_role != ROLE_ADMIN:
        raise SelfProtectionError("Cannot remove your own admin role")


def ensure_not_self_deactivation(actor: Actor, target_id: str, new_status: str) -> None:
    if actor.id == target_id and new_status != STATUS_ACTIVE:
        raise SelfProtectionError("Cannot change the status of your own account")


def ensure_not_self_deletion(actor: Actor, target_id: str) -> None:
    if actor.id == target_id:
        raise SelfProtectionError("Cannot delete your own account")
