from typing import Optional

from models.enums import Role, STAFF_ROLES
from schemas.auth import Actor
from services.errors import ForbiddenError


def can_edit(event, actor: Optional[Actor]) -> bool:
    """Organizer of the event or any admin."""
    if actor is None:
        return False
    return actor.role == Role.ADMIN or event.organizer_id == actor.id


def can_view(event, actor: Optional[Actor]) -> bool:
    return bool(event.is_public) or can_edit(event, actor)


def require_edit(event, actor: Optional[Actor], message: str = None):
    if not can_edit(event, actor):
        raise ForbiddenError(message or "You don't have permission to manage this event")


def require_staff(actor: Optional[Actor], message: str = None):
    if actor is None or actor.role not in STAFF_ROLES:
        raise ForbiddenError(message or "Only teachers and admins can do this")


def require_admin(actor: Optional[Actor], message: str = None):
    if actor is None or actor.role != Role.ADMIN:
        raise ForbiddenError(message or "Only admins can do this")
