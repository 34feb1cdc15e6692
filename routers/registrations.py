from typing import Optional

from fastapi import APIRouter, Depends

from dependencies.security import get_current_actor
from dependencies.services import get_event_service, get_event_store, get_registration_service
from schemas.auth import Actor
from schemas.events import (
    MyRegistrationOut,
    NotificationOut,
    NotificationUpdate,
    RegistrationOut,
    RegistrationStatusUpdate,
)
from services.aggregation import registration_status_counts
from services.errors import ForbiddenError, NotFoundError
from services.event_service import EventService
from services.registration_service import RegistrationService
from services.stores import EventStore

router = APIRouter(tags=["event registrations"])


# ==========================================================
# [1] self-service registration
# ==========================================================

# ✅ [REGISTER] PENDING when the event requires approval, APPROVED otherwise
@router.post("/events/{event_id}/register", status_code=201)
def register_for_event(
    event_id: int,
    actor: Actor = Depends(get_current_actor),
    service: RegistrationService = Depends(get_registration_service),
):
    registration = service.register(event_id, actor)
    return {
        "success": True,
        "data": {
            "registration": RegistrationOut.model_validate(registration),
            "registrations": service.registration_count(event_id),
        },
        "message": "Registered successfully",
    }


# ✅ [CANCEL] only PENDING/APPROVED registrations can be cancelled
@router.delete("/events/{event_id}/register")
def cancel_registration(
    event_id: int,
    actor: Actor = Depends(get_current_actor),
    service: RegistrationService = Depends(get_registration_service),
):
    service.cancel(event_id, actor)
    return {
        "success": True,
        "data": {"event_id": event_id, "registrations": service.registration_count(event_id)},
        "message": "Registration cancelled successfully",
    }


# ==========================================================
# [2] organizer
# ==========================================================

# ✅ [LIST] registrations of an event (status filter, name/id search)
@router.get("/events/{event_id}/registrations")
def read_registrations(
    event_id: int,
    status: Optional[str] = None,
    search: Optional[str] = None,
    actor: Actor = Depends(get_current_actor),
    service: RegistrationService = Depends(get_registration_service),
):
    registrations = service.list_registrations(event_id, actor, status=status, search=search)
    return {
        "success": True,
        "data": [RegistrationOut.model_validate(r) for r in registrations],
    }


# ✅ [STATS] status counts for the organizer dashboard
@router.get("/events/{event_id}/registrations/stats")
def read_registration_stats(
    event_id: int,
    actor: Actor = Depends(get_current_actor),
    service: RegistrationService = Depends(get_registration_service),
):
    registrations = service.list_registrations(event_id, actor)
    return {"success": True, "data": registration_status_counts(registrations)}


# ✅ [UPDATE] approve / reject / mark attended
@router.put("/events/{event_id}/registrations/{registration_id}")
def update_registration_status(
    event_id: int,
    registration_id: int,
    payload: RegistrationStatusUpdate,
    actor: Actor = Depends(get_current_actor),
    service: RegistrationService = Depends(get_registration_service),
):
    registration = service.update_status(event_id, registration_id, payload.status, actor)
    return {
        "success": True,
        "data": {
            "registration": RegistrationOut.model_validate(registration),
            "registrations": service.registration_count(event_id),
        },
        "message": "Registration status updated",
    }


# ✅ [DELETE] hard delete in any state
@router.delete("/events/{event_id}/registrations/{registration_id}")
def delete_registration(
    event_id: int,
    registration_id: int,
    actor: Actor = Depends(get_current_actor),
    service: RegistrationService = Depends(get_registration_service),
):
    service.delete_registration(event_id, registration_id, actor)
    return {
        "success": True,
        "data": {"registration_id": registration_id, "registrations": service.registration_count(event_id)},
        "message": "Registration deleted successfully",
    }


# ==========================================================
# [3] current user
# ==========================================================

# ✅ [MINE] events the caller registered for
@router.get("/me/registrations")
def read_my_registrations(
    actor: Actor = Depends(get_current_actor),
    service: EventService = Depends(get_event_service),
):
    return {
        "success": True,
        "data": [
            MyRegistrationOut(
                **RegistrationOut.model_validate(r).model_dump(),
                event_title=r.event.title,
                event_date=r.event.date,
            )
            for r in service.my_registrations(actor)
        ],
    }


# ✅ [NOTIFICATIONS] registration updates addressed to the caller
@router.get("/me/notifications")
def read_my_notifications(
    unread_only: bool = False,
    actor: Actor = Depends(get_current_actor),
    store: EventStore = Depends(get_event_store),
):
    return {
        "success": True,
        "data": [NotificationOut.model_validate(n) for n in store.list_notifications(actor.id, unread_only)],
    }


def _own_notification(store: EventStore, notification_id: int, actor: Actor, action: str):
    notification = store.get_notification(notification_id)
    if notification is None:
        raise NotFoundError("Notification not found")
    if notification.user_id != actor.id:
        raise ForbiddenError(f"You don't have permission to {action} this notification")
    return notification


# ✅ [READ-STATE] mark one notification read/unread
@router.put("/me/notifications/{notification_id}")
def update_my_notification(
    notification_id: int,
    payload: NotificationUpdate,
    actor: Actor = Depends(get_current_actor),
    store: EventStore = Depends(get_event_store),
):
    notification = _own_notification(store, notification_id, actor, "update")
    store.set_notification_read(notification, payload.is_read)
    store.commit()
    store.refresh(notification)
    return {"success": True, "data": NotificationOut.model_validate(notification)}


# ✅ [READ-STATE] everything addressed to the caller
@router.post("/me/notifications/mark-all-read")
def mark_my_notifications_read(
    actor: Actor = Depends(get_current_actor),
    store: EventStore = Depends(get_event_store),
):
    updated = store.mark_all_read(actor.id)
    store.commit()
    return {
        "success": True,
        "data": {"updated": updated},
        "message": "All notifications marked as read",
    }


# ✅ [DELETE] one notification
@router.delete("/me/notifications/{notification_id}")
def delete_my_notification(
    notification_id: int,
    actor: Actor = Depends(get_current_actor),
    store: EventStore = Depends(get_event_store),
):
    notification = _own_notification(store, notification_id, actor, "delete")
    store.delete_notification(notification)
    store.commit()
    return {
        "success": True,
        "data": {"notification_id": notification_id},
        "message": "Notification deleted successfully",
    }
