from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from dependencies.security import get_current_actor, get_optional_actor
from dependencies.services import get_event_service
from schemas.auth import Actor
from schemas.common import make_meta
from schemas.events import EventCreate, EventDetail, EventOut, EventUpdate
from services.event_service import EventService

router = APIRouter(prefix="/events", tags=["events"])


def serialize_event(event, registrations: int, schema=EventOut, **extra):
    # ORM `registrations` is the relationship list; the API exposes the active count instead
    data = {
        name: getattr(event, name)
        for name in schema.model_fields
        if name != "registrations" and name not in extra and hasattr(event, name)
    }
    return schema(registrations=registrations, **data, **extra)


# ==========================================================
# [1] CRUD
# ==========================================================

# ✅ [CREATE] new event (teacher/admin, caller becomes organizer)
@router.post("/", status_code=201)
def create_event(
    payload: EventCreate,
    actor: Actor = Depends(get_current_actor),
    service: EventService = Depends(get_event_service),
):
    event = service.create(payload, actor)
    return {
        "success": True,
        "data": serialize_event(event, 0),
        "message": "Event created successfully",
    }


# ✅ [READ] event list with filters and paging
@router.get("/")
def read_events(
    category: Optional[str] = None,
    search: Optional[str] = None,
    on_date: Optional[date] = Query(None, alias="date"),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    page: int = Query(1, ge=1),
    size: int = Query(10, ge=1, le=200),
    actor: Optional[Actor] = Depends(get_optional_actor),
    service: EventService = Depends(get_event_service),
):
    total, rows = service.list_visible(
        actor, page, size,
        category=category, search=search, on_date=on_date,
        start_date=start_date, end_date=end_date,
    )
    return {
        "success": True,
        "data": [serialize_event(event, count) for event, count in rows],
        "meta": make_meta(total, page, size),
    }


# ==========================================================
# [2] dynamic routes
# ==========================================================

# ✅ [READ] single event, with the caller's registration state
@router.get("/{event_id}")
def read_event(
    event_id: int,
    actor: Optional[Actor] = Depends(get_optional_actor),
    service: EventService = Depends(get_event_service),
):
    detail = service.detail(event_id, actor)
    return {
        "success": True,
        "data": serialize_event(
            detail["event"],
            detail["registrations"],
            schema=EventDetail,
            is_registered=detail["is_registered"],
            registration_status=detail["registration_status"],
            can_edit=detail["can_edit"],
        ),
    }


# ✅ [UPDATE] partial update (organizer/admin)
@router.put("/{event_id}")
def update_event(
    event_id: int,
    payload: EventUpdate,
    actor: Actor = Depends(get_current_actor),
    service: EventService = Depends(get_event_service),
):
    event = service.update(event_id, payload, actor)
    return {
        "success": True,
        "data": serialize_event(event, service.registrations.registration_count(event_id)),
        "message": "Event updated successfully",
    }


# ✅ [DELETE] event and its registrations (organizer/admin)
@router.delete("/{event_id}")
def delete_event(
    event_id: int,
    actor: Actor = Depends(get_current_actor),
    service: EventService = Depends(get_event_service),
):
    service.delete(event_id, actor)
    return {
        "success": True,
        "data": {"event_id": event_id},
        "message": "Event deleted successfully",
    }
