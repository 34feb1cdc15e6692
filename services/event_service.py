import logging
from typing import Optional

from schemas.auth import Actor
from schemas.events import EventCreate, EventUpdate
from services.errors import ForbiddenError, NotFoundError, ValidationError
from services.permissions import can_edit, can_view, require_edit, require_staff
from services.registration_service import RegistrationService, release_event_lock
from services.stores import EventStore

logger = logging.getLogger(__name__)

# NOT NULL columns; an explicit null in a partial update is rejected
REQUIRED_FIELDS = ("title", "description", "category", "location", "date", "is_public", "requires_approval")


class EventService:
    """Event CRUD. Capacity edits share the registration lock of the event."""

    def __init__(self, store: EventStore, registrations: RegistrationService = None):
        self.store = store
        self.registrations = registrations or RegistrationService(store)

    def create(self, payload: EventCreate, actor: Actor):
        require_staff(actor, "You don't have permission to create events")
        event = self.store.add_event(organizer_id=actor.id, **payload.model_dump())
        self.store.commit()
        self.store.refresh(event)
        logger.info(f"event {event.id} created by {actor.id}")
        return event

    def get_visible(self, event_id: int, actor: Optional[Actor]):
        event = self.store.get_event(event_id)
        if event is None:
            raise NotFoundError("Event not found")
        if not can_view(event, actor):
            raise ForbiddenError("You don't have permission to view this event")
        return event

    def detail(self, event_id: int, actor: Optional[Actor]) -> dict:
        event = self.get_visible(event_id, actor)
        mine = self.store.find_registration(event_id, actor.id) if actor else None
        return {
            "event": event,
            "registrations": self.store.count_active_registrations(event_id),
            "is_registered": mine is not None,
            "registration_status": mine.status if mine else None,
            "can_edit": can_edit(event, actor),
        }

    def list_visible(self, actor: Optional[Actor], page: int, size: int, **filters):
        """Private events only show up for whoever can edit them."""
        visible = [e for e in self.store.query_events(**filters).all() if can_view(e, actor)]
        total = len(visible)
        items = visible[(page - 1) * size: page * size]
        counts = self.store.active_counts([e.id for e in items])
        return total, [(e, counts.get(e.id, 0)) for e in items]

    def update(self, event_id: int, payload: EventUpdate, actor: Actor):
        changes = payload.model_dump(exclude_unset=True)
        changes.pop("id", None)

        with self.registrations.event_guard(event_id):
            event = self.store.lock_event(event_id)
            if event is None:
                raise NotFoundError("Event not found")
            require_edit(event, actor, "You don't have permission to update this event")

            missing = [key for key in REQUIRED_FIELDS if key in changes and changes[key] is None]
            if missing:
                raise ValidationError(f"{', '.join(missing)} cannot be null")

            capacity = changes.get("capacity", event.capacity)
            if capacity is not None:
                current = self.store.count_active_registrations(event_id)
                if capacity < current:
                    raise ValidationError(
                        f"Capacity cannot be lower than the current {current} registrations"
                    )

            start_time = changes.get("start_time", event.start_time)
            end_time = changes.get("end_time", event.end_time)
            if start_time and end_time and end_time < start_time:
                raise ValidationError("end_time must not be earlier than start_time")

            for key, value in changes.items():
                setattr(event, key, value)

        self.store.refresh(event)
        logger.info(f"event {event_id} updated by {actor.id}: {sorted(changes)}")
        return event

    def delete(self, event_id: int, actor: Actor):
        with self.registrations.event_guard(event_id):
            event = self.store.lock_event(event_id)
            if event is None:
                raise NotFoundError("Event not found")
            require_edit(event, actor, "You don't have permission to delete this event")
            self.store.delete_event(event)

        release_event_lock(event_id)
        logger.info(f"event {event_id} deleted by {actor.id}")

    def my_registrations(self, actor: Actor):
        return self.store.list_user_registrations(actor.id)
