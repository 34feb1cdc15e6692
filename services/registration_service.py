"""
services/registration_service.py

Event registration lifecycle.

    NONE -> PENDING -> APPROVED -> ATTENDED
    PENDING | APPROVED -> REJECTED          (organizer)
    PENDING | APPROVED -> NONE              (self-service cancel, row deleted)

Every mutating operation runs inside `event_guard(event_id)`, which holds a
per-event lock across check, write and commit so `registrations <= capacity`
holds while FastAPI serves requests from its thread pool.
"""

import logging
import threading
from collections import defaultdict
from contextlib import contextmanager
from typing import Callable, List, Optional

from models.enums import RegistrationStatus
from schemas.auth import Actor
from services.errors import (
    CapacityExceededError,
    DeadlinePassedError,
    DuplicateRegistrationError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    NotRegisteredError,
    ValidationError,
)
from services.permissions import can_view, require_edit
from services.stores import EventStore
from utils.clock import utcnow

logger = logging.getLogger(__name__)

PENDING = RegistrationStatus.PENDING.value
APPROVED = RegistrationStatus.APPROVED.value
REJECTED = RegistrationStatus.REJECTED.value
ATTENDED = RegistrationStatus.ATTENDED.value

# statuses an organizer may set
ORGANIZER_TARGETS = (APPROVED, REJECTED, ATTENDED)

# from -> allowed targets (re-applying the current status is handled separately)
TRANSITIONS = {
    PENDING: {APPROVED, REJECTED},
    APPROVED: {REJECTED, ATTENDED},
    REJECTED: set(),
    ATTENDED: set(),
}

CANCELLABLE = (PENDING, APPROVED)

STATUS_MESSAGES = {
    APPROVED: "Your registration for {title} has been approved.",
    REJECTED: "Your registration for {title} has been rejected.",
    ATTENDED: "Your attendance for {title} has been recorded.",
}

_locks = defaultdict(threading.Lock)
_locks_guard = threading.Lock()


def _event_lock(event_id: int) -> threading.Lock:
    with _locks_guard:
        return _locks[event_id]


def release_event_lock(event_id: int):
    """Drop the lock of a deleted event so the registry does not keep growing."""
    with _locks_guard:
        _locks.pop(event_id, None)


def parse_status(value) -> str:
    try:
        return RegistrationStatus(getattr(value, "value", value)).value
    except ValueError:
        raise ValidationError(
            "Invalid status. Must be PENDING, APPROVED, REJECTED, or ATTENDED"
        ) from None


def check_transition(current: str, target: str):
    """Raise unless `current -> target` is legal. Same status is a no-op, not an error."""
    if target not in ORGANIZER_TARGETS:
        raise ValidationError(f"Status can only be set to {', '.join(ORGANIZER_TARGETS)}")
    if current == target:
        return
    if target not in TRANSITIONS.get(current, set()):
        if target == ATTENDED:
            raise InvalidTransitionError("Only approved registrations can be marked as attended")
        raise InvalidTransitionError(f"Cannot change registration from {current} to {target}")


class RegistrationService:
    def __init__(self, store: EventStore, clock: Callable = utcnow):
        self.store = store
        self.clock = clock

    @contextmanager
    def event_guard(self, event_id: int):
        """Serialize writers of one event; commit on success, roll back on any error."""
        with _event_lock(event_id):
            try:
                yield
                self.store.commit()
            except Exception:
                self.store.rollback()
                raise

    def _load_event(self, event_id: int, lock: bool = False):
        event = self.store.lock_event(event_id) if lock else self.store.get_event(event_id)
        if event is None:
            raise NotFoundError("Event not found")
        return event

    def _load_registration(self, event_id: int, registration_id: int):
        registration = self.store.get_registration(registration_id)
        if registration is None or registration.event_id != event_id:
            raise NotFoundError("Registration not found")
        return registration

    def registration_count(self, event_id: int) -> int:
        return self.store.count_active_registrations(event_id)

    # ==========================================================
    # self-service
    # ==========================================================
    def register(self, event_id: int, actor: Actor):
        with self.event_guard(event_id):
            event = self._load_event(event_id, lock=True)

            if not can_view(event, actor):
                raise ForbiddenError("You don't have permission to register for this event")

            if event.registration_deadline and self.clock() > event.registration_deadline:
                logger.warning(f"late registration rejected: event={event_id} user={actor.id}")
                raise DeadlinePassedError()

            if self.store.find_registration(event_id, actor.id) is not None:
                raise DuplicateRegistrationError()

            if event.capacity is not None:
                current = self.store.count_active_registrations(event_id)
                if current >= event.capacity:
                    logger.warning(f"event full: event={event_id} capacity={event.capacity} user={actor.id}")
                    raise CapacityExceededError()

            status = PENDING if event.requires_approval else APPROVED
            registration = self.store.create_registration(event_id, actor.id, status, user_name=actor.name)
            self.store.add_notification(
                event.organizer_id,
                f"{actor.name or actor.id} has registered for your event: {event.title}",
            )

        logger.info(f"registered: event={event_id} user={actor.id} status={status}")
        self.store.refresh(registration)
        return registration

    def cancel(self, event_id: int, actor: Actor):
        with self.event_guard(event_id):
            event = self._load_event(event_id, lock=True)
            registration = self.store.find_registration(event_id, actor.id)
            if registration is None or registration.status not in CANCELLABLE:
                raise NotRegisteredError()

            self.store.delete_registration(registration)
            self.store.add_notification(
                event.organizer_id,
                f"{actor.name or actor.id} has cancelled their registration for your event: {event.title}",
            )

        logger.info(f"registration cancelled: event={event_id} user={actor.id}")

    # ==========================================================
    # organizer
    # ==========================================================
    def update_status(self, event_id: int, registration_id: int, new_status, actor: Actor):
        target = parse_status(new_status)
        changed = False

        with self.event_guard(event_id):
            event = self._load_event(event_id, lock=True)
            require_edit(event, actor, "You don't have permission to update registrations for this event")
            registration = self._load_registration(event_id, registration_id)

            check_transition(registration.status, target)
            if registration.status != target:
                previous = registration.status
                self.store.update_registration(registration, target)
                self.store.add_notification(registration.user_id, STATUS_MESSAGES[target].format(title=event.title))
                changed = True

        if changed:
            logger.info(f"registration {registration_id} on event {event_id}: {previous} -> {target} by {actor.id}")
        self.store.refresh(registration)
        return registration

    def delete_registration(self, event_id: int, registration_id: int, actor: Actor):
        with self.event_guard(event_id):
            event = self._load_event(event_id, lock=True)
            require_edit(event, actor, "You don't have permission to delete registrations for this event")
            registration = self._load_registration(event_id, registration_id)
            self.store.delete_registration(registration)

        logger.info(f"registration {registration_id} deleted from event {event_id} by {actor.id}")

    def list_registrations(
        self,
        event_id: int,
        actor: Actor,
        status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List:
        event = self._load_event(event_id)
        require_edit(event, actor, "You don't have permission to view registrations for this event")

        registrations = self.store.list_registrations(event_id, parse_status(status) if status else None)
        if search:
            needle = search.lower()
            registrations = [
                r for r in registrations
                if needle in (r.user_name or "").lower() or needle in r.user_id.lower()
            ]
        return registrations
