import threading
from datetime import datetime, timedelta

import pytest

from models.enums import Role
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
from services import registration_service
from services.event_service import EventService
from services.registration_service import RegistrationService
from services.stores import EventStore

ORGANIZER = Actor(id="teacher-1", role=Role.TEACHER, name="Ms. Lee")
ADMIN = Actor(id="admin-1", role=Role.ADMIN)
OTHER_TEACHER = Actor(id="teacher-2", role=Role.TEACHER)
USER_A = Actor(id="student-a", role=Role.STUDENT, name="Alice")
USER_B = Actor(id="student-b", role=Role.STUDENT, name="Bob")
USER_C = Actor(id="student-c", role=Role.STUDENT, name="Chloe")


@pytest.fixture
def service(db):
    return RegistrationService(EventStore(db))


def test_capacity_scenario(service, make_event):
    event = make_event(capacity=2, requires_approval=False)

    assert service.register(event.id, USER_A).status == "APPROVED"
    assert service.registration_count(event.id) == 1
    assert service.register(event.id, USER_B).status == "APPROVED"
    assert service.registration_count(event.id) == 2

    with pytest.raises(CapacityExceededError):
        service.register(event.id, USER_C)
    assert service.registration_count(event.id) == 2


def test_requires_approval_starts_pending(service, make_event):
    event = make_event(requires_approval=True)
    assert service.register(event.id, USER_A).status == "PENDING"


def test_register_twice_is_duplicate(service, make_event):
    event = make_event()
    service.register(event.id, USER_A)
    with pytest.raises(DuplicateRegistrationError):
        service.register(event.id, USER_A)
    assert service.registration_count(event.id) == 1


def test_duplicate_reported_before_capacity(service, make_event):
    event = make_event(capacity=1)
    service.register(event.id, USER_A)
    with pytest.raises(DuplicateRegistrationError):
        service.register(event.id, USER_A)


def test_register_then_cancel_restores_count(service, make_event):
    event = make_event(capacity=5)
    service.register(event.id, USER_B)
    before = service.registration_count(event.id)

    service.register(event.id, USER_A)
    service.cancel(event.id, USER_A)

    assert service.registration_count(event.id) == before
    # cancelled users may register again
    assert service.register(event.id, USER_A).status == "APPROVED"


def test_deadline_passed(db, make_event):
    now = datetime(2024, 5, 1, 12, 0)
    event = make_event(registration_deadline=now - timedelta(minutes=1))
    service = RegistrationService(EventStore(db), clock=lambda: now)

    with pytest.raises(DeadlinePassedError):
        service.register(event.id, USER_A)


def test_deadline_is_inclusive(db, make_event):
    now = datetime(2024, 5, 1, 12, 0)
    event = make_event(registration_deadline=now)
    service = RegistrationService(EventStore(db), clock=lambda: now)
    assert service.register(event.id, USER_A).status == "APPROVED"


def test_unknown_event(service):
    with pytest.raises(NotFoundError):
        service.register(999, USER_A)


def test_private_event_only_for_editors(service, make_event):
    event = make_event(is_public=False)
    with pytest.raises(ForbiddenError):
        service.register(event.id, USER_A)
    assert service.register(event.id, ADMIN).status == "APPROVED"


def test_cancel_without_registration(service, make_event):
    event = make_event()
    with pytest.raises(NotRegisteredError):
        service.cancel(event.id, USER_A)


def test_attended_requires_approved(service, make_event):
    event = make_event(requires_approval=True)
    registration = service.register(event.id, USER_A)

    with pytest.raises(InvalidTransitionError):
        service.update_status(event.id, registration.id, "ATTENDED", ORGANIZER)

    service.update_status(event.id, registration.id, "APPROVED", ORGANIZER)
    updated = service.update_status(event.id, registration.id, "ATTENDED", ORGANIZER)
    assert updated.status == "ATTENDED"


def test_same_status_twice_is_idempotent(service, make_event):
    event = make_event(requires_approval=True)
    registration = service.register(event.id, USER_A)

    service.update_status(event.id, registration.id, "APPROVED", ORGANIZER)
    again = service.update_status(event.id, registration.id, "APPROVED", ORGANIZER)
    assert again.status == "APPROVED"


@pytest.mark.parametrize("start, target", [
    ("REJECTED", "APPROVED"),
    ("REJECTED", "ATTENDED"),
    ("ATTENDED", "REJECTED"),
    ("ATTENDED", "APPROVED"),
])
def test_terminal_states_do_not_move(service, make_event, start, target):
    event = make_event()
    registration = service.register(event.id, USER_A)
    if start == "ATTENDED":
        service.update_status(event.id, registration.id, "ATTENDED", ORGANIZER)
    else:
        service.update_status(event.id, registration.id, start, ORGANIZER)

    with pytest.raises(InvalidTransitionError):
        service.update_status(event.id, registration.id, target, ORGANIZER)


@pytest.mark.parametrize("status", ["PENDING", "CANCELLED", ""])
def test_invalid_target_status(service, make_event, status):
    event = make_event()
    registration = service.register(event.id, USER_A)
    with pytest.raises(ValidationError):
        service.update_status(event.id, registration.id, status, ORGANIZER)


def test_rejected_frees_a_slot(service, make_event):
    event = make_event(capacity=1)
    registration = service.register(event.id, USER_A)
    with pytest.raises(CapacityExceededError):
        service.register(event.id, USER_B)

    service.update_status(event.id, registration.id, "REJECTED", ORGANIZER)
    assert service.registration_count(event.id) == 0
    assert service.register(event.id, USER_B).status == "APPROVED"


def test_rejected_registration_cannot_be_cancelled_or_redone(service, make_event):
    event = make_event()
    registration = service.register(event.id, USER_A)
    service.update_status(event.id, registration.id, "REJECTED", ORGANIZER)

    with pytest.raises(NotRegisteredError):
        service.cancel(event.id, USER_A)
    with pytest.raises(DuplicateRegistrationError):
        service.register(event.id, USER_A)


def test_only_organizer_or_admin_updates(service, make_event):
    event = make_event()
    registration = service.register(event.id, USER_A)

    with pytest.raises(ForbiddenError):
        service.update_status(event.id, registration.id, "REJECTED", OTHER_TEACHER)
    with pytest.raises(ForbiddenError):
        service.update_status(event.id, registration.id, "REJECTED", USER_A)
    assert service.update_status(event.id, registration.id, "REJECTED", ADMIN).status == "REJECTED"


def test_registration_must_belong_to_event(service, make_event):
    first = make_event()
    second = make_event(title="Sports Day")
    registration = service.register(first.id, USER_A)

    with pytest.raises(NotFoundError):
        service.update_status(second.id, registration.id, "APPROVED", ORGANIZER)
    with pytest.raises(NotFoundError):
        service.delete_registration(second.id, registration.id, ORGANIZER)


def test_delete_registration_any_state(service, make_event):
    event = make_event()
    registration = service.register(event.id, USER_A)
    service.update_status(event.id, registration.id, "ATTENDED", ORGANIZER)

    with pytest.raises(ForbiddenError):
        service.delete_registration(event.id, registration.id, USER_B)

    service.delete_registration(event.id, registration.id, ORGANIZER)
    assert service.registration_count(event.id) == 0


def test_notifications_follow_transitions(db, service, make_event):
    event = make_event(requires_approval=True)
    registration = service.register(event.id, USER_A)
    service.update_status(event.id, registration.id, "APPROVED", ORGANIZER)
    service.update_status(event.id, registration.id, "APPROVED", ORGANIZER)

    store = EventStore(db)
    organizer_inbox = store.list_notifications(ORGANIZER.id)
    user_inbox = store.list_notifications(USER_A.id)
    assert "Alice has registered" in organizer_inbox[0].message
    # the idempotent second approval does not notify again
    assert len(user_inbox) == 1
    assert "approved" in user_inbox[0].message


def test_list_registrations_filters(service, make_event):
    event = make_event(requires_approval=True)
    first = service.register(event.id, USER_A)
    service.register(event.id, USER_B)
    service.update_status(event.id, first.id, "APPROVED", ORGANIZER)

    assert [r.user_id for r in service.list_registrations(event.id, ORGANIZER, status="APPROVED")] == ["student-a"]
    assert [r.user_id for r in service.list_registrations(event.id, ORGANIZER, search="bo")] == ["student-b"]
    with pytest.raises(ForbiddenError):
        service.list_registrations(event.id, USER_A)


def test_concurrent_registrations_never_exceed_capacity(session_factory, make_event):
    event = make_event(capacity=3)
    results = []
    barrier = threading.Barrier(10)

    def attempt(n):
        session = session_factory()
        try:
            service = RegistrationService(EventStore(session))
            barrier.wait()
            try:
                service.register(event.id, Actor(id=f"user-{n}", role=Role.STUDENT))
                results.append("ok")
            except CapacityExceededError:
                results.append("full")
        finally:
            session.close()

    threads = [threading.Thread(target=attempt, args=(n,)) for n in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count("ok") == 3
    assert results.count("full") == 7

    session = session_factory()
    try:
        assert EventStore(session).count_active_registrations(event.id) == 3
    finally:
        session.close()


def test_deleting_event_releases_its_lock(service, make_event):
    event = make_event()
    service.register(event.id, USER_A)
    assert event.id in registration_service._locks

    EventService(service.store, service).delete(event.id, ORGANIZER)
    assert event.id not in registration_service._locks
