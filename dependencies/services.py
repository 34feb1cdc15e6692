from fastapi import Depends
from sqlalchemy.orm import Session

from database.db import get_db
from services.event_service import EventService
from services.registration_service import RegistrationService
from services.stores import AttendanceStore, EventStore, GradeStore


def get_event_store(db: Session = Depends(get_db)) -> EventStore:
    return EventStore(db)


def get_registration_service(store: EventStore = Depends(get_event_store)) -> RegistrationService:
    return RegistrationService(store)


def get_event_service(
    store: EventStore = Depends(get_event_store),
    registrations: RegistrationService = Depends(get_registration_service),
) -> EventService:
    return EventService(store, registrations)


def get_attendance_store(db: Session = Depends(get_db)) -> AttendanceStore:
    return AttendanceStore(db)


def get_grade_store(db: Session = Depends(get_db)) -> GradeStore:
    return GradeStore(db)
