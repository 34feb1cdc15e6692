"""
services/stores.py

SQLAlchemy-backed stores. The registration rules and the record routers only
talk to these classes, never to the Session directly.
"""

from datetime import date
from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from models.attendance import Attendance as AttendanceModel
from models.enums import RegistrationStatus
from models.events import Event as EventModel, Registration as RegistrationModel
from models.grades import Grade as GradeModel
from models.notifications import Notification as NotificationModel


class EventStore:
    def __init__(self, db: Session):
        self.db = db

    # ---------- events ----------
    def get_event(self, event_id: int) -> Optional[EventModel]:
        return self.db.query(EventModel).filter(EventModel.id == event_id).first()

    def lock_event(self, event_id: int) -> Optional[EventModel]:
        # row lock for multi-process deployments (ignored by SQLite)
        return (
            self.db.query(EventModel)
            .filter(EventModel.id == event_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def query_events(
        self,
        category: Optional[str] = None,
        search: Optional[str] = None,
        on_date: Optional[date] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ):
        query = self.db.query(EventModel)
        if category and category != "all":
            query = query.filter(EventModel.category == category)
        if search:
            pattern = f"%{search.lower()}%"
            query = query.filter(or_(
                func.lower(EventModel.title).like(pattern),
                func.lower(EventModel.description).like(pattern),
                func.lower(EventModel.location).like(pattern),
            ))
        if on_date:
            query = query.filter(EventModel.date == on_date)
        else:
            if start_date:
                query = query.filter(EventModel.date >= start_date)
            if end_date:
                query = query.filter(EventModel.date <= end_date)
        return query.order_by(EventModel.date.asc(), EventModel.id.asc())

    def add_event(self, **fields) -> EventModel:
        event = EventModel(**fields)
        self.db.add(event)
        self.db.flush()
        return event

    def delete_event(self, event: EventModel):
        self.db.delete(event)
        self.db.flush()

    # ---------- registrations ----------
    def list_registrations(self, event_id: int, status: Optional[str] = None) -> List[RegistrationModel]:
        query = self.db.query(RegistrationModel).filter(RegistrationModel.event_id == event_id)
        if status:
            query = query.filter(RegistrationModel.status == status)
        return query.order_by(RegistrationModel.created_at.desc(), RegistrationModel.id.desc()).all()

    def list_user_registrations(self, user_id: str) -> List[RegistrationModel]:
        return (
            self.db.query(RegistrationModel)
            .filter(RegistrationModel.user_id == user_id)
            .order_by(RegistrationModel.created_at.desc(), RegistrationModel.id.desc())
            .all()
        )

    def get_registration(self, registration_id: int) -> Optional[RegistrationModel]:
        return self.db.query(RegistrationModel).filter(RegistrationModel.id == registration_id).first()

    def find_registration(self, event_id: int, user_id: str) -> Optional[RegistrationModel]:
        return (
            self.db.query(RegistrationModel)
            .filter(RegistrationModel.event_id == event_id, RegistrationModel.user_id == user_id)
            .first()
        )

    def count_active_registrations(self, event_id: int) -> int:
        return (
            self.db.query(func.count(RegistrationModel.id))
            .filter(RegistrationModel.event_id == event_id)
            .filter(RegistrationModel.status != RegistrationStatus.REJECTED.value)
            .scalar()
        ) or 0

    def active_counts(self, event_ids: List[int]) -> dict:
        if not event_ids:
            return {}
        rows = (
            self.db.query(RegistrationModel.event_id, func.count(RegistrationModel.id))
            .filter(RegistrationModel.event_id.in_(event_ids))
            .filter(RegistrationModel.status != RegistrationStatus.REJECTED.value)
            .group_by(RegistrationModel.event_id)
            .all()
        )
        return {event_id: count for event_id, count in rows}

    def create_registration(self, event_id: int, user_id: str, status: str, user_name: str = None) -> RegistrationModel:
        registration = RegistrationModel(event_id=event_id, user_id=user_id, user_name=user_name, status=status)
        self.db.add(registration)
        self.db.flush()
        return registration

    def update_registration(self, registration: RegistrationModel, status: str) -> RegistrationModel:
        registration.status = status
        self.db.flush()
        return registration

    def delete_registration(self, registration: RegistrationModel):
        self.db.delete(registration)
        self.db.flush()

    # ---------- notifications ----------
    def add_notification(self, user_id: str, message: str) -> NotificationModel:
        notification = NotificationModel(user_id=user_id, message=message)
        self.db.add(notification)
        return notification

    def list_notifications(self, user_id: str, unread_only: bool = False) -> List[NotificationModel]:
        query = self.db.query(NotificationModel).filter(NotificationModel.user_id == user_id)
        if unread_only:
            query = query.filter(NotificationModel.is_read.is_(False))
        return query.order_by(NotificationModel.created_at.desc(), NotificationModel.id.desc()).all()

    def get_notification(self, notification_id: int) -> Optional[NotificationModel]:
        return self.db.get(NotificationModel, notification_id)

    def set_notification_read(self, notification: NotificationModel, is_read: bool) -> NotificationModel:
        notification.is_read = is_read
        self.db.flush()
        return notification

    def mark_all_read(self, user_id: str) -> int:
        return (
            self.db.query(NotificationModel)
            .filter(NotificationModel.user_id == user_id, NotificationModel.is_read.is_(False))
            .update({NotificationModel.is_read: True}, synchronize_session=False)
        )

    def delete_notification(self, notification: NotificationModel):
        self.db.delete(notification)
        self.db.flush()

    # ---------- transaction ----------
    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()

    def refresh(self, obj):
        self.db.refresh(obj)


class AttendanceStore:
    def __init__(self, db: Session):
        self.db = db

    def get(self, attendance_id: int) -> Optional[AttendanceModel]:
        return self.db.query(AttendanceModel).filter(AttendanceModel.id == attendance_id).first()

    def find(self, student_id: int, class_id: int, on_date: date) -> Optional[AttendanceModel]:
        return (
            self.db.query(AttendanceModel)
            .filter(
                AttendanceModel.student_id == student_id,
                AttendanceModel.class_id == class_id,
                AttendanceModel.date == on_date,
            )
            .first()
        )

    def list_attendance(
        self,
        student_id: Optional[int] = None,
        class_id: Optional[int] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        status: Optional[str] = None,
    ) -> List[AttendanceModel]:
        query = self.db.query(AttendanceModel)
        if student_id is not None:
            query = query.filter(AttendanceModel.student_id == student_id)
        if class_id is not None:
            query = query.filter(AttendanceModel.class_id == class_id)
        if date_from:
            query = query.filter(AttendanceModel.date >= date_from)
        if date_to:
            query = query.filter(AttendanceModel.date <= date_to)
        if status:
            query = query.filter(AttendanceModel.status == status)
        return query.order_by(AttendanceModel.date.desc(), AttendanceModel.id.desc()).all()


class GradeStore:
    def __init__(self, db: Session):
        self.db = db

    def get(self, grade_id: int) -> Optional[GradeModel]:
        return self.db.query(GradeModel).filter(GradeModel.id == grade_id).first()

    def list_grades(
        self,
        student_id: Optional[int] = None,
        term: Optional[str] = None,
        subject: Optional[str] = None,
    ) -> List[GradeModel]:
        query = self.db.query(GradeModel)
        if student_id is not None:
            query = query.filter(GradeModel.student_id == student_id)
        if term:
            query = query.filter(GradeModel.term == term)
        if subject:
            query = query.filter(GradeModel.subject == subject)
        return query.order_by(GradeModel.created_at.desc(), GradeModel.id.desc()).all()
