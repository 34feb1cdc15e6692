import csv
import io
import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from config.settings import settings
from database.db import get_db
from dependencies.security import get_current_actor
from dependencies.services import get_attendance_store
from models.attendance import Attendance as AttendanceModel
from models.enums import AttendanceStatus
from schemas.attendance import Attendance as AttendanceSchema, AttendanceCreate, AttendanceMark, AttendanceUpdate
from schemas.auth import Actor
from services.aggregation import attendance_stats, monthly_attendance, take_recent
from services.errors import NotFoundError, ValidationError
from services.permissions import require_admin, require_staff
from services.stores import AttendanceStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/attendance", tags=["attendance"])

EXPORT_COLUMNS = ["id", "student_id", "class_id", "date", "status", "remarks"]


class AttendanceFilters:
    """Query filters shared by list, summary and export."""

    def __init__(
        self,
        student_id: Optional[int] = None,
        class_id: Optional[int] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        status: Optional[AttendanceStatus] = None,
    ):
        self.student_id = student_id
        self.class_id = class_id
        self.date_from = date_from
        self.date_to = date_to
        self.status = status.value if status else None

    def apply(self, store: AttendanceStore):
        return store.list_attendance(
            student_id=self.student_id,
            class_id=self.class_id,
            date_from=self.date_from,
            date_to=self.date_to,
            status=self.status,
        )


def _first_day_months_back(today: date, months: int) -> date:
    index = today.year * 12 + (today.month - 1) - (months - 1)
    return date(index // 12, index % 12 + 1, 1)


# ==========================================================
# [1] marking
# ==========================================================

# ✅ [CREATE] single record (teacher/admin)
@router.post("/", status_code=201)
def create_attendance(
    payload: AttendanceCreate,
    actor: Actor = Depends(get_current_actor),
    store: AttendanceStore = Depends(get_attendance_store),
    db: Session = Depends(get_db),
):
    require_staff(actor, "Only teachers and admins can record attendance")
    if store.find(payload.student_id, payload.class_id, payload.date):
        raise ValidationError("Attendance for this student, class and date already exists")

    data = payload.model_dump()
    data["status"] = payload.status.value
    record = AttendanceModel(**data)
    db.add(record)
    db.commit()
    db.refresh(record)
    return {
        "success": True,
        "data": AttendanceSchema.model_validate(record),
        "message": "Attendance record created successfully",
    }


# ✅ [MARK] whole class for one day; re-marking a student overwrites the status
@router.post("/mark")
def mark_attendance(
    payload: AttendanceMark,
    actor: Actor = Depends(get_current_actor),
    store: AttendanceStore = Depends(get_attendance_store),
    db: Session = Depends(get_db),
):
    require_staff(actor, "Only teachers and admins can record attendance")

    student_ids = [entry.student_id for entry in payload.entries]
    if len(set(student_ids)) != len(student_ids):
        raise ValidationError("Each student may appear only once per marking")

    created = updated = 0
    records = []
    for entry in payload.entries:
        record = store.find(entry.student_id, payload.class_id, payload.date)
        if record is None:
            record = AttendanceModel(
                student_id=entry.student_id,
                class_id=payload.class_id,
                date=payload.date,
                status=entry.status.value,
                remarks=entry.remarks,
            )
            db.add(record)
            created += 1
        else:
            record.status = entry.status.value
            record.remarks = entry.remarks
            updated += 1
        records.append(record)

    db.commit()
    for record in records:
        db.refresh(record)
    logger.info(f"attendance marked: class={payload.class_id} date={payload.date} created={created} updated={updated} by {actor.id}")

    return {
        "success": True,
        "data": {
            "created": created,
            "updated": updated,
            "summary": attendance_stats(records),
        },
        "message": "Attendance marked successfully",
    }


# ==========================================================
# [2] read / summaries
# ==========================================================

# ✅ [READ] filtered list, newest first
@router.get("/")
def read_attendance_list(
    filters: AttendanceFilters = Depends(),
    actor: Actor = Depends(get_current_actor),
    store: AttendanceStore = Depends(get_attendance_store),
):
    records = filters.apply(store)
    return {
        "success": True,
        "data": [AttendanceSchema.model_validate(r) for r in records],
    }


# ✅ [SUMMARY] present/absent/late counts and rates + recent records
@router.get("/summary")
def read_attendance_summary(
    filters: AttendanceFilters = Depends(),
    recent: int = Query(settings.RECENT_RECORDS_LIMIT, ge=0, le=100),
    actor: Actor = Depends(get_current_actor),
    store: AttendanceStore = Depends(get_attendance_store),
):
    records = filters.apply(store)
    return {
        "success": True,
        "data": {
            **attendance_stats(records),
            "recent": [AttendanceSchema.model_validate(r) for r in take_recent(records, recent)],
        },
    }


# ✅ [MONTHLY] per-month summary of one student for the last N months
@router.get("/summary/monthly")
def read_monthly_attendance(
    student_id: int,
    months: int = Query(3, ge=1, le=24),
    actor: Actor = Depends(get_current_actor),
    store: AttendanceStore = Depends(get_attendance_store),
):
    today = date.today()
    records = store.list_attendance(student_id=student_id, date_from=_first_day_months_back(today, months), date_to=today)
    return {
        "success": True,
        "data": monthly_attendance(records, months, today),
    }


# ✅ [EXPORT] filtered records as CSV
@router.get("/export")
def export_attendance(
    filters: AttendanceFilters = Depends(),
    actor: Actor = Depends(get_current_actor),
    store: AttendanceStore = Depends(get_attendance_store),
):
    require_staff(actor, "Only teachers and admins can export attendance")
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(EXPORT_COLUMNS)
    for r in filters.apply(store):
        writer.writerow([r.id, r.student_id, r.class_id, r.date.isoformat(), r.status, r.remarks or ""])
    buffer.seek(0)

    return StreamingResponse(
        iter([buffer.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="attendance.csv"'},
    )


# ==========================================================
# [3] dynamic routes
# ==========================================================

def _get_or_404(store: AttendanceStore, attendance_id: int):
    record = store.get(attendance_id)
    if record is None:
        raise NotFoundError("Attendance record not found")
    return record


# ✅ [READ] single record
@router.get("/{attendance_id}")
def read_attendance(
    attendance_id: int,
    actor: Actor = Depends(get_current_actor),
    store: AttendanceStore = Depends(get_attendance_store),
):
    return {"success": True, "data": AttendanceSchema.model_validate(_get_or_404(store, attendance_id))}


# ✅ [UPDATE] admin correction
@router.put("/{attendance_id}")
def update_attendance(
    attendance_id: int,
    payload: AttendanceUpdate,
    actor: Actor = Depends(get_current_actor),
    store: AttendanceStore = Depends(get_attendance_store),
    db: Session = Depends(get_db),
):
    require_admin(actor, "Only admins can edit attendance records")
    record = _get_or_404(store, attendance_id)

    changes = payload.model_dump(exclude_unset=True)
    if "status" in changes:
        if changes["status"] is None:
            raise ValidationError("status cannot be empty")
        changes["status"] = changes["status"].value
    if changes.get("date") and changes["date"] != record.date:
        clash = store.find(record.student_id, record.class_id, changes["date"])
        if clash is not None:
            raise ValidationError("Attendance for this student, class and date already exists")
    for key, value in changes.items():
        if key == "date" and value is None:
            continue
        setattr(record, key, value)

    db.commit()
    db.refresh(record)
    return {
        "success": True,
        "data": AttendanceSchema.model_validate(record),
        "message": "Attendance record updated successfully",
    }


# ✅ [DELETE] admin only
@router.delete("/{attendance_id}")
def delete_attendance(
    attendance_id: int,
    actor: Actor = Depends(get_current_actor),
    store: AttendanceStore = Depends(get_attendance_store),
    db: Session = Depends(get_db),
):
    require_admin(actor, "Only admins can delete attendance records")
    record = _get_or_404(store, attendance_id)
    db.delete(record)
    db.commit()
    return {
        "success": True,
        "data": {"attendance_id": attendance_id},
        "message": "Attendance record deleted successfully",
    }
