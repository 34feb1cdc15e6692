import datetime as dt
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.enums import AttendanceStatus


class AttendanceCreate(BaseModel):
    student_id: int
    class_id: int
    date: date
    status: AttendanceStatus                 # Present, Absent, Late
    remarks: Optional[str] = Field(default=None, max_length=200)


class AttendanceUpdate(BaseModel):
    date: Optional[dt.date] = None
    status: Optional[AttendanceStatus] = None
    remarks: Optional[str] = Field(default=None, max_length=200)


class AttendanceEntry(BaseModel):
    student_id: int
    status: AttendanceStatus
    remarks: Optional[str] = Field(default=None, max_length=200)


class AttendanceMark(BaseModel):
    """One class, one day, many students."""
    class_id: int
    date: date
    entries: List[AttendanceEntry] = Field(..., min_length=1)


class Attendance(BaseModel):
    id: int
    student_id: int
    class_id: int
    date: date
    status: AttendanceStatus
    remarks: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
