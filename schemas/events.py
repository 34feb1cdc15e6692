import datetime as dt
from datetime import date, datetime, time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from models.enums import RegistrationStatus
from utils.clock import to_naive_utc


# ==========================================================
# [input] events
# ==========================================================
class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    category: str = Field(..., min_length=1, max_length=50)
    location: str = Field("", max_length=200)
    date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    capacity: Optional[int] = Field(default=None, ge=1)              # None = unlimited
    registration_deadline: Optional[datetime] = None
    is_public: bool = True
    requires_approval: bool = False

    @field_validator("registration_deadline")
    @classmethod
    def _deadline_utc(cls, v):
        return to_naive_utc(v) if v else v

    @model_validator(mode="after")
    def _check_times(self):
        if self.start_time and self.end_time and self.end_time < self.start_time:
            raise ValueError("end_time must not be earlier than start_time")
        return self


class EventUpdate(BaseModel):
    """Partial update: only the fields sent are applied."""
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    category: Optional[str] = Field(default=None, min_length=1, max_length=50)
    location: Optional[str] = Field(default=None, max_length=200)
    date: Optional[dt.date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    capacity: Optional[int] = Field(default=None, ge=1)
    registration_deadline: Optional[datetime] = None
    is_public: Optional[bool] = None
    requires_approval: Optional[bool] = None

    @field_validator("registration_deadline")
    @classmethod
    def _deadline_utc(cls, v):
        return to_naive_utc(v) if v else v


# ==========================================================
# [output] events
# ==========================================================
class EventOut(BaseModel):
    id: int
    title: str
    description: str
    category: str
    location: str
    date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    capacity: Optional[int] = None
    registration_deadline: Optional[datetime] = None
    is_public: bool
    requires_approval: bool
    organizer_id: str
    registrations: int = 0                   # non-REJECTED registrations

    model_config = ConfigDict(from_attributes=True)


class EventDetail(EventOut):
    is_registered: bool = False
    registration_status: Optional[RegistrationStatus] = None
    can_edit: bool = False


# ==========================================================
# registrations / notifications
# ==========================================================
class RegistrationOut(BaseModel):
    id: int
    event_id: int
    user_id: str
    user_name: Optional[str] = None
    status: RegistrationStatus
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MyRegistrationOut(RegistrationOut):
    event_title: str
    event_date: date


class RegistrationStatusUpdate(BaseModel):
    status: str                              # validated by the registration rules


class NotificationUpdate(BaseModel):
    is_read: bool


class NotificationOut(BaseModel):
    id: int
    message: str
    is_read: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
