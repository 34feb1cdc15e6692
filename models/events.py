from sqlalchemy import (
    Boolean, Column, Date, DateTime, ForeignKey, Integer, String, Text, Time, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from database.db import Base
from utils.clock import utcnow
from models.enums import RegistrationStatus


class Event(Base):
    __tablename__ = "events"  # school events open for registration

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    category = Column(String(50), nullable=False, index=True)   # e.g. academic, sports, arts
    location = Column(String(200), nullable=False, default="")
    date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    capacity = Column(Integer, nullable=True)                   # NULL = unlimited
    registration_deadline = Column(DateTime, nullable=True)     # naive UTC
    is_public = Column(Boolean, nullable=False, default=True)
    requires_approval = Column(Boolean, nullable=False, default=False)
    organizer_id = Column(String(64), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    registrations = relationship(
        "Registration",
        back_populates="event",
        cascade="all, delete-orphan",
    )


class Registration(Base):
    __tablename__ = "event_registrations"
    __table_args__ = (UniqueConstraint("event_id", "user_id", name="uq_registration_event_user"),)

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    user_name = Column(String(100), nullable=True)              # display name at registration time
    status = Column(String(20), nullable=False, default=RegistrationStatus.PENDING.value)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    event = relationship("Event", back_populates="registrations")
