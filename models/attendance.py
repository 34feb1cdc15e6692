from sqlalchemy import Column, Date, DateTime, Integer, String, UniqueConstraint
from database.db import Base
from utils.clock import utcnow


class Attendance(Base):
    __tablename__ = "attendance"  # daily attendance per student and class
    __table_args__ = (UniqueConstraint("student_id", "class_id", "date", name="uq_attendance_student_class_date"),)

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, nullable=False, index=True)
    class_id = Column(Integer, nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    status = Column(String(20), nullable=False)               # Present, Absent, Late
    remarks = Column(String(200))
    created_at = Column(DateTime, nullable=False, default=utcnow)
