from sqlalchemy import Column, DateTime, Float, Integer, String
from database.db import Base
from utils.clock import utcnow


class Grade(Base):
    __tablename__ = "grades"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, nullable=False, index=True)
    subject = Column(String(100), nullable=False, index=True)
    term = Column(String(50), nullable=False, index=True)     # e.g. "2024-1", "Fall 2024"
    score = Column(Float, nullable=False)                     # 0-100
    letter_grade = Column(String(5))                          # A, B+, C- ... (assigned by the teacher)
    remarks = Column(String(200))
    created_at = Column(DateTime, nullable=False, default=utcnow)
