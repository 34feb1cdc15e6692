from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class GradeCreate(BaseModel):
    student_id: int
    subject: str = Field(..., min_length=1, max_length=100)
    term: str = Field(..., min_length=1, max_length=50)
    score: float = Field(..., ge=0, le=100)
    letter_grade: Optional[str] = Field(default=None, max_length=5)    # assigned by the teacher
    remarks: Optional[str] = Field(default=None, max_length=200)


class GradeUpdate(BaseModel):
    subject: Optional[str] = Field(default=None, min_length=1, max_length=100)
    term: Optional[str] = Field(default=None, min_length=1, max_length=50)
    score: Optional[float] = Field(default=None, ge=0, le=100)
    letter_grade: Optional[str] = Field(default=None, max_length=5)
    remarks: Optional[str] = Field(default=None, max_length=200)


class Grade(BaseModel):
    id: int
    student_id: int
    subject: str
    term: str
    score: float
    letter_grade: Optional[str] = None
    remarks: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
