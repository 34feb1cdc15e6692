from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.security import get_current_actor
from dependencies.services import get_grade_store
from models.grades import Grade as GradeModel
from schemas.auth import Actor
from schemas.grades import Grade as GradeSchema, GradeCreate, GradeUpdate
from services.aggregation import grade_distribution, grade_summary, subject_averages, subject_summaries
from services.errors import NotFoundError, ValidationError
from services.permissions import require_staff
from services.stores import GradeStore

router = APIRouter(prefix="/grades", tags=["grades"])


# ==========================================================
# [1] create / list
# ==========================================================

# ✅ [CREATE] grade entry (teacher/admin)
@router.post("/", status_code=201)
def create_grade(
    payload: GradeCreate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    require_staff(actor, "Only teachers and admins can record grades")
    grade = GradeModel(**payload.model_dump())
    db.add(grade)
    db.commit()
    db.refresh(grade)
    return {
        "success": True,
        "data": GradeSchema.model_validate(grade),
        "message": "Grade created successfully",
    }


# ✅ [READ] filtered list, newest first
@router.get("/")
def read_grades(
    student_id: Optional[int] = None,
    term: Optional[str] = None,
    subject: Optional[str] = None,
    actor: Actor = Depends(get_current_actor),
    store: GradeStore = Depends(get_grade_store),
):
    grades = store.list_grades(student_id=student_id, term=term, subject=subject)
    return {"success": True, "data": [GradeSchema.model_validate(g) for g in grades]}


# ==========================================================
# [2] summaries
# ==========================================================

# ✅ [SUMMARY] average / highest / lowest / GPA ("N/A" without grades)
@router.get("/summary")
def read_grade_summary(
    student_id: Optional[int] = None,
    term: Optional[str] = None,
    subject: Optional[str] = None,
    actor: Actor = Depends(get_current_actor),
    store: GradeStore = Depends(get_grade_store),
):
    grades = store.list_grades(student_id=student_id, term=term, subject=subject)
    return {"success": True, "data": grade_summary(grades)}


# ✅ [SUBJECTS] per-subject average and latest letter; trend only against baseline_term
@router.get("/subjects")
def read_subject_summaries(
    student_id: Optional[int] = None,
    term: Optional[str] = None,
    baseline_term: Optional[str] = None,
    actor: Actor = Depends(get_current_actor),
    store: GradeStore = Depends(get_grade_store),
):
    grades = store.list_grades(student_id=student_id, term=term)
    baseline = None
    if baseline_term:
        if baseline_term == term:
            raise ValidationError("baseline_term must differ from term")
        baseline = subject_averages(store.list_grades(student_id=student_id, term=baseline_term))
    return {"success": True, "data": subject_summaries(grades, baseline)}


# ✅ [DISTRIBUTION] A/B/C/D/F counts and percentages
@router.get("/distribution")
def read_grade_distribution(
    student_id: Optional[int] = None,
    term: Optional[str] = None,
    subject: Optional[str] = None,
    actor: Actor = Depends(get_current_actor),
    store: GradeStore = Depends(get_grade_store),
):
    grades = store.list_grades(student_id=student_id, term=term, subject=subject)
    return {"success": True, "data": grade_distribution(grades)}


# ==========================================================
# [3] dynamic routes
# ==========================================================

def _get_or_404(store: GradeStore, grade_id: int):
    grade = store.get(grade_id)
    if grade is None:
        raise NotFoundError("Grade not found")
    return grade


# ✅ [READ] single grade
@router.get("/{grade_id}")
def read_grade(
    grade_id: int,
    actor: Actor = Depends(get_current_actor),
    store: GradeStore = Depends(get_grade_store),
):
    return {"success": True, "data": GradeSchema.model_validate(_get_or_404(store, grade_id))}


# ✅ [UPDATE] partial update (teacher/admin)
@router.put("/{grade_id}")
def update_grade(
    grade_id: int,
    payload: GradeUpdate,
    actor: Actor = Depends(get_current_actor),
    store: GradeStore = Depends(get_grade_store),
    db: Session = Depends(get_db),
):
    require_staff(actor, "Only teachers and admins can edit grades")
    grade = _get_or_404(store, grade_id)

    changes = payload.model_dump(exclude_unset=True)
    for required in ("subject", "term", "score"):
        if required in changes and changes[required] is None:
            raise ValidationError(f"{required} cannot be empty")
    for key, value in changes.items():
        setattr(grade, key, value)

    db.commit()
    db.refresh(grade)
    return {
        "success": True,
        "data": GradeSchema.model_validate(grade),
        "message": "Grade updated successfully",
    }


# ✅ [DELETE] teacher/admin
@router.delete("/{grade_id}")
def delete_grade(
    grade_id: int,
    actor: Actor = Depends(get_current_actor),
    store: GradeStore = Depends(get_grade_store),
    db: Session = Depends(get_db),
):
    require_staff(actor, "Only teachers and admins can delete grades")
    grade = _get_or_404(store, grade_id)
    db.delete(grade)
    db.commit()
    return {
        "success": True,
        "data": {"grade_id": grade_id},
        "message": "Grade deleted successfully",
    }
