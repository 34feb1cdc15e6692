"""
services/aggregation.py

Dashboard statistics derived from already-fetched records.

- Every function is pure and total: empty input gives zeros or the "N/A"
  sentinel, never an exception.
- Records may be ORM rows, pydantic schemas or plain dicts.
- Percentages use half-up rounding so 62.5% shows as 63%, like the dashboards.
"""

from collections import OrderedDict
from datetime import date
from math import floor
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from config.settings import settings
from models.enums import AttendanceStatus, RegistrationStatus

GRADE_BUCKETS = ("A", "B", "C", "D", "F")
GPA_EMPTY = "N/A"


def _field(record: Any, name: str, default=None):
    if isinstance(record, Mapping):
        return record.get(name, default)
    return getattr(record, name, default)


def _text(value) -> Optional[str]:
    # enums and plain strings both end up as their string value
    if value is None:
        return None
    return str(getattr(value, "value", value))


def _num(value: float):
    # 92.0 -> 92 for display
    return int(value) if float(value).is_integer() else value


def round_half_up(value: float) -> int:
    return int(floor(value + 0.5))


def percent(part: int, total: int) -> int:
    """round(part/total*100), 0 when total is 0."""
    if not total:
        return 0
    return round_half_up(part / total * 100)


def take_recent(records: Iterable[Any], n: int) -> List[Any]:
    # callers sort; this only slices
    return list(records)[: max(n, 0)]


# ==========================================================
# Attendance
# ==========================================================

def attendance_stats(records: Iterable[Any]) -> Dict[str, int]:
    present = absent = late = 0
    for record in records:
        status = _text(_field(record, "status"))
        if status == AttendanceStatus.PRESENT.value:
            present += 1
        elif status == AttendanceStatus.ABSENT.value:
            absent += 1
        elif status == AttendanceStatus.LATE.value:
            late += 1

    total = present + absent + late
    return {
        "present": present,
        "absent": absent,
        "late": late,
        "total": total,
        "rate": percent(present, total),
        # computed independently, the three rates may not sum to 100
        "absent_rate": percent(absent, total),
        "late_rate": percent(late, total),
    }


def _shift_month(year: int, month: int, back: int):
    index = year * 12 + (month - 1) - back
    return index // 12, index % 12 + 1


def monthly_attendance(records: Iterable[Any], months: int, today: date) -> List[Dict[str, Any]]:
    """
    Per-month attendance_stats for the last `months` calendar months, newest first.
    A month without records reports rate None rather than 0%.
    """
    buckets = OrderedDict()
    for back in range(max(months, 0)):
        buckets[_shift_month(today.year, today.month, back)] = []

    for record in records:
        day = _field(record, "date")
        if day is None:
            continue
        key = (day.year, day.month)
        if key in buckets:
            buckets[key].append(record)

    rows = []
    for (year, month), month_records in buckets.items():
        stats = attendance_stats(month_records)
        if not stats["total"]:
            stats["rate"] = None
        rows.append({"month": f"{year:04d}-{month:02d}", **stats})
    return rows


# ==========================================================
# Grades
# ==========================================================

def _scores(grades: Sequence[Any]) -> List[float]:
    return [float(_field(g, "score")) for g in grades if _field(g, "score") is not None]


def format_gpa(mean_score: float) -> str:
    return f"{mean_score / settings.GPA_SCALE_DIVISOR:.2f}"


def grade_summary(grades: Iterable[Any]) -> Dict[str, Any]:
    """
    average is round(mean) clamped into [lowest, highest]. The clamp wins, so
    with fractional scores the average can be fractional too: [78.5, 78.5]
    gives 78.5, not 79.
    """
    grades = list(grades)
    scores = _scores(grades)
    if not scores:
        return {
            "average": 0,
            "highest": 0,
            "lowest": 0,
            "gpa": GPA_EMPTY,
            "highest_subject": "",
            "count": 0,
        }

    highest = max(scores)
    lowest = min(scores)
    mean = sum(scores) / len(scores)
    # rounding must not push the average outside the observed range
    average = min(max(round_half_up(mean), lowest), highest)
    top = next(g for g in grades if _field(g, "score") is not None and float(_field(g, "score")) == highest)

    return {
        "average": _num(average),
        "highest": _num(highest),
        "lowest": _num(lowest),
        "gpa": format_gpa(mean),
        "highest_subject": _field(top, "subject") or "",
        "count": len(scores),
    }


def _trend(average: int, baseline: Optional[float]) -> Optional[str]:
    if baseline is None:
        return None
    reference = round_half_up(baseline)
    if average > reference:
        return "up"
    if average < reference:
        return "down"
    return "stable"


def subject_summaries(grades: Iterable[Any], baseline: Optional[Mapping[str, float]] = None) -> List[Dict[str, Any]]:
    """
    One entry per subject in first-appearance order.

    trend stays None unless `baseline` has an average for that subject.
    """
    grouped = OrderedDict()
    for grade in grades:
        grouped.setdefault(_field(grade, "subject"), []).append(grade)

    summaries = []
    for subject, items in grouped.items():
        scores = _scores(items)
        average = round_half_up(sum(scores) / len(scores)) if scores else 0

        latest = None
        for item in items:
            created = _field(item, "created_at")
            if latest is None:
                latest = item
                continue
            latest_created = _field(latest, "created_at")
            if created is not None and (latest_created is None or created > latest_created):
                latest = item

        summaries.append({
            "subject": subject,
            "average": average,
            "last_grade": _field(latest, "letter_grade") if latest is not None else None,
            "count": len(items),
            "trend": _trend(average, (baseline or {}).get(subject)),
        })
    return summaries


def subject_averages(grades: Iterable[Any]) -> Dict[str, float]:
    """Raw mean score per subject, used as a trend baseline."""
    totals: Dict[str, List[float]] = {}
    for grade in grades:
        score = _field(grade, "score")
        if score is None:
            continue
        totals.setdefault(_field(grade, "subject"), []).append(float(score))
    return {subject: sum(values) / len(values) for subject, values in totals.items()}


def grade_bucket(letter: Optional[str]) -> Optional[str]:
    if not letter:
        return None
    head = letter.strip()[:1].upper()
    return head if head in GRADE_BUCKETS else None


def grade_distribution(grades: Iterable[Any]) -> Dict[str, Any]:
    counts = OrderedDict((bucket, 0) for bucket in GRADE_BUCKETS)
    for grade in grades:
        bucket = grade_bucket(_field(grade, "letter_grade"))
        if bucket:
            counts[bucket] += 1

    total = sum(counts.values())
    return {
        "total": total,
        "buckets": [
            {"grade": bucket, "count": count, "percentage": percent(count, total)}
            for bucket, count in counts.items()
        ],
    }


# ==========================================================
# Registrations
# ==========================================================

def registration_status_counts(registrations: Iterable[Any]) -> Dict[str, int]:
    counts = OrderedDict((status.value, 0) for status in RegistrationStatus)
    for registration in registrations:
        status = _text(_field(registration, "status"))
        if status in counts:
            counts[status] += 1

    total = sum(counts.values())
    return {
        **counts,
        "total": total,
        "active": total - counts[RegistrationStatus.REJECTED.value],
    }
