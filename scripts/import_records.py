"""
CSV -> DB import for seeding a dashboard.

    python -m scripts.import_records attendance data/attendance.csv
    python -m scripts.import_records grades data/grades.csv
    python -m scripts.import_records events data/events.csv

Rows go through the same schemas as the API, so a bad row stops the import
before anything is committed.
"""

import csv
import sys

from sqlalchemy.orm import Session

from database.db import SessionLocal, init_db
from models.attendance import Attendance as AttendanceModel
from models.events import Event as EventModel
from models.grades import Grade as GradeModel
from schemas.attendance import AttendanceCreate
from schemas.events import EventCreate
from schemas.grades import GradeCreate


def _rows(path: str):
    with open(path, newline="", encoding="utf-8-sig") as csvfile:
        # empty cells -> missing field, so schema defaults apply
        for row in csv.DictReader(csvfile):
            yield {key: value for key, value in row.items() if value not in ("", None)}


def import_attendance(db: Session, path: str) -> int:
    count = 0
    for row in _rows(path):
        record = AttendanceCreate(**row)
        db.add(AttendanceModel(**record.model_dump() | {"status": record.status.value}))
        count += 1
    db.commit()
    return count


def import_grades(db: Session, path: str) -> int:
    count = 0
    for row in _rows(path):
        db.add(GradeModel(**GradeCreate(**row).model_dump()))
        count += 1
    db.commit()
    return count


def import_events(db: Session, path: str) -> int:
    """Needs an organizer_id column; the rest follows EventCreate."""
    count = 0
    for row in _rows(path):
        organizer_id = row.pop("organizer_id")
        db.add(EventModel(organizer_id=organizer_id, **EventCreate(**row).model_dump()))
        count += 1
    db.commit()
    return count


IMPORTERS = {
    "attendance": import_attendance,
    "grades": import_grades,
    "events": import_events,
}


def main(argv=None):
    argv = argv if argv is not None else sys.argv[1:]
    if len(argv) != 2 or argv[0] not in IMPORTERS:
        print(f"usage: python -m scripts.import_records {{{'|'.join(IMPORTERS)}}} <csv path>")
        return 1

    kind, path = argv
    init_db()
    db: Session = SessionLocal()
    try:
        count = IMPORTERS[kind](db, path)
    finally:
        db.close()
    print(f"✅ {kind} CSV -> DB: {count} rows imported")
    return 0


if __name__ == "__main__":
    sys.exit(main())
