import csv
import io
from datetime import date, datetime
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from app.models.entry import Entry


def get_entry_by_date(db: Session, d: date) -> Optional[Entry]:
    return db.query(Entry).filter(Entry.date == d).one_or_none()


def get_entry(db: Session, entry_id: int) -> Optional[Entry]:
    return db.get(Entry, entry_id)


def get_last_entry(db: Session) -> Optional[Entry]:
    """Most recent entry by calendar date, not by write time."""
    return db.query(Entry).order_by(Entry.date.desc()).first()


def list_entries(db: Session, ascending: bool = False) -> list[Entry]:
    order = Entry.date.asc() if ascending else Entry.date.desc()
    return db.query(Entry).order_by(order).all()


def upsert_entry(db: Session, d: date, weight: float, now: datetime) -> Entry:
    """
    Insert or overwrite the entry for date d.

    Overwriting keeps created_at and bumps updated_at, so repeating the same
    write is harmless. The caller owns the commit.
    """
    entry = get_entry_by_date(db, d)

    if entry is None:
        entry = Entry(date=d, weight=weight, created_at=now, updated_at=now)
        db.add(entry)
    else:
        entry.weight = weight
        entry.updated_at = now

    db.flush()
    return entry


def update_entry(db: Session, entry: Entry, weight: float, now: datetime) -> Entry:
    entry.weight = weight
    entry.updated_at = now
    db.flush()
    return entry


def delete_entry(db: Session, entry: Entry):
    db.delete(entry)
    db.flush()


def bulk_import_entries(db: Session, rows: Iterable[tuple[date, float]], now: datetime) -> int:
    count = 0
    for d, weight in rows:
        upsert_entry(db, d, weight, now)
        count += 1
    return count


def export_csv(entries: Iterable[Entry]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(["date", "weight"])
    for entry in entries:
        writer.writerow([entry.date.isoformat(), entry.weight])
    return buf.getvalue()
