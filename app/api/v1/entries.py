# app/api/v1/entries.py

import math
import re
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from app.api.deps import get_container, get_db, require_auth
from app.core.container import Container
from app.core.entries import (
    bulk_import_entries,
    delete_entry,
    export_csv,
    get_entry,
    list_entries,
    update_entry,
    upsert_entry,
)

router = APIRouter(prefix="/entries", tags=["entries"], dependencies=[Depends(require_auth)])

_MDY_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")


def normalize_date(value: str | None) -> date | None:
    """Accept YYYY-MM-DD or MM/DD/YYYY; anything else is None."""
    if not value:
        return None

    value = value.strip()
    try:
        if re.match(r"^\d{4}-\d{2}-\d{2}$", value):
            return date.fromisoformat(value)
        m = _MDY_RE.match(value)
        if m:
            return date(int(m.group(3)), int(m.group(1)), int(m.group(2)))
    except ValueError:
        return None
    return None


# ---------- Pydantic schemas ----------

class EntryIn(BaseModel):
    date: str = Field(..., description="YYYY-MM-DD")
    weight: float

    @field_validator("date")
    @classmethod
    def validate_date_format(cls, v):
        if not re.match(r"^\d{4}-\d{2}-\d{2}$", v):
            raise ValueError("Invalid date format. Use YYYY-MM-DD")
        date.fromisoformat(v)
        return v

    @field_validator("weight")
    @classmethod
    def validate_weight_positive(cls, v):
        if v <= 0:
            raise ValueError("weight must be greater than 0")
        return v


class EntryUpdateIn(BaseModel):
    weight: float

    @field_validator("weight")
    @classmethod
    def validate_weight_positive(cls, v):
        if v <= 0:
            raise ValueError("weight must be greater than 0")
        return v


class ImportRowIn(BaseModel):
    date: str | None = None
    weight: float | str | None = None


class ImportIn(BaseModel):
    entries: list[ImportRowIn]


# ---------- Endpoints ----------

@router.get("")
def get_entries(db: Session = Depends(get_db)):
    return [e.to_dict() for e in list_entries(db)]


@router.post("")
def create_or_update_entry(
    payload: EntryIn,
    db: Session = Depends(get_db),
    container: Container = Depends(get_container),
):
    """
    Backfill: insert or overwrite the entry for a date.
    """
    entry = upsert_entry(db, date.fromisoformat(payload.date), payload.weight, container.clock.now())
    db.commit()
    db.refresh(entry)
    return entry.to_dict()


@router.post("/import")
def import_entries(
    payload: ImportIn,
    db: Session = Depends(get_db),
    container: Container = Depends(get_container),
):
    """
    Bulk import rows from a CSV upload. Bad rows are skipped and reported.
    """
    if not payload.entries:
        raise HTTPException(status_code=400, detail="Entries array required")

    valid: list[tuple[date, float]] = []
    errors: list[str] = []

    for i, row in enumerate(payload.entries, start=1):
        d = normalize_date(row.date)
        if d is None:
            errors.append(f"Row {i}: Invalid date")
            continue

        try:
            weight = float(row.weight)
        except (TypeError, ValueError):
            weight = None
        if weight is None or not math.isfinite(weight) or weight <= 0:
            errors.append(f"Row {i}: Invalid weight")
            continue

        valid.append((d, weight))

    if not valid:
        raise HTTPException(status_code=400, detail={"error": "No valid entries", "details": errors})

    imported = bulk_import_entries(db, valid, container.clock.now())
    db.commit()

    result = {"success": True, "imported": imported}
    if errors:
        result["errors"] = errors
    return result


@router.get("/export")
def export_entries(db: Session = Depends(get_db)):
    csv_text = export_csv(list_entries(db, ascending=True))
    return Response(
        content=csv_text,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="textweight-export.csv"'},
    )


@router.get("/pending")
def get_pending(container: Container = Depends(get_container)):
    pending = container.pending.get()
    return {"pending": pending.to_dict() if pending else None}


@router.put("/{entry_id}")
def edit_entry(
    entry_id: int,
    payload: EntryUpdateIn,
    db: Session = Depends(get_db),
    container: Container = Depends(get_container),
):
    entry = get_entry(db, entry_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Entry not found")

    update_entry(db, entry, payload.weight, container.clock.now())
    db.commit()
    db.refresh(entry)
    return entry.to_dict()


@router.delete("/{entry_id}")
def remove_entry(entry_id: int, db: Session = Depends(get_db)):
    entry = get_entry(db, entry_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Entry not found")

    delete_entry(db, entry)
    db.commit()
    return {"success": True}
