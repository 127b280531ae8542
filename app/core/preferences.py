from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import Settings
from app.models.preference import Preference

TIMEZONE = "timezone"
DISPLAY_UNIT = "display_unit"
PHONE_NUMBER = "phone_number"


def get_preference(db: Session, key: str) -> Optional[str]:
    row = db.get(Preference, key)
    return row.value if row else None


def set_preference(db: Session, key: str, value: str):
    row = db.get(Preference, key)
    if row is None:
        db.add(Preference(key=key, value=value))
    else:
        row.value = value
    db.flush()


def get_all_preferences(db: Session) -> dict[str, str]:
    return {row.key: row.value for row in db.query(Preference).all()}


def get_timezone(db: Session, settings: Settings) -> str:
    return get_preference(db, TIMEZONE) or settings.DEFAULT_TIMEZONE


def get_display_unit(db: Session, settings: Settings) -> str:
    return get_preference(db, DISPLAY_UNIT) or settings.DEFAULT_DISPLAY_UNIT


def get_registered_phone(db: Session) -> Optional[str]:
    return get_preference(db, PHONE_NUMBER)
