from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.api.deps import get_container, get_db, require_auth
from app.core.auth import PhoneChangeRequest, mask_phone, normalize_phone
from app.core.container import Container
from app.core.preferences import (
    DISPLAY_UNIT,
    PHONE_NUMBER,
    TIMEZONE,
    get_display_unit,
    get_registered_phone,
    get_timezone,
    set_preference,
)
from app.core.sms import generate_code
from app.core.units import DISPLAY_UNITS

router = APIRouter(prefix="/settings", tags=["settings"], dependencies=[Depends(require_auth)])

TIMEZONES = [
    "America/New_York",
    "America/Chicago",
    "America/Denver",
    "America/Los_Angeles",
    "America/Anchorage",
    "Pacific/Honolulu",
    "Europe/London",
    "Europe/Paris",
    "Europe/Berlin",
    "Asia/Tokyo",
    "Asia/Shanghai",
    "Australia/Sydney",
]


class SettingsIn(BaseModel):
    timezone: str | None = None
    display_unit: str | None = None


class PhoneChangeIn(BaseModel):
    new_phone: str | None = None


class PhoneConfirmIn(BaseModel):
    code: str | None = None


def _settings_out(db: Session, container: Container) -> dict:
    # phone number is masked; never expose it in full
    return {
        "phone_number": mask_phone(get_registered_phone(db)),
        "timezone": get_timezone(db, container.settings),
        "display_unit": get_display_unit(db, container.settings),
    }


@router.get("")
def get_settings(db: Session = Depends(get_db), container: Container = Depends(get_container)):
    return _settings_out(db, container)


@router.put("")
def update_settings(
    payload: SettingsIn,
    db: Session = Depends(get_db),
    container: Container = Depends(get_container),
):
    if payload.timezone:
        try:
            ZoneInfo(payload.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise HTTPException(status_code=400, detail="Invalid timezone")
        set_preference(db, TIMEZONE, payload.timezone)

    if payload.display_unit:
        if payload.display_unit not in DISPLAY_UNITS:
            raise HTTPException(status_code=400, detail="Invalid unit. Use lbs or kg")
        set_preference(db, DISPLAY_UNIT, payload.display_unit)

    db.commit()
    return _settings_out(db, container)


@router.get("/timezones")
def list_timezones():
    return TIMEZONES


@router.post("/phone/request-change")
def request_phone_change(
    payload: PhoneChangeIn,
    container: Container = Depends(get_container),
):
    """
    Send a verification code to the new number. Only the latest request counts.
    """
    if not payload.new_phone:
        raise HTTPException(status_code=400, detail="New phone number required")

    phone = normalize_phone(payload.new_phone)
    code = generate_code()
    container.phone_change.put(PhoneChangeRequest(phone=phone, code=code, requested_at=container.clock.now()))

    sent = container.sms.send(phone, f"Verify your new TextWeight number: {code}")
    if not sent:
        container.phone_change.discard()
        raise HTTPException(status_code=500, detail="Failed to send verification code")

    return {"success": True, "message": "Verification code sent to new number"}


@router.post("/phone/confirm-change")
def confirm_phone_change(
    payload: PhoneConfirmIn,
    db: Session = Depends(get_db),
    container: Container = Depends(get_container),
):
    if not payload.code:
        raise HTTPException(status_code=400, detail="Verification code required")

    phone, error = container.phone_change.confirm(payload.code, container.clock.now())
    if error:
        raise HTTPException(status_code=400, detail=error)

    set_preference(db, PHONE_NUMBER, phone)
    db.commit()
    return {"success": True, "message": "Phone number updated"}
