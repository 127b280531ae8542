import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.api.deps import SESSION_COOKIE, get_container, get_db
from app.core.auth import (
    create_auth_code,
    create_session,
    delete_session,
    get_session,
    normalize_phone,
    verify_auth_code,
)
from app.core.container import Container
from app.core.preferences import get_registered_phone
from app.core.sms import generate_code

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


class RequestCodeIn(BaseModel):
    phone: str | None = None


class VerifyIn(BaseModel):
    phone: str | None = None
    code: str | None = None


@router.post("/request-code")
def request_code(
    payload: RequestCodeIn,
    db: Session = Depends(get_db),
    container: Container = Depends(get_container),
):
    """
    Text a 6-digit login code to the registered phone number.
    """
    if not payload.phone:
        raise HTTPException(status_code=400, detail="Phone number required")

    phone = normalize_phone(payload.phone)

    # don't reveal whether a number is registered
    registered = get_registered_phone(db)
    if registered and normalize_phone(registered) != phone:
        return {"success": True, "message": "If registered, code sent"}

    if not container.rate_limiter.allow(phone):
        logger.warning("Auth code rate limit hit for %s", phone)
        raise HTTPException(status_code=429, detail="Too many requests. Try again later.")

    code = generate_code()
    create_auth_code(db, phone, code, container.clock.now())
    db.commit()

    sent = container.sms.send(phone, f"Your TextWeight code: {code}")
    if not sent:
        raise HTTPException(status_code=500, detail="Failed to send code")

    return {"success": True, "message": "Code sent"}


@router.post("/verify")
def verify(
    payload: VerifyIn,
    response: Response,
    db: Session = Depends(get_db),
    container: Container = Depends(get_container),
):
    if not payload.phone or not payload.code:
        raise HTTPException(status_code=400, detail="Phone and code required")

    phone = normalize_phone(payload.phone)
    settings = container.settings
    now = container.clock.now()

    is_bypass = bool(settings.BYPASS_CODE) and payload.code == settings.BYPASS_CODE
    valid = is_bypass or verify_auth_code(
        db, phone, payload.code, now, max_age_minutes=settings.AUTH_CODE_MAX_AGE_MINUTES
    )
    if not valid:
        db.rollback()
        raise HTTPException(status_code=401, detail="Invalid or expired code")

    session = create_session(db, now, days_valid=settings.SESSION_DAYS)
    db.commit()

    response.set_cookie(
        SESSION_COOKIE,
        session.id,
        httponly=True,
        secure=settings.ENVIRONMENT == "production",
        samesite="lax",
        max_age=settings.SESSION_DAYS * 24 * 60 * 60,
    )
    return {"success": True}


@router.post("/logout")
def logout(request: Request, response: Response, db: Session = Depends(get_db)):
    session_id = request.cookies.get(SESSION_COOKIE)
    if session_id:
        delete_session(db, session_id)
        db.commit()

    response.delete_cookie(SESSION_COOKIE)
    return {"success": True}


@router.get("/status")
def status(
    request: Request,
    db: Session = Depends(get_db),
    container: Container = Depends(get_container),
):
    session_id = request.cookies.get(SESSION_COOKIE)
    if not session_id:
        return {"authenticated": False}

    return {"authenticated": get_session(db, session_id, container.clock.now()) is not None}
