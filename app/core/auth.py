import re
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from app.models.auth import AuthCode, AuthSession

AUTH_CODE_RETENTION = timedelta(hours=1)
PHONE_CHANGE_MAX_AGE = timedelta(minutes=15)


def normalize_phone(phone: str) -> str:
    """E.164-ish: keep digits, assume US for bare 10-digit numbers."""
    digits = re.sub(r"\D", "", phone)
    if len(digits) == 10:
        digits = "1" + digits
    return "+" + digits


def mask_phone(phone: Optional[str]) -> Optional[str]:
    if not phone:
        return None
    if len(phone) <= 4:
        return phone
    return re.sub(r"\d", "*", phone[:-4]) + phone[-4:]


# ---------- Login codes ----------

def create_auth_code(db: Session, phone: str, code: str, now: datetime) -> AuthCode:
    row = AuthCode(phone=phone, code=code, created_at=now, used=False)
    db.add(row)
    db.flush()
    return row


def verify_auth_code(db: Session, phone: str, code: str, now: datetime, max_age_minutes: int = 15) -> bool:
    """Consume a matching, unused, fresh code. Returns False otherwise."""
    cutoff = now - timedelta(minutes=max_age_minutes)
    row = (
        db.query(AuthCode)
        .filter(
            AuthCode.phone == phone,
            AuthCode.code == code,
            AuthCode.used.is_(False),
            AuthCode.created_at > cutoff,
        )
        .order_by(AuthCode.created_at.desc())
        .first()
    )
    if row is None:
        return False

    row.used = True
    db.flush()
    return True


def cleanup_expired_auth_codes(db: Session, now: datetime) -> int:
    return db.query(AuthCode).filter(AuthCode.created_at < now - AUTH_CODE_RETENTION).delete()


# ---------- Sessions ----------

def create_session(db: Session, now: datetime, days_valid: int = 30) -> AuthSession:
    session = AuthSession(
        id=str(uuid.uuid4()),
        created_at=now,
        expires_at=now + timedelta(days=days_valid),
    )
    db.add(session)
    db.flush()
    return session


def get_session(db: Session, session_id: str, now: datetime) -> Optional[AuthSession]:
    return (
        db.query(AuthSession)
        .filter(AuthSession.id == session_id, AuthSession.expires_at > now)
        .one_or_none()
    )


def delete_session(db: Session, session_id: str):
    db.query(AuthSession).filter(AuthSession.id == session_id).delete()


def cleanup_expired_sessions(db: Session, now: datetime) -> int:
    return db.query(AuthSession).filter(AuthSession.expires_at < now).delete()


# ---------- Phone number change ----------

@dataclass(frozen=True)
class PhoneChangeRequest:
    phone: str
    code: str
    requested_at: datetime


class PhoneChangeSlot:
    """Holds at most one unconfirmed phone-number change; a new request replaces it."""

    def __init__(self):
        self._request: Optional[PhoneChangeRequest] = None
        self._lock = threading.Lock()

    def put(self, request: PhoneChangeRequest):
        with self._lock:
            self._request = request

    def discard(self):
        with self._lock:
            self._request = None

    def confirm(self, code: str, now: datetime) -> tuple[Optional[str], Optional[str]]:
        """
        Returns (phone, None) on success, or (None, error message).
        Expired and confirmed requests are cleared; a wrong code keeps it.
        """
        with self._lock:
            request = self._request
            if request is None:
                return None, "No pending phone change"

            if now - request.requested_at > PHONE_CHANGE_MAX_AGE:
                self._request = None
                return None, "Verification code expired"

            if request.code != code:
                return None, "Invalid verification code"

            self._request = None
            return request.phone, None
