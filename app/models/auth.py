from sqlalchemy import Boolean, Column, DateTime, Integer, String

from app.core.db import Base


class AuthCode(Base):
    __tablename__ = "auth_codes"

    id = Column(Integer, primary_key=True)
    phone = Column(String(32), nullable=False, index=True)
    code = Column(String(16), nullable=False)
    created_at = Column(DateTime, nullable=False)
    used = Column(Boolean, nullable=False, default=False)


class AuthSession(Base):
    __tablename__ = "sessions"

    id = Column(String(64), primary_key=True)
    created_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
