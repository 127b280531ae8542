from sqlalchemy import Column, String

from app.core.db import Base


class Preference(Base):
    __tablename__ = "preferences"

    # e.g. "timezone", "display_unit", "phone_number"
    key = Column(String(64), primary_key=True)
    value = Column(String(255), nullable=False)
