
from sqlalchemy import Column, Date, DateTime, Float, Integer, UniqueConstraint

from app.core.db import Base


class Entry(Base):
    """
    One committed weight measurement per calendar date.
    Weight is always stored in pounds; conversion happens at the edges.
    """

    __tablename__ = "entries"
    __table_args__ = (UniqueConstraint("date", name="uq_entries_date"),)

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, nullable=False, index=True)
    weight = Column(Float, nullable=False)

    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "weight": self.weight,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
