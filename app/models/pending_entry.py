from sqlalchemy import Column, DateTime, Float, Integer

from app.core.db import Base


class PendingEntry(Base):
    """
    An outlier measurement waiting to be auto-committed.
    At most one row exists; expiry is derived from created_at, never stored.
    """

    __tablename__ = "pending_entries"

    id = Column(Integer, primary_key=True)
    weight = Column(Float, nullable=False)
    # last committed weight when this was created (None for a first entry)
    previous_weight = Column(Float, nullable=True)
    created_at = Column(DateTime, nullable=False, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "weight": self.weight,
            "previous_weight": self.previous_weight,
            "created_at": self.created_at.isoformat(),
        }
