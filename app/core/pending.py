import logging
import threading
from datetime import date, timedelta
from typing import Callable, Optional

from sqlalchemy.orm import Session, sessionmaker

from app.core.clock import Clock
from app.core.entries import upsert_entry
from app.core.exceptions import PromotionFailed
from app.models.pending_entry import PendingEntry

logger = logging.getLogger(__name__)


class PendingStore:
    """
    Single-slot holder for an outlier weight awaiting auto-commit.

    Inbound messages and the scheduler thread both touch the slot, so every
    operation runs its read-check-act under one lock with its own session.
    Returned rows are detached snapshots.
    """

    def __init__(self, session_factory: sessionmaker, clock: Clock):
        self._session_factory = session_factory
        self._clock = clock
        self._lock = threading.Lock()

    def get(self) -> Optional[PendingEntry]:
        with self._lock:
            db: Session = self._session_factory()
            try:
                return self._current(db)
            finally:
                db.close()

    def set(self, weight: float, previous_weight: Optional[float]) -> PendingEntry:
        """Replace whatever is pending with a new entry (newest wins)."""
        with self._lock:
            db: Session = self._session_factory()
            try:
                superseded = db.query(PendingEntry).delete()
                if superseded:
                    logger.info("Superseding %d pending entry(ies)", superseded)

                pending = PendingEntry(
                    weight=weight,
                    previous_weight=previous_weight,
                    created_at=self._clock.now(),
                )
                db.add(pending)
                db.commit()
                db.refresh(pending)
                db.expunge(pending)
                return pending
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()

    def clear(self) -> bool:
        """Drop the pending entry. Returns False if there was nothing to drop."""
        with self._lock:
            db: Session = self._session_factory()
            try:
                deleted = db.query(PendingEntry).delete()
                db.commit()
                return deleted > 0
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()

    def promote_expired(
        self,
        timeout: timedelta,
        current_date: Callable[[], date],
    ) -> Optional[PendingEntry]:
        """
        Commit the pending entry if it is at least `timeout` old.

        The entry is written under the date current at promotion time and the
        pending row is removed in the same transaction. If the write fails,
        nothing is removed and PromotionFailed is raised.
        """
        with self._lock:
            db: Session = self._session_factory()
            try:
                now = self._clock.now()
                pending = (
                    db.query(PendingEntry)
                    .filter(PendingEntry.created_at <= now - timeout)
                    .order_by(PendingEntry.created_at.desc())
                    .first()
                )
                if pending is None:
                    return None

                # the row is gone after commit; keep a detached copy to return
                snapshot = PendingEntry(
                    id=pending.id,
                    weight=pending.weight,
                    previous_weight=pending.previous_weight,
                    created_at=pending.created_at,
                )
                try:
                    d = current_date()
                    upsert_entry(db, d, snapshot.weight, now)
                    db.query(PendingEntry).delete()
                    db.commit()
                except Exception as e:
                    db.rollback()
                    raise PromotionFailed(snapshot.id, snapshot.weight, e) from e

                logger.info("Committed pending entry: %s for %s", snapshot.weight, d.isoformat())
                return snapshot
            finally:
                db.close()

    def _current(self, db: Session) -> Optional[PendingEntry]:
        pending = (
            db.query(PendingEntry)
            .order_by(PendingEntry.created_at.desc())
            .first()
        )
        if pending is not None:
            db.expunge(pending)
        return pending
