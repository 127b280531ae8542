import logging
import math
from datetime import date, timedelta

from sqlalchemy.orm import Session, sessionmaker

from app.core.clock import Clock
from app.core.config import Settings
from app.core.entries import get_last_entry, upsert_entry
from app.core.outlier import is_outlier
from app.core.parser import (
    HELP_MESSAGE,
    UNKNOWN_MESSAGE,
    Command,
    CommandIntent,
    WeightIntent,
    classify_message,
)
from app.core.pending import PendingStore
from app.core.preferences import get_display_unit, get_timezone
from app.core.units import format_with_unit, from_display_unit, to_display_unit

logger = logging.getLogger(__name__)

ERROR_MESSAGE = "Error saving. Try again."


def format_short_date(d: date) -> str:
    # e.g. "Dec 30"
    return f"{d:%b} {d.day}"


class MessageHandler:
    """
    Turns one inbound SMS body into a plain-text reply.

    Normal weights are committed straight away for today's date; outliers go
    to the pending slot and are auto-committed later by the scheduler.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        pending: PendingStore,
        clock: Clock,
        settings: Settings,
    ):
        self._session_factory = session_factory
        self._pending = pending
        self._clock = clock
        self._settings = settings

    @property
    def pending_timeout(self) -> timedelta:
        return timedelta(seconds=self._settings.PENDING_TIMEOUT_SECONDS)

    def handle(self, body) -> str:
        intent = classify_message(body)

        try:
            if isinstance(intent, WeightIntent):
                return self._handle_weight(intent.value)
            if isinstance(intent, CommandIntent):
                return self._handle_command(intent.command)
        except Exception:
            logger.exception("Error handling SMS")
            return ERROR_MESSAGE

        return UNKNOWN_MESSAGE

    def _handle_weight(self, value: float) -> str:
        db: Session = self._session_factory()
        try:
            unit = get_display_unit(db, self._settings)
            weight = from_display_unit(value, unit)

            last = get_last_entry(db)
            previous_weight = last.weight if last else None

            if is_outlier(weight, previous_weight):
                db.close()
                self._pending.set(weight, previous_weight)
                minutes = math.ceil(self.pending_timeout.total_seconds() / 60)
                logger.info("Outlier %s (previous %s), holding for %sm", weight, previous_weight, minutes)
                return f"{value:.1f} seems unusual. Logging in {minutes}m. CANCEL to stop."

            d = self._clock.current_date(get_timezone(db, self._settings))
            upsert_entry(db, d, weight, self._clock.now())
            db.commit()
            logger.info("Logged %s for %s", weight, d.isoformat())
            return f"Logged: {value:.1f}"
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def _handle_command(self, command: Command) -> str:
        if command is Command.HELP:
            return HELP_MESSAGE
        if command is Command.LAST:
            return self._last()
        if command is Command.STATUS:
            return self._status()
        if command is Command.CANCEL:
            if not self._pending.clear():
                return "Nothing pending to cancel"
            logger.info("Pending entry cancelled by user")
            return "Cancelled"
        return UNKNOWN_MESSAGE

    def _last(self) -> str:
        db: Session = self._session_factory()
        try:
            last = get_last_entry(db)
            if last is None:
                return "No entries yet"
            unit = get_display_unit(db, self._settings)
            return f"Last: {format_with_unit(last.weight, unit)} on {format_short_date(last.date)}"
        finally:
            db.close()

    def _status(self) -> str:
        pending = self._pending.get()
        if pending is None:
            return "Nothing pending"

        elapsed = self._clock.now() - pending.created_at
        remaining = self.pending_timeout - elapsed
        minutes = max(0, math.ceil(remaining.total_seconds() / 60))

        db: Session = self._session_factory()
        try:
            unit = get_display_unit(db, self._settings)
        finally:
            db.close()
        return f"Pending: {to_display_unit(pending.weight, unit):.1f} (logs in {minutes}m)"
