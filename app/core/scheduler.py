import logging
import threading
from datetime import timedelta
from typing import Callable, Optional

from sqlalchemy.orm import Session, sessionmaker

from app.core.auth import cleanup_expired_auth_codes, cleanup_expired_sessions
from app.core.clock import Clock
from app.core.exceptions import PromotionFailed
from app.core.pending import PendingStore
from app.core.preferences import get_registered_phone, get_timezone
from app.core.config import Settings
from app.core.sms import SmsClient

logger = logging.getLogger(__name__)


class ReconciliationScheduler:
    """
    Background loop that auto-commits expired pending entries.

    start() runs one pass right away (catching entries that expired while the
    process was down) and then one pass every `interval`. A failing pass is
    logged and the loop carries on. stop() never force-promotes: the pending
    entry is picked up by the next start, still timed from its created_at.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        pending: PendingStore,
        sms: SmsClient,
        clock: Clock,
        settings: Settings,
    ):
        self._session_factory = session_factory
        self._pending = pending
        self._sms = sms
        self._clock = clock
        self._settings = settings
        self.interval = settings.CHECK_INTERVAL_SECONDS
        self.timeout = timedelta(seconds=settings.PENDING_TIMEOUT_SECONDS)

        self._stop_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self.running:
            logger.info("Scheduler already running")
            return

        logger.info("Starting scheduler (every %ss, timeout %s)", self.interval, self.timeout)
        # a thread still finishing a tick after stop() keeps its own, already-set event
        self._stop_event = threading.Event()
        self.run_once()

        self._thread = threading.Thread(
            target=self._loop,
            args=(self._stop_event,),
            name="reconciliation-scheduler",
            daemon=True,
        )
        self._thread.start()

    def stop(self, wait: float = 5.0):
        if self._thread is None:
            return

        self._stop_event.set()
        self._thread.join(timeout=wait)
        if self._thread.is_alive():
            logger.warning("Scheduler thread still finishing a pass after %ss", wait)
        self._thread = None
        logger.info("Scheduler stopped")

    def _loop(self, stop_event: threading.Event):
        while not stop_event.wait(self.interval):
            self.run_once()

    def run_once(self):
        """One tick: promotion first, then housekeeping. Never raises."""
        self._guarded("process pending entries", self.process_pending_entries)
        self._guarded("cleanup", self.cleanup_expired)

    def _guarded(self, name: str, func: Callable[[], object]):
        try:
            func()
        except Exception:
            logger.exception("Scheduler %s failed", name)

    def process_pending_entries(self):
        try:
            return self._pending.promote_expired(self.timeout, self._current_date)
        except PromotionFailed as e:
            logger.error("Failed to commit pending entry: %s", e)
            self._notify_failure(e.weight)
            return None

    def cleanup_expired(self):
        db: Session = self._session_factory()
        try:
            now = self._clock.now()
            codes = cleanup_expired_auth_codes(db, now)
            sessions = cleanup_expired_sessions(db, now)
            db.commit()
            if codes or sessions:
                logger.debug("Pruned %d auth code(s), %d session(s)", codes, sessions)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def _current_date(self):
        db: Session = self._session_factory()
        try:
            tz_name = get_timezone(db, self._settings)
        finally:
            db.close()
        return self._clock.current_date(tz_name)

    def _notify_failure(self, weight: float):
        db: Session = self._session_factory()
        try:
            phone = get_registered_phone(db)
        finally:
            db.close()

        if phone:
            # best effort; SmsClient logs its own failures
            self._sms.send(phone, f"Failed to log {weight:.1f}. Please try again.")
