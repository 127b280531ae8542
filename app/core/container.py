from dataclasses import dataclass
from typing import Optional

from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from app.core.auth import PhoneChangeSlot
from app.core.clock import Clock
from app.core.config import Settings, settings as default_settings
from app.core.db import make_engine, make_session_factory
from app.core.intake import MessageHandler
from app.core.pending import PendingStore
from app.core.ratelimit import RateLimiter
from app.core.scheduler import ReconciliationScheduler
from app.core.sms import SmsClient

# auth code requests allowed per phone number per window
RATE_LIMIT_WINDOW_SECONDS = 60
RATE_LIMIT_MAX = 3


@dataclass
class Container:
    """Process-wide state, built once and handed to the app and scheduler."""

    settings: Settings
    engine: Engine
    session_factory: sessionmaker
    clock: Clock
    sms: SmsClient
    pending: PendingStore
    messages: MessageHandler
    rate_limiter: RateLimiter
    phone_change: PhoneChangeSlot
    scheduler: ReconciliationScheduler


def build_container(
    settings: Optional[Settings] = None,
    engine: Optional[Engine] = None,
    clock: Optional[Clock] = None,
    sms: Optional[SmsClient] = None,
    rate_limiter: Optional[RateLimiter] = None,
) -> Container:
    settings = settings or default_settings
    engine = engine or make_engine(settings.DATABASE_URL)
    session_factory = make_session_factory(engine)
    clock = clock or Clock()
    sms = sms or SmsClient(settings)

    pending = PendingStore(session_factory, clock)

    return Container(
        settings=settings,
        engine=engine,
        session_factory=session_factory,
        clock=clock,
        sms=sms,
        pending=pending,
        messages=MessageHandler(session_factory, pending, clock, settings),
        rate_limiter=rate_limiter or RateLimiter(RATE_LIMIT_WINDOW_SECONDS, RATE_LIMIT_MAX),
        phone_change=PhoneChangeSlot(),
        scheduler=ReconciliationScheduler(session_factory, pending, sms, clock, settings),
    )
