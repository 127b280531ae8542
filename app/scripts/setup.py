"""
First-run setup: creates the tables and records the initial preferences
(registered phone number, timezone, display unit) from the environment.

    textweight-setup [--phone +15551234567] [--timezone America/Chicago] [--unit lbs]
"""

import argparse
import logging
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy.orm import Session

from app import models  # noqa: F401  (registers tables on Base.metadata)
from app.core.auth import mask_phone, normalize_phone
from app.core.config import Settings
from app.core.db import Base, make_engine, make_session_factory
from app.core.logging_config import configure_logging
from app.core.preferences import DISPLAY_UNIT, PHONE_NUMBER, TIMEZONE, set_preference
from app.core.units import DISPLAY_UNITS

logger = logging.getLogger(__name__)


def seed_preferences(
    db: Session,
    settings: Settings,
    phone: Optional[str] = None,
    timezone: Optional[str] = None,
    unit: Optional[str] = None,
) -> dict[str, str]:
    """Write the initial preferences. Caller commits."""
    phone = phone or settings.USER_PHONE_NUMBER
    written = {
        TIMEZONE: timezone or settings.DEFAULT_TIMEZONE,
        DISPLAY_UNIT: unit or settings.DEFAULT_DISPLAY_UNIT,
    }
    if phone:
        written[PHONE_NUMBER] = normalize_phone(phone)

    for key, value in written.items():
        set_preference(db, key, value)
    return written


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Initialize the TextWeight database and preferences")
    parser.add_argument("--phone", help="Phone number that texts in weights (default: USER_PHONE_NUMBER)")
    parser.add_argument("--timezone", help="IANA timezone (default: DEFAULT_TIMEZONE)")
    parser.add_argument("--unit", choices=DISPLAY_UNITS, help="Display unit (default: DEFAULT_DISPLAY_UNIT)")
    args = parser.parse_args(argv)
    if args.timezone:
        try:
            ZoneInfo(args.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            parser.error(f"unknown timezone: {args.timezone}")

    settings = Settings()
    configure_logging(settings.LOG_LEVEL)

    engine = make_engine(settings.DATABASE_URL)
    Base.metadata.create_all(bind=engine)
    logger.info("Database schema ready at %s", engine.url.render_as_string(hide_password=True))

    db = make_session_factory(engine)()
    try:
        written = seed_preferences(db, settings, args.phone, args.timezone, args.unit)
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

    if PHONE_NUMBER in written:
        logger.info("Phone number set: %s", mask_phone(written[PHONE_NUMBER]))
    else:
        logger.warning("No phone number given; set USER_PHONE_NUMBER or pass --phone")
    logger.info("Timezone set: %s", written[TIMEZONE])
    logger.info("Display unit set: %s", written[DISPLAY_UNIT])
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
