from dotenv import load_dotenv
from pydantic_settings import BaseSettings

load_dotenv()


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./textweight.db"
    ENVIRONMENT: str = "local"
    LOG_LEVEL: str = "INFO"

    # Defaults for user-editable preferences (stored in the preferences table)
    DEFAULT_TIMEZONE: str = "America/Chicago"
    DEFAULT_DISPLAY_UNIT: str = "lbs"

    # Outlier confirmation window and reconciliation tick
    PENDING_TIMEOUT_SECONDS: int = 5 * 60
    CHECK_INTERVAL_SECONDS: int = 60
    SCHEDULER_ENABLED: bool = True

    # Twilio REST credentials (SMS disabled when any is missing)
    TWILIO_ACCOUNT_SID: str | None = None
    TWILIO_AUTH_TOKEN: str | None = None
    TWILIO_PHONE_NUMBER: str | None = None

    # Registered phone written by textweight-setup
    USER_PHONE_NUMBER: str | None = None

    SESSION_DAYS: int = 30
    AUTH_CODE_MAX_AGE_MINUTES: int = 15
    # Accepted in place of a real code when set (testing before Twilio is verified)
    BYPASS_CODE: str | None = None


settings = Settings()
