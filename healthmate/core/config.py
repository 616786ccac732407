# healthmate/core/config.py
import os
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict
from typing import List
from functools import lru_cache

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra='ignore')

    # Application Settings
    APP_NAME: str = "HealthMate Scheduling API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    DOCS_ENABLED: bool = True

    # Server Settings
    HOST: str = "0.0.0.0"
    PORT: int = int(os.environ.get("PORT", 8000))

    # Database Settings
    DATABASE_URL: str = os.environ.get("DATABASE_URL", "sqlite:///./healthmate.db")

    # CORS Settings
    ALLOWED_ORIGINS: str = os.environ.get("ALLOWED_ORIGINS", "*")

    # Logging Settings
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Business hours (slot start hour must satisfy START <= hour < END)
    BUSINESS_HOURS_START: int = 8
    BUSINESS_HOURS_END: int = 18
    WEEKEND_DAYS: List[int] = [5, 6]
    MIN_LEAD_TIME_HOURS: int = 24

    # Slots
    DEFAULT_SLOT_DURATION_MINUTES: int = 30
    MAX_SLOT_DURATION_MINUTES: int = 480

    # Appointment request validation
    MAX_NOTES_LENGTH: int = 500
    MIN_LOCATION_LENGTH: int = 5

    # No-show sweep
    NO_SHOW_GRACE_HOURS: int = 5
    NO_SHOW_SWEEP_ENABLED: bool = True
    NO_SHOW_SWEEP_INTERVAL_MINUTES: int = 15

    # Calendar export
    CALENDAR_PRODID: str = "-//HealthMate//Appointments//EN"
    CALENDAR_UID_DOMAIN: str = "healthmate.app"

    def _split_csv(self, value: str) -> List[str]:
        if value is None:
            return []
        value = value.strip()
        if value == "":
            return []
        return [item.strip() for item in value.split(",")]

    @property
    def allowed_origins_list(self) -> List[str]:
        return self._split_csv(self.ALLOWED_ORIGINS)

@lru_cache()
def get_settings() -> Settings:
    return Settings()

settings: Settings = get_settings()
