# barbershop/config.py

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Read env from .env; unknown keys are ignored
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Database ---
    DATABASE_URL: str = "sqlite:///./barber.db"
    DB_ECHO: bool = False

    # --- Shop ---
    SHOP_TIMEZONE: str = "America/Mexico_City"

    # --- Reschedule policy ---
    RESCHEDULE_CUTOFF_MINUTES: int = 30
    MAX_RESCHEDULES: int = 1

    # --- Reminders ---
    # window name -> lookahead in minutes, e.g. '{"upcoming": 15}'
    REMINDER_WINDOWS: dict[str, int] = {"upcoming": 15, "day_before": 1440}
    REMINDER_SCAN_INTERVAL_MINUTES: int = 15
    REMINDER_MAX_ATTEMPTS: int = 3
    SCANNER_LEASE_SECONDS: int = 600
    ENABLE_REMINDER_SCHEDULER: bool = True

    # --- Logging ---
    LOG_LEVEL: str = "INFO"

    @field_validator("REMINDER_SCAN_INTERVAL_MINUTES")
    @classmethod
    def interval_in_range(cls, value: int) -> int:
        if not 1 <= value <= 15:
            raise ValueError("REMINDER_SCAN_INTERVAL_MINUTES must be between 1 and 15")
        return value

    @field_validator("REMINDER_WINDOWS")
    @classmethod
    def windows_positive(cls, value: dict[str, int]) -> dict[str, int]:
        for name, minutes in value.items():
            if minutes <= 0:
                raise ValueError(f"reminder window {name!r} must be a positive number of minutes")
        return value

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")


# Singleton
settings = Settings()
