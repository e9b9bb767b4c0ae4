import os
from decimal import Decimal


class Settings:
    def __init__(self):
        self.app_name = "tutorbill"
        self.api_version = "1.0.0"
        self.environment = os.getenv("TUTORBILL_ENV", "development")
        self.default_hourly_rate = Decimal(os.getenv("TUTORBILL_DEFAULT_HOURLY_RATE", "10"))
        self.boundary_tolerance_hours = Decimal(os.getenv("TUTORBILL_BOUNDARY_TOLERANCE_HOURS", "0.005"))
        self.log_level = os.getenv("TUTORBILL_LOG_LEVEL", "INFO")


_settings_instance = None


def get_settings():
    """Return a singleton Settings instance."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance


def reset_settings() -> None:
    """Drop the cached Settings so the next call re-reads the environment."""
    global _settings_instance
    _settings_instance = None
