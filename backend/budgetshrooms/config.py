from datetime import timedelta
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "BudgetShrooms API"
    database_url: str = ""
    db_pool_min_size: int = 1
    db_pool_max_size: int = 10
    # Comma-separated origins for CORS.
    cors_allow_origins: str = "*"
    # "production" turns on secure session cookies.
    environment: str = "development"
    # Fixed IANA zone used for month bucketing and display labels.
    display_timezone: str = "America/Winnipeg"
    session_ttl_days: int = 90
    session_cookie_name: str = "budgetshrooms_session"
    bcrypt_salt_rounds: int = 12
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def display_zone(self) -> ZoneInfo:
        return ZoneInfo(self.display_timezone)

    @property
    def session_ttl(self) -> timedelta:
        return timedelta(days=self.session_ttl_days)

    @property
    def secure_cookies(self) -> bool:
        return self.environment.lower() == "production"


settings = Settings()
