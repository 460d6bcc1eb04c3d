"""Application configuration from environment variables."""

from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    app_name: str = "StudioBook"
    debug: bool = True
    secret_key: str = "dev-secret-change-in-production"
    api_prefix: str = "/api/v1"

    # Database
    database_url: str = "postgresql+asyncpg://studiobook:studiobook@db:5432/studiobook"
    database_echo: bool = False

    # Redis (Celery broker/backend)
    redis_url: str = "redis://redis:6379/0"

    # Auth
    access_token_expire_minutes: int = 60
    refresh_token_expire_days: int = 30
    jwt_algorithm: str = "HS256"

    # Email / SMTP
    smtp_host: str = "localhost"
    smtp_port: int = 1025
    smtp_from: str = "noreply@studiobook.jp"

    # LINE Messaging API
    line_channel_access_token: str = ""
    line_push_url: str = "https://api.line.me/v2/bot/message/push"
    line_timeout_seconds: float = 10.0

    # Studio
    studio_timezone: str = "Asia/Tokyo"
    reminder_hour: int = 19  # local hour the daily reminder batch runs

    # Cron endpoint guard (empty = endpoint disabled)
    cron_secret: str = ""

    model_config = {"env_prefix": "SB_", "env_file": ".env", "extra": "ignore"}


settings = Settings()

# Wall-clock zone for shifts, booking times, quota months and reminder dates
STUDIO_TZ = ZoneInfo(settings.studio_timezone)
