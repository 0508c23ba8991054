from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field("sqlite+aiosqlite:///./lessonbook.db", alias="DATABASE_URL")

    jwt_secret_key: str = Field("change-me", alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(60 * 12, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    # All wall-clock input and "end of day" rules are interpreted in this zone
    app_timezone: str = Field("Asia/Tokyo", alias="APP_TIMEZONE")

    # The only admin identity allowed to register and log in
    admin_email: str = Field("admin@example.com", alias="ADMIN_EMAIL")
    admin_password: Optional[str] = Field(None, alias="ADMIN_PASSWORD")
    admin_full_name: str = Field("Administrator", alias="ADMIN_FULL_NAME")

    booking_cutoff_hours: int = Field(24, alias="BOOKING_CUTOFF_HOURS")
    shift_delete_cutoff_hours: int = Field(24, alias="SHIFT_DELETE_CUTOFF_HOURS")

    notifier_backend: str = Field("log", alias="NOTIFIER_BACKEND")  # log | smtp
    smtp_host: Optional[str] = Field(None, alias="SMTP_HOST")
    smtp_port: int = Field(587, alias="SMTP_PORT")
    smtp_username: Optional[str] = Field(None, alias="SMTP_USERNAME")
    smtp_password: Optional[str] = Field(None, alias="SMTP_PASSWORD")
    smtp_use_tls: bool = Field(True, alias="SMTP_USE_TLS")
    mail_from: str = Field("no-reply@example.com", alias="MAIL_FROM")

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"], alias="CORS_ORIGINS")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
        populate_by_name = True


settings = Settings()
