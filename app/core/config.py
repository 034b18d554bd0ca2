from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    # App
    APP_NAME: str = "Geofence Attendance Service"
    APP_VERSION: str = "1.0.0"

    # Database
    DATABASE_URL: str = "sqlite:///./app.db"

    # CORS
    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:3000"

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"

    # Geofence / attendance
    GEOFENCE_ALERT_THRESHOLD_SECONDS: int = 60
    ATTENDANCE_TIMEZONE: str = "UTC"  # used when a project has no timezone of its own

    # Alerts
    ALERT_CHANNEL: str = "log"  # log, email
    ALERT_RECIPIENTS: str = ""  # comma separated
    ALERT_DEDUP_ENABLED: bool = False
    ALERT_DEDUP_TTL_SECONDS: int = 12 * 3600

    # SMTP
    SMTP_SERVER: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    FROM_EMAIL: str = ""

    # Retention
    LOCATION_LOG_RETENTION_DAYS: int = 30
    CLEANUP_INTERVAL_HOURS: int = 24
    CLEANUP_ENABLED: bool = True

    @property
    def alert_recipients(self) -> List[str]:
        return [r.strip() for r in self.ALERT_RECIPIENTS.split(",") if r.strip()]

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
