from pydantic_settings import BaseSettings
from typing import List

class Settings(BaseSettings):
    # App settings
    APP_NAME: str = "Employee Voice Session API"
    VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Token settings
    TOKEN_TTL_HOURS: int = 24
    SESSION_REFRESH_INTERVAL_HOURS: int = 23
    SESSION_TOKEN_FILE: str = ".employee-voice-auth-token"

    # Bootstrap admin credentials (national ID + login secret)
    ADMIN_NATIONAL_ID: str = "ndsvoice"
    ADMIN_LOGIN_SECRET: str
    ADMIN_DISPLAY_NAME: str = "Employee Voice Admin"

    # Database settings (MySQL)
    DATABASE_URL: str
    AUTO_CREATE_TABLES: bool = True
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_RECYCLE: int = 300
    DB_POOL_TIMEOUT: int = 10
    DB_CONNECT_TIMEOUT: int = 10
    DB_PRE_PING: bool = True

    # CORS settings
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:5173",
    ]

    # Logging
    LOG_LEVEL: str = "DEBUG"
    LOG_DIR: str = "logs"
    LOG_TTL_DAYS: int = 7

    class Config:
        env_file = ".env"
        case_sensitive = True

# Create settings instance
settings = Settings()

# Validate required settings
if not settings.ADMIN_LOGIN_SECRET:
    raise ValueError("ADMIN_LOGIN_SECRET environment variable is required")

if not settings.DATABASE_URL:
    raise ValueError("DATABASE_URL environment variable is required")

if settings.TOKEN_TTL_HOURS <= 0:
    raise ValueError("TOKEN_TTL_HOURS must be positive")
