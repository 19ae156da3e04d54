"""Application configuration using Pydantic Settings"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # App Configuration
    APP_NAME: str = "TermHub"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["*"]

    # Database Configuration
    DATABASE_URL: str = "sqlite+aiosqlite:///./termhub.db"

    # Security Configuration
    SECRET_KEY: str = "change-this-to-a-random-secret-key-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    # Accounts registered with one of these emails start with the admin role
    ADMIN_EMAILS: List[str] = []

    # Storage Configuration
    UPLOAD_DIR: str = "./uploads"
    MAX_UPLOAD_SIZE: int = 25 * 1024 * 1024

    # Domain Configuration
    DEFAULT_PROJECT_TYPES: List[str] = [
        "application",
        "library",
        "framework",
        "tool",
        "game",
        "website",
        "other",
    ]
    SEARCH_LIMIT: int = 50

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


# Global settings instance
settings = Settings()
