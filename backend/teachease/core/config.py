from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import Optional


class Settings(BaseSettings):
    # Application settings
    APP_NAME: str = "TeachEase"
    DEBUG: bool = False
    HOST: str = "127.0.0.1"
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    # Local persistence
    DATABASE_URL: str = "sqlite+aiosqlite:///./teachease.db"
    DATABASE_ECHO: bool = False

    # Remote document store ("memory" or "firestore")
    REMOTE_BACKEND: str = "memory"
    REMOTE_ROOT_COLLECTION: str = "teachers"
    FIREBASE_PROJECT_ID: str = ""
    FIREBASE_API_KEY: str = ""
    FIRESTORE_BASE_URL: str = "https://firestore.googleapis.com/v1"
    IDENTITY_TOOLKIT_URL: str = "https://identitytoolkit.googleapis.com/v1"
    SECURE_TOKEN_URL: str = "https://securetoken.googleapis.com/v1/token"
    FIRESTORE_PAGE_SIZE: int = Field(default=300, ge=1, le=1000)

    # Principal used when no interactive sign-in is performed
    DEFAULT_PRINCIPAL_ID: Optional[str] = None

    # Auto-sync settings
    AUTO_SYNC_ENABLED: bool = False
    AUTO_SYNC_INTERVAL_SECONDS: int = Field(default=60, ge=1)

    # QR payload settings
    QR_CODE_PREFIX: str = "TEACHEASE"

    @field_validator("REMOTE_BACKEND")
    @classmethod
    def validate_remote_backend(cls, v):
        v = v.strip().lower()
        if v not in ("memory", "firestore"):
            raise ValueError("REMOTE_BACKEND must be 'memory' or 'firestore'")
        return v

    @field_validator("DATABASE_URL")
    @classmethod
    def validate_database_url(cls, v):
        if not v:
            raise ValueError("DATABASE_URL is required")
        return v

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
