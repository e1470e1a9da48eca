"""
Configuration Management
Loads settings from environment variables with type validation
"""

from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "Sharegate Document Access Service"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Security (tokens are issued by the identity provider with this key)
    SECRET_KEY: str = Field(..., min_length=32)
    JWT_ALGORITHM: str = "HS256"

    # CORS
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://localhost:8000",
    ]

    # PostgreSQL
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "sharegate"
    POSTGRES_PASSWORD: str = "sharegate_password"
    POSTGRES_DB: str = "sharegate"

    # Overrides the PostgreSQL URL when set (e.g. sqlite+aiosqlite:///./dev.db)
    DATABASE_URL: Optional[str] = None

    @property
    def POSTGRES_URL(self) -> str:
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    @property
    def DB_URL(self) -> str:
        return self.DATABASE_URL or self.POSTGRES_URL

    # MinIO
    MINIO_ENDPOINT: str = "localhost:9000"
    MINIO_ACCESS_KEY: str = "minioadmin"
    MINIO_SECRET_KEY: str = "minioadmin"
    MINIO_USE_SSL: bool = False
    MINIO_BUCKET: str = "documents"

    # Signed URLs
    SIGNED_URL_TTL_SECONDS: int = 300
    SIGNED_URL_REFRESH_MARGIN_SECONDS: int = 30

    # File Upload
    MAX_UPLOAD_SIZE_MB: int = 50
    ALLOWED_CONTENT_TYPES: List[str] = ["application/pdf"]
    WATERMARK_LABEL: str = "CONFIDENTIAL"

    # Share links
    SHARE_LINK_MIN_MINUTES: int = 5
    SHARE_LINK_MAX_MINUTES: int = 525600
    SHARE_LINK_MAX_USES_LIMIT: int = 1000
    SHARE_RECIPIENT_DEFAULT_MAX_USES: int = 1
    SHARE_TOKEN_BYTES: int = 32
    ACTIVATION_RATE_LIMIT_PER_MINUTE: int = 15

    # Restricted documents
    RESTRICTED_PASSWORD_LENGTH: int = 16
    RESTRICTED_VERIFY_MAX_ATTEMPTS: int = 5
    RESTRICTED_VERIFY_WINDOW_SECONDS: int = 60
    RESTRICTED_GATE_PASS_TTL_SECONDS: int = 120

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        valid = ["development", "staging", "production", "test"]
        if v not in valid:
            raise ValueError(f"ENVIRONMENT must be one of {valid}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid:
            raise ValueError(f"LOG_LEVEL must be one of {valid}")
        return v_upper

    @field_validator("RESTRICTED_PASSWORD_LENGTH")
    @classmethod
    def validate_password_length(cls, v: int) -> int:
        # one character from each class plus some randomness
        if v < 8:
            raise ValueError("RESTRICTED_PASSWORD_LENGTH must be at least 8")
        return v

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "allow"


# Global settings instance
settings = Settings()
