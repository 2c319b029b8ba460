from __future__ import annotations

import os
from functools import lru_cache
from typing import List, Optional

from pydantic import BaseModel, Field
from dotenv import load_dotenv

# Load .env if present
load_dotenv()

DEFAULT_ENCRYPTION_KEY = "default-key-change-this"


class SecuritySettings(BaseModel):
    """Settings for field-level encryption of personnel data."""

    ENCRYPTION_KEY: str = Field(
        default=DEFAULT_ENCRYPTION_KEY,
        description="Secret the master key is derived from. Use at least 32 characters in production.",
    )
    ENCRYPTION_SALT_SIZE: int = Field(default=16, ge=8, description="Random salt length in bytes per encrypted value")
    PBKDF2_ITERATIONS: int = Field(default=10_000, ge=1, description="PBKDF2-HMAC-SHA256 iterations per key derivation")


class MongoSettings(BaseModel):
    """MongoDB connection settings."""

    MONGODB_URL: str = Field(default="mongodb://localhost:27017", description="Mongo connection string")
    MONGODB_DB: str = Field(default="personnel_records", description="Database name to use")
    PAY_SCALE_COLLECTION: str = Field(default="governmentPayScales", description="Collection holding pay scales")
    PERSONNEL_GRADE_COLLECTION: str = Field(default="personnelGrades", description="Collection holding personnel grades")


class APISettings(BaseModel):
    """FastAPI application settings."""

    API_TITLE: str = Field(default="Pay Scale Backend", description="API title for OpenAPI")
    API_DESCRIPTION: str = Field(
        default="Government pay-scale management with encrypted personnel fields.",
        description="API description",
    )
    API_VERSION: str = Field(default="0.1.0", description="API version")
    CORS_ALLOW_ORIGINS: List[str] = Field(default_factory=lambda: ["*"], description="CORS allowed origins")
    CORS_ALLOW_METHODS: List[str] = Field(default_factory=lambda: ["*"], description="CORS allowed methods")
    CORS_ALLOW_HEADERS: List[str] = Field(default_factory=lambda: ["*"], description="CORS allowed headers")


class AppSettings(BaseModel):
    """Runtime and environment settings."""

    ENV: str = Field(default="development", description="Environment name")
    STORE_BACKEND: str = Field(default="memory", description="Document store backend: 'memory' or 'mongo'")
    LOG_LEVEL: str = Field(default="INFO", description="Root log level")
    LOG_FORMAT: str = Field(default="json", description="'json' or 'plain'")


class Settings(BaseModel):
    """Application configuration bundle."""

    security: SecuritySettings
    mongo: MongoSettings
    api: APISettings
    app: AppSettings

    @staticmethod
    def _get_env(name: str, default: Optional[str] = None) -> Optional[str]:
        return os.getenv(name, default)

    # PUBLIC_INTERFACE
    @classmethod
    def from_env(cls) -> "Settings":
        """Create settings from environment variables."""
        security = SecuritySettings(
            ENCRYPTION_KEY=cls._get_env("ENCRYPTION_KEY") or DEFAULT_ENCRYPTION_KEY,
            ENCRYPTION_SALT_SIZE=int(cls._get_env("ENCRYPTION_SALT_SIZE", "16")),
            PBKDF2_ITERATIONS=int(cls._get_env("PBKDF2_ITERATIONS", "10000")),
        )
        mongo = MongoSettings(
            MONGODB_URL=cls._get_env("MONGODB_URL", "mongodb://localhost:27017"),
            MONGODB_DB=cls._get_env("MONGODB_DB", "personnel_records"),
            PAY_SCALE_COLLECTION=cls._get_env("PAY_SCALE_COLLECTION", "governmentPayScales"),
            PERSONNEL_GRADE_COLLECTION=cls._get_env("PERSONNEL_GRADE_COLLECTION", "personnelGrades"),
        )
        api = APISettings(
            API_TITLE=cls._get_env("API_TITLE", "Pay Scale Backend"),
            API_DESCRIPTION=cls._get_env(
                "API_DESCRIPTION",
                "Government pay-scale management with encrypted personnel fields.",
            ),
            API_VERSION=cls._get_env("API_VERSION", "0.1.0"),
            CORS_ALLOW_ORIGINS=(cls._get_env("CORS_ALLOW_ORIGINS", "*") or "*").split(","),
            CORS_ALLOW_METHODS=(cls._get_env("CORS_ALLOW_METHODS", "*") or "*").split(","),
            CORS_ALLOW_HEADERS=(cls._get_env("CORS_ALLOW_HEADERS", "*") or "*").split(","),
        )
        app = AppSettings(
            ENV=cls._get_env("ENV", "development"),
            STORE_BACKEND=(cls._get_env("STORE_BACKEND", "memory") or "memory").strip().lower(),
            LOG_LEVEL=(cls._get_env("LOG_LEVEL", "INFO") or "INFO").upper(),
            LOG_FORMAT=(cls._get_env("LOG_FORMAT", "json") or "json").lower(),
        )
        return cls(security=security, mongo=mongo, api=api, app=app)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Singleton access to application settings loaded from environment."""
    return Settings.from_env()
