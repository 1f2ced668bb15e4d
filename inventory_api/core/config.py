"""
Application Configuration
Environment-driven settings for the inventory API
"""

import os
from typing import List
from dotenv import load_dotenv

load_dotenv()


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings:
    """Settings read from the environment (and a local .env file when present)"""

    def __init__(self):
        # Application
        self.ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
        self.DEBUG = os.getenv("DEBUG", "false").lower() == "true"
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self.SERVICE_NAME = os.getenv("SERVICE_NAME", "factory-inventory-api")
        self.SERVICE_VERSION = os.getenv("SERVICE_VERSION", "1.0.0")

        # Database
        self.DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./factory_inventory.db")
        self.DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "10"))
        self.DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "20"))
        self.DB_POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", "30"))
        self.DB_POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", "3600"))

        # JWT Authentication
        self.JWT_SECRET_KEY = os.getenv(
            "JWT_SECRET_KEY", "change-this-factory-inventory-secret-key-min-32-chars"
        )
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
        # Session credentials live for a working day
        self.JWT_ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("JWT_ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))

        # Token issuer strategy (local is the only strategy shipped)
        self.AUTH_ACTIVE_ISSUER = os.getenv("AUTH_ACTIVE_ISSUER", "local")
        self.AUTH_LOCAL_ISSUER = os.getenv("AUTH_LOCAL_ISSUER", "factory-inventory-local")
        self.AUTH_TRUSTED_ISSUERS = _split_csv(os.getenv("AUTH_TRUSTED_ISSUERS", self.AUTH_LOCAL_ISSUER))

        # Permission engine
        self.PERMISSION_CACHE_TTL_SECONDS = float(os.getenv("PERMISSION_CACHE_TTL_SECONDS", "300"))
        self.PERMISSION_CACHE_MAX_ENTRIES = int(os.getenv("PERMISSION_CACHE_MAX_ENTRIES", "10000"))
        self.PERMISSION_QUERY_TIMEOUT_SECONDS = float(os.getenv("PERMISSION_QUERY_TIMEOUT_SECONDS", "5"))

        # Bootstrap admin credentials
        self.BOOTSTRAP_ADMIN_USERNAME = os.getenv("BOOTSTRAP_ADMIN_USERNAME", "admin")
        self.BOOTSTRAP_ADMIN_PASSWORD = os.getenv("BOOTSTRAP_ADMIN_PASSWORD", "FactoryAdmin")
        self.BOOTSTRAP_ADMIN_FULL_NAME = os.getenv("BOOTSTRAP_ADMIN_FULL_NAME", "Factory Administrator")

        # Security
        self.CORS_ORIGINS = _split_csv(os.getenv("CORS_ORIGINS", "http://localhost:3000"))


# Create settings instance
settings = Settings()

# Derived settings
DATABASE_CONFIG = {
    "pool_size": settings.DB_POOL_SIZE,
    "max_overflow": settings.DB_MAX_OVERFLOW,
    "pool_timeout": settings.DB_POOL_TIMEOUT,
    "pool_recycle": settings.DB_POOL_RECYCLE,
    "pool_pre_ping": True,
}
