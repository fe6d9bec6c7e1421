from pydantic_settings import BaseSettings
from typing import List
from functools import lru_cache
import json


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str

    # Database Connection Pool Settings
    DB_POOL_SIZE: int = 10  # Base number of connections in pool
    DB_MAX_OVERFLOW: int = 20  # Extra connections allowed beyond pool_size
    DB_POOL_TIMEOUT: int = 30  # Seconds to wait for connection from pool
    DB_POOL_RECYCLE: int = 1800  # Recycle connections after 30 minutes

    # JWT Settings
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 12 * 60  # One gate shift

    # App Settings
    APP_NAME: str = "Yardgate Truck Yard Backend"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS - JSON list or comma-separated string
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Role allowed to decide approvals and edit organization settings
    ADMIN_ROLE: str = "ADMIN"

    # Organization defaults, used until the settings document has been saved once
    DEFAULT_WEIGHT_THRESHOLD_PERCENTAGE: float = 5.0
    DEFAULT_TAT_MINUTES: int = 180  # 3 hours
    DEFAULT_TAT_WARNING_THRESHOLD: int = 20  # % over ideal TAT
    DEFAULT_TAT_CRITICAL_THRESHOLD: int = 50  # % over ideal TAT
    DEFAULT_DOCKS: str = "Dock 1,Dock 2,Dock 3,Dock 4,Dock 5"

    @property
    def cors_origins_list(self) -> List[str]:
        value = self.CORS_ORIGINS.strip()
        if value.startswith("["):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass
        return [origin.strip() for origin in value.split(",") if origin.strip()]

    @property
    def default_dock_names(self) -> List[str]:
        return [name.strip() for name in self.DEFAULT_DOCKS.split(",") if name.strip()]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
