"""
Foreign Operator Permit System Configuration
Pydantic v2 settings loaded from the environment and an optional .env file
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List
from pathlib import Path


class Settings(BaseSettings):
    """Application settings for the Foreign Operator Permit System"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore"
    )

    # API Configuration
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Foreign Operator Permit System"
    VERSION: str = "1.0.0"

    # Development/Debug Configuration
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS Configuration
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    @property
    def allowed_origins_list(self) -> List[str]:
        """Convert ALLOWED_ORIGINS string to list"""
        if self.ALLOWED_ORIGINS == "*":
            return ["*"]
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./fop_system.db"
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30

    # File Storage Configuration
    FILE_STORAGE_PATH: str = "./storage/documents"
    MAX_FILE_SIZE_MB: int = 10

    # Currency
    CURRENCY: str = "USD"
    SUPPORTED_CURRENCIES: List[str] = ["USD", "XCD"]

    # Fallback fee rates, used only when no fee configuration is effective
    DEFAULT_BASE_FEE: float = 150.00
    DEFAULT_PER_SEAT_FEE: float = 10.00
    DEFAULT_PER_KG_FEE: float = 0.02

    # Lifecycle windows (days)
    DRAFT_EXPIRY_DAYS: int = 30
    PERMIT_EXPIRING_SOON_DAYS: int = 30
    DOCUMENT_EXPIRING_SOON_DAYS: int = 30

    # Event delivery: processed event ids remembered per handler
    EVENT_DEDUP_WINDOW: int = 10000

    def get_file_storage_path(self) -> Path:
        """Get file storage path, creating it if needed"""
        base_path = Path(self.FILE_STORAGE_PATH)
        base_path.mkdir(parents=True, exist_ok=True)
        return base_path


settings = Settings()


def get_settings() -> Settings:
    """Get application settings instance"""
    return Settings()
