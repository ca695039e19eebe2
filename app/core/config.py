# app/core/config.py
from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import List


class Settings(BaseSettings):
    # ===================================
    # APPLICATION SETTINGS
    # ===================================
    APP_NAME: str = "File Search Gateway"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # ===================================
    # API SETTINGS
    # ===================================
    API_PREFIX: str = ""
    ALLOWED_ORIGINS: List[str] = ["*"]

    # ===================================
    # GEMINI FILE SEARCH
    # ===================================
    GEMINI_API_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    GEMINI_UPLOAD_BASE_URL: str = "https://generativelanguage.googleapis.com/upload/v1beta"
    GEMINI_MODEL: str = "gemini-2.5-flash"
    DEFAULT_SYSTEM_PROMPT: str = (
        "You are a document assistant. Answer ONLY from the provided File Search stores."
    )

    # ===================================
    # HTTP / POLLING
    # ===================================
    HTTP_TIMEOUT_SECONDS: float = 30.0
    UPLOAD_TIMEOUT_SECONDS: float = 120.0
    POLL_TIMEOUT_SECONDS: float = 25.0
    POLL_INTERVAL_SECONDS: float = 2.0
    DOCUMENTS_PAGE_SIZE: int = 20

    # ===================================
    # METADATA STORAGE
    # ===================================
    STORAGE_BACKEND: str = "file"  # Options: "file", "memory"
    DATA_DIR: str = "data"
    METADATA_KEY: str = "stores"

    # ===================================
    # DOCUMENT PROCESSING
    # ===================================
    MAX_FILENAME_LENGTH: int = 180

    # ===================================
    # COMPUTED PROPERTIES
    # ===================================
    @property
    def is_memory_storage(self) -> bool:
        return self.STORAGE_BACKEND.lower() == "memory"

    # ===================================
    # PYDANTIC CONFIG
    # ===================================
    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "allow"  # Allow extra fields from .env


# ===================================
# SINGLETON PATTERN
# ===================================
@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
