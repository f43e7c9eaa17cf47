"""
Application Configuration

Centralized settings management using Pydantic Settings.
Supports environment variables and .env files.
"""

from pydantic_settings import BaseSettings
from pathlib import Path
from typing import List


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # ==========================================================================
    # App Settings
    # ==========================================================================
    APP_NAME: str = "Code Violation Detector"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"  # development, staging, PROD
    DEBUG: bool = True

    # ==========================================================================
    # Model Settings
    # ==========================================================================
    MODEL_PATH: Path = Path("./models/best.onnx")
    MODEL_INPUT_NAME: str = "images"
    MODEL_OUTPUT_NAME: str = "output"  # Falls back to the first model output
    ONNX_PROVIDERS: str = "CPUExecutionProvider"
    PRELOAD_MODEL: bool = True

    # ==========================================================================
    # Preprocessing / Ranking Settings
    # ==========================================================================
    INPUT_SIZE: int = 640
    RESIZE_MODE: str = "cover"  # cover (scale + centre crop) or stretch
    CUMULATIVE_PROBABILITY_THRESHOLD: float = 0.99
    MAX_IMAGE_SIZE_BYTES: int = 10485760  # 10MB

    # ==========================================================================
    # Logging Settings
    # ==========================================================================
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT_JSON: bool = True  # JSON for production, console for development

    # ==========================================================================
    # CORS Settings
    # ==========================================================================
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173,http://localhost:8000"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True

    @property
    def onnx_providers(self) -> List[str]:
        return [p.strip() for p in self.ONNX_PROVIDERS.split(",") if p.strip()]


# Global settings instance
settings = Settings()
