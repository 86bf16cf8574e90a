"""
Configuration settings for the Hygeia Medicine Safety Gateway
"""
from pathlib import Path
from typing import List, Optional
from pydantic_settings import BaseSettings

BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_NAME: str = "Hygeia Medicine Safety Gateway"
    DEBUG: bool = False
    VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"

    # Google Cloud / Vertex AI
    GOOGLE_APPLICATION_CREDENTIALS: Optional[str] = None
    GOOGLE_CLOUD_PROJECT: Optional[str] = None
    VERTEX_LOCATION: str = "us-central1"

    # Gemini
    USE_GEMINI: bool = True
    GEMINI_MODEL: str = "gemini-2.0-flash-001"
    GEMINI_TEMPERATURE: float = 0.1
    GEMINI_MAX_OUTPUT_TOKENS: int = 4096

    # Safety resolution: "rules" (local knowledge base) or "gemini"
    SAFETY_ENGINE: str = "rules"
    KNOWLEDGE_BASE_PATH: Optional[Path] = None

    # Image intake
    MAX_UPLOAD_SIZE: int = 10 * 1024 * 1024  # 10MB

    # Verify flow sessions (in-memory only)
    MAX_SESSIONS: int = 1000

    # CORS
    CORS_ORIGINS: List[str] = ["*"]

    class Config:
        env_file = ".env"
        extra = "allow"


settings = Settings()
