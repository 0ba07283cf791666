"""
Configuration module for the Speak Practice backend.
Uses pydantic-settings for environment variable management.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ALLOWED_ORIGIN = "http://localhost:5173"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # ===========================================
    # Server Configuration
    # ===========================================
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=3001, description="Server port")
    debug: bool = Field(default=False, description="Debug mode")
    environment: str = Field(default="development", description="Environment name")

    # ===========================================
    # Gemini Configuration
    # ===========================================
    gemini_api_key: Optional[str] = Field(
        default=None, description="API key for the hosted Gemini model"
    )
    gemini_model: str = Field(
        default="gemini-2.5-flash", description="Gemini model used for all prompts"
    )
    llm_temperature: float = Field(
        default=0.7, description="Sampling temperature for conversation turns"
    )
    llm_feedback_temperature: float = Field(
        default=0.3, description="Sampling temperature for feedback reports"
    )
    llm_max_output_tokens: int = Field(
        default=1024, description="Maximum output tokens per generation"
    )
    llm_timeout: float = Field(
        default=60.0, description="Timeout in seconds for a single model call"
    )

    # ===========================================
    # HTTP Configuration
    # ===========================================
    allowed_origins: str = Field(
        default="",
        description="Comma-separated list of allowed CORS origins",
    )
    max_request_bytes: int = Field(
        default=1024 * 1024, description="Maximum accepted request body size"
    )

    # ===========================================
    # Progress Store
    # ===========================================
    data_dir: str = Field(
        default="./data", description="Directory holding the JSON progress store"
    )
    storage_backend: str = Field(
        default="file", description="Progress store backend (file, memory)"
    )
    max_stored_sessions: int = Field(
        default=100, description="Number of most recent sessions kept in the store"
    )

    # ===========================================
    # Conversation Client
    # ===========================================
    backend_url: str = Field(
        default="http://localhost:3001/api",
        description="Base URL of the conversation API used by the client",
    )
    client_timeout: float = Field(
        default=30.0, description="Timeout in seconds for client requests"
    )

    # ===========================================
    # Logging
    # ===========================================
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(
        default="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        description="Loguru log format",
    )

    # ===========================================
    # Computed Properties
    # ===========================================
    @property
    def allowed_origins_list(self) -> List[str]:
        """Parse allowed origins, falling back to the local dev server."""
        origins = [
            origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()
        ]
        return origins or [DEFAULT_ALLOWED_ORIGIN]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def has_gemini_key(self) -> bool:
        return bool(self.gemini_api_key and self.gemini_api_key.strip())


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


# Global settings instance for convenience
settings = get_settings()
