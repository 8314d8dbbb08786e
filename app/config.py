"""
Configuration settings for the Infographic Studio backend.
Loads environment variables and provides application-wide settings.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Ollama Configuration
    OLLAMA_BASE_URL: str = "http://localhost:11434"
    OLLAMA_LLM_MODEL: str = "qwen2.5:3b"
    OLLAMA_TIMEOUT: int = 120  # seconds per generate/optimize call

    # Generation Settings
    LLM_TEMPERATURE: float = 0.4
    LLM_MAX_TOKENS: int = 4000
    # Forces the output language of generated documents (e.g. "Thai").
    # When unset the producer answers in the language of the request.
    OUTPUT_LANGUAGE: Optional[str] = None

    # Seed Document: a template id from app/data/templates.py, or the demo document
    DEFAULT_TEMPLATE_ID: Optional[str] = None

    # Export Settings
    CHARTJS_CDN_URL: str = "https://cdn.jsdelivr.net/npm/chart.js"

    # Server Configuration
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    def get_allowed_origins(self) -> List[str]:
        """Parse ALLOWED_ORIGINS string into a list."""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]


# Global settings instance
settings = Settings()
