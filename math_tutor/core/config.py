"""
Application configuration settings
FILE: math_tutor/core/config.py
"""
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # LLM Provider Configuration
    llm_provider: str = "gemini"
    llm_timeout: float = 60.0
    llm_max_retries: int = 3
    llm_initial_backoff: float = 1.0
    llm_temperature: float = 0.7
    llm_max_tokens: int = 4096

    # API keys (one per provider)
    gemini_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    grok_api_key: Optional[str] = None

    # Model defaults
    gemini_model: str = "gemini-2.5-flash"
    openai_model: str = "gpt-4o"
    anthropic_model: str = "claude-sonnet-4-20250514"
    grok_model: str = "grok-3-mini-beta"

    # Quiz Configuration
    quiz_question_count: int = 5

    # CORS
    cors_origins: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    class Config:
        env_file = ".env"
        case_sensitive = False  # This allows case-insensitive matching
        extra = "allow"  # This allows extra fields


settings = Settings()
