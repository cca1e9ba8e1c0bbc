"""
Configuration Settings.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings."""

    # App info
    app_name: str = "AI Onboarding Agent"
    app_version: str = "1.0.0"
    debug: bool = False

    # Session storage
    storage_type: str = "memory"  # memory, local
    local_storage_path: str = "./data/sessions"

    # LLM Provider settings
    llm_provider: str = "openai"  # "openai", "anthropic", "gemini" or "ollama"
    llm_api_key: Optional[str] = None
    llm_model: Optional[str] = None  # uses provider default if not set
    llm_base_url: Optional[str] = None  # uses provider default if not set
    llm_timeout: float = 60.0
    llm_temperature: float = 0.7
    validation_temperature: float = 0.0

    # Legacy keys (still accepted)
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None

    # Conversation behaviour
    completion_message: str = "Thank you! I have all the information I need. Your onboarding is complete!"
    field_extraction_enabled: bool = False  # re-extract fields from the transcript on completion

    # HTTP
    route_prefix: str = "/onboarding"
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:8080",
        "http://127.0.0.1:3000",
    ]

    # Logging configuration
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file_path: str = "./logs/onboarding.log"
    log_file_enabled: bool = True
    log_console_enabled: bool = True
    log_json_format: bool = True  # JSON format for files, human-readable for console
    log_api_requests: bool = True  # Log all API requests/responses
    log_llm_calls: bool = True  # Log all LLM calls with token usage

    class Config:
        env_file = ".env"
        case_sensitive = False

    @property
    def resolved_llm_api_key(self) -> Optional[str]:
        """API key for the configured provider, falling back to the legacy per-vendor keys."""
        if self.llm_api_key:
            return self.llm_api_key
        if self.llm_provider == "anthropic":
            return self.anthropic_api_key
        if self.llm_provider == "gemini":
            return self.gemini_api_key
        if self.llm_provider == "openai":
            return self.openai_api_key
        return None


settings = Settings()
