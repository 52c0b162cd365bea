"""
Configuration Management - Pydantic Settings
Loads environment variables; required values are checked when first needed.
"""
from typing import Optional, Tuple

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from n8n_editor.core.exceptions import ConfigError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # n8n Configuration
    n8n_base_url: Optional[str] = Field(default=None, alias="N8N_API_URL")
    n8n_api_key: Optional[str] = Field(default=None, alias="N8N_API_KEY")
    n8n_editor_url: str = Field(default="http://localhost:5678", alias="N8N_EDITOR_URL")

    # Gemini Configuration
    gemini_api_key: Optional[str] = Field(default=None, alias="GEMINI_API_KEY")
    gemini_model: str = Field(default="gemini-flash-latest", alias="GEMINI_MODEL")
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        alias="GEMINI_BASE_URL"
    )

    # Edit pipeline
    reprompt_on_invalid_json: bool = Field(default=False, alias="REPROMPT_ON_INVALID_JSON")
    audit_log_path: str = Field(default="ai_edit_logs.json", alias="AI_EDIT_LOG_PATH")
    proxy_log_path: str = Field(default="api_responses.json", alias="API_RESPONSE_LOG_PATH")

    # Server Configuration
    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: int = Field(default=8000, alias="API_PORT")
    debug: bool = Field(default=False, alias="DEBUG")

    # HTTP Client Configuration
    http_timeout: float = Field(default=30.0, alias="HTTP_TIMEOUT")
    model_timeout: float = Field(default=120.0, alias="MODEL_TIMEOUT")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def api_url(self) -> Optional[str]:
        """Ensure the API URL ends in /api/v1/ so relative endpoints merge onto it."""
        if not self.n8n_base_url:
            return None
        url = self.n8n_base_url.rstrip("/")
        if not url.endswith("/api/v1"):
            url += "/api/v1"
        return url + "/"

    def require_store(self) -> Tuple[str, str]:
        """Return (api_url, api_key) or raise ConfigError naming what is missing."""
        if not self.n8n_base_url:
            raise ConfigError("N8N_API_URL not configured")
        if not self.n8n_api_key:
            raise ConfigError("N8N_API_KEY not configured")
        return self.api_url, self.n8n_api_key

    def require_model(self) -> str:
        if not self.gemini_api_key:
            raise ConfigError("GEMINI_API_KEY not configured")
        return self.gemini_api_key


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """FastAPI dependency returning the global settings."""
    return settings
