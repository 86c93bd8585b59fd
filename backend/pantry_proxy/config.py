"""
Pantry Proxy Backend — Application Configuration
=================================================

What:  Typed configuration loaded with Pydantic Settings.
How:   Settings reads environment variables (or a .env file), validates types
       and ranges, and is constructed exactly once at process entry
       (`get_settings()` / `run()`). The instance is then passed into
       create_app() and from there into every service constructor.
Who:   main.py builds it; services receive it. No service reads the
       environment directly, so tests construct Settings(...) by hand.

Required (the process refuses to start without them):
    GRIST_BASE_URL, GRIST_API_KEY, GRIST_DOC_ID
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from pantry_proxy.exceptions import ConfigurationError


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Everything except the document-service credentials has a default suitable
    for local development against an Ollama-backed AI microservice.
    """

    # ── Document service (Grist) ──────────────────────────────────────────
    # What: Base URL of the Grist server, e.g. https://docs.getgrist.com
    grist_base_url: str = Field(default="")
    grist_api_key: str = Field(default="")
    grist_doc_id: str = Field(default="")

    # ── AI microservice ───────────────────────────────────────────────────
    # What: The unified chat endpoint (multipart: payload + optional image)
    ai_service_url: str = Field(default="http://localhost:5000/chat")
    # What: Bearer token for the microservice itself (sent only when set)
    ai_service_api_key: str = Field(default="")
    # What: Provider tag and credentials forwarded inside the payload
    ai_provider: str = Field(default="ollama")
    ai_model_api_key: str = Field(default="")
    ai_model_base_url: str = Field(default="http://localhost:11434")
    ai_chat_model: str = Field(default="llama3.2")
    ai_vision_model: str = Field(default="llama3.2-vision")
    ai_temperature: float = Field(default=0.2, ge=0.0, le=2.0)
    ai_max_tokens: int = Field(default=1024, ge=1, le=32768)
    ai_think: bool = Field(default=False)

    # ── Outbound HTTP ─────────────────────────────────────────────────────
    # What: Bound on every outbound call; for streams it applies per chunk read
    upstream_timeout_seconds: float = Field(default=60.0, gt=0, le=600)
    upstream_connect_timeout_seconds: float = Field(default=10.0, gt=0, le=120)

    # ── Inbound HTTP ──────────────────────────────────────────────────────
    # What: Routing prefix shared by every API route ("" or e.g. "/api")
    api_prefix: str = Field(default="")
    # What: Upper bound on attachment and image uploads (default 10MB)
    max_upload_bytes: int = Field(default=10_485_760, ge=1024, le=104_857_600)
    # Format: Comma-separated origins, "*" for any
    cors_origins: str = Field(default="*")
    # What: Optional directory with the front end, served at "/"
    static_dir: Optional[str] = Field(default=None)

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=3001, ge=1, le=65535)
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    @field_validator("api_prefix")
    @classmethod
    def normalize_api_prefix(cls, v: str) -> str:
        """
        Normalizes the prefix to "" or "/segment" (leading slash, no trailing).

        "api", "/api" and "/api/" all become "/api"; "/" and "" become "".
        """
        stripped = v.strip().strip("/")
        return f"/{stripped}" if stripped else ""

    @field_validator("grist_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.strip().rstrip("/")

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def grist_doc_url(self) -> str:
        """Root of every document-service call: {base}/api/docs/{docId}."""
        return f"{self.grist_base_url}/api/docs/{self.grist_doc_id}"

    def validate_required(self) -> None:
        """
        What:  Startup validation of the document-service credentials.
        When:  Called by create_app() before anything is wired up.
        Raises: ConfigurationError naming every missing variable.
        """
        missing = [
            env_name
            for env_name, value in (
                ("GRIST_BASE_URL", self.grist_base_url),
                ("GRIST_API_KEY", self.grist_api_key),
                ("GRIST_DOC_ID", self.grist_doc_id),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(missing)


@lru_cache
def get_settings() -> Settings:
    """Loads Settings from the process environment once, at process entry."""
    return Settings()
