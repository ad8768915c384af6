"""Centralized configuration for streamgrep using Pydantic Settings."""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Strictly typed configuration loaded from ``STREAMGREP_*`` environment variables.

    CLI flags and HTTP query parameters override the defaults set here.
    """

    model_config = SettingsConfigDict(
        env_prefix="STREAMGREP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    # Scanning
    buffer_size: int = Field(default=1 << 20, ge=4096, description="Working buffer capacity in bytes per scan")
    default_limit: int = Field(default=0, ge=0, description="Match ceiling per search (0 = unlimited)")
    context_before: int = Field(default=0, ge=0, le=100, description="Lines of context before each match")
    context_after: int = Field(default=0, ge=0, le=100, description="Lines of context after each match")
    expand_archives: bool = Field(default=False, description="Search inside .zip files found while walking")

    # Search roots for the HTTP endpoint
    roots: str = Field(default=".", description="Comma-separated files or directories searched by the web endpoint")

    # Web endpoint
    host: str = Field(default="127.0.0.1", description="HTTP server host")
    port: int = Field(default=2473, ge=1, le=65535, description="HTTP server port")
    web_limit: int = Field(default=10, ge=0, description="Match ceiling applied by the web endpoint")
    web_context: int = Field(default=1, ge=0, le=20, description="Context lines around web snippets")
    show_max_bytes: int = Field(default=16 << 20, ge=1, description="Largest file prefix served by /show links")

    # Logging
    log_level: str = Field(default="warning", description="Logging level")
    json_logs: bool = Field(default=False, description="Emit structured JSON logs")

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        allowed = {"debug", "info", "warning", "error", "critical"}
        if value.lower() not in allowed:
            raise ValueError(f"log_level must be one of {sorted(allowed)}")
        return value.lower()

    def get_roots(self) -> list[str]:
        """Get list of search roots (comma-separated)."""
        if not self.roots:
            return []
        return [root.strip() for root in self.roots.split(",") if root.strip()]
