"""Application configuration models

Validated with Pydantic after ConfigManager resolves the YAML file and
environment variables.

Security Note:
- API keys must be loaded from environment variables
- Never hardcode API keys in configuration files
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from notes_ai.models.llm import RetryConfig

PLACEHOLDER_KEYS = ["YOUR_API_KEY", "PLACEHOLDER", "", "None"]


class LLMSettings(BaseModel):
    """Upstream LLM API configuration"""

    api_key: Optional[str] = Field(
        default=None, description="OpenRouter API key (from environment variable)"
    )
    base_url: str = Field(
        default="https://openrouter.ai/api/v1/chat/completions",
        description="Chat completions endpoint",
    )
    default_model: str = Field(
        default="openai/gpt-5-nano",
        pattern=r"^[A-Za-z0-9-]+/[A-Za-z0-9-._]+$",
        description="Model used when a request does not name one",
    )
    timeout_seconds: float = Field(
        default=60.0, gt=0.0, le=600.0, description="Per-attempt request timeout"
    )
    retry: RetryConfig = Field(
        default_factory=RetryConfig, description="Retry configuration"
    )
    app_url: Optional[str] = Field(
        default=None, description="Sent as HTTP-Referer for upstream attribution"
    )
    app_name: Optional[str] = Field(
        default=None, description="Sent as X-Title for upstream attribution"
    )

    @field_validator("api_key")
    @classmethod
    def validate_api_key(cls, v: Optional[str]) -> Optional[str]:
        """Security: Ensure API key is not placeholder if provided"""
        if v is not None and v.strip() in PLACEHOLDER_KEYS:
            raise ValueError(
                "API key must be a valid credential from environment variable"
            )
        return v


class RateLimitSettings(BaseModel):
    """Fixed-window limits for anonymous generation traffic"""

    max_requests: int = Field(
        default=100, ge=1, description="Admitted requests per window per client"
    )
    window_seconds: float = Field(
        default=24 * 60 * 60, gt=0.0, description="Window duration"
    )
    sweep_interval_seconds: float = Field(
        default=60 * 60, gt=0.0, description="Period of expired-entry sweep"
    )


class TelemetrySettings(BaseModel):
    """Telemetry sink configuration (Supabase / PostgREST)"""

    supabase_url: Optional[str] = Field(default=None, description="Project URL")
    supabase_key: Optional[str] = Field(
        default=None, description="Service or anon key (from environment variable)"
    )
    table: str = Field(default="llm_generations", min_length=1)

    @property
    def enabled(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


class LoggingSettings(BaseModel):
    """Structured logging configuration"""

    level: str = Field(default="INFO")
    json_output: bool = Field(default=True)

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level


class AppConfig(BaseModel):
    """Root configuration"""

    llm: LLMSettings = Field(default_factory=LLMSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    telemetry: TelemetrySettings = Field(default_factory=TelemetrySettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "llm": {
                    "api_key": "${OPENROUTER_API_KEY}",
                    "default_model": "openai/gpt-5-nano",
                    "timeout_seconds": 60,
                    "retry": {"retry_attempts": 2, "retry_delay_seconds": 1.0},
                    "app_url": "https://10xnotes.app",
                    "app_name": "10xNotes",
                },
                "rate_limit": {"max_requests": 100, "window_seconds": 86400},
            }
        }
    )
