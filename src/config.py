"""Application configuration using Pydantic Settings.

All configuration is loaded from environment variables (or a local .env file).
Provider keys are optional: a missing key makes that provider fail on use,
and the call protocol falls through to the next fallback tier.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # ==========================================================================
    # Language Model Providers
    # ==========================================================================
    groq_api_key: SecretStr | None = Field(
        default=None, description="Groq API key for the primary chat provider"
    )
    groq_model: str = Field(
        default="llama-3.3-70b-versatile",
        description="Groq chat model used by the classifier and dialogue generator",
    )
    openai_api_key: SecretStr | None = Field(
        default=None, description="OpenAI API key for the text-completion fallback"
    )
    openai_completion_model: str = Field(
        default="gpt-3.5-turbo-instruct",
        description="OpenAI text-completion model used when the chat provider fails",
    )

    # ==========================================================================
    # Speech Synthesis
    # ==========================================================================
    elevenlabs_api_key: SecretStr | None = Field(
        default=None, description="ElevenLabs API key for speech synthesis"
    )
    elevenlabs_voice_id: str = Field(
        default="pFZP5JQG7iQjIQuC4Bku",
        description="ElevenLabs voice ID for the calling agent",
    )
    elevenlabs_model_id: str = Field(
        default="eleven_flash_v2_5",
        description="ElevenLabs model ID (flash models keep latency low on live calls)",
    )

    # ==========================================================================
    # Telephony
    # ==========================================================================
    plivo_auth_id: str | None = Field(default=None, description="Plivo Auth ID")
    plivo_auth_token: SecretStr | None = Field(default=None, description="Plivo Auth Token")
    plivo_from_number: str | None = Field(
        default=None, description="Plivo number used as caller ID for outbound calls"
    )
    public_base_url: str = Field(
        default="http://localhost:8000",
        description="Externally reachable base URL for webhooks and audio playback",
    )
    speech_language: str = Field(
        default="en-US", description="Language for speech gathering and fallback voice"
    )
    fallback_voice: str = Field(
        default="Polly.Joanna",
        description="Telephony provider voice used when synthesized audio is unavailable",
    )

    # ==========================================================================
    # Call Protocol
    # ==========================================================================
    provider_timeout_seconds: float = Field(
        default=4.0,
        gt=0,
        description="Timeout for each classifier, generator and TTS call",
    )
    record_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Timeout for the terminal call-record write at finalize",
    )
    min_turns_to_conclude: int = Field(
        default=3, ge=1, description="Caller turns required before the classifier may conclude"
    )
    min_topics_to_conclude: int = Field(
        default=2, ge=1, description="Covered topics required before the classifier may conclude"
    )
    max_turns: int = Field(
        default=6, ge=1, description="Turn ceiling after which the call is forced to end"
    )
    agent_name: str = Field(
        default="OceanGuard",
        description="Organisation the calling agent introduces itself as",
    )

    # ==========================================================================
    # Database
    # ==========================================================================
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/tidecall.db",
        description="SQLAlchemy async database URL",
    )

    # ==========================================================================
    # Redis
    # ==========================================================================
    redis_url: str = Field(
        default="redis://localhost:6379",
        description="Redis URL for the arq queue (call-record write retries)",
    )

    # ==========================================================================
    # Application
    # ==========================================================================
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Logging level"
    )
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Deployment environment"
    )

    # ==========================================================================
    # Derived Properties
    # ==========================================================================
    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def telephony_configured(self) -> bool:
        """Whether outbound calls can actually be placed."""
        return bool(self.plivo_auth_id and self.plivo_auth_token and self.plivo_from_number)

    @property
    def redis_settings(self):
        """Get Redis connection settings for arq."""
        from arq.connections import RedisSettings

        return RedisSettings.from_dsn(self.redis_url)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Use dependency injection in FastAPI:
        settings: Settings = Depends(get_settings)
    """
    return Settings()
