"""
=====================================================
Voice Lead Agent - Configuration Module
=====================================================
Centralized configuration management using pydantic-settings

Nothing here is required: a missing credential puts the matching
service into degraded mode instead of failing startup.
"""

import json
from typing import List
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore"
    )

    # =====================================================
    # APPLICATION
    # =====================================================
    app_name: str = "Voice Lead Agent"
    app_version: str = "1.0.0"
    environment: str = Field(default="development", alias="ENVIRONMENT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_file: str = Field(default="", alias="LOG_FILE")
    debug: bool = False

    # API
    api_host: str = "0.0.0.0"
    api_port: int = Field(default=8000, alias="PORT")
    # Store as string internally to avoid JSON parsing issues
    # Will be converted to List[str] by property
    allowed_origins_str: str = Field(
        default="http://localhost:3000,http://localhost:8000",
        alias="ALLOWED_ORIGINS"
    )
    # Absolute base for webhook URLs in TwiML; relative paths when empty
    public_base_url: str = Field(default="", alias="PUBLIC_BASE_URL")

    # =====================================================
    # DATABASE
    # =====================================================
    database_url: str = Field(default="", alias="DATABASE_URL")
    db_connect_timeout: float = Field(default=5.0, alias="DB_CONNECT_TIMEOUT")
    db_retry_cooldown: float = Field(default=30.0, alias="DB_RETRY_COOLDOWN")
    db_pool_min_size: int = 1
    db_pool_max_size: int = 10
    message_ttl_days: int = 365
    lead_ttl_days: int = 730

    # =====================================================
    # TWILIO
    # =====================================================
    twilio_auth_token: str = Field(default="", alias="TWILIO_AUTH_TOKEN")
    validate_twilio_signature: bool = Field(default=False, alias="VALIDATE_TWILIO_SIGNATURE")
    # Twilio <Say> voice used when synthesized audio is unavailable
    fallback_say_voice: str = Field(default="Polly.Joanna-Neural", alias="FALLBACK_SAY_VOICE")

    # =====================================================
    # OPENAI / AZURE OPENAI
    # =====================================================
    openai_api_key: str = Field(default="", alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4o-mini", alias="OPENAI_MODEL")
    azure_openai_endpoint: str = Field(default="", alias="AZURE_OPENAI_ENDPOINT")
    azure_openai_api_version: str = Field(default="2024-06-01", alias="AZURE_OPENAI_API_VERSION")
    azure_openai_deployment: str = Field(default="", alias="AZURE_OPENAI_DEPLOYMENT")
    openai_temperature: float = 0.7
    openai_max_tokens: int = 80  # Phone replies stay short

    # =====================================================
    # ELEVENLABS TTS
    # =====================================================
    elevenlabs_api_key: str = Field(default="", alias="ELEVENLABS_API_KEY")
    elevenlabs_voice_id: str = Field(default="Rachel", alias="ELEVENLABS_VOICE_ID")
    elevenlabs_model: str = Field(default="eleven_turbo_v2_5", alias="ELEVENLABS_MODEL")
    elevenlabs_output_format: str = "mp3_44100_128"

    # =====================================================
    # AZURE BLOB STORAGE (synthesized audio)
    # =====================================================
    azure_storage_connection_string: str = Field(default="", alias="AZURE_STORAGE_CONNECTION_STRING")
    audio_container: str = Field(default="voice-audio", alias="AUDIO_CONTAINER")
    audio_cache_max_age: int = 31536000  # 1 year

    # =====================================================
    # CONVERSATION
    # =====================================================
    speech_confidence_threshold: float = Field(default=0.2, alias="SPEECH_CONFIDENCE_THRESHOLD")
    gather_timeout: int = 30
    emergency_gather_timeout: int = 15
    session_cache_size: int = Field(default=1000, alias="SESSION_CACHE_SIZE")
    returning_call_lookback: int = 3

    # =====================================================
    # DASHBOARD / AUTH
    # =====================================================
    dashboard_lead_limit: int = 20
    dashboard_conversation_limit: int = 10
    high_score_threshold: int = 70
    session_expiry_hours: int = Field(default=24, alias="SESSION_EXPIRY_HOURS")
    max_login_attempts: int = 5
    lockout_minutes: int = 15

    @field_validator("speech_confidence_threshold")
    @classmethod
    def _threshold_in_range(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("SPEECH_CONFIDENCE_THRESHOLD must be between 0 and 1")
        return v

    # =====================================================
    # PROPERTIES
    # =====================================================
    @property
    def allowed_origins(self) -> List[str]:
        """Get allowed origins as a list"""
        return self._parse_origins_string(self.allowed_origins_str)

    def _parse_origins_string(self, origins_str: str) -> List[str]:
        """Parse origins from comma-separated string"""
        if not origins_str:
            return ["http://localhost:3000", "http://localhost:8000"]

        # JSON list form is accepted as well
        try:
            parsed = json.loads(origins_str)
            if isinstance(parsed, list):
                return parsed
        except (json.JSONDecodeError, TypeError):
            pass

        origins = [origin.strip() for origin in origins_str.split(',')]
        return [o for o in origins if o]

    def webhook_url(self, path: str) -> str:
        """Absolute URL for a webhook path when PUBLIC_BASE_URL is set"""
        if not self.public_base_url:
            return path
        return self.public_base_url.rstrip("/") + path


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get settings instance (for dependency injection)"""
    return settings
