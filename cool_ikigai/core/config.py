from typing import Optional
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings
import logging


class Settings(BaseSettings):
    """Application settings, read from the environment and .env"""
    APP_NAME: str = "Cool Ikigai"
    DEBUG: bool = False

    # API access
    IKIGAI_API_KEY: Optional[str] = Field(default=None)
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_TIER: str = "default"

    # LLM settings (free chat with Bob)
    OPENAI_API_KEY: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("OPENAI_API_KEY", "OPENAI_APIKEY")
    )
    GPT_MODEL: str = "gpt-4o-mini"
    GPT_TEMPERATURE: float = 0.7

    # Text-to-speech
    ELEVENLABS_API_KEY: Optional[str] = Field(default=None)
    ELEVENLABS_VOICE: str = "rachel"
    ELEVENLABS_MODEL: str = "eleven_multilingual_v2"

    # Storage
    REDIS_URL: Optional[str] = Field(default=None)
    RESULT_TTL_DAYS: int = 15

    # Dialogue timing
    GOODBYE_DELAY_SECONDS: float = 3.0
    SPEECH_PLAYBACK_TIMEOUT: float = 30.0

    # Coaching booking
    COACHING_BASE_URL: str = "https://calendly.com/ikigai-coaching/session"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore"
    }

# Shared settings instance
settings = Settings()


def validate_required_settings() -> bool:
    """Check that the optional integrations are configured, warn otherwise"""
    missing = []

    if not settings.OPENAI_API_KEY:
        missing.append("OPENAI_API_KEY/OPENAI_APIKEY")

    if not settings.ELEVENLABS_API_KEY:
        missing.append("ELEVENLABS_API_KEY")

    if not settings.REDIS_URL:
        missing.append("REDIS_URL")

    if missing:
        logger = logging.getLogger(__name__)
        logger.warning(f"Missing environment variables: {', '.join(missing)}")
        logger.warning("Free chat, voice synthesis or persistence may be unavailable.")
        return False

    return True
