"""Runtime configuration for Speech Relay."""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TRANSLATOR_ENDPOINT = "https://api.cognitive.microsofttranslator.com"


class Settings(BaseSettings):
    """Environment-driven runtime settings."""

    model_config = SettingsConfigDict(env_prefix="SPEECH_RELAY_", env_file=".env", extra="ignore")

    app_name: str = "speech-relay"
    log_level: str = "INFO"
    speech_backend: str = Field(default="azure", description="Recognition/synthesis backend: azure or local.")

    speech_api_key: str = ""
    translator_api_key: str = ""
    region: str = "japaneast"
    translator_region: str | None = None
    translator_endpoint: str = DEFAULT_TRANSLATOR_ENDPOINT
    translator_api_version: str = "3.0"

    source_language: str = "ja-JP"
    target_language: str = "en"
    voice_name: str = "en-US-GuyNeural"
    local_voice_id: str | None = Field(default=None, description="pyttsx3 voice id for the local backend.")
    termination_phrase: str = Field(default="終わり", description="Spoken cue that ends the session.")

    translate_timeout_seconds: float = 10.0
    translate_max_retries: int = 0
    translate_retry_delay_seconds: float = 0.5
    synthesis_timeout_seconds: float | None = None


settings = Settings()


@dataclass(frozen=True, slots=True)
class SessionConfig:
    """Immutable per-session configuration captured when a session starts."""

    source_language: str = "ja-JP"
    target_language: str = "en"
    voice_name: str = "en-US-GuyNeural"
    local_voice_id: str | None = None
    termination_phrase: str = "終わり"
    speech_api_key: str = field(default="", repr=False)
    translator_api_key: str = field(default="", repr=False)
    region: str = "japaneast"
    translator_region: str | None = None
    translator_endpoint: str = DEFAULT_TRANSLATOR_ENDPOINT
    translator_api_version: str = "3.0"
    translate_timeout_seconds: float | None = 10.0
    translate_max_retries: int = 0
    translate_retry_delay_seconds: float = 0.5
    synthesis_timeout_seconds: float | None = None

    @classmethod
    def from_settings(cls, source: Settings | None = None, **overrides: object) -> SessionConfig:
        """Build a session config from settings, ignoring ``None`` overrides."""
        source = source or settings
        config = cls(
            source_language=source.source_language,
            target_language=source.target_language,
            voice_name=source.voice_name,
            local_voice_id=source.local_voice_id,
            termination_phrase=source.termination_phrase,
            speech_api_key=source.speech_api_key,
            translator_api_key=source.translator_api_key,
            region=source.region,
            translator_region=source.translator_region,
            translator_endpoint=source.translator_endpoint,
            translator_api_version=source.translator_api_version,
            translate_timeout_seconds=source.translate_timeout_seconds,
            translate_max_retries=max(0, source.translate_max_retries),
            translate_retry_delay_seconds=max(0.0, source.translate_retry_delay_seconds),
            synthesis_timeout_seconds=source.synthesis_timeout_seconds,
        )
        applied = {key: value for key, value in overrides.items() if value is not None}
        return replace(config, **applied) if applied else config
