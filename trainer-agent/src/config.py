"""Service settings loaded from the environment."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # LLM / vision
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-5"
    google_api_key: str = ""
    gemini_model: str = "gemini-2.5-pro"
    groq_api_key: str = ""
    groq_api_url: str = "https://api.groq.com/openai/v1/audio/transcriptions"
    transcription_model: str = "whisper-large-v3-turbo"
    transcription_language: str = "es"

    # Twilio / WhatsApp
    twilio_account_sid: str = ""
    twilio_auth_token: str = ""
    twilio_webhook_url: str = ""
    twilio_validate_signature: bool = True
    message_max_length: int = 1500
    message_chunk_delay: float = 1.0

    # Persistence
    store_backend: str = "memory"  # "memory" | "api"
    backend_api_url: str = "http://localhost:3000/internal"
    backend_api_token: str = ""

    # Admin endpoints
    agent_api_token: str = ""

    max_history_messages: int = 100
    log_level: str = "INFO"


settings = Settings()
