"""Configuration settings for the application."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Pydantic settings class for the application."""

    # Define the settings with default values and types
    # These will be loaded from environment variables or a .env file if not provided
    API_PORT: int = 8080
    DEBUG: bool = False
    LOG_LEVEL: str = "info"  # Options: debug, info, warning, error, critical

    # LLM Configuration
    MODEL_PROVIDER: str = "openai"  # Any OpenAI-compatible chat-completions endpoint
    OPENAI_API_KEY: str | None = None
    OPENAI_BASE_URL: str = "https://api.groq.com/openai/v1"
    OPENAI_MODEL: str = "openai/gpt-oss-120b"
    TEMPERATURE: float = 0.2

    # Agent loop
    MAX_ITERATIONS: int = 10
    TURN_TIMEOUT: float = 120.0  # seconds, per user turn
    HISTORY_TURNS: int = 10

    # Notes
    NOTES_DIR: str = "notes"
    MAX_NOTES: int = 5

    class Config:
        """Configuration for Pydantic settings."""

        # Load environment variables from a .env file
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
