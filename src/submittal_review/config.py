"""Application configuration using Pydantic Settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # LLM Configuration
    gemini_api_key: str = ""  # empty = deterministic template drafts only
    composer_model: str = "gemini-2.5-flash"
    llm_temperature: float = 0.3

    # Project data
    project_data_path: str = "data/sample_project.json"

    # Email Configuration
    from_email: str = "reviews@example.com"
    send_email: bool = False  # False = stub transport, no real delivery
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    smtp_use_ssl: bool = False
    smtp_timeout_seconds: float = 30.0

    # Simulated latency for the stub endpoints
    send_delay_seconds: float = 1.5
    generate_delay_seconds: float = 0.0

    # API server
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Application
    debug: bool = False
    log_level: str = "INFO"


settings = Settings()
