"""
Dua Search Service - Application Configuration

Patterns Applied:
- Pydantic Settings with SettingsConfigDict
- Environment variable prefix DSS_ for Dua Search Service
"""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

CONFIG_DIR = Path(__file__).parent.parent.parent / "config"


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables with DSS_ prefix.
    Example: DSS_HOST=0.0.0.0, DSS_PORT=8090, DSS_OPENAI_API_KEY=sk-...
    """

    # Server configuration
    host: str = "0.0.0.0"
    port: int = 8090

    # Application metadata
    service_name: str = "dua-search-service"
    version: str = "0.1.0"
    environment: str = "development"

    # Logging configuration
    log_level: str = "INFO"
    log_json: bool = True
    log_query_text: bool = False

    # Tracing configuration
    tracing_enabled: bool = True
    tracing_console_export: bool = False

    # Language model provider (OpenAI-compatible)
    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com"
    embedding_model: str = "text-embedding-3-small"
    chat_model: str = "gpt-5-nano"

    # Vector search backend (PostgREST RPC)
    vector_backend_url: str = ""
    vector_backend_key: str = ""
    match_function: str = "match_documents"
    corpus_table: str = "spiritual_assets"

    # Timeouts (seconds) and retries
    embedding_timeout: float = 10.0
    search_timeout: float = 10.0
    relevance_filter_timeout: float = 15.0
    max_retries: int = 2

    # Pipeline behaviour
    llm_filter_default: bool = True
    local_fallback_enabled: bool = True

    # Static tables
    topic_expansions_path: Path = CONFIG_DIR / "topic_expansions.yaml"
    intent_signals_path: Path = CONFIG_DIR / "intent_signals.yaml"
    names_corpus_path: Path = CONFIG_DIR / "names_of_allah.json"

    model_config = SettingsConfigDict(
        env_prefix="DSS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def upstream_configured(self) -> bool:
        """Whether credentials for the embedding and search backends are set."""
        return bool(
            self.openai_api_key and self.vector_backend_url and self.vector_backend_key
        )


def get_settings() -> Settings:
    """Get application settings instance.

    Returns:
        Settings instance with values from environment
    """
    return Settings()
