"""Configuration loaded from environment (.env) and defaults."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Locate the project root .env file regardless of CWD
_THIS_DIR = Path(__file__).resolve().parent          # techblog/
_PROJECT_ROOT = _THIS_DIR.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE) if _ENV_FILE.exists() else ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # LLM provider: openai | anthropic
    blog_llm_provider: str = "openai"

    # OpenAI
    openai_api_key: str | None = None
    blog_openai_model: str = "gpt-4o"

    # Anthropic
    anthropic_api_key: str | None = None
    blog_anthropic_model: str = "claude-3-5-sonnet-20241022"

    # Postgres DSN for the blog store; in-memory store when unset
    blog_database_url: str | None = None

    # Generation job monitoring
    blog_monitor_interval_seconds: float = 2.0
    blog_monitor_timeout_seconds: float = 30 * 60

    # Fixed identifiers stamped on generated posts
    blog_system_author_id: str = "ai-system"
    blog_default_category_id: str = "cat-1"

    # News sources: optional YAML override of the packaged list
    blog_news_sources_file: str | None = None
    # Fetch full article text (trafilatura) for articles that pass the relevance filter
    blog_news_fetch_full_text: bool = True
    blog_http_timeout: float = 15.0

    # CORS origins (comma-separated). Defaults to localhost dev.
    cors_origins: str = "http://localhost:5173,http://127.0.0.1:5173"
    cors_origin_regex: str | None = None

    # Server port
    port: int = 8000

    # Admin login for the dashboard; login is disabled while the password is unset
    admin_username: str = "admin"
    admin_password: str | None = None

    @property
    def llm_api_key(self) -> str | None:
        """API key for the configured provider."""
        if self.blog_llm_provider.lower() == "anthropic":
            return self.anthropic_api_key
        return self.openai_api_key

    @property
    def llm_model(self) -> str:
        """Default model for the configured provider."""
        if self.blog_llm_provider.lower() == "anthropic":
            return self.blog_anthropic_model
        return self.blog_openai_model

    @property
    def cors_origin_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


def get_settings() -> Settings:
    return Settings()
