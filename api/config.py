from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    # pydantic-settings v2 configuration
    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local", "api/.env", "api/.env.local"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    app_name: str = Field(default="Blog Refresher API")
    env: str = Field(default="development")
    debug: bool = Field(default=False)

    # Source blog
    blog_base_url: str = Field(default="https://beyondchats.com/blogs/")
    blog_domain: str = Field(default="beyondchats.com")

    # Outbound HTTP
    user_agent: str = Field(default="Mozilla/5.0 (compatible; BeyondChatsScraper/1.0)")
    http_timeout_seconds: float = Field(default=30.0)
    extra_ca_certs_path: Optional[str] = Field(default=None, alias="EXTRA_CA_CERTS_PATH")

    # Search backends ("serpapi" or "cse")
    search_provider: str = Field(default="serpapi", alias="SEARCH_PROVIDER")
    serpapi_key: Optional[str] = Field(default=None, alias="SERPAPI_KEY")
    serpapi_endpoint: str = Field(default="https://serpapi.com/search.json")
    google_cse_key: Optional[str] = Field(default=None, alias="GOOGLE_CSE_KEY")
    google_cse_cx: Optional[str] = Field(default=None, alias="GOOGLE_CSE_CX")
    google_cse_endpoint: str = Field(default="https://www.googleapis.com/customsearch/v1")

    # Completion backends ("openai" or "azure")
    completion_provider: str = Field(default="openai", alias="COMPLETION_PROVIDER")
    openai_api_key: Optional[str] = Field(default=None, alias="OPENAI_API_KEY")
    openai_base_url: str = Field(default="https://api.openai.com/v1")
    openai_model: str = Field(default="gpt-4o-mini")
    azure_openai_key: Optional[str] = Field(default=None, alias="AZURE_OPENAI_KEY")
    azure_openai_endpoint: Optional[str] = Field(default=None, alias="AZURE_OPENAI_ENDPOINT")
    azure_openai_api_version: str = Field(default="2024-12-01-preview")
    azure_openai_deployment: str = Field(default="gpt-4o-mini")
    rewrite_temperature: float = Field(default=0.7)

    # Pipeline knobs
    reference_count: int = Field(default=2)
    scrape_batch_size: int = Field(default=5)
    content_max_chars: int = Field(default=4000)
    article_path_tokens: List[str] = Field(default=["blog", "blogs", "article", "news", "posts"])

    # Snowflake connection parameters (article store)
    snowflake_account: Optional[str] = None
    snowflake_user: Optional[str] = None
    snowflake_password: Optional[str] = None
    snowflake_role: Optional[str] = None
    snowflake_warehouse: Optional[str] = None
    snowflake_database: Optional[str] = None
    snowflake_schema: Optional[str] = None
    articles_table: str = Field(default="AI_BLOG_ARTICLES")

    # CORS origins for the card frontend
    cors_origins: List[str] = Field(default=["http://localhost:5173", "http://127.0.0.1:5173"])


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
