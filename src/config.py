"""Application configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Google Cloud / Firebase
    google_cloud_project: str = ""
    google_application_credentials: str = ""
    firebase_storage_bucket: str = ""

    # Vertex AI
    vertex_region: str = "europe-west1"
    chat_model: str = "gemini-2.5-flash"
    embedding_model: str = "gemini-embedding-001"
    embedding_dimensions: int = 1536

    # Knowledge base
    knowledge_collection: str = "project-knowledge"
    collections_dir: str = "collections"
    docs_dir: str = "docs"
    site_base_url: str = "https://ecovibefloors.com"

    # Reader service used to scrape marketing pages
    jina_api_key: str = ""
    reader_base_url: str = "https://r.jina.ai"

    # Chat
    chat_max_input_length: int = 800
    chat_top_k: int = 5
    chat_temperature: float = 0.7
    chat_max_output_tokens: int = 600
    default_locale: str = "bg"

    # Application
    app_env: str = "development"
    app_debug: bool = True
    app_host: str = "0.0.0.0"
    app_port: int = 8080
    log_level: str = "INFO"

    # CORS
    cors_origins: str = "http://localhost:3000,https://ecovibefloors.com"

    # Rate limiting
    chat_rate_limit: str = "20/minute"
    # Number of reverse proxies in front of the app that append to X-Forwarded-For
    trusted_proxy_hops: int = 0

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",")]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
