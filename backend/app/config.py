from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    VERSION: str = "0.1.0"
    DATABASE_URL: str = "sqlite:///./ship_registry.db"
    LOG_LEVEL: str = "INFO"
    # All ship routes are mounted under this prefix
    API_PREFIX: str = "/rest"
    # Paging defaults for GET /ships
    DEFAULT_PAGE_SIZE: int = 3
    MAX_PAGE_SIZE: int = 500
    # Connection pool (ignored for SQLite)
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    # API authentication (if unset, all requests pass)
    SHIP_REGISTRY_API_KEY: str | None = None
    # CORS origins (comma-separated string for env var support)
    CORS_ORIGINS: str = "http://localhost:5173"


settings = Settings()
