from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # core
    ENV: str = "dev"
    API_PREFIX: str = "/api"

    # database & redis
    # Plain strings so sqlite:// (local runs) and redis:// URLs are always accepted
    DATABASE_URL: str
    REDIS_URL: str

    # search & scrape provider
    FIRECRAWL_API_KEY: str | None = None
    FIRECRAWL_BASE_URL: str = "https://api.firecrawl.dev/v1"
    FIRECRAWL_TIMEOUT_SECONDS: int = 90
    FIRECRAWL_LEADERSHIP_LIMIT: int = 2
    FIRECRAWL_ASSETS_LIMIT: int = 4
    LEADERSHIP_CONTEXT_MAX_CHARS: int = 12000
    ASSETS_CONTEXT_MAX_CHARS: int = 18000

    # llm
    GEMINI_API_KEY: str | None = None
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    GEMINI_MODEL: str = "gemini-3-flash-preview"
    GEMINI_TIMEOUT_SECONDS: int = 120
    LLM_TEMPERATURE: float = 0.1
    # Character cap on the context sent to the model (token budget)
    LLM_MAX_CONTEXT_CHARS: int = 30000
    # Hard cap on concurrent LLM calls per process
    LLM_MAX_CONCURRENCY: int = 4

    # pipeline
    CONTEXT_CACHE_TTL_SECONDS: int = 60 * 60 * 6
    FRESHNESS_WINDOW_HOURS: int = 24
    PIPELINE_MAX_ATTEMPTS: int = 3
    PIPELINE_RETRY_BACKOFF_SECONDS: list[int] = [60, 120]
    PIPELINE_TIMEOUT_SECONDS: int = 300
    # Must outlive PIPELINE_TIMEOUT_SECONDS so a running attempt keeps its lease
    COMPANY_LEASE_TTL_SECONDS: int = 330

    # intake & catalog
    MAX_BATCH_SIZE: int = 10
    PAGE_SIZE: int = 10

    # cors
    FRONTEND_ORIGIN: str | None = None
    # Explicit debug-only switch for wide-open CORS in non-prod envs
    CORS_ALLOW_ALL_ORIGINS: bool = False

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache
def get_settings() -> Settings:
    return Settings()
