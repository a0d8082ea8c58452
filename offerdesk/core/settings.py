from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Dict, List, Optional


def _coerce_async_url(url: str) -> str:
    """Convert common database URLs to an async driver DSN for SQLAlchemy."""
    if not url:
        return url
    # Heroku provides postgres:// or postgresql://
    if url.startswith("postgres://"):
        return "postgresql+asyncpg://" + url[len("postgres://"):]
    if url.startswith("postgresql://"):
        return "postgresql+asyncpg://" + url[len("postgresql://"):]
    if url.startswith("sqlite://"):
        return "sqlite+aiosqlite://" + url[len("sqlite://"):]
    return url


class Settings(BaseSettings):
    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------
    ENV: str = "local"
    LOG_LEVEL: str = "INFO"

    # ------------------------------------------------------------------
    # Record store
    # ------------------------------------------------------------------
    STORE_BACKEND: str = "sql"  # "sql" or "json"
    DB_URL: Optional[str] = "sqlite+aiosqlite:///./offerdesk.db"
    DATA_DIR: str = "data"  # json backend: one <entity>.json per entity

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------
    ASSETS_DIR: str = "assets"
    MAX_UPLOAD_MB: int = 5

    # ------------------------------------------------------------------
    # Sweeper / scheduler
    # ------------------------------------------------------------------
    SWEEP_ON_REQUEST: bool = True    # clean dangling offers before /offers requests
    SWEEP_PERIODIC: bool = True      # register the interval sweep job
    SWEEP_INTERVAL_SECONDS: float = 60
    TIMEZONE: str = "UTC"

    # ------------------------------------------------------------------
    # Tag search
    # ------------------------------------------------------------------
    TAG_SEARCH_DELAY_SECONDS: float = 60  # simulated latency
    TAG_SEARCH_TTL_SECONDS: float = 3600  # 0 keeps completed tasks forever

    # ------------------------------------------------------------------
    # HTTP surface
    # ------------------------------------------------------------------
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]
    ROLE_CREDENTIALS: Dict[str, str] = {
        "Basic Account-Manager": "Account-Manager",
        "Basic Developer": "Developer",
        "Basic User": "User",
    }

    # ------------------------------------------------------------------
    # Model configuration
    # ------------------------------------------------------------------
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",  # ignore any unrecognized vars instead of erroring
    )

    def normalized(self) -> "Settings":
        if self.DB_URL:
            self.DB_URL = _coerce_async_url(self.DB_URL)
        self.STORE_BACKEND = (self.STORE_BACKEND or "sql").strip().lower()
        return self


# create global settings instance and normalize DB URL
settings = Settings().normalized()
