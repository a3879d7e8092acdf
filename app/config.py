import os
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}")


def _list_env(name: str, default: str = "") -> list[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


class Settings:
    """Startup configuration, read once from the environment (.env supported)."""

    def __init__(self):
        self.env = os.getenv("ENV", "dev")
        self.database_url = os.getenv("DATABASE_URL", "sqlite:///./blog.db")
        self.google_client_id = os.getenv("GOOGLE_CLIENT_ID")
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        self.host = os.getenv("HOST", "0.0.0.0")
        self.port = _int_env("PORT", 8000)

        self.admin_emails = [e.lower() for e in _list_env("ADMIN_EMAILS")]
        self.cors_origins = _list_env("CORS_ORIGINS", "http://localhost:8000")

        # Listing / related posts
        self.default_page_size = _int_env("BLOG_PAGE_SIZE", 12)
        self.max_page_size = _int_env("BLOG_MAX_PAGE_SIZE", 50)
        self.related_limit = _int_env("BLOG_RELATED_LIMIT", 3)

    @property
    def is_prod(self) -> bool:
        return self.env == "prod"


@lru_cache
def get_settings() -> Settings:
    return Settings()
