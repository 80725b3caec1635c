from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List
from urllib.parse import urlparse


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""  # anon key
    supabase_service_role_key: Optional[str] = None  # Enables admin signup and friend checks on send

    # TMDB
    tmdb_api_key: Optional[str] = None
    tmdb_base_url: str = "https://api.themoviedb.org/3"
    tmdb_image_base_url: str = "https://image.tmdb.org/t/p"
    tmdb_cache_ttl_seconds: int = 900
    tmdb_timeout_seconds: float = 8.0

    # App
    app_name: str = "bib-backend"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"
    signup_rate_limit: str = "5/10 minutes"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_supabase_configured(self) -> bool:
        return bool(self.supabase_url.strip() and self.supabase_key.strip())

    @property
    def is_tmdb_configured(self) -> bool:
        return bool((self.tmdb_api_key or "").strip())

    @property
    def has_service_role(self) -> bool:
        """Service role key looks like a JWT (header.payload.signature)."""
        key = (self.supabase_service_role_key or "").strip()
        return len(key.split(".")) == 3

    @property
    def supabase_project_ref(self) -> str:
        if not self.supabase_url:
            return ""
        try:
            return (urlparse(self.supabase_url).hostname or "").split(".")[0]
        except ValueError:
            return ""

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()
