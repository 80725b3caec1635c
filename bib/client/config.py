from pydantic_settings import BaseSettings, SettingsConfigDict
from urllib.parse import urlparse


class ClientSettings(BaseSettings):
    # BiB API
    api_url: str = "http://localhost:8000/api/v1"
    request_timeout_seconds: float = 25.0

    # Supabase project the session belongs to (names the session storage key)
    supabase_url: str = ""
    supabase_anon_key: str = ""

    # Local storage standing in for the browser's
    session_path: str = "~/.bib/session.json"

    # Reminder centers
    reminder_poll_interval_seconds: float = 45.0
    reminder_toast_ttl_seconds: float = 45.0
    reminder_max_toasts: int = 5
    reminder_poll_limit: int = 5

    @property
    def project_ref(self) -> str:
        if not self.supabase_url:
            return ""
        try:
            return (urlparse(self.supabase_url).hostname or "").split(".")[0]
        except ValueError:
            return ""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="BIB_",
        extra="ignore"
    )
