import os
from dotenv import load_dotenv

load_dotenv()

PLACEHOLDER_URLS = {"", "your-database-url", "your-project-url"}


class Settings:
    database_url: str = os.getenv(
        "DATABASE_URL",
        "sqlite+aiosqlite:///./traxlio.db"
    )
    database_echo: bool = os.getenv("DATABASE_ECHO", "False").lower() == "true"

    # Remote (relational) sync is used only for signed-in users
    remote_sync_enabled: bool = os.getenv("REMOTE_SYNC_ENABLED", "True").lower() == "true"

    # Local JSON document store
    local_data_dir: str = os.getenv("LOCAL_DATA_DIR", "./data")
    inventory_key: str = os.getenv("INVENTORY_KEY", "traxlio_inventory")

    # Ephemeral demo sessions (one in-memory store each)
    demo_session_limit: int = int(os.getenv("DEMO_SESSION_LIMIT", "1000"))
    demo_session_idle_seconds: int = int(os.getenv("DEMO_SESSION_IDLE_SECONDS", "21600"))

    # Auth
    jwt_secret: str = os.getenv("JWT_SECRET", "change-me")
    jwt_lifetime_seconds: int = int(os.getenv("JWT_LIFETIME_SECONDS", "3600"))

    share_url_prefix: str = os.getenv("SHARE_URL_PREFIX", "/share/")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    @property
    def remote_configured(self) -> bool:
        """True when the relational backend may be used for signed-in users."""
        url = (self.database_url or "").strip()
        return self.remote_sync_enabled and url not in PLACEHOLDER_URLS


settings = Settings()
