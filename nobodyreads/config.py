from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

from nobodyreads.constants import DEFAULT_TENANT_ID, REVISION_RETENTION

load_dotenv()


class Settings(BaseSettings):
    # Application settings
    app_name: str = "nobodyreads"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = "development"

    # Database settings
    database_url: str = "sqlite+aiosqlite:///./data/blog.db"

    # Tenant settings
    tenant_id: str = DEFAULT_TENANT_ID
    tenant_header: str = "X-Tenant-Id"
    url_prefix_header: str = "X-Url-Prefix"

    # Site settings
    site_url: str = "http://localhost:8000"
    site_name: str = "nobodyreads.me"
    site_tagline: str = "Another simple blog engine. For writing mostly to yourself."

    # Editor settings (empty token = open editor)
    editor_token: str = ""

    # Site bundle history
    revision_retention: int = REVISION_RETENTION

    # Logging settings
    log_level: str = "INFO"
    json_logs: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


settings = Settings()
