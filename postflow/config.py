"""Application configuration from environment."""
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Project root (parent of postflow/); .env is loaded from here so it works regardless of CWD
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=_ENV_FILE if _ENV_FILE.exists() else ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Gemini
    gemini_api_key: str = ""
    gemini_text_model: str = "gemini-2.5-flash"

    # Database. Local default is SQLite; production uses postgresql+asyncpg://...
    database_url: str = "sqlite+aiosqlite:///./postflow.db"

    @property
    def database_url_sync(self) -> str:
        """Sync URL for Alembic (drop the async driver suffix)."""
        url = self.database_url or ""
        for driver in ("+asyncpg", "+aiosqlite"):
            url = url.replace(driver, "")
        return url

    # Workflow
    business_context: str = (
        "A developer-tools studio that shares practical engineering news, "
        "open-source projects and AI tooling with a technical audience."
    )
    post_style: str = "Concise, concrete, first-person plural. No hype, at most two hashtags."
    target_platforms: list[str] = Field(default_factory=lambda: ["x", "linkedin"])
    platform_char_limits: dict[str, int] = Field(default_factory=lambda: {"x": 280, "linkedin": 3000})
    max_condense_attempts: int = 3
    extraction_timeout_seconds: float = 30.0
    llm_timeout_seconds: float = 60.0
    max_source_chars: int = 12000
    max_report_chars: int = 6000

    # Assets
    max_asset_candidates: int = 6
    max_image_bytes: int = 5 * 1024 * 1024
    min_image_dimension: int = 200
    allowed_image_formats: list[str] = Field(default_factory=lambda: ["JPEG", "PNG", "GIF", "WEBP"])
    unsplash_access_key: str = ""

    # Extractors
    github_token: str = ""
    http_user_agent: str = "postflow/1.0 (+https://github.com)"

    # LinkedIn: one app token; account name -> author URN (person or organization)
    linkedin_access_token: str = ""
    linkedin_accounts: dict[str, str] = Field(default_factory=dict)

    # X: account name -> OAuth 2.0 user access token
    x_accounts: dict[str, str] = Field(default_factory=dict)

    default_account: str = "default"

    # Schedule suggestion when no explicit time is given
    best_days: list[str] = Field(default_factory=lambda: ["Tuesday", "Wednesday", "Thursday"])
    best_hours: list[int] = Field(default_factory=lambda: [9, 13])
    auto_schedule: bool = True

    # App
    log_level: str = "INFO"


settings = Settings()
