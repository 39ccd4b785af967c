from pathlib import Path

from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from castmind.errors import ConfigurationError


class NeynarConfig(BaseModel):
    """Validated feed API settings handed to the fetchers at construction."""

    api_key: SecretStr
    owner_fid: int = Field(gt=0)
    base_url: str = "https://api.neynar.com/v2"
    page_cap: int = Field(150, ge=1, le=150)
    target_limit: int = Field(500, ge=1)
    page_delay_seconds: float = Field(1.0, ge=0)
    include_replies: bool = True
    max_attempts: int = Field(1, ge=1)
    reaction_limit: int = Field(25, ge=1, le=100)
    timeout_seconds: float = Field(30.0, gt=0)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    NEYNAR_API_KEY: SecretStr | None = Field(None, description="Neynar API key")
    NEYNAR_BASE_URL: str = Field("https://api.neynar.com/v2", description="Feed API base URL")
    OWNER_FID: int | None = Field(None, description="Pipeline owner fid, whose likes form short-term memory")

    FEED_TARGET_LIMIT: int = Field(500, description="Maximum casts pulled into long-term memory")
    FEED_PAGE_CAP: int = Field(150, description="Upstream maximum page size")
    FEED_PAGE_DELAY_SECONDS: float = Field(1.0, description="Fixed wait between page requests")
    FEED_INCLUDE_REPLIES: bool = Field(True, description="Include replies in the user's feed")
    FEED_MAX_ATTEMPTS: int = Field(1, description="Attempts per page request (1 = no retry)")
    REACTION_LIMIT: int = Field(25, description="Number of recent likes pulled into short-term memory")
    HTTP_TIMEOUT_SECONDS: float = Field(30.0, description="Timeout for feed API calls")

    OPENAI_API_KEY: SecretStr | None = Field(None, description="OpenAI API Key")
    OPENAI_EMBEDDING_MODEL: str = Field(
        "text-embedding-3-small",
        description="Model for embeddings"
    )

    DATA_DIR: Path = Field(Path("data"), description="Directory holding the SQLite database")
    LOG_LEVEL: str = Field("INFO", description="Root log level")

    @property
    def database_url(self) -> str:
        return f"sqlite:///{self.DATA_DIR / 'castmind.db'}"

    def neynar_config(self, owner_fid: int | None = None) -> NeynarConfig:
        """Build the feed config once at startup, failing fast on missing values."""
        api_key = self.NEYNAR_API_KEY.get_secret_value() if self.NEYNAR_API_KEY else ""
        if not api_key:
            raise ConfigurationError("NEYNAR_API_KEY not found in environment variables")
        fid = owner_fid if owner_fid is not None else self.OWNER_FID
        if fid is None:
            raise ConfigurationError("OWNER_FID is not configured")
        return NeynarConfig(
            api_key=self.NEYNAR_API_KEY,
            owner_fid=fid,
            base_url=self.NEYNAR_BASE_URL,
            page_cap=self.FEED_PAGE_CAP,
            target_limit=self.FEED_TARGET_LIMIT,
            page_delay_seconds=self.FEED_PAGE_DELAY_SECONDS,
            include_replies=self.FEED_INCLUDE_REPLIES,
            max_attempts=self.FEED_MAX_ATTEMPTS,
            reaction_limit=self.REACTION_LIMIT,
            timeout_seconds=self.HTTP_TIMEOUT_SECONDS,
        )

# Singleton instance
settings = Settings()
