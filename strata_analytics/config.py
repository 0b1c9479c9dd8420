"""Application configuration and environment settings"""
from typing import Optional
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class LookupSettings(BaseModel):
    """Catalog lookup specific settings"""
    api_url: str = Field(..., description="Spotify Web API base URL")
    accounts_url: str = Field(..., description="Spotify accounts token endpoint")
    concurrency: int = Field(..., description="Maximum catalog requests in flight")
    timeout_seconds: float = Field(..., description="Per-request timeout")

class Settings(BaseSettings):
    """Application settings loaded from environment variables"""
    # Storage
    DATABASE_URL: Optional[str] = Field(None, description="SQLAlchemy database URL, takes precedence over DB_*")
    DB_HOST: Optional[str] = Field(None, description="PostgreSQL host, used when DATABASE_URL is unset")
    DB_PORT: str = Field("5432", description="PostgreSQL port")
    DB_NAME: Optional[str] = Field(None, description="PostgreSQL database name")
    DB_USER: Optional[str] = Field(None, description="PostgreSQL user")
    DB_PASSWORD: Optional[str] = Field(None, description="PostgreSQL password")
    DB_SSL_MODE: str = Field("require", description="PostgreSQL sslmode")
    LOG_LEVEL: str = Field("INFO", description="Root log level")

    # Spotify credentials, only needed for catalog lookups
    SPOTIFY_CLIENT_ID: Optional[str] = Field(None, description="Spotify OAuth client ID")
    SPOTIFY_CLIENT_SECRET: Optional[str] = Field(None, description="Spotify OAuth client secret")
    SPOTIFY_API_URL: str = Field("https://api.spotify.com/v1", description="Spotify Web API base URL")
    SPOTIFY_ACCOUNTS_URL: str = Field("https://accounts.spotify.com/api/token", description="Token refresh endpoint")
    TOKEN_EXPIRY_BUFFER_SECONDS: int = Field(300, description="Treat tokens expiring within this window as expired")

    # Catalog lookup pool
    LOOKUP_CONCURRENCY: int = Field(10, description="Catalog lookups in flight at once")
    LOOKUP_TIMEOUT_SECONDS: float = Field(15, description="Timeout for a single catalog request")

    # Import
    IMPORT_BATCH_SIZE: int = Field(500, description="Rows per insert statement")
    MIN_MS_PLAYED: int = Field(30000, description="Plays shorter than this are not stored")

    # Dormant artists
    DORMANT_MIN_MS_PLAYED: int = Field(3600000, description="Cumulative listening needed to count as a past favorite")
    DORMANT_INACTIVE_DAYS: int = Field(180, description="Days without a play before an artist is dormant")
    DORMANT_LIMIT: int = Field(20, description="Maximum dormant artists returned")

    @property
    def lookup_settings(self) -> LookupSettings:
        """Get catalog lookup settings as a separate model"""
        return LookupSettings(
            api_url=self.SPOTIFY_API_URL,
            accounts_url=self.SPOTIFY_ACCOUNTS_URL,
            concurrency=self.LOOKUP_CONCURRENCY,
            timeout_seconds=self.LOOKUP_TIMEOUT_SECONDS
        )

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=True,
        extra='ignore'
    )

settings = Settings()

# Constants
YEAR_MIN = 2000
YEAR_MAX = 2100
