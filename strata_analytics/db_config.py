"""Database configuration and connection URL management"""
from dataclasses import dataclass
from urllib.parse import quote_plus

from strata_analytics.config import Settings

SUPPORTED_SCHEMES = ('postgresql', 'postgresql+psycopg2', 'sqlite')
DEFAULT_DATABASE_URL = 'sqlite:///strata.db'

@dataclass
class DatabaseCredentials:
    """PostgreSQL credentials container with validation"""
    host: str
    port: str
    name: str
    user: str
    password: str
    ssl_mode: str = 'require'

    @classmethod
    def from_settings(cls, settings: Settings) -> 'DatabaseCredentials':
        """
        Create credentials from the DB_* settings

        Raises:
            ValueError: If a required credential is missing
        """
        missing = [
            key for key, value in (
                ('DB_NAME', settings.DB_NAME),
                ('DB_USER', settings.DB_USER),
                ('DB_PASSWORD', settings.DB_PASSWORD),
            ) if not value
        ]
        if missing:
            raise ValueError(f"Missing database settings: {', '.join(missing)}")

        return cls(
            host=settings.DB_HOST,
            port=settings.DB_PORT,
            name=settings.DB_NAME,
            user=settings.DB_USER,
            password=settings.DB_PASSWORD,
            ssl_mode=settings.DB_SSL_MODE,
        )

    def to_connection_string(self) -> str:
        """Generate database connection string with proper escaping"""
        return (
            f"postgresql://{quote_plus(self.user)}:{quote_plus(self.password)}@{self.host}:{self.port}/"
            f"{self.name}?sslmode={self.ssl_mode}"
        )

def resolve_database_url(settings: Settings) -> str:
    """
    Pick the database URL: DATABASE_URL if set, else one built from DB_HOST and
    the other DB_* credentials, else a local SQLite file.

    Raises:
        ValueError: If credentials are incomplete or the URL uses an unsupported driver
    """
    if settings.DATABASE_URL:
        url = settings.DATABASE_URL
    elif settings.DB_HOST:
        url = DatabaseCredentials.from_settings(settings).to_connection_string()
    else:
        url = DEFAULT_DATABASE_URL

    scheme = url.split('://', 1)[0]
    if scheme not in SUPPORTED_SCHEMES:
        raise ValueError(f"Unsupported database scheme '{scheme}'. Must be one of {', '.join(SUPPORTED_SCHEMES)}")
    return url

def is_memory_sqlite(url: str) -> bool:
    """True for SQLite URLs that point at a private in-memory database"""
    return url.startswith('sqlite') and (url.endswith(':memory:') or url.rstrip('/') == 'sqlite:')
