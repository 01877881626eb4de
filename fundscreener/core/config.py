"""
Settings for the screener service, read from the environment (and ``.env``)
by pydantic-settings. Credentials have no usable defaults: PostgreSQL mode
refuses to start until they are supplied.
"""

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL

_PG_REQUIRED = ("POSTGRES_USER", "POSTGRES_PASSWORD", "POSTGRES_SERVER", "POSTGRES_DB")

_PG_HINT = """
Provide them in a .env file next to the project, for example

    POSTGRES_USER=screener
    POSTGRES_PASSWORD=screener_password
    POSTGRES_SERVER=127.0.0.1
    POSTGRES_DB=mutual_funds

or export them in the shell. To run against SQLite with demo funds instead:

    USE_SQLITE=true SEED_DEMO_DATA=true uvicorn fundscreener.main:app
"""


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    PROJECT_NAME: str = "Mutual Fund Screener API"
    API_V1_STR: str = "/api/v1"

    # ── Database ──
    USE_SQLITE: bool = False
    SQLITE_PATH: str = ""  # empty: shared in-memory database

    POSTGRES_USER: str = ""
    POSTGRES_PASSWORD: SecretStr = SecretStr("")
    POSTGRES_SERVER: str = ""
    POSTGRES_DB: str = ""
    POSTGRES_PORT: int = 5432

    # A list request holds up to seven connections at once.
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800

    CORS_ORIGINS: str = "*"

    # ── Logging ──
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_FILE_MAX_BYTES: int = 10 * 1024 * 1024
    LOG_FILE_BACKUP_COUNT: int = 5

    # ── Cache ──
    CACHE_ENABLED: bool = True
    CACHE_TTL: float = 30.0
    CACHE_MAX_SIZE: int = 1000

    # ── Circuit breaker ──
    CB_FAILURE_THRESHOLD: int = 5
    CB_RECOVERY_TIMEOUT: float = 30.0

    # ── List endpoint limits ──
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100
    MAX_PAGE: int = 10_000
    MAX_SEARCH_LENGTH: int = 100
    MAX_SEARCH_TOKENS: int = 8
    FACET_LIMIT: int = 50
    QUERY_TIMEOUT_SECONDS: float = 10.0

    SEED_DEMO_DATA: bool = False

    @model_validator(mode="after")
    def _check_postgres_credentials(self) -> "Settings":
        if self.USE_SQLITE:
            return self

        missing = [
            name
            for name in _PG_REQUIRED
            if not (
                self.POSTGRES_PASSWORD.get_secret_value()
                if name == "POSTGRES_PASSWORD"
                else getattr(self, name)
            )
        ]
        if missing:
            raise ValueError(
                f"Missing PostgreSQL settings: {', '.join(missing)}.\n{_PG_HINT}"
            )
        return self

    @property
    def DATABASE_URL(self) -> str:
        """Async DSN: aiosqlite when ``USE_SQLITE`` is set, asyncpg otherwise."""
        if self.USE_SQLITE:
            url = URL.create("sqlite+aiosqlite", database=self.SQLITE_PATH or None)
        else:
            url = URL.create(
                "postgresql+asyncpg",
                username=self.POSTGRES_USER,
                password=self.POSTGRES_PASSWORD.get_secret_value(),
                host=self.POSTGRES_SERVER,
                port=self.POSTGRES_PORT,
                database=self.POSTGRES_DB,
            )
        return url.render_as_string(hide_password=False)


settings = Settings()
