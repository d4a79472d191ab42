"""Application settings and configuration.

This module defines all configuration options for the ModBot service.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Every option can be overridden via environment variables or a .env file.
    Provider credentials default to empty so the service boots without them;
    checks that need a missing credential fail at call time.
    """

    # Application metadata
    app_name: str = Field(default="ModBot", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Database configuration
    database_url: str = Field(default="sqlite:///./modbot.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Redis backs the provider cache and intake dedup claims; unset means in-process
    redis_url: str | None = Field(default=None, alias="REDIS_URL")

    # Farcaster data providers
    neynar_api_key: str = Field(default="", alias="NEYNAR_API_KEY")
    neynar_base_url: str = Field(default="https://api.neynar.com", alias="NEYNAR_BASE_URL")
    warpcast_token: str = Field(default="", alias="WARPCAST_TOKEN")
    warpcast_base_url: str = Field(default="https://api.warpcast.com", alias="WARPCAST_BASE_URL")

    # Reputation and credential providers
    openrank_api_key: str = Field(default="", alias="OPENRANK_API_KEY")
    openrank_base_url: str = Field(default="https://graph.cast.k3l.io", alias="OPENRANK_BASE_URL")
    airstack_api_key: str = Field(default="", alias="AIRSTACK_API_KEY")
    airstack_url: str = Field(default="https://api.airstack.xyz/gql", alias="AIRSTACK_URL")
    botornot_url: str = Field(
        default="https://cast-action-bot-or-not.vercel.app",
        alias="BOTORNOT_URL",
    )
    icebreaker_url: str = Field(default="https://app.icebreaker.xyz/api/v1", alias="ICEBREAKER_URL")
    simplehash_api_key: str = Field(default="", alias="SIMPLEHASH_API_KEY")
    simplehash_url: str = Field(default="https://api.simplehash.com/api/v0", alias="SIMPLEHASH_URL")

    # JSON-RPC endpoints keyed by chain id, e.g. RPC_URLS='{"8453": "https://..."}'
    rpc_urls: dict[str, str] = Field(
        default={
            "1": "https://eth.llamarpc.com",
            "10": "https://mainnet.optimism.io",
            "137": "https://polygon-rpc.com",
            "8453": "https://mainnet.base.org",
            "42161": "https://arb1.arbitrum.io/rpc",
            "7777777": "https://rpc.zora.energy",
        },
        alias="RPC_URLS",
    )

    # Timeouts and evaluation limits
    http_timeout_seconds: float = Field(default=10.0, alias="HTTP_TIMEOUT_SECONDS")
    check_timeout_seconds: float = Field(default=5.0, alias="CHECK_TIMEOUT_SECONDS")
    evaluation_timeout_seconds: float = Field(default=30.0, alias="EVALUATION_TIMEOUT_SECONDS")
    evaluation_max_concurrency: int = Field(default=8, alias="EVALUATION_MAX_CONCURRENCY")

    # Moderation behaviour
    execute_on_protocol: bool = Field(default=True, alias="EXECUTE_ON_PROTOCOL")
    cast_dedup_ttl_seconds: int = Field(default=60 * 60 * 24, alias="CAST_DEDUP_TTL_SECONDS")

    # CORS configuration for the dashboard frontend
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling.

        Converts asyncpg URLs to psycopg so Alembic can run migrations.

        Returns:
            Database URL compatible with synchronous database drivers
        """
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides.

        Returns:
            The active database URL (test database if in testing mode, otherwise production)
        """
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url


settings = Settings()
