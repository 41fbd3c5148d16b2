"""Configuration management using Pydantic settings.

Two-layer configuration system:
1. Environment: Loads raw values from environment variables (UPPER_CASE)
2. Settings: Clean application settings with lowercase fields and derived values

Variable names follow the exporter's established deployment contract
(SERVER, USERNAME, PASSWORD, PORT, EXPOSE, SUPPORT_2012).
"""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_PROJECT_ROOT = Path(__file__).resolve().parent.parent


class Environment(BaseSettings):
    """Raw environment variable loading."""

    model_config = SettingsConfigDict(
        env_file=_PROJECT_ROOT / ".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ── Database ───────────────────────────────────────────────────────

    SERVER: str | None = Field(default=None)
    PORT: int = Field(default=1433)
    USER_ID: str | None = Field(default=None)
    USERNAME: str | None = Field(default=None)
    PASSWORD: str | None = Field(default=None)
    DATABASE: str = Field(default="master")
    ENCRYPTION: str = Field(default="require")
    LOGIN_TIMEOUT: int | None = Field(default=None)
    QUERY_TIMEOUT: int | None = Field(default=None)
    SUPPORT_2012: bool = Field(default=False)

    # ── HTTP server ────────────────────────────────────────────────────

    EXPOSE: int = Field(default=4000)
    HOST: str = Field(default="0.0.0.0")
    WAITRESS_THREADS: int = Field(default=4)

    # ── Process ────────────────────────────────────────────────────────

    FLASK_ENV: str = Field(default="production")
    LOG_LEVEL: str = Field(default="INFO")
    GRACEFUL_SHUTDOWN_TIMEOUT: int = Field(default=30)

    @field_validator("LOGIN_TIMEOUT", "QUERY_TIMEOUT", "SERVER", "USER_ID", "USERNAME", "PASSWORD", mode="before")
    @classmethod
    def _empty_as_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class Settings(BaseModel):
    """Application settings with lowercase fields and derived values."""

    model_config = ConfigDict(from_attributes=True)

    # ── Database ───────────────────────────────────────────────────────

    server: str | None = None
    port: int = 1433
    username: str | None = None
    password: str | None = None
    database: str = "master"
    encryption: str = "require"
    login_timeout: int | None = None
    query_timeout: int | None = None
    support_mssql_2012: bool = False

    # ── HTTP server ────────────────────────────────────────────────────

    expose: int = 4000
    host: str = "0.0.0.0"
    waitress_threads: int = 4

    # ── Process ────────────────────────────────────────────────────────

    flask_env: str = "production"
    log_level: str = "INFO"
    graceful_shutdown_timeout: int = 30

    @property
    def is_development(self) -> bool:
        return self.flask_env in ("development", "testing")

    @property
    def target(self) -> str:
        """Human readable ``user@server:port`` description of the monitored instance."""
        return f"{self.username}@{self.server}:{self.port}"

    def validate_config(self) -> None:
        from mssql_exporter.exceptions import ConfigurationError

        errors: list[str] = []

        if not self.server:
            errors.append("Missing SERVER information")
        if not self.username:
            errors.append("Missing USERNAME information")
        if not self.password:
            errors.append("Missing PASSWORD information")
        if self.encryption.lower() == "off":
            errors.append("ENCRYPTION cannot be turned off")

        if errors:
            raise ConfigurationError(
                "Configuration validation failed:\n  - " + "\n  - ".join(errors)
            )

    @classmethod
    def load(cls, env: "Environment | None" = None) -> "Settings":
        if env is None:
            env = Environment()

        return cls(
            # Database
            server=env.SERVER,
            port=env.PORT,
            username=env.USER_ID or env.USERNAME,
            password=env.PASSWORD,
            database=env.DATABASE,
            encryption=env.ENCRYPTION,
            login_timeout=env.LOGIN_TIMEOUT,
            query_timeout=env.QUERY_TIMEOUT,
            support_mssql_2012=env.SUPPORT_2012,

            # HTTP server
            expose=env.EXPOSE,
            host=env.HOST,
            waitress_threads=env.WAITRESS_THREADS,

            # Process
            flask_env=env.FLASK_ENV,
            log_level=env.LOG_LEVEL,
            graceful_shutdown_timeout=env.GRACEFUL_SHUTDOWN_TIMEOUT,
        )
