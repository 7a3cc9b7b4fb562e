from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = Field(default="Bulk Payment Approvals API", alias="APP_NAME")
    app_env: str = Field(default="local", alias="APP_ENV")
    debug: bool = Field(default=True, alias="DEBUG")

    database_url: str = Field(default="sqlite:///./bulkpay.db", alias="DATABASE_URL")
    db_echo: bool = Field(default=False, alias="DB_ECHO")
    default_currency: str = Field(default="UGX", alias="DEFAULT_CURRENCY")

    registry_base_url: str | None = Field(default=None, alias="REGISTRY_BASE_URL")
    registry_api_key: str | None = Field(default=None, alias="REGISTRY_API_KEY")
    registry_timeout: float = Field(default=10.0, alias="REGISTRY_TIMEOUT")
    registry_lookup_timeout: float = Field(default=15.0, alias="REGISTRY_LOOKUP_TIMEOUT")
    registry_max_concurrency: int = Field(default=5, alias="REGISTRY_MAX_CONCURRENCY")
    registry_mock_mode: bool = Field(default=True, alias="REGISTRY_MOCK_MODE")
    registry_mock_delay_seconds: float = Field(
        default=0.0,
        alias="REGISTRY_MOCK_DELAY_SECONDS",
    )

    draft_ttl_minutes: int = Field(default=120, alias="DRAFT_TTL_MINUTES")
    draft_cleanup_enabled: bool = Field(default=True, alias="DRAFT_CLEANUP_ENABLED")
    draft_cleanup_interval_minutes: int = Field(
        default=10,
        alias="DRAFT_CLEANUP_INTERVAL_MINUTES",
    )
    max_upload_rows: int = Field(default=5_000, alias="MAX_UPLOAD_ROWS")
    encryption_key: str = Field(
        default="0123456789abcdeffedcba98765432100123456789abcdeffedcba9876543210",
        alias="ENCRYPTION_KEY",
    )

    model_config = SettingsConfigDict(
        env_file=(".env", ),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def encryption_key_bytes(self) -> bytes:
        return bytes.fromhex(self.encryption_key)


settings = Settings()
