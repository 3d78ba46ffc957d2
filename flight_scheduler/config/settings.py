from typing import Optional
from urllib.parse import quote_plus

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseConfig(BaseSettings):
    """Database configuration"""

    host: str = "localhost"
    port: int = 5432
    username: str = "postgres"
    password: SecretStr = Field(default=SecretStr("postgres"))
    database: str = "flight_scheduler"
    db_schema: Optional[str] = Field(default=None, validation_alias="DB_SCHEMA")
    serverless: bool = Field(
        default=True,
        description="If true, disable connection pooling so serverless DBs can pause.",
    )
    url_override: Optional[str] = Field(
        default=None,
        validation_alias="DATABASE_URL",
        description="Full SQLAlchemy URL; takes precedence over the discrete fields.",
    )

    @property
    def url(self) -> str:
        """Get database URL"""
        if self.url_override:
            return self.url_override
        username = quote_plus(self.username)
        password = quote_plus(self.password.get_secret_value())
        return (
            "postgresql+asyncpg://"
            f"{username}:{password}"
            f"@{self.host}:{self.port}/{self.database}"
        )

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class MailConfig(BaseSettings):
    """SMTP configuration for outbound notification email."""

    host: Optional[str] = None
    port: int = 587
    username: Optional[str] = None
    password: Optional[SecretStr] = None
    sender: str = "Flight Schedule Pro <notifications@flightschedulepro.com>"
    use_tls: bool = True
    use_ssl: bool = False

    def is_configured(self) -> bool:
        return bool(self.host and self.sender)

    model_config = SettingsConfigDict(
        env_prefix="MAIL_",
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class BedrockConfig(BaseSettings):
    """Amazon Bedrock configuration."""

    region: str = Field(
        default="us-east-1",
        validation_alias="BEDROCK_REGION",
    )
    model_id: str = Field(
        default="amazon.nova-micro-v1:0",
        validation_alias="BEDROCK_MODEL_ID",
    )
    max_tokens: int = Field(
        default=2000,
        validation_alias="BEDROCK_MAX_TOKENS",
        ge=1,
        le=4096,
    )
    temperature: float = Field(
        default=0.7,
        validation_alias="BEDROCK_TEMPERATURE",
        ge=0.0,
        le=1.0,
    )
    top_p: float = Field(
        default=0.9,
        validation_alias="BEDROCK_TOP_P",
        ge=0.0,
        le=1.0,
    )
    api_key: SecretStr | None = Field(
        default=None,
        validation_alias="BEDROCK_API_KEY",
    )
    access_key: Optional[str] = Field(default=None, validation_alias="AWS_ACCESS_KEY_ID")
    secret_key: Optional[str] = Field(
        default=None, validation_alias="AWS_SECRET_ACCESS_KEY"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class WeatherConfig(BaseSettings):
    """Weather provider and monitoring configuration."""

    api_url: str = "https://api.weatherapi.com/v1"
    api_key: Optional[SecretStr] = None
    metar_url: str = "https://aviationweather.gov/api/data/metar"
    cache_ttl_seconds: int = Field(default=1800, ge=0)
    lookahead_hours: int = Field(default=3, ge=1, le=72)
    request_timeout_seconds: float = 10.0
    monitor_enabled: bool = False
    monitor_interval_seconds: int = Field(default=3600, ge=60)

    model_config = SettingsConfigDict(
        env_prefix="WEATHER_",
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class ReschedulerConfig(BaseSettings):
    """Settings for AI-assisted reschedule proposal generation."""

    days_ahead: int = Field(default=7, ge=1, le=30)
    max_slots: int = Field(default=20, ge=1)
    proposals_per_conflict: int = Field(default=3, ge=1, le=10)
    max_json_retries: int = Field(default=2, ge=0)

    model_config = SettingsConfigDict(
        env_prefix="RESCHEDULER_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class RealtimeConfig(BaseSettings):
    """Change-feed debounce and reconnect tuning."""

    user_debounce_ms: int = 300
    admin_debounce_ms: int = 500
    users_table_debounce_ms: int = 1000
    initial_backoff_seconds: float = 1.0
    max_backoff_seconds: float = 30.0
    max_reconnect_attempts: int = 5
    connect_timeout_seconds: float = 10.0
    subscriber_queue_size: int = 256
    cache_stale_seconds: float = 30.0

    model_config = SettingsConfigDict(
        env_prefix="REALTIME_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class SecurityConfig(BaseSettings):
    """JWT and application security configuration."""

    jwt_secret_key: SecretStr = Field(
        default=SecretStr("change-me"),
        validation_alias="JWT_SECRET",
    )
    jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
    access_token_expires_minutes: int = Field(
        default=60,
        validation_alias="JWT_EXPIRATION_MINUTES",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class Settings(BaseSettings):
    """Application settings"""

    app_name: str = "Flight Training Scheduler"
    app_version: str = "1.0.0"
    app_url: str = "http://localhost:3000"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000
    log_file: str = "logs/app.log"
    pipeline_log_file: str = "logs/weather_pipeline.log"
    persist_request_logs: bool = False
    seed_lookups: bool = True

    # Database
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)

    # Mail
    mail: MailConfig = Field(default_factory=MailConfig)

    # Bedrock
    bedrock: BedrockConfig = Field(default_factory=BedrockConfig)

    # Weather
    weather: WeatherConfig = Field(default_factory=WeatherConfig)

    # Rescheduler
    rescheduler: ReschedulerConfig = Field(default_factory=ReschedulerConfig)

    # Realtime
    realtime: RealtimeConfig = Field(default_factory=RealtimeConfig)

    # Security
    security: SecurityConfig = Field(default_factory=SecurityConfig)

    # CORS
    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
