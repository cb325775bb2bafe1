"""Application configuration using pydantic settings with structured sections."""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False


class DatabaseSettings(BaseModel):
    url: str = Field(default="sqlite+aiosqlite:///./guestpay.db", alias="url")
    echo: bool = False
    pool_size: Optional[int] = None
    max_overflow: Optional[int] = None


class SecuritySettings(BaseModel):
    secret_key: str = Field(default="change-me", min_length=8)
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 12


class GatewaySettings(BaseModel):
    secret_key: Optional[SecretStr] = None
    webhook_secret: Optional[SecretStr] = None
    api_version: Optional[str] = None


class ChargeSettings(BaseModel):
    card_expiry_minutes: int = 10
    link_expiry_minutes: int = 10
    manual_expiry_hours: int = 24
    default_currency: str = "eur"
    refund_reason: str = "requested_by_customer"


class FrontendSettings(BaseModel):
    base_url: str = "http://localhost:5173"


class NotificationSettings(BaseModel):
    url: Optional[str] = None
    timeout: float = 10.0


class LoggingSettings(BaseModel):
    level: str = "INFO"


class Settings(BaseSettings):
    """Top-level application settings with nested sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    environment: Literal["development", "staging", "production", "test"] = "development"
    debug: bool = False
    project_name: str = "Guest Payment Service"
    api_prefix: str = "/api"

    server: ServerSettings = ServerSettings()
    database: DatabaseSettings = DatabaseSettings()
    security: SecuritySettings = SecuritySettings()
    gateway: GatewaySettings = GatewaySettings()
    charges: ChargeSettings = ChargeSettings()
    frontend: FrontendSettings = FrontendSettings()
    notifications: NotificationSettings = NotificationSettings()
    logging: LoggingSettings = LoggingSettings()

    @property
    def database_url(self) -> str:
        return self.database.url

    @property
    def host(self) -> str:
        return self.server.host

    @property
    def port(self) -> int:
        return self.server.port

    @property
    def secret_key(self) -> str:
        return self.security.secret_key

    @property
    def algorithm(self) -> str:
        return self.security.algorithm

    @property
    def access_token_expire_minutes(self) -> int:
        return self.security.access_token_expire_minutes

    @property
    def gatekeeper_base_url(self) -> str:
        return self.frontend.base_url.rstrip("/")


@lru_cache()
def get_settings() -> Settings:
    return Settings()
