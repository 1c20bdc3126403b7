"""
Shared configuration management for the product revalidation bridge.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Shared secret, identical on the notifier and the gateway
    revalidate_secret: Optional[str] = Field(default=None)


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"


class GatewayConfig(ServiceConfig):
    """Configuration for the revalidation gateway (storefront side)."""

    service_name: str = "revalidation"
    port: int = 8000

    invalidation_backend: str = Field(default="memory")
    redis_url: str = Field(default="redis://localhost:6379/0")
    tag_registry_file: Optional[str] = Field(default=None)


class NotifierConfig(ServiceConfig):
    """Configuration for the product event notifier (commerce side)."""

    service_name: str = "notifier"
    port: int = 8090

    storefront_url: Optional[str] = Field(default=None)
    notify_timeout_seconds: float = Field(default=10.0)
    max_concurrent_notifications: int = Field(default=10)

    kafka_bootstrap: str = Field(default="localhost:9092")
    kafka_group_id: str = Field(default="product-revalidation")
    kafka_consume_loop: bool = Field(default=True)


def get_gateway_config(**overrides) -> GatewayConfig:
    """Get configuration for the revalidation gateway."""
    return GatewayConfig(**overrides)


def get_notifier_config(**overrides) -> NotifierConfig:
    """Get configuration for the notifier service."""
    return NotifierConfig(**overrides)
