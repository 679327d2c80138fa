"""
Shared configuration management for the rate limiting service.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="RATELIMIT_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Token bucket policy, applied to every protected route
    rate_limit_capacity: int = Field(default=10, description="Maximum tokens per client (burst size)")
    rate_limit_refill_rate: float = Field(default=1.0, description="Tokens credited per refill interval")
    rate_limit_refill_interval_ms: int = Field(default=1000, description="Refill interval in milliseconds")

    # Client identification
    trust_proxy: bool = Field(default=True, description="Honour X-Forwarded-For / X-Real-IP headers")


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port)
