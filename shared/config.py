"""
Shared configuration management for the HTTP Cat caching proxy.
"""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="CATPROXY_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Observability
    metrics_port: int = Field(default=0)
    enable_tracing: bool = Field(default=False)
    otel_exporter: str = Field(default="http://localhost:4317")
    enable_console_tracing: bool = Field(default=False)

    # CORS
    cors_origins: Optional[List[str]] = Field(default=None)

    def allowed_origins(self) -> List[str]:
        """Origins permitted by CORS; none unless configured."""
        return list(self.cors_origins or [])


class ServiceConfig(BaseConfig):
    """Proxy service configuration."""

    service_name: str = "catproxy"
    host: str = "0.0.0.0"
    port: int = 8080

    # Cache
    cache_dir: str = Field(default="./cache")

    # Upstream
    upstream_url: str = Field(default="https://http.cat")
    upstream_timeout: float = Field(default=10.0)


def get_config(**overrides) -> ServiceConfig:
    """Get service configuration, letting explicit values win over the environment."""
    return ServiceConfig(**{key: value for key, value in overrides.items() if value is not None})
