"""Shared configuration base classes.

Provides common configuration patterns used across all services to reduce
duplication and ensure consistency.
"""

from typing import Optional

from pydantic_settings import BaseSettings


class BaseLoggingConfig(BaseSettings):
    """Common logging configuration for all services."""

    app_log_level: str = "INFO"
    app_log_redaction_patterns: list[str] = [
        "password",
        "token",
        "secret",
        "key",
        "authorization",
        "cookie",
        "session",
    ]
    app_environment: str = "production"


class BaseAzureConfig(BaseSettings):
    """Common Azure Resource Manager configuration for all services."""

    azure_subscription_id: Optional[str] = None
    azure_resource_group: Optional[str] = None
    arm_base_url: str = "https://management.azure.com"


class BaseServiceConfig(BaseLoggingConfig, BaseAzureConfig):
    """Base configuration combining logging and Azure settings.

    Services should inherit from this and add their own specific settings.
    The otel_service_name should be overridden by each service.
    """

    otel_service_name: str = "unknown"  # Should be overridden by service


__all__ = ["BaseLoggingConfig", "BaseAzureConfig", "BaseServiceConfig"]
