"""Shared utilities and components for all services."""

from .config import BaseAzureConfig, BaseLoggingConfig, BaseServiceConfig
from .constants import Environment, RedisKeys, Sources

__all__ = [
    "Environment",
    "Sources",
    "RedisKeys",
    "BaseServiceConfig",
    "BaseLoggingConfig",
    "BaseAzureConfig",
]
