"""Configuration management module."""

from .settings import (
    DEFAULT_DEV_API_BASE_URL,
    DEFAULT_PROD_API_BASE_URL,
    ClientSettings,
    get_settings,
    load_env_variables,
    reset_settings,
)

__all__ = [
    "ClientSettings",
    "get_settings",
    "reset_settings",
    "load_env_variables",
    "DEFAULT_DEV_API_BASE_URL",
    "DEFAULT_PROD_API_BASE_URL",
]
