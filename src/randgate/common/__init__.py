"""Common utilities for randgate."""

from randgate.common.settings import AuthConfig, Settings, get_settings

__all__ = [
    "AuthConfig",
    "Settings",
    "get_settings",
]
