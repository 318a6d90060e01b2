"""Selorg client - session and API client core for the Selorg storefront."""

import importlib as _importlib
from typing import TYPE_CHECKING, Any

__version__ = "1.0.0"

if TYPE_CHECKING:
    from .core.config.settings import ClientSettings as ClientSettings
    from .core.config.settings import get_settings as get_settings
    from .core.exceptions import ApiError as ApiError
    from .core.exceptions import NetworkError as NetworkError
    from .core.logger import setup_structured_logging as setup_structured_logging
    from .services.api.client import ApiClient as ApiClient
    from .services.api.token_manager import TokenManager as TokenManager
    from .services.auth.auth_service import AuthService as AuthService
    from .services.auth.otp_flow import OTPLoginFlow as OTPLoginFlow
    from .services.session_context import SessionContext as SessionContext

# Public name -> (defining module, attribute); resolved on first access
_LAZY_MODULE_MAP = {
    # Configuration, errors, logging
    "ClientSettings": ("selorg_client.core.config.settings", "ClientSettings"),
    "get_settings": ("selorg_client.core.config.settings", "get_settings"),
    "ApiError": ("selorg_client.core.exceptions", "ApiError"),
    "NetworkError": ("selorg_client.core.exceptions", "NetworkError"),
    "setup_structured_logging": ("selorg_client.core.logger", "setup_structured_logging"),
    # Session core
    "ApiClient": ("selorg_client.services.api.client", "ApiClient"),
    "TokenManager": ("selorg_client.services.api.token_manager", "TokenManager"),
    "AuthService": ("selorg_client.services.auth.auth_service", "AuthService"),
    "OTPLoginFlow": ("selorg_client.services.auth.otp_flow", "OTPLoginFlow"),
    "SessionContext": ("selorg_client.services.session_context", "SessionContext"),
}

__all__ = list(_LAZY_MODULE_MAP.keys())


def __getattr__(name: str) -> Any:
    """Import public names on first use so `import selorg_client` stays cheap."""
    if name in _LAZY_MODULE_MAP:
        module_path, attr_name = _LAZY_MODULE_MAP[name]
        module = _importlib.import_module(module_path)
        attr = getattr(module, attr_name)
        # Later lookups hit the module dict directly
        globals()[name] = attr
        return attr
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
