"""Client settings with Pydantic validation."""

from pathlib import Path
from typing import Any, Optional, Union

from dotenv import load_dotenv
from loguru import logger
from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..environment import Environment

DEFAULT_BACKEND_PORT = 5000
CUSTOMER_API_PATH = "/api/v1/customer"
DEFAULT_DEV_API_BASE_URL = f"http://localhost:{DEFAULT_BACKEND_PORT}{CUSTOMER_API_PATH}"
DEFAULT_PROD_API_BASE_URL = f"https://api.selorg.com{CUSTOMER_API_PATH}"

# Port 3000 is the dashboard dev server, never the API backend
_DASHBOARD_DEV_HOSTS = ("localhost:3000", "127.0.0.1:3000")


class ClientSettings(BaseSettings):
    """Client settings with validation and environment variable support."""

    # Environment
    env: str = Field(
        default=Environment.DEVELOPMENT,
        description="Environment (development, staging, production, testing)",
    )

    @model_validator(mode="before")
    @classmethod
    def default_env_for_pytest(cls, data: Any) -> Any:
        """Auto-detect testing environment when running under pytest."""
        import sys

        if not isinstance(data, dict):
            return data

        if ("env" not in data or not data.get("env")) and "pytest" in sys.modules:
            data["env"] = Environment.TESTING

        return data

    # API
    api_base_url: Optional[str] = Field(
        default=None,
        description="Customer API base URL. Derived from ENV when unset.",
    )
    api_version: str = Field(default="/api/v1", description="API version prefix")
    request_timeout: float = Field(
        default=30.0, gt=0, description="Default request timeout in seconds"
    )
    log_requests: bool = Field(
        default=False, description="Debug-log every outbound request and inbound response"
    )

    # Credential storage
    credential_store_path: str = Field(
        default="data/credentials.json", description="Durable token mirror location"
    )
    encryption_key: Optional[SecretStr] = Field(
        default=None,
        description=(
            "Fernet key used to encrypt the durable token mirror. "
            'Generate with: python -c "from cryptography.fernet import Fernet; '
            'print(Fernet.generate_key().decode())"'
        ),
    )

    # OTP login
    otp_resend_cooldown: int = Field(
        default=50, ge=0, description="Default resend cooldown in seconds"
    )
    otp_length: int = Field(default=6, ge=4, le=8, description="Expected OTP length")

    # Logging
    log_level: str = Field(
        default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    model_config = SettingsConfigDict(
        env_prefix="SELORG_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value."""
        if v.lower() not in Environment.VALID:
            raise ValueError(f'ENV must be one of: {", ".join(sorted(Environment.VALID))}')
        return v.lower()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f'LOG_LEVEL must be one of: {", ".join(allowed)}')
        return v_upper

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: Optional[str]) -> Optional[str]:
        """Normalize the configured base URL."""
        if v is None:
            return None
        v = v.strip().rstrip("/")
        return v or None

    def resolve_api_base_url(self) -> str:
        """
        Resolve the base URL every request should use.

        In development a base URL pointing at the dashboard dev server is
        replaced with the local backend URL.

        Returns:
            Base URL without trailing slash
        """
        if self.api_base_url is None:
            if Environment.uses_local_backend(self.env):
                return DEFAULT_DEV_API_BASE_URL
            return DEFAULT_PROD_API_BASE_URL

        if self.env == Environment.DEVELOPMENT:
            lowered = self.api_base_url.lower()
            if any(host in lowered for host in _DASHBOARD_DEV_HOSTS):
                return DEFAULT_DEV_API_BASE_URL

        return self.api_base_url

    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.env == Environment.DEVELOPMENT

    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.env == Environment.PRODUCTION


# Singleton instance
_settings: Optional[ClientSettings] = None


def get_settings() -> ClientSettings:
    """
    Get client settings singleton.

    Returns:
        ClientSettings instance

    Raises:
        ValidationError: If settings are invalid
    """
    global _settings
    if _settings is None:
        _settings = ClientSettings()
    return _settings


def reset_settings() -> None:
    """Reset settings singleton (useful for testing)."""
    global _settings
    _settings = None


def load_env_variables(env_path: Union[str, Path, None] = None) -> bool:
    """
    Load environment variables from a .env file.

    Values already present in the environment win.

    Args:
        env_path: File to load, ``.env`` in the working directory if omitted

    Returns:
        True if a file was loaded
    """
    path = Path(env_path) if env_path is not None else Path.cwd() / ".env"
    if not path.exists():
        return False
    load_dotenv(path, override=False)
    logger.debug(f"Loaded environment variables from {path}")
    return True
