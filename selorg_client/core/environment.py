"""Centralized environment detection.

Single source of truth for environment names used by settings and logging.
"""

import os
from typing import FrozenSet

ENV_VAR = "SELORG_ENV"


class Environment:
    """Centralized environment configuration."""

    PRODUCTION = "production"
    STAGING = "staging"
    DEVELOPMENT = "development"
    TESTING = "testing"

    VALID: FrozenSet[str] = frozenset({"production", "staging", "development", "testing"})

    # Environments that talk to the local development backend by default
    _LOCAL_BACKEND: FrozenSet[str] = frozenset({"development", "testing"})

    @classmethod
    def current(cls) -> str:
        """Get the current environment name, validated and lowercased.

        Returns:
            Validated environment name. Defaults to 'development' for unknown values.
        """
        env = os.getenv(ENV_VAR, cls.DEVELOPMENT).lower()
        if env not in cls.VALID:
            return cls.DEVELOPMENT
        return env

    @classmethod
    def is_production(cls) -> bool:
        """Check if the current environment is production."""
        return cls.current() == cls.PRODUCTION

    @classmethod
    def is_development(cls) -> bool:
        """Check if the current environment is development or testing."""
        return cls.current() in cls._LOCAL_BACKEND

    @classmethod
    def uses_local_backend(cls, env: str) -> bool:
        """Check whether ``env`` defaults to the local development backend."""
        return env.lower() in cls._LOCAL_BACKEND
