"""
Config Module - Black Box Interface

Purpose: Application configuration management
Interface: get_config(), reset_config(), ConfigModule.get(), ConfigModule.set()
Hidden: Config sources, validation logic, environment parsing

Can be replaced with different config systems (Consul, etcd, AWS Parameter Store).
"""

import os
from typing import Any, Dict

from dotenv import load_dotenv

# Configuration Contract: Required and Optional Keys
# This defines the black box interface - what the config module guarantees to provide

REQUIRED_CONFIG_KEYS = {
    "host": "API server bind address",
    "port": "API server port",
    "log_level": "Logging level (DEBUG, INFO, WARNING, ERROR)",
    "cors_origins": "Allowed CORS origins",
    "session_ttl": "Session time-to-live in seconds since last activity",
    "session_backend": "Session storage backend (memory or redis)",
    "max_code_attempts": "Maximum attempts to draw an unused session code",
    "require_complete_ratings": "Refuse recommendations until every movie is rated by both users",
    "tmdb_base_url": "Base URL of the TMDb API",
    "tmdb_language": "Language requested from the catalog provider",
    "catalog_timeout": "Catalog provider request timeout in seconds",
    "movie_list_size": "Number of candidate movies kept per session",
}

OPTIONAL_CONFIG_KEYS = {
    "tmdb_api_key": {
        "description": "TMDb API key, required for fetching candidate movies",
        "default": None,
    },
    "redis_url": {
        "description": "Redis connection URL, used when session_backend is redis",
        "default": "redis://localhost:6379/0",
    },
    "debug": {
        "description": "Enable debug mode",
        "default": False,
    },
}

SESSION_BACKENDS = ("memory", "redis")


class ConfigModule:
    """Configuration management module."""

    def __init__(self):
        """Initialize with environment variables."""
        load_dotenv()
        self._config = self._load_from_env()
        self._validate_required_keys()

    def _validate_required_keys(self) -> None:
        """
        Validate that all required configuration keys are present.

        Raises:
            ValueError: If required keys are missing or the backend is unknown
        """
        missing_keys = []
        for key in REQUIRED_CONFIG_KEYS:
            if key not in self._config or self._config[key] is None:
                missing_keys.append(key)

        if missing_keys:
            raise ValueError(
                f"Missing required configuration keys: {', '.join(missing_keys)}. "
                f"Check environment variables and deployment configuration."
            )

        if self._config["session_backend"] not in SESSION_BACKENDS:
            raise ValueError(
                f"Unknown SESSION_BACKEND {self._config['session_backend']!r}, "
                f"expected one of: {', '.join(SESSION_BACKENDS)}"
            )

    def _load_from_env(self) -> Dict[str, Any]:
        """Load configuration from environment."""
        return {
            # API settings
            "host": os.getenv("API_HOST", "0.0.0.0"),
            "port": int(os.getenv("API_PORT", "4000")),
            "log_level": os.getenv("LOG_LEVEL", "INFO"),
            "debug": os.getenv("DEBUG", "false").lower() == "true",
            "cors_origins": [
                origin.strip()
                for origin in os.getenv("CORS_ORIGINS", "*").split(",")
                if origin.strip()
            ],
            # Session settings
            "session_ttl": int(os.getenv("SESSION_TTL", "86400")),
            "session_backend": os.getenv("SESSION_BACKEND", "memory").lower(),
            "redis_url": os.getenv("REDIS_URL", "redis://localhost:6379/0"),
            "max_code_attempts": int(os.getenv("MAX_CODE_ATTEMPTS", "100")),
            "require_complete_ratings": os.getenv("REQUIRE_COMPLETE_RATINGS", "true").lower()
            == "true",
            # Catalog provider settings
            "tmdb_api_key": os.getenv("TMDB_API_KEY"),
            "tmdb_base_url": os.getenv("TMDB_BASE_URL", "https://api.themoviedb.org/3"),
            "tmdb_language": os.getenv("TMDB_LANGUAGE", "en-US"),
            "catalog_timeout": float(os.getenv("CATALOG_TIMEOUT", "10")),
            "movie_list_size": int(os.getenv("MOVIE_LIST_SIZE", "12")),
        }

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value."""
        return self._config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Set configuration value."""
        self._config[key] = value

    @staticmethod
    def get_config_schema() -> Dict[str, Any]:
        """
        Get the configuration schema (contract) for this module.

        Returns:
            Dictionary with 'required' and 'optional' key specifications

        Example:
            >>> schema = ConfigModule.get_config_schema()
            >>> print(schema['required']['session_ttl'])
            'Session time-to-live in seconds since last activity'
        """
        return {
            "required": REQUIRED_CONFIG_KEYS.copy(),
            "optional": OPTIONAL_CONFIG_KEYS.copy(),
        }


# Singleton instance
_instance = None


def get_config() -> ConfigModule:
    """Get the configuration module singleton."""
    global _instance
    if _instance is None:
        _instance = ConfigModule()
    return _instance


def reset_config() -> None:
    """Drop the singleton so the next get_config() re-reads the environment."""
    global _instance
    _instance = None


__all__ = ["get_config", "reset_config", "ConfigModule"]
