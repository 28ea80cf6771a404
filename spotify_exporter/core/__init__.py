"""
Core module for spotify-exporter.

This module provides the foundational components used throughout the application:
    - exceptions: Custom exception classes for error handling
    - config: Configuration loading and validation
    - logger: Logging system with console and file outputs

Usage:
    from spotify_exporter.core import (
        Config, load_config,
        setup_logging, get_logger,
        ExporterError, ConfigError, StorageError
    )
"""

from spotify_exporter.core.config import (
    BACKEND_FILES,
    BACKEND_SQLITE,
    ClientCredentials,
    Config,
    StorageConfig,
    load_config,
)
from spotify_exporter.core.exceptions import (
    AuthExchangeError,
    AuthorizationError,
    BrowserLaunchError,
    ConfigError,
    ExporterError,
    ListenerError,
    NotFoundError,
    SpotifyError,
    StorageError,
)
from spotify_exporter.core.logger import (
    get_logger,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    # Config
    "BACKEND_FILES",
    "BACKEND_SQLITE",
    "ClientCredentials",
    "Config",
    "StorageConfig",
    "load_config",
    # Exceptions
    "ExporterError",
    "ConfigError",
    "ListenerError",
    "AuthorizationError",
    "BrowserLaunchError",
    "AuthExchangeError",
    "SpotifyError",
    "StorageError",
    "NotFoundError",
    # Logger
    "setup_logging",
    "get_logger",
    "shutdown_logging",
]
