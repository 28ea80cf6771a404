"""
Exception classes for spotify-exporter.

This module defines all custom exceptions used throughout the application.
Each exception carries a human-readable message plus an optional details
dictionary, so the CLI can show a short explanation while the log file keeps
the full context.

Exception Hierarchy:
    ExporterError (base)
        ConfigError - Missing or invalid configuration
        ListenerError - Local callback server could not run
        AuthorizationError - Browser-based grant flow failed
            BrowserLaunchError - Authorization page could not be opened
            AuthExchangeError - Token endpoint rejected the code
        SpotifyError - Saved-tracks fetch failed
        StorageError - Persisted artifact unreadable or unwritable
        NotFoundError - Requested snapshot generation does not exist
"""


class ExporterError(Exception):
    """
    Base exception for all spotify-exporter errors.

    All custom exceptions in this project inherit from this class,
    allowing callers to catch every exporter failure with a single
    except clause.

    Attributes:
        message: Human-readable error description.
        details: Dictionary with additional context (paths, status codes, ...).

    Example:
        try:
            store.write(tracks)
        except ExporterError as e:
            logger.error(f"Snapshot failed: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description shown to the user.
            details: Optional dictionary containing additional context.
                     Common keys include:
                     - 'path': File or directory involved in the error
                     - 'status_code': HTTP status returned by Spotify
                     - 'original_error': The wrapped exception, as a string
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(ExporterError):
    """
    Raised when a required setting is missing or invalid.

    This is a CRITICAL error raised at startup, before any network or
    storage work happens.

    Common causes:
        - CLIENT_ID or CLIENT_SECRET not set
        - Neither OUTPUT_DIR nor SQLITE_URL set (or both set)
        - OUTPUT_DIR points at a regular file
        - config.yaml has invalid YAML syntax
    """
    pass


class ListenerError(ExporterError):
    """
    Raised when the local authorization callback server fails.

    This is a CRITICAL error: without the callback there is no way to
    receive the authorization code.

    Common causes:
        - The redirect port is already in use
        - The server loop died before a code was received
        - The user did not complete authorization before the timeout
    """
    pass


class AuthorizationError(ExporterError):
    """
    Raised when the browser-based authorization flow cannot complete.

    This is a CRITICAL error. Subclasses distinguish the failing step.
    """
    pass


class BrowserLaunchError(AuthorizationError):
    """Raised when the authorization page could not be opened in a browser."""
    pass


class AuthExchangeError(AuthorizationError):
    """
    Raised when exchanging the authorization code for tokens fails.

    Common causes:
        - Invalid client credentials (HTTP 400/401 from the token endpoint)
        - The code expired or was already used
        - Redirect URI mismatch with the Spotify app settings
        - Response body is not JSON or lacks a token field

    Example:
        raise AuthExchangeError(
            "Token endpoint returned HTTP 400",
            details={'status_code': 400, 'body': '{"error":"invalid_grant"}'}
        )
    """
    pass


class SpotifyError(ExporterError):
    """
    Raised when fetching the saved-track collection fails.

    Attributes:
        is_auth_error: True if Spotify rejected the access token (HTTP 401).
                       The cached token is likely expired; run
                       `spotify-exporter logout` and try again.
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        is_auth_error: bool = False
    ) -> None:
        """
        Initialize Spotify error with the authentication flag.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional context.
            is_auth_error: Set to True if the access token was rejected.
        """
        super().__init__(message, details)
        self.is_auth_error = is_auth_error


class StorageError(ExporterError):
    """
    Raised when a persisted artifact cannot be read or written.

    This is CRITICAL for the operation in progress. A snapshot whose
    collection was already written stays valid even if a later artifact
    (metadata, diff) fails with this error.

    Common causes:
        - Permission denied or disk full
        - A JSON artifact is corrupted
        - SQLite database locked or schema version mismatch
    """
    pass


class NotFoundError(ExporterError):
    """
    Raised when a requested snapshot generation does not exist.

    This is NOT fatal to the process; callers decide how to report it.

    Attributes:
        generation: The generation number that was requested.
    """

    def __init__(self, message: str, generation: int, details: dict | None = None) -> None:
        super().__init__(message, {"generation": generation, **(details or {})})
        self.generation = generation
