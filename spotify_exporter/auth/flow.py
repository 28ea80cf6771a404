"""
OAuth2 authorization code flow for spotify-exporter.

This module walks the user through Spotify's browser-based consent screen
and turns the resulting authorization code into tokens:

    1. Build the authorization URL (client id, scope, redirect URI, "code")
    2. Start the local callback server on the redirect URI's host/port
    3. Open the authorization URL in the user's default browser
    4. Block until the callback server captures the code
    5. Exchange the code for access/refresh tokens at the token endpoint

Any failure is fatal for the run; nothing is retried. Token refresh is not
implemented: callers reuse a cached TokenRecord as-is and only run this flow
when no cached record exists.

Usage:
    from spotify_exporter.auth.flow import acquire_tokens

    tokens = acquire_tokens(config.credentials, config.redirect_uri, timeout=300)
"""

import urllib.parse
import webbrowser
from typing import Callable

from spotify_exporter.auth.callback import CallbackListener
from spotify_exporter.core.config import DEFAULT_REDIRECT_URI, ClientCredentials
from spotify_exporter.core.exceptions import BrowserLaunchError
from spotify_exporter.core.logger import get_logger
from spotify_exporter.spotify.client import AUTHORIZE_ENDPOINT, SAVED_TRACKS_SCOPE, SpotifyClient
from spotify_exporter.spotify.models import TokenRecord


logger = get_logger(__name__)


def build_authorize_url(
    client_id: str,
    redirect_uri: str,
    scope: str = SAVED_TRACKS_SCOPE
) -> str:
    """
    Build the Spotify consent page URL.

    Args:
        client_id: Spotify application client ID.
        redirect_uri: Where Spotify sends the browser after consent.
        scope: Space-separated permission scopes.

    Returns:
        The full authorization URL with an encoded query string.
    """
    params = {
        "client_id": client_id,
        "response_type": "code",
        "redirect_uri": redirect_uri,
        "scope": scope,
    }
    return f"{AUTHORIZE_ENDPOINT}?{urllib.parse.urlencode(params)}"


class AuthorizationFlow:
    """
    Runs the authorization code flow once and returns the issued tokens.

    Attributes:
        client: SpotifyClient used for the token exchange. Its redirect_uri
                must equal the one in the authorization request.
        listener: CallbackListener bound to the redirect URI.
        timeout: Seconds to wait for the callback, or None to wait forever.
    """

    def __init__(
        self,
        client: SpotifyClient,
        listener: CallbackListener | None = None,
        timeout: float | None = None,
        open_browser: Callable[[str], bool] = webbrowser.open
    ) -> None:
        """
        Args:
            client: Spotify client holding credentials and redirect URI.
            listener: Callback listener; derived from client.redirect_uri
                      when omitted.
            timeout: Seconds to wait for the authorization code.
            open_browser: Function that opens a URL and returns False when no
                          browser could be launched (webbrowser.open).
        """
        self.client = client
        self.listener = listener or CallbackListener.from_redirect_uri(client.redirect_uri)
        self.timeout = timeout
        self._open_browser = open_browser

    @property
    def authorize_url(self) -> str:
        return build_authorize_url(self.client.credentials.client_id, self.client.redirect_uri)

    def acquire_tokens(self) -> TokenRecord:
        """
        Put the user through the consent screen and fetch their tokens.

        Returns:
            TokenRecord issued by the token endpoint.

        Raises:
            ListenerError: If the callback server cannot bind, dies, or no
                           code arrives within the timeout.
            BrowserLaunchError: If the authorization page cannot be opened.
            AuthExchangeError: If the token endpoint rejects the code or
                               returns an unusable body.

        Note:
            The callback server is always stopped before this method returns
            or raises, so the port is free for the next run.
        """
        url = self.authorize_url

        with self.listener.start() as handle:
            logger.info("Opening browser for Spotify authorization...")
            logger.info(f"If the browser doesn't open, visit: {url}")
            try:
                launched = self._open_browser(url)
            except webbrowser.Error as e:
                raise BrowserLaunchError(
                    f"Failed to open authorization page in web browser: {e}",
                    details={"url": url, "original_error": str(e)}
                ) from e
            if not launched:
                raise BrowserLaunchError(
                    "Failed to open authorization page in web browser",
                    details={"url": url}
                )

            logger.info("Waiting for authorization callback...")
            code = handle.await_code(timeout=self.timeout)

        logger.info("Authorization code received, exchanging it for tokens")
        return self.client.exchange_code(code)


def acquire_tokens(
    credentials: ClientCredentials,
    redirect_uri: str = DEFAULT_REDIRECT_URI,
    timeout: float | None = None,
    http_timeout: float = 30.0
) -> TokenRecord:
    """
    Convenience wrapper: run AuthorizationFlow with a fresh SpotifyClient.

    Args:
        credentials: Spotify client id and secret.
        redirect_uri: Redirect URI registered in the Spotify app settings.
        timeout: Seconds to wait for the authorization callback.
        http_timeout: Seconds before the token exchange request times out.

    Returns:
        TokenRecord issued by Spotify.

    Raises:
        ListenerError, BrowserLaunchError, AuthExchangeError: See
        AuthorizationFlow.acquire_tokens().
    """
    with SpotifyClient(credentials, redirect_uri, timeout=http_timeout) as client:
        return AuthorizationFlow(client, timeout=timeout).acquire_tokens()
