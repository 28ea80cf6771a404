"""
Spotify API client for spotify-exporter.

Two kinds of calls are made to Spotify:

    Token exchange (accounts service):
        A single form-encoded POST to the token endpoint, authenticated with
        HTTP Basic credentials built from the client id and secret. Done with
        requests so the exact request is under our control.

    Saved tracks (Web API):
        GET /v1/me/tracks, paginated through the "next" URL of each page.
        Done with spotipy using the bearer token from the exchange.

Neither call is retried by this module. Every failure is converted to a
project exception and surfaces immediately.

Usage:
    from spotify_exporter.spotify.client import SpotifyClient

    client = SpotifyClient(config.credentials, config.redirect_uri)
    tokens = client.exchange_code(code)
    tracks = client.fetch_saved_tracks(tokens.access_token)
"""

from typing import Any

import requests
import spotipy
from requests.auth import HTTPBasicAuth
from tqdm import tqdm

from spotify_exporter.core.config import ClientCredentials
from spotify_exporter.core.exceptions import AuthExchangeError, SpotifyError
from spotify_exporter.core.logger import get_logger
from spotify_exporter.spotify.models import TokenRecord, Track


logger = get_logger(__name__)


AUTHORIZE_ENDPOINT = "https://accounts.spotify.com/authorize"
TOKEN_ENDPOINT = "https://accounts.spotify.com/api/token"
SAVED_TRACKS_SCOPE = "user-library-read"

# Maximum page size accepted by /v1/me/tracks
SAVED_TRACKS_PAGE_SIZE = 50


class SpotifyClient:
    """
    Thin Spotify API client: token exchange plus saved-tracks listing.

    Attributes:
        credentials: Client id and secret of the Spotify application.
        redirect_uri: Redirect URI used in the authorization request. The
                      token endpoint requires the exact same value.
        timeout: Seconds before any single HTTP request times out.
    """

    def __init__(
        self,
        credentials: ClientCredentials,
        redirect_uri: str,
        session: requests.Session | None = None,
        timeout: float = 30.0
    ) -> None:
        """
        Args:
            credentials: Spotify client credentials.
            redirect_uri: Redirect URI registered in the Spotify app settings.
            session: Optional requests session (created if omitted).
            timeout: Per-request timeout in seconds.
        """
        self.credentials = credentials
        self.redirect_uri = redirect_uri
        self.timeout = timeout
        self._session = session or requests.Session()

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self._session.close()

    def __enter__(self) -> "SpotifyClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # =========================================================================
    # Token exchange
    # =========================================================================

    def exchange_code(self, authorization_code: str) -> TokenRecord:
        """
        Exchange an authorization code for access and refresh tokens.

        Args:
            authorization_code: Code captured from the redirect callback.

        Returns:
            TokenRecord parsed from the token endpoint response.

        Raises:
            AuthExchangeError: If the request fails at the network level, the
                               endpoint answers with a non-2xx status, or the
                               body is not a JSON object with access_token,
                               refresh_token and integer expires_in.
        """
        try:
            response = self._session.post(
                TOKEN_ENDPOINT,
                auth=HTTPBasicAuth(
                    self.credentials.client_id, self.credentials.client_secret
                ),
                data={
                    "code": authorization_code,
                    "redirect_uri": self.redirect_uri,
                    "grant_type": "authorization_code",
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise AuthExchangeError(
                f"Failed to reach the Spotify token endpoint: {e}",
                details={"url": TOKEN_ENDPOINT, "original_error": str(e)}
            ) from e

        if not response.ok:
            raise AuthExchangeError(
                f"Token endpoint returned HTTP {response.status_code}",
                details={"status_code": response.status_code, "body": response.text[:500]}
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise AuthExchangeError(
                "Token endpoint returned a body that is not JSON",
                details={"status_code": response.status_code, "body": response.text[:500]}
            ) from e

        try:
            tokens = TokenRecord.from_dict(payload)
        except ValueError as e:
            raise AuthExchangeError(
                f"Token endpoint returned an unexpected payload: {e}",
                details={"status_code": response.status_code}
            ) from e

        logger.debug(f"Received tokens (expires in {tokens.expires_in}s)")
        return tokens

    # =========================================================================
    # Saved tracks
    # =========================================================================

    def fetch_saved_tracks(self, access_token: str) -> list[Track]:
        """
        Fetch the user's complete Liked Songs collection.

        Args:
            access_token: Bearer token with the user-library-read scope.

        Returns:
            All saved tracks, in the order Spotify returns them (most recently
            saved first). Items without a track id (local files, tracks that
            are no longer available) are skipped.

        Raises:
            SpotifyError: On any API or network failure. is_auth_error is set
                          when Spotify rejects the token (HTTP 401), which
                          usually means the cached token has expired.
        """
        spotify = spotipy.Spotify(auth=access_token, requests_timeout=self.timeout)
        tracks: list[Track] = []
        skipped = 0

        try:
            page: dict[str, Any] | None = spotify.current_user_saved_tracks(
                limit=SAVED_TRACKS_PAGE_SIZE
            )
            with tqdm(
                total=(page or {}).get("total"),
                desc="Liked Songs",
                unit="track",
                leave=False,
                disable=None,
            ) as progress:
                while page:
                    items = page.get("items") or []
                    for item in items:
                        try:
                            tracks.append(Track.from_spotify_api(item))
                        except ValueError:
                            skipped += 1
                    progress.update(len(items))
                    page = spotify.next(page) if page.get("next") else None
        except spotipy.SpotifyException as e:
            if e.http_status == 401:
                raise SpotifyError(
                    "Spotify rejected the access token (HTTP 401)",
                    details={"http_status": 401, "original_error": str(e)},
                    is_auth_error=True
                ) from e
            raise SpotifyError(
                f"Failed to fetch saved tracks: {e}",
                details={"http_status": e.http_status, "original_error": str(e)}
            ) from e
        except requests.RequestException as e:
            raise SpotifyError(
                f"Network error while fetching saved tracks: {e}",
                details={"original_error": str(e)}
            ) from e

        if skipped:
            logger.warning(f"Skipped {skipped} saved items without a track id")
        logger.info(f"Fetched {len(tracks)} saved tracks")
        return tracks
