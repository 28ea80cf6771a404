"""
Local HTTP callback server for the OAuth2 authorization code flow.

After the user grants access, Spotify redirects the browser to the app's
redirect URI with the authorization code in the query string:

    http://localhost:3000/?code=AQD...

There is no other way to obtain the code programmatically, so a short-lived
HTTP server listens on the redirect URI's host and port, captures the first
non-empty code, and hands it to the waiting thread.

Threading Model:
    The server loop runs on one daemon thread so the main thread can block
    in await_code() while the socket is being serviced. The only state shared
    between the two threads is the captured-code cell, guarded by a
    threading.Condition. stop() is the shutdown signal: it ends the serve
    loop, closes the socket, joins the thread and wakes any waiter.

Usage:
    listener = CallbackListener.from_redirect_uri("http://localhost:3000")
    with listener.start() as handle:
        webbrowser.open(authorize_url)
        code = handle.await_code(timeout=300)
"""

import threading
import urllib.parse
from http.server import BaseHTTPRequestHandler, HTTPServer

from spotify_exporter.core.exceptions import ListenerError
from spotify_exporter.core.logger import get_logger


logger = get_logger(__name__)


CODE_PARAM = "code"

# Seconds between shutdown checks in the serve loop
POLL_INTERVAL = 0.1


class _CodeCell:
    """
    Single-slot synchronized cell holding the captured authorization code.

    Written by the request handler thread, read by the thread blocked in
    wait(). Once a code is stored it never changes.
    """

    def __init__(self) -> None:
        self._condition = threading.Condition()
        self._code: str | None = None
        self._error: BaseException | None = None
        self._closed = False

    def offer(self, code: str) -> bool:
        """Store code if the slot is still empty. Returns True if stored."""
        with self._condition:
            if self._code is not None or not code:
                return False
            self._code = code
            self._condition.notify_all()
            return True

    def fail(self, error: BaseException) -> None:
        with self._condition:
            if self._error is None:
                self._error = error
            self._condition.notify_all()

    def close(self) -> None:
        with self._condition:
            self._closed = True
            self._condition.notify_all()

    def wait(self, timeout: float | None) -> str:
        """
        Block until a code is stored, the server fails, or the cell closes.

        A captured code is returned even if the server failed or was stopped
        afterwards.

        Raises:
            ListenerError: On server failure, closure or timeout.
        """
        with self._condition:
            self._condition.wait_for(
                lambda: self._code is not None or self._error is not None or self._closed,
                timeout=timeout,
            )
            if self._code is not None:
                return self._code
            if self._error is not None:
                raise ListenerError(
                    f"Callback server failed before receiving a code: {self._error}",
                    details={"original_error": str(self._error)}
                ) from self._error
            if self._closed:
                raise ListenerError("Callback server was stopped before receiving a code")
            raise ListenerError(
                f"No authorization code received within {timeout:g} seconds",
                details={"timeout": timeout}
            )


class _CallbackServer(HTTPServer):
    """HTTPServer carrying the code cell and the query parameter to capture."""

    def __init__(self, address: tuple[str, int], cell: _CodeCell, param_name: str) -> None:
        self.cell = cell
        self.param_name = param_name
        super().__init__(address, CallbackHandler)

    def handle_error(self, request, client_address) -> None:
        # A broken browser connection only affects that request
        logger.debug(f"Error while handling callback from {client_address}", exc_info=True)


class CallbackHandler(BaseHTTPRequestHandler):
    """
    Request handler for the redirect callback.

    Every GET is answered with an empty 204, whether or not the expected
    parameter is present, so the browser tab settles immediately. A
    non-empty parameter value is offered to the server's code cell.
    """

    server: _CallbackServer

    def do_GET(self) -> None:
        query = urllib.parse.parse_qs(urllib.parse.urlparse(self.path).query)
        values = query.get(self.server.param_name)

        if values and values[0]:
            if self.server.cell.offer(values[0]):
                logger.debug("Authorization code received")
        elif "error" in query:
            logger.warning(f"Authorization was not granted: {query['error'][0]}")
        else:
            logger.debug(f"Callback request without '{self.server.param_name}' ignored")

        self.send_response(204)
        self.end_headers()

    def log_message(self, format, *args) -> None:
        logger.debug("callback server: " + format % args)


class ListenerHandle:
    """
    Running callback server returned by CallbackListener.start().

    Attributes:
        host: Host the server is bound to.
        port: Actual port (useful when the listener was created with port 0).
    """

    def __init__(self, server: _CallbackServer, cell: _CodeCell) -> None:
        self._server = server
        self._cell = cell
        self._stopped = False
        self._stop_lock = threading.Lock()
        self._thread = threading.Thread(
            target=self._serve, name="auth-callback-server", daemon=True
        )

    @property
    def host(self) -> str:
        return self._server.server_address[0]

    @property
    def port(self) -> int:
        return self._server.server_address[1]

    def _start(self) -> None:
        self._thread.start()
        logger.debug(f"Callback server listening on {self.host}:{self.port}")

    def _serve(self) -> None:
        try:
            self._server.serve_forever(poll_interval=POLL_INTERVAL)
        except Exception as e:
            logger.error(f"Callback server stopped unexpectedly: {e}")
            self._cell.fail(e)

    def await_code(self, timeout: float | None = None) -> str:
        """
        Block until the authorization code has been captured.

        Args:
            timeout: Maximum seconds to wait, or None to wait indefinitely.

        Returns:
            The first non-empty code received.

        Raises:
            ListenerError: If the server loop failed, the handle was stopped,
                           or the timeout elapsed before a code arrived.
        """
        return self._cell.wait(timeout)

    def stop(self) -> None:
        """
        Shut the server down and release the port. Safe to call twice.
        """
        with self._stop_lock:
            if self._stopped:
                return
            self._stopped = True

        if self._thread.is_alive():
            self._server.shutdown()
        self._server.server_close()
        self._thread.join(timeout=5)
        self._cell.close()
        logger.debug("Callback server stopped")

    def __enter__(self) -> "ListenerHandle":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()


class CallbackListener:
    """
    Factory for the one-shot callback server.

    Attributes:
        host: Interface to bind, normally "localhost" or "127.0.0.1".
        port: TCP port to bind. 0 selects a free ephemeral port.
        param_name: Query parameter carrying the authorization code.
    """

    def __init__(self, host: str = "localhost", port: int = 3000, param_name: str = CODE_PARAM) -> None:
        self.host = host
        self.port = port
        self.param_name = param_name

    @classmethod
    def from_redirect_uri(cls, redirect_uri: str) -> "CallbackListener":
        """
        Create a listener bound to the host and port of a redirect URI.

        Example:
            CallbackListener.from_redirect_uri("http://127.0.0.1:8888/callback")
            # -> host "127.0.0.1", port 8888
        """
        parsed = urllib.parse.urlparse(redirect_uri)
        return cls(host=parsed.hostname or "localhost", port=parsed.port or 80)

    def start(self) -> ListenerHandle:
        """
        Bind the socket and start serving on a background thread.

        Returns:
            A running ListenerHandle. Callers must stop() it (or use it as a
            context manager) once the code has been received.

        Raises:
            ListenerError: If the address cannot be bound (port in use,
                           permission denied, unknown host).
        """
        cell = _CodeCell()
        try:
            server = _CallbackServer((self.host, self.port), cell, self.param_name)
        except OSError as e:
            raise ListenerError(
                f"Failed to start callback server on {self.host}:{self.port}: {e}",
                details={"host": self.host, "port": self.port, "original_error": str(e)}
            ) from e

        handle = ListenerHandle(server, cell)
        handle._start()
        return handle
