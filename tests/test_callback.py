"""Test the local OAuth callback server"""

import socket
import threading

import pytest
import requests

from spotify_exporter.auth.callback import CallbackListener
from spotify_exporter.core.exceptions import ListenerError


@pytest.fixture
def handle():
    """Running listener on an ephemeral loopback port"""
    running = CallbackListener(host="127.0.0.1", port=0).start()
    yield running
    running.stop()


def _get(handle, query=""):
    return requests.get(f"http://127.0.0.1:{handle.port}/{query}", timeout=5)


class TestCallbackListener:
    """Test code capture over a real socket"""

    def test_captures_code(self, handle):
        response = _get(handle, "?code=abc")

        assert response.status_code == 204
        assert response.content == b""
        assert handle.await_code(timeout=5) == "abc"

    def test_request_without_code_is_ignored(self, handle):
        """A request without code, then one with code=abc"""
        assert _get(handle, "favicon.ico").status_code == 204
        assert _get(handle, "?state=xyz").status_code == 204
        assert _get(handle, "?code=abc").status_code == 204

        assert handle.await_code(timeout=5) == "abc"

    def test_empty_code_is_ignored(self, handle):
        _get(handle, "?code=")
        _get(handle, "?code=real")

        assert handle.await_code(timeout=5) == "real"

    def test_first_code_wins(self, handle):
        _get(handle, "?code=first")
        _get(handle, "?code=second")

        assert handle.await_code(timeout=5) == "first"

    def test_error_callback_keeps_waiting(self, handle):
        assert _get(handle, "?error=access_denied").status_code == 204

        with pytest.raises(ListenerError, match="within"):
            handle.await_code(timeout=0.2)

    def test_timeout(self, handle):
        with pytest.raises(ListenerError) as exc_info:
            handle.await_code(timeout=0.1)

        assert exc_info.value.details["timeout"] == 0.1

    def test_await_from_other_thread(self, handle):
        """The waiter wakes up when the handler thread stores the code"""
        result = {}

        def waiter():
            result["code"] = handle.await_code(timeout=5)

        thread = threading.Thread(target=waiter)
        thread.start()
        _get(handle, "?code=threaded")
        thread.join(timeout=5)

        assert result["code"] == "threaded"

    def test_stop_wakes_waiter(self, handle):
        errors = []

        def waiter():
            try:
                handle.await_code()
            except ListenerError as e:
                errors.append(e)

        thread = threading.Thread(target=waiter)
        thread.start()
        handle.stop()
        thread.join(timeout=5)

        assert not thread.is_alive()
        assert "stopped" in errors[0].message

    def test_code_survives_stop(self, handle):
        _get(handle, "?code=abc")
        handle.stop()

        assert handle.await_code(timeout=0) == "abc"

    def test_stop_is_idempotent_and_frees_port(self):
        handle = CallbackListener(host="127.0.0.1", port=0).start()
        port = handle.port
        handle.stop()
        handle.stop()

        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.bind(("127.0.0.1", port))

    def test_port_in_use(self):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.bind(("127.0.0.1", 0))
            sock.listen(1)
            port = sock.getsockname()[1]

            with pytest.raises(ListenerError, match="Failed to start callback server"):
                CallbackListener(host="127.0.0.1", port=port).start()

    def test_context_manager_stops(self):
        with CallbackListener(host="127.0.0.1", port=0).start() as handle:
            port = handle.port

        with pytest.raises(requests.ConnectionError):
            requests.get(f"http://127.0.0.1:{port}/?code=late", timeout=2)


class TestFromRedirectUri:
    """Test listener address derivation"""

    def test_host_and_port(self):
        listener = CallbackListener.from_redirect_uri("http://127.0.0.1:8888/callback")

        assert (listener.host, listener.port) == ("127.0.0.1", 8888)

    def test_default_port(self):
        listener = CallbackListener.from_redirect_uri("http://localhost")

        assert (listener.host, listener.port) == ("localhost", 80)
