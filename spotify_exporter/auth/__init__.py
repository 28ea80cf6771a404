"""
Authorization module for spotify-exporter.

    - callback: One-shot local HTTP server capturing the authorization code
    - flow: Browser-based authorization code flow and token exchange
"""

from spotify_exporter.auth.callback import CallbackListener, ListenerHandle
from spotify_exporter.auth.flow import AuthorizationFlow, acquire_tokens, build_authorize_url

__all__ = [
    "CallbackListener",
    "ListenerHandle",
    "AuthorizationFlow",
    "acquire_tokens",
    "build_authorize_url",
]
