"""
JSON file token cache.

The single TokenRecord lives in <output_dir>/cache/tokens.json, readable
only by the owner where the platform supports it.
"""

from pathlib import Path

from spotify_exporter.core.exceptions import StorageError
from spotify_exporter.core.logger import get_logger
from spotify_exporter.spotify.models import TokenRecord
from spotify_exporter.storage.base import TokenStore
from spotify_exporter.storage.jsonfile import read_json, write_json_atomic


logger = get_logger(__name__)


CACHE_DIR_NAME = "cache"
TOKENS_FILENAME = "tokens.json"


class FileTokenStore(TokenStore):
    """
    TokenStore backed by a JSON file.

    Attributes:
        path: Location of the token file.
    """

    def __init__(self, output_dir: Path) -> None:
        self.path = output_dir / CACHE_DIR_NAME / TOKENS_FILENAME

    def get_cached(self) -> TokenRecord | None:
        try:
            data = read_json(self.path)
        except FileNotFoundError:
            return None

        try:
            return TokenRecord.from_dict(data)
        except ValueError as e:
            raise StorageError(
                f"Token cache is malformed: {e}",
                details={"path": str(self.path)}
            ) from e

    def put(self, tokens: TokenRecord) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(
                f"Failed to create token cache directory: {e}",
                details={"path": str(self.path.parent)}
            ) from e

        write_json_atomic(self.path, tokens.to_dict(), mode=0o600)
        logger.debug(f"Tokens saved to {self.path}")

    def clear(self) -> bool:
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(
                f"Failed to delete token cache: {e}",
                details={"path": str(self.path)}
            ) from e
        logger.debug(f"Token cache {self.path} removed")
        return True
