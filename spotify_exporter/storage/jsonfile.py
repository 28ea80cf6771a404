"""
Atomic JSON file helpers for the file backend.

Every artifact is written to a temporary file in the target's directory and
moved into place with os.replace, so a reader sees either the previous
content or the new content, never a partial file.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from spotify_exporter.core.exceptions import StorageError


def write_json_atomic(path: Path, data: Any, mode: int | None = None) -> None:
    """
    Serialize data to path atomically.

    Args:
        path: Destination file. Its parent directory must exist.
        data: JSON-serializable value.
        mode: Optional permission bits applied before the file is moved
              into place (e.g. 0o600 for credentials).

    Raises:
        StorageError: If the temporary file cannot be written or moved.
    """
    fd, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
            f.flush()
            os.fsync(f.fileno())
        if mode is not None:
            try:
                os.chmod(temp_name, mode)
            except OSError:
                # Not supported on every platform (Windows)
                pass
        os.replace(temp_name, path)
    except (OSError, TypeError, ValueError) as e:
        try:
            os.unlink(temp_name)
        except FileNotFoundError:
            pass
        raise StorageError(
            f"Failed to write {path}: {e}",
            details={"path": str(path), "original_error": str(e)}
        ) from e


def read_json(path: Path) -> Any:
    """
    Load a JSON document.

    Raises:
        FileNotFoundError: If path does not exist; callers decide whether
                           absence is an error.
        StorageError: If the file exists but cannot be read or decoded.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        raise
    except (OSError, ValueError) as e:
        raise StorageError(
            f"Failed to read {path}: {e}",
            details={"path": str(path), "original_error": str(e)}
        ) from e
