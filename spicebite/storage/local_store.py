"""
Durable local key-value store.

A single JSON document on disk holding everything the client keeps across
restarts (token pair, cached profile fields, notifications). Every write
replaces the whole file through a temporary file and an atomic rename, so a
crash never leaves a half-written document behind.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from spicebite.utils.logger import get_logger

logger = get_logger(__name__)


class LocalStore:
    """JSON-file backed key-value store."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()

    def _read(self) -> Dict[str, Any]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError:
            logger.exception("Failed to read local store", extra={"path": str(self.path)})
            return {}

        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Local store is corrupt; ignoring contents", extra={"path": str(self.path)})
            return {}

        if not isinstance(data, dict):
            logger.warning("Local store has unexpected layout", extra={"path": str(self.path)})
            return {}

        return data

    def _write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(
            dir=str(self.path.parent),
            prefix=f".{self.path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, default=str)
            os.replace(tmp_path, self.path)
        except OSError:
            logger.exception("Failed to write local store", extra={"path": str(self.path)})
            Path(tmp_path).unlink(missing_ok=True)
            raise

    def get(self, key: str, default: Optional[Any] = None) -> Any:
        return self._read().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def update(self, values: Dict[str, Any]) -> None:
        """Set several keys in one write."""
        data = self._read()
        data.update(values)
        self._write(data)

    def remove(self, *keys: str) -> None:
        data = self._read()
        if not any(key in data for key in keys):
            return
        for key in keys:
            data.pop(key, None)
        self._write(data)

    def keys(self) -> List[str]:
        return list(self._read().keys())

    def remove_matching(self, prefixes: Iterable[str]) -> None:
        """Remove every key that starts with one of the given prefixes."""
        prefixes = tuple(prefixes)
        self.remove(*[key for key in self.keys() if key.startswith(prefixes)])
