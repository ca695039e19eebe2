# app/storage/base.py
"""Key-value blob backends for the metadata store."""

from abc import ABC, abstractmethod
from typing import Optional, Dict
from pathlib import Path
import os
import re
import tempfile

from app.core.exceptions import StorageError
from app.core.logging import get_logger

logger = get_logger(__name__)


class BlobBackend(ABC):
    """Abstract key-value store holding serialized blobs."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the blob stored under key, or None when absent."""
        pass

    @abstractmethod
    def put(self, key: str, value: str):
        """Store value under key, replacing any prior value."""
        pass


class MemoryBackend(BlobBackend):
    """Process-local backend. Contents are lost on restart."""

    def __init__(self):
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def put(self, key: str, value: str):
        self._data[key] = value


class JSONFileBackend(BlobBackend):
    """One file per key under a data directory."""

    def __init__(self, data_dir: str):
        self.data_dir = Path(data_dir)
        self._ensure_directory()

    def _ensure_directory(self):
        """Ensure data directory exists."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _path_for(self, key: str) -> Path:
        safe_key = re.sub(r"[^A-Za-z0-9_.-]", "_", key)
        return self.data_dir / f"{safe_key}.json"

    def get(self, key: str) -> Optional[str]:
        filepath = self._path_for(key)
        if not filepath.exists():
            return None
        try:
            return filepath.read_text(encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to read {filepath}: {e}")
            return None

    def put(self, key: str, value: str):
        filepath = self._path_for(key)
        try:
            fd, tmp_path = tempfile.mkstemp(dir=self.data_dir, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_path, filepath)
        except OSError as e:
            logger.error(f"Failed to save {filepath}: {e}")
            raise StorageError(str(e))
