# quran_search/utils/storage.py
"""
Durable key-value storage for serialized indexes.
"""
import os
import re
import tempfile
import threading
from pathlib import Path
from typing import Dict, List, Optional
import logging

from ..exceptions import StorageError

logger = logging.getLogger(__name__)


class KeyValueStore:
    """
    Minimal string store the search service persists into.

    `get` returns None for a missing key; `set` and `delete` report
    success as a bool instead of raising.
    """

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> bool:
        raise NotImplementedError

    def delete(self, key: str) -> bool:
        raise NotImplementedError

    def keys(self) -> List[str]:
        raise NotImplementedError


class MemoryStore(KeyValueStore):
    """In-process store, mainly for tests and one-shot CLI runs."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> bool:
        with self._lock:
            self._data[key] = value
        return True

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._data)


class FileStore(KeyValueStore):
    """
    One file per key under a root directory.

    Writes go to a temporary file in the same directory and are moved
    into place, so readers see either the old or the new value.
    """

    SUFFIX = ".json"

    def __init__(self, root: Path):
        self.root = Path(root)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create storage directory {self.root}: {e}") from e

    def path_for(self, key: str) -> Path:
        safe_name = re.sub(r"[^A-Za-z0-9._-]", "_", key)
        return self.root / f"{safe_name}{self.SUFFIX}"

    def get(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                logger.debug(f"Storage hit: {path}")
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Failed to read {path}: {e}")
            return None

    def set(self, key: str, value: str) -> bool:
        path = self.path_for(key)
        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=".tmp-", suffix=self.SUFFIX)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_name, path)
        except OSError as e:
            logger.warning(f"Failed to write {path}: {e}")
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            return False

        logger.debug(f"Stored {key} ({len(value)} chars) at {path}")
        return True

    def delete(self, key: str) -> bool:
        path = self.path_for(key)
        if not path.exists():
            return False
        try:
            path.unlink()
        except OSError as e:
            logger.warning(f"Failed to delete {path}: {e}")
            return False
        return True

    def keys(self) -> List[str]:
        return sorted(
            p.name[:-len(self.SUFFIX)]
            for p in self.root.glob(f"*{self.SUFFIX}")
            if not p.name.startswith(".tmp-")
        )

    def clear(self) -> int:
        """Delete every stored entry. Returns the number removed."""
        removed = 0
        for key in self.keys():
            if self.delete(key):
                removed += 1
        logger.info(f"Storage cleared: {removed} entries")
        return removed
