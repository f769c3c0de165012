"""File-backed key-value store.

One file per key under a data directory.  Writes go to a temporary file
that is ``fsync``-ed and atomically renamed over the target while an
exclusive ``fcntl`` lock is held, so a crash mid-write never leaves a
half-written document behind and concurrent processes do not interleave.
"""

from __future__ import annotations

import contextlib
import fcntl
import logging
import os
from pathlib import Path

from chance_journal.core.errors import PersistenceError

logger = logging.getLogger(__name__)


class FileKeyValueStore:
    """Store each key as ``<data_dir>/<prefix><key>.json``.

    Args:
        data_dir: Directory holding the documents.  Created on first write.
        prefix: Key namespace prefix used in file names.
    """

    def __init__(self, data_dir: str | Path, *, prefix: str = "") -> None:
        self._dir = Path(data_dir)
        self._prefix = prefix

    @property
    def data_dir(self) -> Path:
        return self._dir

    def path_for(self, key: str) -> Path:
        return self._dir / f"{self._prefix}{key}.json"

    def _lock_path(self) -> Path:
        return self._dir / f".{self._prefix}lock"

    def get(self, key: str) -> str | None:
        path = self.path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            raise PersistenceError(key, f"cannot read {path}: {exc}") from exc

    def set(self, key: str, value: str) -> None:
        path = self.path_for(key)
        tmp = path.with_suffix(".json.tmp")
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            with open(self._lock_path(), "a") as lock:
                fcntl.flock(lock.fileno(), fcntl.LOCK_EX)
                try:
                    with open(tmp, "w", encoding="utf-8") as f:
                        f.write(value)
                        f.flush()
                        os.fsync(f.fileno())
                    os.replace(tmp, path)
                finally:
                    fcntl.flock(lock.fileno(), fcntl.LOCK_UN)
        except OSError as exc:
            with contextlib.suppress(OSError):
                tmp.unlink(missing_ok=True)
            raise PersistenceError(key, f"cannot write {path}: {exc}") from exc
        logger.debug("Wrote %d bytes to %s", len(value), path)

    def remove(self, key: str) -> None:
        try:
            self.path_for(key).unlink(missing_ok=True)
        except OSError as exc:
            raise PersistenceError(key, f"cannot remove: {exc}") from exc
