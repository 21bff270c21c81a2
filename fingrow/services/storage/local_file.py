"""
Local JSON File Storage

One `<key>.json` file per key under the data directory. Writes go to a
temporary file in the same directory which is then moved over the target,
so a crash mid-write never leaves a truncated collection behind.
"""

import os
import tempfile
from pathlib import Path
from typing import Optional

import structlog

from fingrow.services.storage.interface import StorageBackend, StorageError


logger = structlog.get_logger(__name__)


class LocalFileBackend(StorageBackend):
    """Key/value backend on the local filesystem."""

    name = "local_file"

    def __init__(self, data_dir: Path):
        self._data_dir = Path(data_dir)

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def path_for(self, key: str) -> Path:
        return self._data_dir / f"{key}.json"

    def read(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}") from e

        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            # Undecodable bytes are handed on as text the store will reject
            logger.warning("local_read_not_utf8", path=str(path), error=str(e))
            return raw.decode("utf-8", errors="replace")

    def write(self, key: str, text: str) -> None:
        target = self.path_for(key)
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=f"tmp_{key}_", suffix=".json", dir=self._data_dir, text=True
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(text)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_path, target)
            except BaseException:
                # Don't leave temp files behind
                Path(tmp_path).unlink(missing_ok=True)
                raise
        except OSError as e:
            logger.error("local_write_failed", path=str(target), error=str(e))
            raise StorageError(f"Failed to write {target}: {e}") from e

        logger.debug("local_write", path=str(target), size=len(text))
