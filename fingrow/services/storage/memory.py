"""In-memory storage backend for tests and throwaway sessions."""

from typing import Optional

from fingrow.services.storage.interface import StorageBackend


class InMemoryBackend(StorageBackend):
    """Dict-backed key/value backend. Nothing survives the process."""

    name = "memory"

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    @property
    def data(self) -> dict[str, str]:
        """Snapshot of everything written so far."""
        return dict(self._data)

    def read(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def write(self, key: str, text: str) -> None:
        self._data[key] = text
