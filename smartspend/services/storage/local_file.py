"""
Local File Storage Implementation

The snapshot is a single JSON file. Writes go to a temporary file in the
same directory and are then renamed over the target, so a crash mid-write
leaves the previous snapshot intact.
"""

import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from smartspend.models.ledger import AppState
from smartspend.services.storage.interface import (
    StateStorageInterface,
    StorageError,
    deserialize_state,
    serialize_state,
)


class LocalFileStateStorage(StateStorageInterface):
    """JSON snapshot on the local filesystem."""

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Optional[AppState]:
        if not self._path.exists():
            return None
        try:
            blob = self._path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to read {self._path}: {e}") from e
        return deserialize_state(blob)

    def save(self, state: AppState) -> None:
        blob = serialize_state(state)
        directory = self._path.parent
        tmp_path = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=directory, prefix=f".{self._path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(blob)
            os.replace(tmp_path, self._path)
        except OSError as e:
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise StorageError(f"Failed to write {self._path}: {e}") from e
