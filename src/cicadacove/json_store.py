"""Shared JSON file persistence for the cicadacove stores."""

import fcntl
import json
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from .errors import StorageError

SCHEMA_VERSION = 1


class JsonFileStore:
    """
    A single JSON document on disk holding one named collection.

    Reads are unlocked; read-modify-write sequences go through ``_lock()``.
    Writes are atomic (write-to-temp-then-rename).
    """

    collection: str = "records"

    def __init__(self, data_dir: Path, filename: str):
        self.data_dir = Path(data_dir)
        self.path = self.data_dir / filename

    def _ensure_dir(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def _lock(self) -> Iterator[None]:
        """Acquire exclusive lock on the data file for read-modify-write operations."""
        self._ensure_dir()
        lock_path = self.data_dir / f".{self.path.stem}.lock"
        with open(lock_path, "w") as lock_file:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def _empty(self) -> dict[str, Any]:
        return {"schema_version": SCHEMA_VERSION, self.collection: []}

    def _load_data(self) -> dict[str, Any]:
        if not self.path.exists():
            return self._empty()

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise StorageError(str(self.path), f"invalid JSON ({e.msg})") from e

        version = data.get("schema_version", 0)
        if version != SCHEMA_VERSION:
            raise StorageError(str(self.path), f"unsupported schema version {version}")
        data.setdefault(self.collection, self._empty()[self.collection])
        return data

    def _save_data(self, data: dict[str, Any]) -> None:
        self._ensure_dir()

        fd, temp_path = tempfile.mkstemp(
            dir=self.data_dir, prefix=f".{self.path.stem}_", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
                f.write("\n")
            os.replace(temp_path, self.path)
        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

    def _records(self) -> list[dict[str, Any]]:
        return self._load_data()[self.collection]
