"""
Atomic JSON document on disk.

Reads and writes run in a worker thread so the event loop never blocks
on file I/O. Writes go through a temp file in the same directory,
fsync, then replace, so a reader never observes a partial document.
"""

from __future__ import annotations

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Callable

from shared.errors import PersistenceError
from shared.logging.logger import get_logger

log = get_logger("shared.json_document")


class JsonDocument:
    def __init__(self, path: Path, default: Callable[[], Any]):
        self._path = Path(path)
        self._default = default

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # Sync primitives (run via asyncio.to_thread)
    # ------------------------------------------------------------------

    def _read(self) -> Any:
        if not self._path.exists():
            return self._default()
        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as e:
            raise PersistenceError(
                f"Failed to read {self._path}: {e}", path=self._path
            ) from e

        if not raw.strip():
            return self._default()

        try:
            return json.loads(raw)
        except ValueError as e:
            raise PersistenceError(
                f"Corrupt JSON in {self._path}: {e}", path=self._path
            ) from e

    def _write_atomic(self, payload: Any) -> None:
        serialized = json.dumps(payload, indent=2, ensure_ascii=False)
        temp_path = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", dir=self._path.parent, delete=False, encoding="utf-8"
            ) as tmp:
                temp_path = Path(tmp.name)
                tmp.write(serialized)
                tmp.flush()
                os.fsync(tmp.fileno())

            temp_path.replace(self._path)
        except OSError as e:
            if temp_path is not None:
                try:
                    temp_path.unlink(missing_ok=True)
                except OSError as cleanup_error:
                    log.warning(f"Could not remove temp file {temp_path}: {cleanup_error}")
            raise PersistenceError(
                f"Failed to write {self._path}: {e}", path=self._path
            ) from e

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def load(self) -> Any:
        return await asyncio.to_thread(self._read)

    async def save(self, payload: Any) -> None:
        await asyncio.to_thread(self._write_atomic, payload)
        log.debug(f"Wrote {self._path}")
