from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path

from pydantic import BaseModel, RootModel, ValidationError

from depwatch.core.errors import CursorStoreError
from depwatch.core.models import BlockRef


class CursorEntry(BaseModel):
    number: int
    hash: str | None = None


class CursorFile(RootModel[dict[str, CursorEntry]]):
    pass


class JsonCursorStore:
    """File-backed "last processed block" per filter key.

    The whole file is one JSON object `{key: {"number": ..., "hash": ...}}`.
    Writes replace the file atomically, so a crash never leaves a torn cursor.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = asyncio.Lock()

    async def get_last_block(self, key: str) -> BlockRef | None:
        async with self._lock:
            doc = await asyncio.to_thread(self._load, self.path)
        entry = doc.get(key)
        if entry is None:
            return None
        return BlockRef(number=entry.number, hash=entry.hash)

    async def set_last_block(self, key: str, block: BlockRef) -> None:
        async with self._lock:
            doc = await asyncio.to_thread(self._load, self.path)
            doc[key] = CursorEntry(number=block.number, hash=block.hash)
            await asyncio.to_thread(self._write, self.path, CursorFile(doc).model_dump_json())

    @staticmethod
    def _load(path: Path) -> dict[str, CursorEntry]:
        if not path.exists():
            return {}
        text = path.read_text()
        if not text.strip():
            return {}
        try:
            return dict(CursorFile.model_validate(json.loads(text)).root)
        except (ValueError, ValidationError) as e:
            raise CursorStoreError(f"corrupt cursor file {path}: {e}") from e

    @staticmethod
    def _write(path: Path, text: str) -> None:
        """Write to a temp file, fsync, then rename over the target."""
        if path.parent and not path.parent.exists():
            os.makedirs(path.parent, exist_ok=True)
        tmp = path.with_name(path.name + ".tmp")
        with open(tmp, "w") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
