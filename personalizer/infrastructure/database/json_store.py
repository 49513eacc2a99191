"""
JSON-file document store.

Layout under the root directory:

    preferences/<user>.json
    blocklists/<user>.json
    anti_repetition/<user>.json
    exploration_metrics/<user>.json
    interactions/<user>/<kind>.json

File I/O runs in a worker thread; a per-store lock serializes writes so
read-modify-write merges within one process do not interleave.
"""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from personalizer.domain.interfaces.store_interface import PreferenceStoreInterface
from personalizer.infrastructure.database.memory_store import deep_merge, record_timestamp
from personalizer.utils.exceptions import StorePermissionError, StoreUnavailableError
from personalizer.utils.logger import get_logger
from personalizer.utils.validators import sanitize_filename

logger = get_logger(__name__)


class JsonFileStore(PreferenceStoreInterface):
    """
    PreferenceStoreInterface backed by JSON files on disk.

    Attributes:
        root: Directory holding all collections.
    """

    def __init__(self, root: Path | str):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self._lock = asyncio.Lock()
        logger.info(f"JsonFileStore initialized at {self.root}")

    def _document_path(self, collection: str, user_id: str) -> Path:
        return self.root / collection / f"{sanitize_filename(user_id)}.json"

    def _log_path(self, user_id: str, kind: str) -> Path:
        return self.root / "interactions" / sanitize_filename(user_id) / f"{sanitize_filename(kind)}.json"

    @staticmethod
    def _load(path: Path) -> Optional[Any]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            return None
        except PermissionError as e:
            raise StorePermissionError(f"Cannot read {path.name}: {e}") from e
        except json.JSONDecodeError as e:
            raise StoreUnavailableError(f"Corrupt document {path}: {e}") from e
        except OSError as e:
            raise StoreUnavailableError(f"Cannot read {path}: {e}") from e

    @staticmethod
    def _dump(path: Path, data: Any) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_suffix(".tmp")
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2, default=str)
            os.replace(tmp_path, path)
        except PermissionError as e:
            raise StorePermissionError(f"Cannot write {path.name}: {e}") from e
        except OSError as e:
            raise StoreUnavailableError(f"Cannot write {path}: {e}") from e

    async def _read_document(self, collection: str, user_id: str) -> Optional[Dict[str, Any]]:
        return await asyncio.to_thread(self._load, self._document_path(collection, user_id))

    async def _merge_document(self, collection: str, user_id: str, update: Dict[str, Any]) -> None:
        path = self._document_path(collection, user_id)
        async with self._lock:
            current = await asyncio.to_thread(self._load, path) or {}
            await asyncio.to_thread(self._dump, path, deep_merge(current, update))

    async def _replace_document(self, collection: str, user_id: str, document: Dict[str, Any]) -> None:
        path = self._document_path(collection, user_id)
        async with self._lock:
            await asyncio.to_thread(self._dump, path, document)

    async def read_preferences(self, user_id: str) -> Optional[Dict[str, Any]]:
        return await self._read_document("preferences", user_id)

    async def write_preferences(self, user_id: str, update: Dict[str, Any]) -> None:
        await self._merge_document("preferences", user_id, update)

    async def read_blocklists(self, user_id: str) -> Optional[Dict[str, Any]]:
        return await self._read_document("blocklists", user_id)

    async def write_blocklists(self, user_id: str, update: Dict[str, Any]) -> None:
        await self._merge_document("blocklists", user_id, update)

    async def read_anti_repetition_cache(self, user_id: str) -> Optional[Dict[str, Any]]:
        return await self._read_document("anti_repetition", user_id)

    async def write_anti_repetition_cache(self, user_id: str, cache: Dict[str, Any]) -> None:
        await self._replace_document("anti_repetition", user_id, cache)

    async def read_exploration_metrics(self, user_id: str) -> Optional[Dict[str, Any]]:
        return await self._read_document("exploration_metrics", user_id)

    async def write_exploration_metrics(self, user_id: str, metrics: Dict[str, Any]) -> None:
        await self._replace_document("exploration_metrics", user_id, metrics)

    async def read_interaction_log(
        self,
        user_id: str,
        kind: str,
        limit: int,
        newest_first: bool = True,
    ) -> List[Dict[str, Any]]:
        records = await asyncio.to_thread(self._load, self._log_path(user_id, kind)) or []
        records.sort(key=record_timestamp, reverse=newest_first)
        return records[:limit]

    async def append_interaction(self, user_id: str, kind: str, record: Dict[str, Any]) -> None:
        path = self._log_path(user_id, kind)
        async with self._lock:
            records = await asyncio.to_thread(self._load, path) or []
            records.append(record)
            await asyncio.to_thread(self._dump, path, records)
