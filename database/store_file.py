"""
FileVoicemailStore — JSON file-backed store with persistence across restarts.

Data layout:
  {data_dir}/
    identities.json            phone number → identity
    pending_voicemails.json    id → pending voicemail

Features:
  - Survives process restarts (unlike InMemoryVoicemailStore)
  - No external dependencies (no database server)
  - Flushes the changed collection on every mutation (write-then-rename)
  - Single-process only (no concurrent write safety)

Best for: small deployments, demos, edge devices.
"""
from __future__ import annotations

import json
import structlog
from pathlib import Path
from typing import Any

from database.store_memory import InMemoryVoicemailStore
from models.errors import StorageError

logger = structlog.get_logger()

_COLLECTIONS = ["identities", "pending_voicemails"]


class FileVoicemailStore(InMemoryVoicemailStore):
    """
    Extends InMemoryVoicemailStore with JSON file persistence.

    On init: loads all data from JSON files into memory.
    On every write: flushes the changed collection to disk.
    """

    backend_name = "file"

    def __init__(self, data_dir: str = "./data"):
        super().__init__()
        self._data_dir = Path(data_dir)
        self._data_dir.mkdir(parents=True, exist_ok=True)
        self._load_all()
        logger.info("file_store_initialized", data_dir=str(self._data_dir))

    # ── Load / Save ───────────────────────────────────────

    def _file_path(self, collection: str) -> Path:
        return self._data_dir / f"{collection}.json"

    def _load_all(self):
        """Load all collections from disk."""
        for collection in _COLLECTIONS:
            path = self._file_path(collection)
            if not path.exists():
                continue
            try:
                with open(path, "r") as f:
                    data = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                raise StorageError(f"failed to load {path}: {e}") from e
            self._set_collection(collection, data)
            logger.debug("file_store_loaded",
                         collection=collection,
                         records=len(data) if isinstance(data, dict) else "N/A")

    def _set_collection(self, collection: str, data: Any):
        """Restore a collection from loaded JSON data."""
        data = data if isinstance(data, dict) else {}
        if collection == "identities":
            self._identities = data
        elif collection == "pending_voicemails":
            self._pending = data
            self._next_id = max((int(k) for k in data), default=0) + 1

    def _get_collection_data(self, collection: str) -> Any:
        mapping = {
            "identities": self._identities,
            "pending_voicemails": self._pending,
        }
        return mapping.get(collection, {})

    def _flush_collection(self, collection: str):
        """Write a single collection to disk."""
        path = self._file_path(collection)
        data = self._get_collection_data(collection)
        tmp_path = path.with_suffix(".tmp")
        try:
            with open(tmp_path, "w") as f:
                json.dump(data, f, indent=2, default=str)
            tmp_path.replace(path)  # atomic on POSIX
        except OSError as e:
            raise StorageError(f"failed to write {path}: {e}") from e

    def _mark_dirty(self, collection: str) -> None:
        self._flush_collection(collection)
