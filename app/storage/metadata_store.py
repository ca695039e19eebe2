# app/storage/metadata_store.py
"""Single-blob metadata store for stores and their files."""

import asyncio
import json
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

from pydantic import ValidationError

from app.models.store import MetadataRoot, Store
from app.storage.base import BlobBackend
from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)


class MetadataStore:
    """
    Persists the whole MetadataRoot as one JSON blob under a fixed key.

    Every save overwrites the previous blob. Mutations should go through
    transaction(), which reloads fresh and serializes writers within this
    process. Writers in other processes still race last-write-wins.
    """

    def __init__(self, backend: BlobBackend, key: Optional[str] = None):
        self.backend = backend
        self.key = key or settings.METADATA_KEY
        self._lock = asyncio.Lock()

    # ===================
    # Blob load/save
    # ===================

    def load(self) -> MetadataRoot:
        """Load the metadata root, defaulting to an empty one."""
        raw = self.backend.get(self.key)
        if not raw:
            return MetadataRoot()
        try:
            return MetadataRoot.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.error(f"Failed to parse metadata blob: {e}", key=self.key)
            return MetadataRoot()

    def save(self, root: MetadataRoot):
        """Persist the entire root, replacing any prior value."""
        self.backend.put(self.key, json.dumps(root.to_dict()))
        logger.debug("Saved metadata", stores=len(root.file_stores))

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[MetadataRoot]:
        """Load fresh, yield for mutation, save on clean exit."""
        async with self._lock:
            root = self.load()
            yield root
            self.save(root)

    # ===================
    # Repository helpers
    # ===================

    def get_store(self, store_name: str) -> Optional[Store]:
        return self.load().file_stores.get(store_name)

    def list_stores(self) -> List[Store]:
        return list(self.load().file_stores.values())

    async def put_store(self, store: Store):
        async with self.transaction() as root:
            root.file_stores[store.store_name] = store

    async def remove_store(self, store_name: str) -> bool:
        async with self.transaction() as root:
            if store_name not in root.file_stores:
                return False
            del root.file_stores[store_name]
            if root.current_store_name == store_name:
                root.current_store_name = None
            return True
