# app/core/dependencies.py
from fastapi import Depends

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

# ===================
# Metadata Store
# ===================

_metadata_store = None

def get_metadata_store():
    """Get metadata store instance."""
    global _metadata_store
    if _metadata_store is None:
        from app.storage.base import JSONFileBackend, MemoryBackend
        from app.storage.metadata_store import MetadataStore
        if settings.is_memory_storage:
            backend = MemoryBackend()
        else:
            backend = JSONFileBackend(settings.DATA_DIR)
        _metadata_store = MetadataStore(backend)
        logger.info("Metadata store initialized", backend=type(backend).__name__)
    return _metadata_store

# ===================
# Service Instances
# ===================

def get_store_service(metadata_store=Depends(get_metadata_store)):
    """Get store service bound to the metadata store."""
    from app.services.store_service import StoreService
    return StoreService(metadata_store)

# ===================
# Vendor Client
# ===================

def get_gemini_client_factory():
    """Get the callable that builds a vendor client from an API key."""
    from app.ai.gemini import GeminiFileSearchClient
    return GeminiFileSearchClient
