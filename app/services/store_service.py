# app/services/store_service.py
"""Store, upload, document and sync operations."""

from typing import Optional, List, Dict, Any, Callable, Tuple

from fastapi import UploadFile

from app.ai.gemini import GeminiFileSearchClient
from app.models.store import FileEntry, Store
from app.services.indexing import track_uploads
from app.storage.metadata_store import MetadataStore
from app.utils.files import clean_filename, detect_mime_type
from app.core.logging import get_logger
from app.core.exceptions import (
    StoreAlreadyExistsError,
    StoreNotFoundError,
    StorageError,
    VendorException,
)

logger = get_logger(__name__)

Scheduler = Callable[..., Any]


def match_local_entry(
    files: List[FileEntry],
    remote_display_name: str,
    remote_name: str
) -> Optional[FileEntry]:
    """
    Find the unresolved local entry a remote document belongs to.

    Exact display name wins. Otherwise the remote resource name must contain
    the local display name, and only one unresolved entry may qualify.
    """
    unresolved = [f for f in files if not f.is_resolved]

    for entry in unresolved:
        if entry.display_name == remote_display_name:
            return entry

    if not remote_name:
        return None
    candidates = [f for f in unresolved if f.display_name and f.display_name in remote_name]
    if len(candidates) == 1:
        return candidates[0]
    if len(candidates) > 1:
        logger.warning(
            "Ambiguous substring match skipped",
            remote=remote_name,
            candidates=len(candidates),
        )
    return None


class StoreService:
    """Service for store lifecycle, uploads and reconciliation."""

    def __init__(self, metadata_store: MetadataStore):
        self.metadata = metadata_store

    def require_store(self, store_name: str) -> Store:
        store = self.metadata.get_store(store_name)
        if store is None:
            raise StoreNotFoundError(store_name)
        return store

    # ===================
    # Store lifecycle
    # ===================

    async def create_store(self, client: GeminiFileSearchClient, store_name: str) -> Store:
        """Create a vendor store and register it locally."""
        if self.metadata.get_store(store_name) is not None:
            raise StoreAlreadyExistsError(store_name)

        resource = await client.create_store(store_name)

        store = Store(store_name=store_name, file_search_store_name=resource)
        async with self.metadata.transaction() as root:
            lost_race = store_name in root.file_stores
            if not lost_race:
                root.file_stores[store_name] = store
                root.current_store_name = store_name

        if lost_race:
            # Another create of the same name registered first; drop our vendor store
            try:
                await client.delete_store(resource)
            except VendorException as e:
                logger.warning(
                    f"Could not delete duplicate vendor store: {e.message}",
                    store=store_name,
                    resource=resource,
                )
            raise StoreAlreadyExistsError(store_name)

        logger.info("Store created", store=store_name, resource=resource)
        return store

    def list_stores(self) -> List[Store]:
        return self.metadata.list_stores()

    async def delete_store(
        self,
        client: Optional[GeminiFileSearchClient],
        store_name: str
    ) -> str:
        """
        Remove a store locally, deleting the vendor store on a best-effort basis.

        Vendor failures are logged and ignored; the local entry is always removed.
        """
        store = self.require_store(store_name)

        if client is None:
            logger.warning("No api_key given, skipping vendor store deletion", store=store_name)
        else:
            try:
                await client.delete_store(store.file_search_store_name)
            except VendorException as e:
                logger.warning(f"Vendor store deletion failed: {e.message}", store=store_name)

        await self.metadata.remove_store(store_name)
        logger.info("Store deleted", store=store_name)
        return store_name

    # ===================
    # Uploads
    # ===================

    async def upload_files(
        self,
        client: GeminiFileSearchClient,
        store_name: str,
        files: List[UploadFile],
        schedule: Scheduler
    ) -> List[Dict[str, Any]]:
        """
        Submit each file to the vendor and record it as pending.

        Files are handled independently: a failed submission is reported in
        its own result and the batch continues. Indexing of each submitted
        file is tracked by a single task handed to `schedule`, which polls
        the batch concurrently. A file whose entry cannot be recorded is
        reported as not uploaded.
        """
        store = self.require_store(store_name)
        results: List[Dict[str, Any]] = []
        pending: List[Tuple[str, str]] = []

        for upload in files:
            display_name = clean_filename(upload.filename)
            mime_type = detect_mime_type(display_name)
            content = await upload.read()

            try:
                operation = await client.upload_document(
                    store.file_search_store_name, display_name, content, mime_type
                )
            except VendorException as e:
                logger.warning(f"Upload failed: {e.message}", store=store_name, file=display_name)
                results.append({
                    "filename": display_name,
                    "uploaded": False,
                    "indexed": False,
                    "gemini_error": e.message,
                })
                continue

            operation_name = operation.get("name")
            entry = FileEntry(
                display_name=display_name,
                size_bytes=len(content),
                mime_type=mime_type,
                operation_name=operation_name,
            )
            try:
                async with self.metadata.transaction() as root:
                    current = root.file_stores.get(store_name)
                    if current is None:
                        logger.warning("Store removed during upload", store=store_name)
                    else:
                        current.files.append(entry)
            except StorageError as e:
                logger.error(f"Could not record upload: {e.message}", store=store_name, file=display_name)
                results.append({
                    "filename": display_name,
                    "uploaded": False,
                    "indexed": False,
                    "gemini_error": e.message,
                })
                continue

            if operation_name:
                pending.append((operation_name, display_name))

            logger.info("File submitted", store=store_name, file=display_name, size=len(content))
            results.append({
                "filename": display_name,
                "uploaded": True,
                "indexed": False,
                "document_resource": None,
                "document_id": None,
                "gemini_error": None,
                "operation_name": operation_name,
            })

        if pending:
            schedule(track_uploads, client, self.metadata, store_name, pending)

        return results

    # ===================
    # Documents
    # ===================

    async def delete_document(
        self,
        client: GeminiFileSearchClient,
        store_name: str,
        document_id: str
    ) -> str:
        """Delete a vendor document and drop its local entries."""
        store = self.require_store(store_name)

        # VendorRequestError carries the vendor's status and body back to the caller
        await client.delete_document(store.file_search_store_name, document_id)

        async with self.metadata.transaction() as root:
            current = root.file_stores.get(store_name)
            removed = current.remove_document(document_id) if current else 0

        logger.info("Document deleted", store=store_name, document_id=document_id, removed=removed)
        return document_id

    async def sync_documents(
        self,
        client: GeminiFileSearchClient,
        store_name: str
    ) -> Dict[str, int]:
        """
        Fill in document ids for entries whose indexing was never observed.

        Returns:
            {"updated_count": ..., "total_remote_documents": ...}
        """
        store = self.require_store(store_name)
        documents = await client.list_documents(store.file_search_store_name)

        updated = 0
        async with self.metadata.transaction() as root:
            current = root.file_stores.get(store_name)
            if current is None:
                raise StoreNotFoundError(store_name)

            # A remote document belongs to at most one local entry
            claimed = {f.document_resource for f in current.files if f.document_resource}

            for document in documents:
                display = document.get("displayName") or document.get("display_name") or ""
                name = document.get("name") or ""
                if not display or not name or name in claimed:
                    continue
                entry = match_local_entry(current.files, display, name)
                if entry is None:
                    continue
                entry.mark_indexed(name)
                claimed.add(name)
                updated += 1

        logger.info("Sync finished", store=store_name, updated=updated, remote=len(documents))
        return {"updated_count": updated, "total_remote_documents": len(documents)}
