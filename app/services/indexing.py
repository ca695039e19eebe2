# app/services/indexing.py
"""Background tracking of vendor indexing operations."""

import asyncio
import time
from typing import Optional, Dict, Any, List, Tuple

from app.ai.gemini import GeminiFileSearchClient
from app.storage.metadata_store import MetadataStore
from app.core.config import settings
from app.core.exceptions import VendorException
from app.core.logging import get_logger

logger = get_logger(__name__)


def document_resource_from_operation(operation: Dict[str, Any]) -> Optional[str]:
    """Extract the indexed document's resource name from a finished operation."""
    response = operation.get("response") or {}
    document = response.get("fileSearchDocument") or {}
    return response.get("documentName") or document.get("name") or None


def operation_error(operation: Dict[str, Any]) -> Optional[str]:
    error = operation.get("error")
    if not error:
        return None
    if isinstance(error, dict):
        return error.get("message") or str(error)
    return str(error)


async def poll_operation_until_done(
    client: GeminiFileSearchClient,
    operation_name: str,
    timeout: Optional[float] = None,
    interval: Optional[float] = None
) -> Optional[Dict[str, Any]]:
    """
    Poll an operation at a fixed interval until it reports done.

    Vendor and network errors are retried until the deadline.

    Returns:
        The finished operation JSON, or None if the deadline passed first.
    """
    timeout = settings.POLL_TIMEOUT_SECONDS if timeout is None else timeout
    interval = settings.POLL_INTERVAL_SECONDS if interval is None else interval
    deadline = time.monotonic() + timeout

    while time.monotonic() < deadline:
        try:
            operation = await client.get_operation(operation_name)
            if operation.get("done"):
                return operation
        except VendorException as e:
            logger.debug(f"Operation poll failed, retrying: {e.message}", operation=operation_name)
        await asyncio.sleep(interval)

    return None


async def track_upload(
    client: GeminiFileSearchClient,
    metadata_store: MetadataStore,
    store_name: str,
    operation_name: str,
    display_name: str
):
    """
    Wait for an upload's indexing operation and record the outcome.

    Runs after the upload response has been sent. On timeout the entry keeps
    its operation_name so a later sync can resolve it. Errors are logged only.
    """
    try:
        operation = await poll_operation_until_done(client, operation_name)
        if operation is None:
            logger.warning(
                "Indexing not finished before poll deadline",
                store=store_name,
                operation=operation_name,
            )
            return

        document_resource = document_resource_from_operation(operation)
        error = operation_error(operation)

        async with metadata_store.transaction() as root:
            store = root.file_stores.get(store_name)
            entry = store.find_by_operation(operation_name, display_name) if store else None
            if entry is None:
                logger.warning(
                    "No file entry left for finished operation",
                    store=store_name,
                    operation=operation_name,
                )
                return
            entry.mark_indexed(document_resource)
            if error:
                entry.gemini_error = error

        logger.info(
            "Indexing finished",
            store=store_name,
            file=display_name,
            indexed=bool(document_resource),
        )
    except Exception:
        logger.exception("Background poll error", store=store_name, operation=operation_name)


async def track_uploads(
    client: GeminiFileSearchClient,
    metadata_store: MetadataStore,
    store_name: str,
    uploads: List[Tuple[str, str]]
):
    """Track a batch of (operation_name, display_name) uploads concurrently."""
    await asyncio.gather(*(
        track_upload(client, metadata_store, store_name, operation_name, display_name)
        for operation_name, display_name in uploads
    ))
