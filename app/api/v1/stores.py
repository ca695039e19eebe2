# app/api/v1/stores.py
from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Query, UploadFile
from typing import List, Optional

from app.models.schemas import (
    CreateStoreRequest, StoreSummaryResponse, StoreListResponse, UploadResponse,
    DeleteDocumentResponse, DeleteStoreResponse, SyncRequest, SyncResponse
)
from app.services.store_service import StoreService
from app.core.dependencies import get_store_service, get_gemini_client_factory
from app.core.exceptions import InvalidApiKeyError, MissingFieldError
from app.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()


def _require_api_key(api_key: Optional[str]) -> str:
    if not api_key:
        raise MissingFieldError("Missing api_key", fields=["api_key"])
    return api_key


@router.post("/create", response_model=StoreSummaryResponse)
async def create_store(
    request: CreateStoreRequest,
    service: StoreService = Depends(get_store_service),
    client_factory=Depends(get_gemini_client_factory)
):
    """Create a File Search store and register it."""
    if not request.api_key or not request.store_name:
        raise MissingFieldError(
            "Missing api_key or store_name", fields=["api_key", "store_name"]
        )

    client = client_factory(request.api_key)
    store = await service.create_store(client, request.store_name)

    return StoreSummaryResponse(
        store_name=store.store_name,
        file_search_store_resource=store.file_search_store_name,
        created_at=store.created_at,
        file_count=store.file_count
    )


@router.post("/{store_name}/upload", response_model=UploadResponse)
async def upload_files(
    store_name: str,
    background_tasks: BackgroundTasks,
    api_key: Optional[str] = Form(None),
    files: Optional[List[UploadFile]] = File(None),
    service: StoreService = Depends(get_store_service),
    client_factory=Depends(get_gemini_client_factory)
):
    """
    Upload files into a store.

    Responds as soon as every file is submitted; indexing is tracked in the
    background and recorded in the store metadata when it finishes.
    """
    service.require_store(store_name)
    client = client_factory(_require_api_key(api_key))

    results = await service.upload_files(
        client, store_name, files or [], schedule=background_tasks.add_task
    )
    return UploadResponse(results=results)


@router.get("", response_model=StoreListResponse)
async def list_stores(
    api_key: Optional[str] = Query(None),
    service: StoreService = Depends(get_store_service),
    client_factory=Depends(get_gemini_client_factory)
):
    """List all registered stores with their files."""
    # Building a client is the only key check made here
    client_factory(_require_api_key(api_key))

    stores = service.list_stores()
    return StoreListResponse(stores=[s.to_dict() for s in stores])


@router.delete("/{store_name}/documents/{document_id}", response_model=DeleteDocumentResponse)
async def delete_document(
    store_name: str,
    document_id: str,
    api_key: Optional[str] = Query(None),
    service: StoreService = Depends(get_store_service),
    client_factory=Depends(get_gemini_client_factory)
):
    """Delete one document from the vendor store and local metadata."""
    _require_api_key(api_key)
    service.require_store(store_name)
    client = client_factory(api_key)

    deleted = await service.delete_document(client, store_name, document_id)
    return DeleteDocumentResponse(deleted_document_id=deleted)


@router.delete("/{store_name}", response_model=DeleteStoreResponse)
async def delete_store(
    store_name: str,
    api_key: Optional[str] = Query(None),
    service: StoreService = Depends(get_store_service),
    client_factory=Depends(get_gemini_client_factory)
):
    """Delete a store. Vendor deletion is best-effort."""
    service.require_store(store_name)

    client = None
    if api_key:
        try:
            client = client_factory(api_key)
        except InvalidApiKeyError as e:
            logger.warning(f"Could not build client for store deletion: {e}", store=store_name)

    deleted = await service.delete_store(client, store_name)
    return DeleteStoreResponse(deleted_store=deleted)


@router.post("/{store_name}/sync", response_model=SyncResponse)
async def sync_store(
    store_name: str,
    request: SyncRequest,
    service: StoreService = Depends(get_store_service),
    client_factory=Depends(get_gemini_client_factory)
):
    """Reconcile local file entries with the vendor's document list."""
    client = client_factory(_require_api_key(request.api_key))

    counts = await service.sync_documents(client, store_name)
    return SyncResponse(**counts)
