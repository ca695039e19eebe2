from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any


# ----------------------------
# Store Requests
# ----------------------------
class CreateStoreRequest(BaseModel):
    api_key: Optional[str] = None
    store_name: Optional[str] = None


class SyncRequest(BaseModel):
    api_key: Optional[str] = None


# ----------------------------
# Store Responses
# ----------------------------
class StoreSummaryResponse(BaseModel):
    success: bool = True
    store_name: str
    file_search_store_resource: str
    created_at: str
    file_count: int = 0


class StoreListResponse(BaseModel):
    success: bool = True
    stores: List[Dict[str, Any]]


class UploadResponse(BaseModel):
    success: bool = True
    results: List[Dict[str, Any]]


class DeleteDocumentResponse(BaseModel):
    success: bool = True
    deleted_document_id: str


class DeleteStoreResponse(BaseModel):
    success: bool = True
    deleted_store: str


class SyncResponse(BaseModel):
    success: bool = True
    updated_count: int
    total_remote_documents: int


# ----------------------------
# Ask Request/Response
# ----------------------------
class AskRequest(BaseModel):
    api_key: Optional[str] = None
    stores: List[str] = Field(default_factory=list)
    question: Optional[str] = None
    system_prompt: Optional[str] = None


class AskResponse(BaseModel):
    success: bool = True
    response_text: str
    grounding_metadata: Optional[Dict[str, Any]] = None
