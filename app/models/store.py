# app/models/store.py
"""Metadata models for stores and their uploaded files."""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict, Any
from datetime import datetime, timezone


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def document_id_from_resource(resource: Optional[str]) -> Optional[str]:
    """Last path segment of a vendor document resource name."""
    if not resource:
        return None
    return resource.rstrip("/").split("/")[-1] or None


class FileEntry(BaseModel):
    """Local record for one uploaded file and its indexing status."""
    display_name: str
    size_bytes: int = 0
    uploaded_at: str = Field(default_factory=utc_now_iso)
    mime_type: Optional[str] = None
    gemini_indexed: bool = False
    document_resource: Optional[str] = None
    document_id: Optional[str] = None
    gemini_error: Optional[str] = None
    operation_name: Optional[str] = None

    @property
    def is_resolved(self) -> bool:
        return bool(self.document_id)

    def mark_indexed(self, document_resource: Optional[str]):
        """Record the vendor document and finish the in-flight operation."""
        self.document_resource = document_resource
        self.document_id = document_id_from_resource(document_resource)
        self.gemini_indexed = bool(document_resource)
        self.operation_name = None

    def to_dict(self) -> Dict[str, Any]:
        data = self.model_dump()
        # operation_name only exists while indexing is in flight
        if data.get("operation_name") is None:
            data.pop("operation_name", None)
        return data


class Store(BaseModel):
    """A named document collection backed by a vendor File Search store."""
    store_name: str
    file_search_store_name: str
    created_at: str = Field(default_factory=utc_now_iso)
    files: List[FileEntry] = Field(default_factory=list)

    @property
    def file_count(self) -> int:
        return len(self.files)

    def find_by_operation(self, operation_name: str, display_name: str) -> Optional[FileEntry]:
        for entry in self.files:
            if entry.operation_name == operation_name and entry.display_name == display_name:
                return entry
        return None

    def remove_document(self, document_id: str) -> int:
        """Drop every entry with the given document id. Returns how many were removed."""
        before = len(self.files)
        self.files = [f for f in self.files if f.document_id != document_id]
        return before - len(self.files)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "store_name": self.store_name,
            "file_search_store_name": self.file_search_store_name,
            "created_at": self.created_at,
            "files": [f.to_dict() for f in self.files],
        }


class MetadataRoot(BaseModel):
    """The whole persisted metadata blob."""
    file_stores: Dict[str, Store] = Field(default_factory=dict)
    current_store_name: Optional[str] = None

    @field_validator("file_stores")
    @classmethod
    def _key_by_store_name(cls, value: Dict[str, Store]) -> Dict[str, Store]:
        return {store.store_name: store for store in value.values()}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file_stores": {name: s.to_dict() for name, s in self.file_stores.items()},
            "current_store_name": self.current_store_name,
        }
