import os
import sys
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

# Ensure `import app` works when tests are run from the repo root
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from app.main import app
from app.core.config import settings
from app.core.dependencies import get_metadata_store, get_gemini_client_factory
from app.core.exceptions import VendorError, VendorRequestError
from app.storage.base import MemoryBackend
from app.storage.metadata_store import MetadataStore


class FakeVendor:
    """In-memory stand-in for the Gemini File Search API."""

    def __init__(self):
        self.calls: List[tuple] = []
        self.stores: Dict[str, List[Dict[str, Any]]] = {}
        self.operations: Dict[str, Dict[str, Any]] = {}
        self.fail_uploads: Dict[str, str] = {}
        self.complete_operations = True
        self.create_error: Optional[str] = None
        self.delete_store_error: Optional[str] = None
        self.delete_document_status: Optional[int] = None
        self.remote_documents: Optional[List[Dict[str, Any]]] = None
        self.answer_text = "The answer."
        self.grounding = {"groundingChunks": [{"retrievedContext": {"title": "notes.txt"}}]}
        self._counter = 0

    def client(self, api_key: str) -> "FakeClient":
        return FakeClient(self, api_key)


class FakeClient:
    def __init__(self, vendor: FakeVendor, api_key: str):
        self.vendor = vendor
        self.api_key = api_key

    async def create_store(self, display_name: str) -> str:
        self.vendor.calls.append(("create_store", display_name))
        if self.vendor.create_error:
            raise VendorError(self.vendor.create_error)
        resource = f"fileSearchStores/{display_name}-abc123"
        self.vendor.stores[resource] = []
        return resource

    async def delete_store(self, store_resource: str):
        self.vendor.calls.append(("delete_store", store_resource))
        if self.vendor.delete_store_error:
            raise VendorError(self.vendor.delete_store_error)
        self.vendor.stores.pop(store_resource, None)

    async def upload_document(self, store_resource, filename, content, mime_type):
        self.vendor.calls.append(("upload_document", store_resource, filename, mime_type))
        if filename in self.vendor.fail_uploads:
            raise VendorRequestError(400, self.vendor.fail_uploads[filename])
        self.vendor._counter += 1
        operation_name = f"{store_resource}/upload/operations/op-{self.vendor._counter}"
        document = {
            "name": f"{store_resource}/documents/{filename.replace('.', '')}-{self.vendor._counter}",
            "displayName": filename,
        }
        self.vendor.operations[operation_name] = document
        self.vendor.stores.setdefault(store_resource, []).append(document)
        return {"name": operation_name}

    async def get_operation(self, operation_name: str) -> Dict[str, Any]:
        self.vendor.calls.append(("get_operation", operation_name))
        if not self.vendor.complete_operations:
            return {"name": operation_name, "done": False}
        document = self.vendor.operations[operation_name]
        return {
            "name": operation_name,
            "done": True,
            "response": {"documentName": document["name"]},
        }

    async def list_documents(self, store_resource: str) -> List[Dict[str, Any]]:
        self.vendor.calls.append(("list_documents", store_resource))
        if self.vendor.remote_documents is not None:
            return list(self.vendor.remote_documents)
        return list(self.vendor.stores.get(store_resource, []))

    async def delete_document(self, store_resource: str, document_id: str):
        self.vendor.calls.append(("delete_document", store_resource, document_id))
        if self.vendor.delete_document_status:
            raise VendorRequestError(self.vendor.delete_document_status, "document not found")

    async def generate_answer(self, question, store_resources, system_prompt=None, model=None):
        self.vendor.calls.append(("generate_answer", question, tuple(store_resources), system_prompt))
        return self.vendor.answer_text, self.vendor.grounding


@pytest.fixture
def fast_polling(monkeypatch):
    monkeypatch.setattr(settings, "POLL_INTERVAL_SECONDS", 0.0)
    monkeypatch.setattr(settings, "POLL_TIMEOUT_SECONDS", 0.05)


@pytest.fixture
def metadata_store() -> MetadataStore:
    return MetadataStore(MemoryBackend(), key="stores")


@pytest.fixture
def vendor() -> FakeVendor:
    return FakeVendor()


@pytest.fixture
def client(metadata_store, vendor, fast_polling):
    app.dependency_overrides[get_metadata_store] = lambda: metadata_store
    app.dependency_overrides[get_gemini_client_factory] = lambda: vendor.client
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def docs_store(client):
    r = client.post("/stores/create", json={"api_key": "k", "store_name": "docs"})
    assert r.status_code == 200
    return r.json()
