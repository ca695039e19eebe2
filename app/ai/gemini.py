# app/ai/gemini.py
"""Gemini File Search client.

Store creation/deletion and grounded generation go through the google-genai
SDK. Upload, operation polling, document listing and document deletion use the
REST endpoints directly with httpx.
"""

import json
from typing import Optional, List, Dict, Any, Tuple, Callable

import httpx
from google import genai
from google.genai import types

from app.core.config import settings
from app.core.logging import get_logger
from app.core.exceptions import (
    InvalidApiKeyError,
    VendorError,
    VendorException,
    VendorRequestError,
)

logger = get_logger(__name__)

OK_STATUSES = (200, 204)


class GeminiFileSearchClient:
    """Per-request client bound to the caller's API key."""

    def __init__(
        self,
        api_key: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key:
            raise InvalidApiKeyError("Missing api_key")
        try:
            self._sdk = genai.Client(api_key=api_key)
        except Exception as e:
            raise InvalidApiKeyError(str(e))
        self.api_key = api_key
        self._transport = transport

    # ===================
    # REST plumbing
    # ===================

    def _http(self, timeout: Optional[float] = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=timeout or settings.HTTP_TIMEOUT_SECONDS,
            transport=self._transport,
        )

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
        **kwargs
    ) -> httpx.Response:
        request_params = {"key": self.api_key}
        if params:
            request_params.update(params)
        try:
            async with self._http(timeout) as client:
                response = await client.request(method, url, params=request_params, **kwargs)
        except httpx.HTTPError as e:
            raise VendorError(f"{type(e).__name__}: {e}") from e
        if response.status_code not in OK_STATUSES:
            raise VendorRequestError(response.status_code, response.text)
        return response

    @staticmethod
    def _json(response: httpx.Response) -> Dict[str, Any]:
        if response.status_code == 204 or not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise VendorError(f"Invalid JSON from vendor: {e}") from e

    # ===================
    # Stores (SDK)
    # ===================

    async def create_store(self, display_name: str) -> str:
        """Create a File Search store and return its resource name."""
        try:
            store = await self._sdk.aio.file_search_stores.create(
                config={"display_name": display_name}
            )
        except Exception as e:
            raise VendorError(str(e)) from e
        logger.info("Created File Search store", resource=store.name)
        return store.name

    async def delete_store(self, store_resource: str):
        """Force-delete a File Search store, documents included."""
        try:
            await self._sdk.aio.file_search_stores.delete(
                name=store_resource, config={"force": True}
            )
        except Exception as e:
            raise VendorError(str(e)) from e
        logger.info("Deleted File Search store", resource=store_resource)

    # ===================
    # Documents (REST)
    # ===================

    async def upload_document(
        self,
        store_resource: str,
        filename: str,
        content: bytes,
        mime_type: str
    ) -> Dict[str, Any]:
        """
        Upload bytes into a store.

        Returns the long-running operation JSON; its "name" is the handle
        to poll. Raises VendorRequestError when the vendor rejects the upload.
        """
        url = f"{settings.GEMINI_UPLOAD_BASE_URL}/{store_resource}:uploadToFileSearchStore"
        metadata = {"displayName": filename, "mimeType": mime_type}
        files = {
            "metadata": ("metadata", json.dumps(metadata), "application/json"),
            "file": (filename, content, mime_type),
        }
        response = await self._request(
            "POST",
            url,
            params={"uploadType": "multipart"},
            files=files,
            timeout=settings.UPLOAD_TIMEOUT_SECONDS,
        )
        return self._json(response)

    async def get_operation(self, operation_name: str) -> Dict[str, Any]:
        """Fetch the current state of a long-running operation."""
        response = await self._request("GET", f"{settings.GEMINI_API_BASE_URL}/{operation_name}")
        return self._json(response)

    async def list_documents(self, store_resource: str) -> List[Dict[str, Any]]:
        """
        List every document in a store, following pagination.

        Returns an empty list on any fetch error.
        """
        url = f"{settings.GEMINI_API_BASE_URL}/{store_resource}/documents"
        documents: List[Dict[str, Any]] = []
        page_token: Optional[str] = None
        try:
            while True:
                params: Dict[str, Any] = {"pageSize": settings.DOCUMENTS_PAGE_SIZE}
                if page_token:
                    params["pageToken"] = page_token
                data = self._json(await self._request("GET", url, params=params))
                documents.extend(data.get("documents") or [])
                page_token = data.get("nextPageToken")
                if not page_token:
                    break
        except VendorException as e:
            logger.warning(f"Listing documents failed: {e.message}", store=store_resource)
            return []
        return documents

    async def delete_document(self, store_resource: str, document_id: str):
        """Force-delete one document. Raises VendorRequestError on rejection."""
        url = f"{settings.GEMINI_API_BASE_URL}/{store_resource}/documents/{document_id}"
        await self._request("DELETE", url, params={"force": "true"})
        logger.info("Deleted document", store=store_resource, document_id=document_id)

    # ===================
    # Generation (SDK)
    # ===================

    async def generate_answer(
        self,
        question: str,
        store_resources: List[str],
        system_prompt: Optional[str] = None,
        model: Optional[str] = None
    ) -> Tuple[str, Optional[Dict[str, Any]]]:
        """Answer a question grounded on the given stores.

        Returns the response text and the first candidate's grounding
        metadata (camelCase, as the vendor sends it) or None.
        """
        config = types.GenerateContentConfig(
            system_instruction=system_prompt or settings.DEFAULT_SYSTEM_PROMPT,
            tools=[
                types.Tool(
                    file_search=types.FileSearch(file_search_store_names=store_resources)
                )
            ],
        )
        try:
            response = await self._sdk.aio.models.generate_content(
                model=model or settings.GEMINI_MODEL,
                contents=question,
                config=config,
            )
        except Exception as e:
            raise VendorError(str(e)) from e

        grounding = None
        candidates = response.candidates or []
        if candidates and candidates[0].grounding_metadata is not None:
            grounding = candidates[0].grounding_metadata.model_dump(
                mode="json", by_alias=True, exclude_none=True
            )
        return response.text or "", grounding


GeminiClientFactory = Callable[[str], GeminiFileSearchClient]
