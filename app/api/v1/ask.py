# app/api/v1/ask.py
from fastapi import APIRouter, Depends

from app.models.schemas import AskRequest, AskResponse
from app.services.rag import ask_stores
from app.core.dependencies import get_metadata_store, get_gemini_client_factory
from app.core.exceptions import MissingFieldError
from app.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()


@router.post("/ask", response_model=AskResponse)
async def ask(
    request: AskRequest,
    metadata_store=Depends(get_metadata_store),
    client_factory=Depends(get_gemini_client_factory)
):
    """
    Answer a question grounded on the named stores.
    Unknown store names are skipped.
    """
    if not request.api_key:
        raise MissingFieldError("Missing api_key", fields=["api_key"])
    if not request.question or not request.question.strip():
        raise MissingFieldError("Missing question", fields=["question"])

    client = client_factory(request.api_key)
    result = await ask_stores(
        client=client,
        metadata_store=metadata_store,
        question=request.question,
        store_names=request.stores,
        system_prompt=request.system_prompt
    )
    return AskResponse(**result)
