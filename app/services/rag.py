from typing import Optional, List, Dict, Any

from app.ai.gemini import GeminiFileSearchClient
from app.storage.metadata_store import MetadataStore
from app.core.config import settings
from app.core.exceptions import NoResolvableStoresError
from app.core.logging import get_logger

logger = get_logger(__name__)


def resolve_store_resources(metadata_store: MetadataStore, store_names: List[str]) -> List[str]:
    """Map local store names to vendor resource names, skipping unknown ones."""
    root = metadata_store.load()
    resources = []
    for name in store_names:
        store = root.file_stores.get(name)
        if store is not None and store.file_search_store_name:
            resources.append(store.file_search_store_name)
    return resources


async def ask_stores(
    client: GeminiFileSearchClient,
    metadata_store: MetadataStore,
    question: str,
    store_names: List[str],
    system_prompt: Optional[str] = None
) -> Dict[str, Any]:
    """
    Answer a question grounded on the named stores.

    Raises NoResolvableStoresError before any vendor call when none of the
    names are known.
    """
    resources = resolve_store_resources(metadata_store, store_names)
    if not resources:
        raise NoResolvableStoresError(store_names)

    logger.info("Asking stores", stores=len(resources), model=settings.GEMINI_MODEL)
    text, grounding = await client.generate_answer(
        question=question,
        store_resources=resources,
        system_prompt=system_prompt,
    )
    return {
        "response_text": text,
        "grounding_metadata": grounding,
    }
