import asyncio

import pytest

from app.core.exceptions import VendorError
from app.models.store import FileEntry, Store
from app.services.indexing import (
    document_resource_from_operation,
    poll_operation_until_done,
    track_upload,
    track_uploads,
)

STORE = "fileSearchStores/docs-1"
OP = f"{STORE}/upload/operations/op-1"


class ScriptedClient:
    """Returns queued poll results in order; exceptions in the queue are raised."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.polls = 0

    async def get_operation(self, operation_name):
        self.polls += 1
        item = self.responses.pop(0) if self.responses else {"done": False}
        if isinstance(item, Exception):
            raise item
        return item


async def _seed(metadata_store, *entries):
    store = Store(store_name="docs", file_search_store_name=STORE, files=list(entries))
    await metadata_store.put_store(store)


def test_document_resource_from_operation_shapes():
    assert document_resource_from_operation(
        {"response": {"documentName": f"{STORE}/documents/d1"}}
    ) == f"{STORE}/documents/d1"
    assert document_resource_from_operation(
        {"response": {"fileSearchDocument": {"name": f"{STORE}/documents/d2"}}}
    ) == f"{STORE}/documents/d2"
    assert document_resource_from_operation({"done": True}) is None


@pytest.mark.asyncio
async def test_poll_retries_errors_until_done():
    client = ScriptedClient(VendorError("flaky"), {"done": False}, {"done": True, "name": OP})
    operation = await poll_operation_until_done(client, OP, timeout=5, interval=0)
    assert operation == {"done": True, "name": OP}
    assert client.polls == 3


@pytest.mark.asyncio
async def test_poll_returns_none_on_timeout():
    client = ScriptedClient()
    assert await poll_operation_until_done(client, OP, timeout=0.05, interval=0.01) is None
    assert client.polls >= 1


@pytest.mark.asyncio
async def test_track_upload_resolves_matching_entry(metadata_store, fast_polling):
    await _seed(
        metadata_store,
        FileEntry(display_name="other.txt", operation_name=f"{STORE}/upload/operations/op-9"),
        FileEntry(display_name="notes.txt", operation_name=OP),
    )
    client = ScriptedClient({"done": True, "response": {"documentName": f"{STORE}/documents/notes-1"}})

    await track_upload(client, metadata_store, "docs", OP, "notes.txt")

    other, notes = metadata_store.get_store("docs").files
    assert notes.gemini_indexed is True
    assert notes.document_id == "notes-1"
    assert notes.document_resource == f"{STORE}/documents/notes-1"
    assert notes.operation_name is None
    assert other.operation_name is not None
    assert other.gemini_indexed is False


@pytest.mark.asyncio
async def test_track_upload_records_operation_error(metadata_store, fast_polling):
    await _seed(metadata_store, FileEntry(display_name="bad.pdf", operation_name=OP))
    client = ScriptedClient({"done": True, "error": {"code": 3, "message": "unsupported file"}})

    await track_upload(client, metadata_store, "docs", OP, "bad.pdf")

    entry = metadata_store.get_store("docs").files[0]
    assert entry.gemini_indexed is False
    assert entry.document_id is None
    assert entry.gemini_error == "unsupported file"
    assert entry.operation_name is None


@pytest.mark.asyncio
async def test_track_upload_timeout_leaves_entry_pending(metadata_store, fast_polling):
    await _seed(metadata_store, FileEntry(display_name="slow.pdf", operation_name=OP))

    await track_upload(ScriptedClient(), metadata_store, "docs", OP, "slow.pdf")

    entry = metadata_store.get_store("docs").files[0]
    assert entry.operation_name == OP
    assert entry.gemini_indexed is False


@pytest.mark.asyncio
async def test_track_upload_swallows_errors(metadata_store, fast_polling):
    class Broken:
        async def get_operation(self, operation_name):
            return {"done": True, "response": {"documentName": f"{STORE}/documents/x"}}

    class ExplodingStore:
        def transaction(self):
            raise RuntimeError("storage down")

    # Must not raise
    await track_upload(Broken(), ExplodingStore(), "docs", OP, "x.txt")


@pytest.mark.asyncio
async def test_track_uploads_polls_the_batch_concurrently(metadata_store, fast_polling):
    ops = [f"{STORE}/upload/operations/op-{n}" for n in (1, 2)]
    await _seed(
        metadata_store,
        FileEntry(display_name="a.txt", operation_name=ops[0]),
        FileEntry(display_name="b.txt", operation_name=ops[1]),
    )

    class Rendezvous:
        """Finishes an operation only once every operation has been polled."""

        def __init__(self):
            self.seen = set()
            self.all_polled = asyncio.Event()

        async def get_operation(self, operation_name):
            self.seen.add(operation_name)
            if len(self.seen) == len(ops):
                self.all_polled.set()
            await asyncio.wait_for(self.all_polled.wait(), timeout=1)
            return {"done": True, "response": {"documentName": f"{operation_name}-doc"}}

    await track_uploads(Rendezvous(), metadata_store, "docs", [(ops[0], "a.txt"), (ops[1], "b.txt")])

    files = metadata_store.get_store("docs").files
    assert [f.document_resource for f in files] == [f"{op}-doc" for op in ops]
    assert all(f.gemini_indexed for f in files)
