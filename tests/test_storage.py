from datetime import datetime

import pytest
from bson import ObjectId
from gridfs.errors import NoFile
from pymongo import AsyncMongoClient
from pymongo.errors import AutoReconnect, DuplicateKeyError

from accommodation.models.request import FinanceBlock, Request
from accommodation.services.document_store import GridFSDocumentStore
from accommodation.services.errors import DocumentStoreFailure, DuplicateNumber, NotFound
from accommodation.services.repositories import BeanieRequestRepository, last_po_number_pipeline

from conftest import StoredRequest

DOCUMENT_ID = "64b000000000000000000abc"


class StubGridOut:

    def __init__(self, filename, content, metadata):
        self.filename = filename
        self.metadata = metadata
        self._content = content

    async def read(self):
        return self._content


class StubBucket:
    """Stands in for AsyncGridFSBucket; raises `error` from every call when set"""

    def __init__(self, error=None):
        self.error = error
        self.files = {}

    async def upload_from_stream(self, filename, source, metadata=None):
        if self.error:
            raise self.error
        file_id = ObjectId()
        self.files[file_id] = StubGridOut(filename, source, metadata)
        return file_id

    async def open_download_stream(self, file_id):
        if self.error:
            raise self.error
        if file_id not in self.files:
            raise NoFile(f"no file with id {file_id}")
        return self.files[file_id]

    async def delete(self, file_id):
        if self.error:
            raise self.error
        if self.files.pop(file_id, None) is None:
            raise NoFile(f"no file with id {file_id}")


@pytest.fixture
async def store():
    client = AsyncMongoClient("mongodb://localhost:27017", connect=False)
    document_store = GridFSDocumentStore(client["accommodation_test"], "purchase_orders")
    document_store.bucket = StubBucket()
    yield document_store
    await client.close()


# ==================== GridFS document store ====================

async def test_store_and_retrieve(store):
    document_id = await store.store(b"%PDF-1.4", "PO-2025-00001.pdf", metadata={"po_number": "PO-2025-00001"})

    document = await store.retrieve(document_id)
    assert document.content == b"%PDF-1.4"
    assert document.filename == "PO-2025-00001.pdf"
    assert document.metadata["po_number"] == "PO-2025-00001"
    assert document.metadata["contentType"] == "application/pdf"
    assert isinstance(document.metadata["uploadedAt"], datetime)


async def test_delete(store):
    document_id = await store.store(b"%PDF-1.4", "PO-2025-00001.pdf")
    await store.delete(document_id)
    with pytest.raises(NotFound):
        await store.retrieve(document_id)


@pytest.mark.parametrize("document_id", ["not-an-id", "", "64b0"])
async def test_malformed_id_is_not_found(store, document_id):
    with pytest.raises(NotFound):
        await store.retrieve(document_id)
    with pytest.raises(NotFound):
        await store.delete(document_id)


async def test_missing_file_is_not_found(store):
    with pytest.raises(NotFound):
        await store.retrieve(DOCUMENT_ID)
    with pytest.raises(NotFound):
        await store.delete(DOCUMENT_ID)


async def test_driver_errors_become_store_failures(store):
    store.bucket = StubBucket(error=AutoReconnect("connection lost"))

    with pytest.raises(DocumentStoreFailure):
        await store.store(b"%PDF-1.4", "PO-2025-00001.pdf")
    with pytest.raises(DocumentStoreFailure):
        await store.retrieve(DOCUMENT_ID)
    with pytest.raises(DocumentStoreFailure):
        await store.delete(DOCUMENT_ID)


# ==================== Request repository ====================

class CollidingRequest(StoredRequest):
    """Saves like a Beanie document hitting the unique purchase order index"""

    async def save(self):
        raise DuplicateKeyError("E11000 duplicate key error", code=11000)


async def test_duplicate_key_becomes_duplicate_number():
    request = CollidingRequest(
        requester_id="u1",
        destination="Ouargla",
        start_date=datetime(2025, 3, 10),
        end_date=datetime(2025, 3, 12),
        finance=FinanceBlock(nights=2, price_per_night=8000, total=16000, po_number="PO-2025-00001"),
    )
    with pytest.raises(DuplicateNumber) as exc:
        await BeanieRequestRepository().save(request)
    assert "PO-2025-00001" in exc.value.message
    assert exc.value.status_code == 409


class StubAggregation:

    def __init__(self, rows):
        self.rows = rows

    async def to_list(self):
        return self.rows


async def test_last_po_number_reads_the_aggregation(monkeypatch):
    pipelines = []

    def aggregate(pipeline):
        pipelines.append(pipeline)
        return StubAggregation([{"po_number": "PO-2025-100000", "length": 14}])

    monkeypatch.setattr(Request, "aggregate", aggregate)
    assert await BeanieRequestRepository().last_po_number("PO-2025-") == "PO-2025-100000"
    assert pipelines == [last_po_number_pipeline("PO-2025-")]

    monkeypatch.setattr(Request, "aggregate", lambda pipeline: StubAggregation([]))
    assert await BeanieRequestRepository().last_po_number("PO-2026-") is None


def test_longer_sequences_sort_first():
    match, project, sort, limit = last_po_number_pipeline("PO-2025-")
    assert match == {"$match": {"finance.po_number": {"$regex": r"^PO\-2025\-\d+$"}}}
    assert project["$project"]["length"] == {"$strLenCP": "$finance.po_number"}
    assert list(sort["$sort"].items()) == [("length", -1), ("po_number", -1)]
    assert limit == {"$limit": 1}
