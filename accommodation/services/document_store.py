"""
Durable Document Store
Rendered purchase orders kept in a MongoDB GridFS bucket
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from bson import ObjectId
from bson.errors import InvalidId
from gridfs import AsyncGridFSBucket
from gridfs.errors import NoFile
from pydantic import BaseModel
from pymongo.errors import PyMongoError

from accommodation.services.errors import DocumentStoreFailure, NotFound

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"


class StoredDocument(BaseModel):
    document_id: str
    filename: str
    content: bytes
    metadata: Dict[str, Any] = {}


def _object_id(document_id: str) -> ObjectId:
    try:
        return ObjectId(document_id)
    except (InvalidId, TypeError):
        raise NotFound(f"Document {document_id} not found")


class GridFSDocumentStore:
    """Blob store keyed by the GridFS file id"""

    def __init__(self, database, bucket_name: str):
        self.bucket_name = bucket_name
        self.bucket = AsyncGridFSBucket(database, bucket_name=bucket_name)

    async def store(
        self,
        content: bytes,
        filename: str,
        metadata: Optional[Dict[str, Any]] = None,
        content_type: str = PDF_CONTENT_TYPE,
    ) -> str:
        file_metadata = {
            **(metadata or {}),
            "contentType": content_type,
            "uploadedAt": datetime.utcnow(),
        }
        try:
            file_id = await self.bucket.upload_from_stream(filename, content, metadata=file_metadata)
        except PyMongoError as e:
            raise DocumentStoreFailure(f"Could not store {filename}: {e}") from e
        logger.info("Stored %s in GridFS bucket %s (id %s)", filename, self.bucket_name, file_id)
        return str(file_id)

    async def retrieve(self, document_id: str) -> StoredDocument:
        oid = _object_id(document_id)
        try:
            grid_out = await self.bucket.open_download_stream(oid)
            content = await grid_out.read()
        except NoFile:
            raise NotFound(f"Document {document_id} not found")
        except PyMongoError as e:
            raise DocumentStoreFailure(f"Could not read document {document_id}: {e}") from e
        return StoredDocument(
            document_id=document_id,
            filename=grid_out.filename,
            content=content,
            metadata=grid_out.metadata or {},
        )

    async def delete(self, document_id: str) -> None:
        oid = _object_id(document_id)
        try:
            await self.bucket.delete(oid)
        except NoFile:
            raise NotFound(f"Document {document_id} not found")
        except PyMongoError as e:
            raise DocumentStoreFailure(f"Could not delete document {document_id}: {e}") from e
        logger.info("Deleted document %s from GridFS bucket %s", document_id, self.bucket_name)
