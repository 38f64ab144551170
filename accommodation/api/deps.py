"""
Service wiring shared by the routes
"""
from typing import Optional

from fastapi import HTTPException, status

from accommodation.services.audit import audit_sink
from accommodation.services.document_store import GridFSDocumentStore
from accommodation.services.repositories import (
    BeanieHotelDirectory,
    BeanieRequestRepository,
    BeanieUserDirectory,
)
from accommodation.services.workflow import ReservationWorkflow

# Set by the application lifespan once MongoDB is connected
document_store: Optional[GridFSDocumentStore] = None


def init_document_store(database, bucket_name: str) -> GridFSDocumentStore:
    global document_store
    document_store = GridFSDocumentStore(database, bucket_name)
    return document_store


def get_workflow() -> ReservationWorkflow:
    if document_store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Document store not initialised"
        )
    return ReservationWorkflow(
        requests=BeanieRequestRepository(),
        hotels=BeanieHotelDirectory(),
        users=BeanieUserDirectory(),
        documents=document_store,
        audit=audit_sink,
    )
