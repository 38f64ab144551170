from datetime import datetime
from typing import Dict, List, Optional

import pytest
from beanie import PydanticObjectId
from bson import ObjectId
from pydantic import Field

from accommodation.models.hotel import HotelBase, HotelPrices
from accommodation.models.request import (
    PurchaseOrderFilter,
    RequestBase,
    RequestStatus,
)
from accommodation.models.user import UserBase, UserRole
from accommodation.services.document_store import StoredDocument
from accommodation.services.errors import DocumentStoreFailure, DuplicateNumber, NotFound
from accommodation.services.numbering import parse_po_number
from accommodation.services.workflow import ReservationWorkflow


class StoredRequest(RequestBase):
    id: PydanticObjectId = Field(default_factory=PydanticObjectId)


class HotelRecord(HotelBase):
    id: PydanticObjectId = Field(default_factory=PydanticObjectId)


class UserRecord(UserBase):
    id: PydanticObjectId = Field(default_factory=PydanticObjectId)


class InMemoryRequestRepository:
    """Copies on every read and write so callers never share state with storage"""

    def __init__(self):
        self.items: Dict[str, StoredRequest] = {}

    def stored(self, request_id) -> StoredRequest:
        return self.items[str(request_id)]

    def add(self, **fields) -> StoredRequest:
        request = StoredRequest(**fields)
        self.items[str(request.id)] = request.model_copy(deep=True)
        return request

    async def get(self, request_id: str) -> Optional[StoredRequest]:
        request = self.items.get(str(request_id))
        return request.model_copy(deep=True) if request else None

    async def create(self, **fields) -> StoredRequest:
        return self.add(**fields)

    async def save(self, request: StoredRequest) -> StoredRequest:
        po_number = request.finance.po_number if request.finance else None
        if po_number:
            for key, other in self.items.items():
                if key != str(request.id) and other.finance and other.finance.po_number == po_number:
                    raise DuplicateNumber(f"Purchase order number {po_number} is already issued")
        request.updated_at = datetime.utcnow()
        self.items[str(request.id)] = request.model_copy(deep=True)
        return request

    async def set_document(self, request, document_id: str, generated_at: datetime) -> None:
        for target in (request, self.items[str(request.id)]):
            target.finance.document_id = document_id
            target.finance.generated_at = generated_at

    async def last_po_number(self, prefix: str) -> Optional[str]:
        numbers = [
            r.finance.po_number for r in self.items.values()
            if r.finance and r.finance.po_number.startswith(prefix)
        ]
        return max(numbers, key=lambda n: parse_po_number(n)[1], default=None)

    async def list(self, status=None, requester_id=None, region_tag=None) -> List[StoredRequest]:
        result = [
            r for r in self.items.values()
            if (status is None or r.status == status)
            and (requester_id is None or r.requester_id == requester_id)
            and (region_tag is None or r.region_tag == region_tag)
        ]
        return [r.model_copy(deep=True) for r in sorted(result, key=lambda r: r.created_at, reverse=True)]

    async def find_purchase_orders(self, criteria: PurchaseOrderFilter) -> List[StoredRequest]:
        def matches(r: StoredRequest) -> bool:
            finance = r.finance
            if r.status != RequestStatus.RESERVED or finance is None:
                return False
            if criteria.payment_status and finance.payment_status != criteria.payment_status:
                return False
            if criteria.region and r.region_tag != criteria.region:
                return False
            if criteria.generated_from and (not finance.generated_at or finance.generated_at < criteria.generated_from):
                return False
            if criteria.generated_to and (not finance.generated_at or finance.generated_at > criteria.generated_to):
                return False
            if criteria.search:
                needle = criteria.search.lower()
                haystack = [
                    finance.po_number,
                    finance.employee_snapshot.name,
                    finance.employee_snapshot.employee_code,
                    r.destination,
                ]
                if not any(needle in (value or "").lower() for value in haystack):
                    return False
            return True

        result = [r for r in self.items.values() if matches(r)]
        return [r.model_copy(deep=True) for r in sorted(result, key=lambda r: r.finance.po_number)]


class InMemoryHotelDirectory:

    def __init__(self):
        self.items: Dict[str, HotelRecord] = {}

    def add(self, **fields) -> HotelRecord:
        hotel = HotelRecord(**fields)
        self.items[str(hotel.id)] = hotel
        return hotel

    async def get(self, hotel_id: str) -> Optional[HotelRecord]:
        return self.items.get(str(hotel_id))

    async def get_many(self, hotel_ids) -> Dict[str, HotelRecord]:
        return {h: self.items[h] for h in set(hotel_ids) if h in self.items}


class InMemoryUserDirectory:

    def __init__(self):
        self.items: Dict[str, UserRecord] = {}

    def add(self, **fields) -> UserRecord:
        user = UserRecord(**fields)
        self.items[str(user.id)] = user
        return user

    async def get(self, user_id: str) -> Optional[UserRecord]:
        return self.items.get(str(user_id))


class FakeDocumentStore:

    def __init__(self):
        self.blobs: Dict[str, StoredDocument] = {}
        self.deleted: List[str] = []
        self.fail_store = False

    async def store(self, content: bytes, filename: str, metadata=None, content_type="application/pdf") -> str:
        if self.fail_store:
            raise DocumentStoreFailure("GridFS unavailable")
        document_id = str(ObjectId())
        self.blobs[document_id] = StoredDocument(
            document_id=document_id,
            filename=filename,
            content=content,
            metadata=metadata or {},
        )
        return document_id

    async def retrieve(self, document_id: str) -> StoredDocument:
        if document_id not in self.blobs:
            raise NotFound(f"Document {document_id} not found")
        return self.blobs[document_id]

    async def delete(self, document_id: str) -> None:
        if document_id not in self.blobs:
            raise NotFound(f"Document {document_id} not found")
        del self.blobs[document_id]
        self.deleted.append(document_id)


class RecordingAuditSink:

    def __init__(self):
        self.entries = []

    async def record(self, action, entity, entity_id, actor=None, metadata=None):
        self.entries.append({
            "action": action,
            "entity": entity,
            "entity_id": entity_id,
            "actor": actor,
            "metadata": metadata or {},
        })

    def actions(self):
        return [entry["action"] for entry in self.entries]


@pytest.fixture
def requests_repo():
    return InMemoryRequestRepository()


@pytest.fixture
def hotels():
    return InMemoryHotelDirectory()


@pytest.fixture
def users():
    return InMemoryUserDirectory()


@pytest.fixture
def documents():
    return FakeDocumentStore()


@pytest.fixture
def audit():
    return RecordingAuditSink()


@pytest.fixture
def workflow(requests_repo, hotels, users, documents, audit):
    return ReservationWorkflow(
        requests=requests_repo,
        hotels=hotels,
        users=users,
        documents=documents,
        audit=audit,
    )


@pytest.fixture
def oasis(hotels):
    return hotels.add(
        name="Hôtel Oasis",
        city="Hassi Messaoud",
        code="CTR-HMD-014",
        prices=HotelPrices(plain_stay=7000, half_board=8000, full_board=9500),
    )


@pytest.fixture
def employee(users):
    return users.add(
        employee_code="M10234",
        first_name="Amine",
        last_name="Benali",
        region_tag="HMD",
        region_name="Hassi Messaoud",
        organizational_unit="Forage",
        department="Production",
        role=UserRole.EMPLOYEE,
    )


@pytest.fixture
def manager(users):
    return users.add(
        employee_code="M20011",
        first_name="Karim",
        last_name="Haddad",
        region_tag="HMD",
        role=UserRole.MANAGER,
    )


@pytest.fixture
def logistics(users):
    return users.add(employee_code="L30005", name="Nadia Saidi", region_tag="DG", role=UserRole.LOGISTICS)


@pytest.fixture
def finance_officer(users):
    return users.add(employee_code="F40002", name="Yacine Mansouri", region_tag="DG", role=UserRole.FINANCE)


@pytest.fixture
def make_request(requests_repo, employee):
    """Store a request for the employee fixture, in any status"""
    def factory(**overrides) -> StoredRequest:
        fields = dict(
            requester_id=str(employee.id),
            region_tag=employee.region_tag,
            destination="Hassi Messaoud",
            city="Hassi Messaoud",
            start_date=datetime(2025, 3, 10),
            end_date=datetime(2025, 3, 12),
            motive="Audit forage",
        )
        fields.update(overrides)
        return requests_repo.add(**fields)
    return factory


@pytest.fixture
def approved_request(make_request):
    return make_request(status=RequestStatus.AWAITING_RESERVATION)
