"""
Repositories
Beanie-backed access to requests and reference data used by the workflow
"""
import logging
import re
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from beanie import PydanticObjectId
from bson.errors import InvalidId
from pymongo.errors import DuplicateKeyError

from accommodation.models.hotel import Hotel
from accommodation.models.request import PurchaseOrderFilter, Request, RequestStatus
from accommodation.models.user import Region, User
from accommodation.services.errors import DuplicateNumber

logger = logging.getLogger(__name__)


def to_object_id(value: str) -> Optional[PydanticObjectId]:
    try:
        return PydanticObjectId(value)
    except (InvalidId, TypeError, ValueError):
        return None


def purchase_order_query(criteria: PurchaseOrderFilter) -> Dict[str, Any]:
    """Mongo filter selecting reserved requests that carry a purchase order"""
    query: Dict[str, Any] = {
        "status": RequestStatus.RESERVED.value,
        "finance.po_number": {"$type": "string"},
    }
    if criteria.payment_status:
        query["finance.payment_status"] = criteria.payment_status.value
    if criteria.region:
        query["region_tag"] = criteria.region
    generated: Dict[str, datetime] = {}
    if criteria.generated_from:
        generated["$gte"] = criteria.generated_from
    if criteria.generated_to:
        generated["$lte"] = criteria.generated_to
    if generated:
        query["finance.generated_at"] = generated
    if criteria.search:
        pattern = {"$regex": re.escape(criteria.search), "$options": "i"}
        query["$or"] = [
            {"finance.po_number": pattern},
            {"finance.employee_snapshot.name": pattern},
            {"finance.employee_snapshot.employee_code": pattern},
            {"destination": pattern},
        ]
    return query


def last_po_number_pipeline(prefix: str) -> List[Dict[str, Any]]:
    """
    Highest number issued under a year prefix. Sequences are zero-padded to
    five digits and grow past that, so longer numbers sort first.
    """
    return [
        {"$match": {"finance.po_number": {"$regex": f"^{re.escape(prefix)}\\d+$"}}},
        {"$project": {
            "po_number": "$finance.po_number",
            "length": {"$strLenCP": "$finance.po_number"},
        }},
        {"$sort": {"length": -1, "po_number": -1}},
        {"$limit": 1},
    ]


class BeanieRequestRepository:

    async def get(self, request_id: str) -> Optional[Request]:
        oid = to_object_id(request_id)
        if oid is None:
            return None
        return await Request.get(oid)

    async def create(self, **fields) -> Request:
        request = Request(**fields)
        await request.insert()
        return request

    async def save(self, request: Request) -> Request:
        request.updated_at = datetime.utcnow()
        try:
            await request.save()
        except DuplicateKeyError as e:
            po_number = request.finance.po_number if request.finance else None
            logger.warning("Purchase order number collision on %s: %s", po_number, e)
            raise DuplicateNumber(f"Purchase order number {po_number} is already issued") from e
        return request

    async def set_document(self, request: Request, document_id: str, generated_at: datetime) -> None:
        await request.set({
            "finance.document_id": document_id,
            "finance.generated_at": generated_at,
        })

    async def last_po_number(self, prefix: str) -> Optional[str]:
        rows = await Request.aggregate(last_po_number_pipeline(prefix)).to_list()
        return rows[0]["po_number"] if rows else None

    async def list(
        self,
        status: Optional[RequestStatus] = None,
        requester_id: Optional[str] = None,
        region_tag: Optional[str] = None,
    ) -> List[Request]:
        query: Dict[str, Any] = {}
        if status:
            query["status"] = status.value
        if requester_id:
            query["requester_id"] = requester_id
        if region_tag:
            query["region_tag"] = region_tag
        return await Request.find(query).sort("-created_at").to_list()

    async def find_purchase_orders(self, criteria: PurchaseOrderFilter) -> List[Request]:
        return await Request.find(purchase_order_query(criteria)).sort("finance.po_number").to_list()


class BeanieHotelDirectory:

    async def get(self, hotel_id: str) -> Optional[Hotel]:
        oid = to_object_id(hotel_id)
        if oid is None:
            return None
        return await Hotel.get(oid)

    async def get_many(self, hotel_ids: Iterable[str]) -> Dict[str, Hotel]:
        oids = [oid for oid in (to_object_id(h) for h in set(hotel_ids)) if oid is not None]
        if not oids:
            return {}
        hotels = await Hotel.find({"_id": {"$in": oids}}).to_list()
        return {str(hotel.id): hotel for hotel in hotels}


class BeanieUserDirectory:

    async def get(self, user_id: str) -> Optional[User]:
        oid = to_object_id(user_id)
        if oid is None:
            return None
        user = await User.get(oid)
        if user and user.region_tag and not user.region_name:
            region = await Region.find_one(Region.code == user.region_tag)
            if region:
                user.region_name = region.name
        return user
