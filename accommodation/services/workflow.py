"""
Reservation Workflow
Manager approval, logistics assignment, purchase order issuance and payment
tracking of accommodation requests
"""
import logging
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from accommodation.config import settings
from accommodation.models.request import (
    FinanceBlock,
    ManagerDecision,
    PaymentStatus,
    PurchaseOrderFilter,
    PurchaseOrderStats,
    RequestCreate,
    RequestStatus,
    ReservationBlock,
    ReservationOptions,
)
from accommodation.models.user import UserRole
from accommodation.services.errors import (
    DocumentStoreFailure,
    DuplicateNumber,
    InvalidHotel,
    MissingFinanceData,
    NoDocumentGenerated,
    NotFound,
    RegionMismatch,
)
from accommodation.services.excel_export import generate_purchase_order_workbook
from accommodation.services.numbering import PurchaseOrderNumbering
from accommodation.services.pdf_generator import generate_purchase_order_pdf
from accommodation.services.pricing import quote_stay
from accommodation.services.snapshot import build_employee_snapshot
from accommodation.services.state_machine import ensure_status, transition

logger = logging.getLogger(__name__)

ENTITY = "request"


class RenderedDocument(BaseModel):
    content: bytes
    filename: str
    regenerated: bool = False


def purchase_order_filename(po_number: str) -> str:
    return f"{po_number}.pdf"


class ReservationWorkflow:
    """
    Orchestrates the lifecycle of accommodation requests.

    Collaborators are injected so the same workflow runs against Beanie in
    production and against in-memory doubles in tests:
        requests  - get / create / save / set_document / last_po_number /
                    list / find_purchase_orders
        hotels    - get / get_many
        users     - get
        documents - store / retrieve / delete
        audit     - record
    """

    def __init__(self, requests, hotels, users, documents, audit):
        self.requests = requests
        self.hotels = hotels
        self.users = users
        self.documents = documents
        self.audit = audit
        self.numbering = PurchaseOrderNumbering(requests)

    async def _load(self, request_id: str):
        request = await self.requests.get(request_id)
        if request is None:
            raise NotFound(f"Request {request_id} not found")
        return request

    # ==================== Requests ====================

    async def create_request(self, requester, payload: RequestCreate):
        """Open a request in AWAITING_MANAGER under the requester's region"""
        request = await self.requests.create(
            requester_id=str(requester.id),
            participants=payload.participants,
            region_tag=requester.region_tag,
            destination=payload.destination,
            city=payload.city,
            country=payload.country or settings.DEFAULT_COUNTRY,
            start_date=payload.start_date,
            end_date=payload.end_date,
            motive=payload.motive,
            extra_requests=payload.extra_requests,
            attachments=payload.attachments,
            suggested_hotel=payload.suggested_hotel,
        )
        logger.info("Request %s created by %s", request.id, requester.employee_code)
        await self.audit.record(
            "REQUEST_CREATED",
            ENTITY,
            str(request.id),
            actor=requester.employee_code,
            metadata={"region_tag": request.region_tag, "destination": request.destination},
        )
        return request

    async def get_request(self, request_id: str, viewer=None):
        request = await self._load(request_id)
        if viewer is not None and viewer.role == UserRole.EMPLOYEE and request.requester_id != str(viewer.id):
            raise NotFound(f"Request {request_id} not found")
        return request

    async def list_requests(self, viewer, status: Optional[RequestStatus] = None) -> List:
        """Employees see their own requests, managers their region, other roles everything"""
        if viewer.role == UserRole.EMPLOYEE:
            return await self.requests.list(status=status, requester_id=str(viewer.id))
        if viewer.role == UserRole.MANAGER:
            return await self.requests.list(status=status, region_tag=viewer.region_tag)
        return await self.requests.list(status=status)

    # ==================== Manager ====================

    async def submit_manager_decision(
        self,
        request_id: str,
        approved: bool,
        comment: Optional[str] = None,
        actor_region: Optional[str] = None,
        actor: Optional[str] = None,
    ):
        request = await self._load(request_id)

        if actor_region != request.region_tag:
            raise RegionMismatch(
                f"Request {request_id} belongs to region {request.region_tag}, not {actor_region}"
            )
        ensure_status(request, (RequestStatus.AWAITING_MANAGER,), "decide on")

        target = RequestStatus.AWAITING_RESERVATION if approved else RequestStatus.REJECTED
        transition(request, target)
        request.manager_decision = ManagerDecision(
            approved=approved,
            comment=comment,
            decided_by=actor,
        )
        await self.requests.save(request)

        logger.info("Request %s %s by %s", request_id, "approved" if approved else "rejected", actor)
        await self.audit.record(
            "MANAGER_APPROVED" if approved else "MANAGER_REJECTED",
            ENTITY,
            request_id,
            actor=actor,
            metadata={"comment": comment},
        )
        return request

    # ==================== Logistics ====================

    async def assign_reservation(
        self,
        request_id: str,
        hotel_id: str,
        formula: Optional[str] = None,
        room_type: Optional[str] = None,
        final_start_date: Optional[datetime] = None,
        final_end_date: Optional[datetime] = None,
        options: Optional[ReservationOptions] = None,
        comment: Optional[str] = None,
        actor: Optional[str] = None,
    ):
        """
        Book a hotel for an approved request and issue its purchase order.

        Also the correction path: on a RESERVED request the reservation and
        finance blocks are recomputed while the PO number and the payment
        fields are kept. Rendering or storing the PDF may fail without
        failing the assignment; the document is then rebuilt on fetch.
        """
        request = await self._load(request_id)
        ensure_status(
            request,
            (RequestStatus.AWAITING_RESERVATION, RequestStatus.RESERVED),
            "assign a reservation to",
        )

        hotel = await self.hotels.get(hotel_id)
        if hotel is None:
            raise InvalidHotel(f"Hotel {hotel_id} not found")

        start = final_start_date or request.start_date
        end = final_end_date or request.end_date
        quote = quote_stay(hotel, formula, start, end)
        po_number = await self.numbering.number_for(request)
        employee = await self.users.get(request.requester_id)
        snapshot = build_employee_snapshot(employee)

        corrected = request.status == RequestStatus.RESERVED
        previous = request.finance
        now = datetime.utcnow()

        finance = FinanceBlock(
            nights=quote.nights,
            price_per_night=quote.price_per_night,
            total=quote.total,
            currency=previous.currency if previous else settings.DEFAULT_CURRENCY,
            po_number=po_number,
            validated_at=now,
            employee_snapshot=snapshot,
            participants_count=len(request.participants) + 1,
        )
        if previous:
            finance.payment_status = previous.payment_status
            finance.payment_date = previous.payment_date
            finance.payment_reference = previous.payment_reference
            finance.payment_note = previous.payment_note

        transition(request, RequestStatus.RESERVED)
        request.reservation = ReservationBlock(
            hotel_id=hotel_id,
            formula=quote.formula.value,
            room_type=room_type,
            final_start_date=start,
            final_end_date=end,
            comment=comment,
            options=options or ReservationOptions(),
            assigned_at=now,
            assigned_by=actor,
        )
        request.finance = finance

        document_id = await self._render_and_store(request, hotel, employee)
        if document_id:
            finance.document_id = document_id
            finance.generated_at = now

        try:
            await self.requests.save(request)
        except DuplicateNumber:
            if document_id:
                await self._discard(document_id)
            raise

        if previous and previous.document_id and previous.document_id != document_id:
            await self._discard(previous.document_id)

        logger.info(
            "Request %s reserved at hotel %s: %s, %d nights, total %s",
            request_id, hotel_id, po_number, finance.nights, finance.total,
        )
        await self.audit.record(
            "RESERVATION_CORRECTED" if corrected else "RESERVATION_ASSIGNED",
            ENTITY,
            request_id,
            actor=actor,
            metadata={
                "hotel_id": hotel_id,
                "po_number": po_number,
                "nights": finance.nights,
                "total": finance.total,
                "document_id": document_id,
            },
        )
        return request

    async def _render_and_store(self, request, hotel, employee) -> Optional[str]:
        po_number = request.finance.po_number
        try:
            content = generate_purchase_order_pdf(request, hotel, po_number, employee)
        except Exception:
            logger.exception("Rendering purchase order %s failed", po_number)
            return None
        try:
            return await self.documents.store(
                content,
                purchase_order_filename(po_number),
                metadata={"request_id": str(request.id), "po_number": po_number},
            )
        except DocumentStoreFailure as e:
            logger.warning("Purchase order %s not stored: %s", po_number, e.message)
            return None

    async def _discard(self, document_id: str) -> None:
        try:
            await self.documents.delete(document_id)
        except (NotFound, DocumentStoreFailure) as e:
            logger.warning("Could not delete document %s: %s", document_id, e.message)

    # ==================== Finance ====================

    async def record_payment(
        self,
        request_id: str,
        payment_status: PaymentStatus,
        reference: Optional[str] = None,
        note: Optional[str] = None,
        payment_date: Optional[datetime] = None,
        actor: Optional[str] = None,
    ):
        """Update the payment fields of a reserved request and nothing else"""
        request = await self._load(request_id)
        ensure_status(request, (RequestStatus.RESERVED,), "record a payment on")

        finance = request.finance
        if finance is None or not finance.po_number:
            raise MissingFinanceData(f"Request {request_id} has no purchase order")

        finance.payment_status = payment_status
        if payment_status == PaymentStatus.PAID:
            finance.payment_date = payment_date or datetime.utcnow()
        else:
            finance.payment_date = None
        if reference is not None:
            finance.payment_reference = reference
        if note is not None:
            finance.payment_note = note

        await self.requests.save(request)

        logger.info("Payment of %s set to %s by %s", finance.po_number, payment_status.value, actor)
        await self.audit.record(
            "PAYMENT_UPDATED",
            ENTITY,
            request_id,
            actor=actor,
            metadata={
                "po_number": finance.po_number,
                "payment_status": payment_status.value,
                "payment_reference": finance.payment_reference,
            },
        )
        return request

    async def fetch_purchase_order_document(self, request_id: str) -> RenderedDocument:
        """Stored PDF when available, otherwise rendered again and stored"""
        request = await self._load(request_id)
        finance = request.finance
        if finance is None or not finance.po_number:
            raise NoDocumentGenerated(f"Request {request_id} has no purchase order")

        filename = purchase_order_filename(finance.po_number)
        if finance.document_id:
            try:
                stored = await self.documents.retrieve(finance.document_id)
                return RenderedDocument(content=stored.content, filename=filename)
            except (NotFound, DocumentStoreFailure) as e:
                logger.warning(
                    "Stored purchase order %s unavailable, rendering again: %s",
                    finance.po_number, e.message,
                )

        hotel = None
        if request.reservation:
            hotel = await self.hotels.get(request.reservation.hotel_id)
        employee = await self.users.get(request.requester_id)
        content = generate_purchase_order_pdf(request, hotel, finance.po_number, employee)

        try:
            document_id = await self.documents.store(
                content,
                filename,
                metadata={"request_id": str(request.id), "po_number": finance.po_number},
            )
        except DocumentStoreFailure as e:
            logger.warning("Regenerated purchase order %s not stored: %s", finance.po_number, e.message)
        else:
            await self.requests.set_document(request, document_id, datetime.utcnow())

        return RenderedDocument(content=content, filename=filename, regenerated=True)

    async def export_purchase_orders(self, criteria: Optional[PurchaseOrderFilter] = None) -> bytes:
        criteria = criteria or PurchaseOrderFilter()
        reservations = await self.requests.find_purchase_orders(criteria)
        hotel_ids = [r.reservation.hotel_id for r in reservations if r.reservation]
        hotels = await self.hotels.get_many(hotel_ids)
        return generate_purchase_order_workbook(
            reservations,
            hotels,
            filters=criteria.labels(),
            currency=settings.DEFAULT_CURRENCY,
        )

    async def purchase_order_stats(self, criteria: Optional[PurchaseOrderFilter] = None) -> PurchaseOrderStats:
        criteria = criteria or PurchaseOrderFilter()
        stats = PurchaseOrderStats(currency=settings.DEFAULT_CURRENCY)
        for request in await self.requests.find_purchase_orders(criteria):
            amount = request.finance.total or 0
            stats.count += 1
            stats.total_amount += amount
            if request.finance.payment_status == PaymentStatus.PAID:
                stats.paid_count += 1
                stats.paid_amount += amount
            else:
                stats.unpaid_count += 1
                stats.unpaid_amount += amount
        return stats
