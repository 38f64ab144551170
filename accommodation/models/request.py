"""
Request Model
Database schema for accommodation requests, their reservation and purchase order
"""
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from beanie import Document, PydanticObjectId
from pydantic import BaseModel, Field, model_validator
from pymongo import ASCENDING, DESCENDING, IndexModel


class RequestStatus(str, Enum):
    """Workflow status of a request"""
    AWAITING_MANAGER = "AWAITING_MANAGER"
    AWAITING_RESERVATION = "AWAITING_RESERVATION"
    RESERVED = "RESERVED"
    REJECTED = "REJECTED"


class PaymentStatus(str, Enum):
    UNPAID = "UNPAID"
    PAID = "PAID"


class SuggestedHotel(BaseModel):
    """Employee suggestion, advisory only"""
    name: Optional[str] = None
    city: Optional[str] = None
    notes: Optional[str] = None


class ManagerDecision(BaseModel):
    approved: bool
    comment: Optional[str] = None
    decided_at: datetime = Field(default_factory=datetime.utcnow)
    decided_by: Optional[str] = None


class ReservationOptions(BaseModel):
    allow_cancellation: bool = False
    allow_hotel_change: bool = False
    late_reservation: bool = False
    post_stay_entry: bool = False


class ReservationBlock(BaseModel):
    """Hotel booking chosen by the logistics desk"""
    hotel_id: str
    formula: Optional[str] = None
    room_type: Optional[str] = None
    final_start_date: datetime
    final_end_date: datetime
    comment: Optional[str] = None
    options: ReservationOptions = Field(default_factory=ReservationOptions)
    assigned_at: datetime = Field(default_factory=datetime.utcnow)
    assigned_by: Optional[str] = None


class EmployeeSnapshot(BaseModel):
    """Copy of the employee identity taken when the purchase order is issued"""
    employee_code: Optional[str] = None
    name: Optional[str] = None
    region_tag: Optional[str] = None
    region_name: Optional[str] = None
    organizational_unit: Optional[str] = None
    department: Optional[str] = None


class FinanceBlock(BaseModel):
    nights: int = Field(..., ge=1)
    price_per_night: float
    total: float
    currency: str = "DZD"

    # Purchase order
    po_number: str
    document_id: Optional[str] = None  # GridFS file id
    generated_at: Optional[datetime] = None
    validated_at: datetime = Field(default_factory=datetime.utcnow)

    # Payment
    payment_status: PaymentStatus = PaymentStatus.UNPAID
    payment_date: Optional[datetime] = None
    payment_reference: Optional[str] = None
    payment_note: Optional[str] = None

    employee_snapshot: EmployeeSnapshot = Field(default_factory=EmployeeSnapshot)
    participants_count: int = 1


class RequestBase(BaseModel):
    """Fields of an accommodation request"""

    # Requester
    requester_id: str
    participants: List[str] = []
    region_tag: Optional[str] = None  # copied from the requester at creation

    # Trip facts
    destination: str
    city: Optional[str] = None
    country: str = "Algérie"
    start_date: datetime
    end_date: datetime
    motive: Optional[str] = None
    extra_requests: Optional[str] = None
    attachments: List[str] = []
    suggested_hotel: Optional[SuggestedHotel] = None

    # Workflow
    status: RequestStatus = RequestStatus.AWAITING_MANAGER
    manager_decision: Optional[ManagerDecision] = None
    reservation: Optional[ReservationBlock] = None
    finance: Optional[FinanceBlock] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def stay_start(self) -> datetime:
        if self.reservation:
            return self.reservation.final_start_date
        return self.start_date

    @property
    def stay_end(self) -> datetime:
        if self.reservation:
            return self.reservation.final_end_date
        return self.end_date


class Request(Document, RequestBase):
    """Accommodation request document"""

    class Settings:
        name = "requests"
        indexes = [
            IndexModel([("status", ASCENDING), ("created_at", DESCENDING)]),
            IndexModel([("requester_id", ASCENDING), ("created_at", DESCENDING)]),
            "region_tag",
            IndexModel(
                [("finance.po_number", ASCENDING)],
                name="finance_po_number_unique",
                unique=True,
                partialFilterExpression={"finance.po_number": {"$type": "string"}},
            ),
        ]


class RequestCreate(BaseModel):
    destination: str = Field(..., min_length=2)
    city: Optional[str] = None
    country: Optional[str] = None
    start_date: datetime
    end_date: datetime
    motive: Optional[str] = None
    extra_requests: Optional[str] = None
    attachments: List[str] = []
    suggested_hotel: Optional[SuggestedHotel] = None
    participants: List[str] = []

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class ManagerDecisionRequest(BaseModel):
    approved: bool
    comment: Optional[str] = None


class ReservationAssignRequest(BaseModel):
    hotel_id: str
    formula: Optional[str] = None
    room_type: Optional[str] = None
    final_start_date: Optional[datetime] = None
    final_end_date: Optional[datetime] = None
    comment: Optional[str] = None
    options: ReservationOptions = Field(default_factory=ReservationOptions)


class PaymentUpdateRequest(BaseModel):
    payment_status: PaymentStatus
    payment_reference: Optional[str] = None
    payment_note: Optional[str] = None
    payment_date: Optional[datetime] = None


class RequestResponse(RequestBase):
    """Request as returned by the API"""
    id: PydanticObjectId

    class Config:
        from_attributes = True


class RequestListResponse(BaseModel):
    total: int
    requests: List[RequestResponse]


class PurchaseOrderFilter(BaseModel):
    """Selection criteria for the purchase order export and statistics"""
    payment_status: Optional[PaymentStatus] = None
    region: Optional[str] = None
    search: Optional[str] = None
    generated_from: Optional[datetime] = None
    generated_to: Optional[datetime] = None

    def labels(self) -> Dict[str, str]:
        """Human-readable filter values, keyed by their French label"""
        labels: Dict[str, str] = {}
        if self.payment_status:
            labels["Statut"] = "Payé" if self.payment_status == PaymentStatus.PAID else "Non payé"
        if self.region:
            labels["Région"] = self.region
        if self.search:
            labels["Recherche"] = self.search
        if self.generated_from:
            labels["Du"] = self.generated_from.strftime("%d/%m/%Y")
        if self.generated_to:
            labels["Au"] = self.generated_to.strftime("%d/%m/%Y")
        return labels


class PurchaseOrderStats(BaseModel):
    count: int = 0
    total_amount: float = 0
    paid_count: int = 0
    paid_amount: float = 0
    unpaid_count: int = 0
    unpaid_amount: float = 0
    currency: str = "DZD"
