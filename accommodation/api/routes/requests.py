"""
Request Routes
Creation, manager approval, logistics assignment and purchase order download
"""
from typing import Optional

from fastapi import APIRouter, Depends, Response, status

from accommodation.api.deps import get_workflow
from accommodation.api.routes.auth import get_current_user, require_role
from accommodation.models.request import (
    ManagerDecisionRequest,
    RequestCreate,
    RequestListResponse,
    RequestResponse,
    RequestStatus,
    ReservationAssignRequest,
)
from accommodation.models.user import User, UserRole
from accommodation.services.workflow import ReservationWorkflow

router = APIRouter()


@router.post("/", response_model=RequestResponse, status_code=status.HTTP_201_CREATED)
async def create_request(
    payload: RequestCreate,
    current_user: User = Depends(get_current_user),
    workflow: ReservationWorkflow = Depends(get_workflow)
):
    """Submit a new accommodation request"""
    request = await workflow.create_request(current_user, payload)
    return RequestResponse.model_validate(request)


@router.get("/", response_model=RequestListResponse)
async def list_requests(
    status: Optional[RequestStatus] = None,
    current_user: User = Depends(get_current_user),
    workflow: ReservationWorkflow = Depends(get_workflow)
):
    """Own requests (employee), region requests (manager) or all requests"""
    requests = await workflow.list_requests(current_user, status=status)
    return RequestListResponse(
        total=len(requests),
        requests=[RequestResponse.model_validate(r) for r in requests]
    )


@router.get("/{request_id}", response_model=RequestResponse)
async def get_request(
    request_id: str,
    current_user: User = Depends(get_current_user),
    workflow: ReservationWorkflow = Depends(get_workflow)
):
    request = await workflow.get_request(request_id, viewer=current_user)
    return RequestResponse.model_validate(request)


@router.patch("/{request_id}/manager", response_model=RequestResponse)
async def manager_decision(
    request_id: str,
    decision: ManagerDecisionRequest,
    current_user: User = Depends(require_role(UserRole.MANAGER)),
    workflow: ReservationWorkflow = Depends(get_workflow)
):
    """Approve or reject a request of the manager's region"""
    request = await workflow.submit_manager_decision(
        request_id,
        approved=decision.approved,
        comment=decision.comment,
        actor_region=current_user.region_tag,
        actor=current_user.employee_code,
    )
    return RequestResponse.model_validate(request)


@router.patch("/{request_id}/reservation", response_model=RequestResponse)
async def assign_reservation(
    request_id: str,
    assignment: ReservationAssignRequest,
    current_user: User = Depends(require_role(UserRole.LOGISTICS)),
    workflow: ReservationWorkflow = Depends(get_workflow)
):
    """
    Book a hotel and issue the purchase order.
    Calling it again on a reserved request corrects the reservation.
    """
    request = await workflow.assign_reservation(
        request_id,
        hotel_id=assignment.hotel_id,
        formula=assignment.formula,
        room_type=assignment.room_type,
        final_start_date=assignment.final_start_date,
        final_end_date=assignment.final_end_date,
        options=assignment.options,
        comment=assignment.comment,
        actor=current_user.employee_code,
    )
    return RequestResponse.model_validate(request)


@router.get("/{request_id}/purchase-order")
async def download_purchase_order(
    request_id: str,
    current_user: User = Depends(get_current_user),
    workflow: ReservationWorkflow = Depends(get_workflow)
):
    """Purchase order PDF of a reserved request"""
    await workflow.get_request(request_id, viewer=current_user)
    document = await workflow.fetch_purchase_order_document(request_id)
    return Response(
        content=document.content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{document.filename}"'}
    )
