"""
Finance Routes
Payment tracking, purchase order export and statistics
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Response

from accommodation.api.deps import get_workflow
from accommodation.api.routes.auth import require_role
from accommodation.models.request import (
    PaymentStatus,
    PaymentUpdateRequest,
    PurchaseOrderFilter,
    PurchaseOrderStats,
    RequestResponse,
)
from accommodation.models.user import User, UserRole
from accommodation.services.workflow import ReservationWorkflow

router = APIRouter()

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def purchase_order_filter(
    payment_status: Optional[PaymentStatus] = None,
    region: Optional[str] = None,
    search: Optional[str] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
) -> PurchaseOrderFilter:
    return PurchaseOrderFilter(
        payment_status=payment_status,
        region=region,
        search=search,
        generated_from=date_from,
        generated_to=date_to,
    )


@router.patch("/{request_id}/payment", response_model=RequestResponse)
async def update_payment(
    request_id: str,
    payment: PaymentUpdateRequest,
    current_user: User = Depends(require_role(UserRole.FINANCE)),
    workflow: ReservationWorkflow = Depends(get_workflow)
):
    """Mark a purchase order paid or unpaid"""
    request = await workflow.record_payment(
        request_id,
        payment_status=payment.payment_status,
        reference=payment.payment_reference,
        note=payment.payment_note,
        payment_date=payment.payment_date,
        actor=current_user.employee_code,
    )
    return RequestResponse.model_validate(request)


@router.get("/export")
async def export_purchase_orders(
    criteria: PurchaseOrderFilter = Depends(purchase_order_filter),
    current_user: User = Depends(require_role(UserRole.FINANCE, UserRole.LOGISTICS)),
    workflow: ReservationWorkflow = Depends(get_workflow)
):
    """Excel workbook of the issued purchase orders"""
    content = await workflow.export_purchase_orders(criteria)
    filename = f"bons_de_commande_{datetime.utcnow().strftime('%Y%m%d')}.xlsx"
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )


@router.get("/stats", response_model=PurchaseOrderStats)
async def purchase_order_stats(
    criteria: PurchaseOrderFilter = Depends(purchase_order_filter),
    current_user: User = Depends(require_role(UserRole.FINANCE, UserRole.LOGISTICS)),
    workflow: ReservationWorkflow = Depends(get_workflow)
):
    return await workflow.purchase_order_stats(criteria)
