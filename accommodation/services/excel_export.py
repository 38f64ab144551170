"""
Purchase Order Excel Export

One row per issued purchase order, a monetary total row and a paid/unpaid
summary, written with openpyxl.
"""
import io
import logging
from datetime import datetime
from typing import Dict, List, Optional

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side

from accommodation.config import settings
from accommodation.models.hotel import HotelBase
from accommodation.models.request import PaymentStatus, RequestBase
from accommodation.services.formatting import (
    format_date,
    format_number,
    format_payment_status,
)

logger = logging.getLogger(__name__)

COLORS = {
    "secondary": "1E3A5F",
    "header_bg": "1E3A5F",
    "header_text": "FFFFFF",
    "paid_bg": "D4EDDA",
    "paid_text": "155724",
    "unpaid_bg": "FFF3CD",
    "unpaid_text": "856404",
    "total_bg": "E8F4FD",
    "stripe_bg": "F8F8F8",
}

HEADERS = [
    "N° BC",
    "Date BC",
    "Employé",
    "Matricule",
    "Région",
    "Destination",
    "Hôtel",
    "Arrivée",
    "Départ",
    "Nuits",
    "Montant ({currency})",
    "Statut Paiement",
]


def column_headers(currency: str) -> List[str]:
    return [header.format(currency=currency) for header in HEADERS]


COLUMN_WIDTHS = [18, 12, 25, 12, 10, 20, 25, 12, 12, 8, 15, 14]

HEADER_ROW = 4
FIRST_DATA_ROW = 5
AMOUNT_COLUMN = 11
STATUS_COLUMN = 12


def money_format(currency: str) -> str:
    return f'#,##0" {currency}"'


def _fill(color: str) -> PatternFill:
    return PatternFill(start_color=color, end_color=color, fill_type="solid")


def _border(color: str, style: str = "thin") -> Border:
    side = Side(style=style, color=color)
    return Border(top=side, left=side, bottom=side, right=side)


def describe_filters(filters: Optional[Dict[str, str]]) -> str:
    """Subtitle fragment for the filters applied to the export"""
    parts = []
    for label, value in (filters or {}).items():
        if value:
            parts.append(f"{label}: {value}")
    return " | ".join(parts)


def generate_purchase_order_workbook(
    reservations: List[RequestBase],
    hotels: Dict[str, HotelBase],
    filters: Optional[Dict[str, str]] = None,
    currency: Optional[str] = None,
) -> bytes:
    """
    Export reserved requests to an .xlsx workbook.

    Args:
        reservations: requests carrying a finance block
        hotels: hotel records keyed by id, for the hotel column
        filters: labelled filter values shown in the subtitle

    Returns:
        Excel file bytes
    """
    currency = currency or settings.DEFAULT_CURRENCY
    wb = Workbook()
    ws = wb.active
    ws.title = "Bons de Commande"
    ws.page_setup.orientation = "landscape"
    ws.page_setup.paperSize = ws.PAPERSIZE_A4

    # Title
    ws.merge_cells("A1:L1")
    ws["A1"] = f"{settings.ORG_NAME} - Liste des Bons de Commande"
    ws["A1"].font = Font(name="Arial", size=16, bold=True, color=COLORS["secondary"])
    ws["A1"].alignment = Alignment(horizontal="center", vertical="center")
    ws.row_dimensions[1].height = 30

    ws.merge_cells("A2:L2")
    subtitle = f"Export du {format_date(datetime.utcnow())}"
    description = describe_filters(filters)
    if description:
        subtitle = f"{subtitle} | {description}"
    ws["A2"] = subtitle
    ws["A2"].font = Font(name="Arial", size=10, italic=True, color="666666")
    ws["A2"].alignment = Alignment(horizontal="center", vertical="center")
    ws.row_dimensions[3].height = 10

    # Headers
    for col_num, header in enumerate(column_headers(currency), 1):
        cell = ws.cell(row=HEADER_ROW, column=col_num, value=header)
        cell.font = Font(name="Arial", size=10, bold=True, color=COLORS["header_text"])
        cell.fill = _fill(COLORS["header_bg"])
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
        cell.border = _border("000000")
    ws.row_dimensions[HEADER_ROW].height = 25

    for col_num, width in enumerate(COLUMN_WIDTHS, 1):
        ws.column_dimensions[ws.cell(row=HEADER_ROW, column=col_num).column_letter].width = width

    # Data
    total_amount = 0.0
    paid_amount = 0.0
    unpaid_amount = 0.0

    row_num = FIRST_DATA_ROW
    for index, request in enumerate(reservations):
        finance = request.finance
        snapshot = finance.employee_snapshot
        hotel = hotels.get(request.reservation.hotel_id) if request.reservation else None
        amount = finance.total or 0
        paid = finance.payment_status == PaymentStatus.PAID

        total_amount += amount
        if paid:
            paid_amount += amount
        else:
            unpaid_amount += amount

        values = [
            finance.po_number or "-",
            format_date(finance.generated_at or finance.validated_at),
            snapshot.name or "-",
            snapshot.employee_code or "-",
            snapshot.region_tag or request.region_tag or "-",
            request.destination or "-",
            hotel.name if hotel else "-",
            format_date(request.stay_start),
            format_date(request.stay_end),
            finance.nights,
            amount,
            format_payment_status(finance.payment_status),
        ]

        for col_num, value in enumerate(values, 1):
            cell = ws.cell(row=row_num, column=col_num, value=value)
            cell.font = Font(name="Arial", size=9)
            cell.alignment = Alignment(
                horizontal="right" if col_num == AMOUNT_COLUMN else "center",
                vertical="center",
            )
            cell.border = _border("CCCCCC")
            if index % 2 == 1 and col_num != STATUS_COLUMN:
                cell.fill = _fill(COLORS["stripe_bg"])

        ws.cell(row=row_num, column=AMOUNT_COLUMN).number_format = money_format(currency)

        status_cell = ws.cell(row=row_num, column=STATUS_COLUMN)
        status_cell.fill = _fill(COLORS["paid_bg"] if paid else COLORS["unpaid_bg"])
        status_cell.font = Font(
            name="Arial",
            size=9,
            bold=True,
            color=COLORS["paid_text"] if paid else COLORS["unpaid_text"],
        )
        row_num += 1

    # Totals
    total_row = row_num
    ws.merge_cells(start_row=total_row, start_column=1, end_row=total_row, end_column=9)
    label_cell = ws.cell(row=total_row, column=1, value=f"TOTAL ({len(reservations)} réservations)")
    label_cell.font = Font(name="Arial", size=10, bold=True)
    label_cell.alignment = Alignment(horizontal="right", vertical="center")
    label_cell.fill = _fill(COLORS["total_bg"])

    for col_num in (10, STATUS_COLUMN):
        ws.cell(row=total_row, column=col_num).fill = _fill(COLORS["total_bg"])

    total_cell = ws.cell(row=total_row, column=AMOUNT_COLUMN, value=total_amount)
    total_cell.number_format = money_format(currency)
    total_cell.font = Font(name="Arial", size=11, bold=True, color=COLORS["secondary"])
    total_cell.alignment = Alignment(horizontal="right", vertical="center")
    total_cell.fill = _fill(COLORS["total_bg"])
    total_cell.border = Border(
        top=Side(style="medium", color="000000"),
        bottom=Side(style="medium", color="000000"),
    )
    ws.row_dimensions[total_row].height = 25

    # Summary
    summary_row = total_row + 2
    ws.cell(row=summary_row, column=1, value="Résumé:").font = Font(name="Arial", size=10, bold=True)
    ws.cell(
        row=summary_row + 1,
        column=1,
        value=f"Total Payé: {format_number(paid_amount)} {currency}",
    ).font = Font(name="Arial", size=9, color=COLORS["paid_text"])
    ws.cell(
        row=summary_row + 2,
        column=1,
        value=f"Total Non Payé: {format_number(unpaid_amount)} {currency}",
    ).font = Font(name="Arial", size=9, color=COLORS["unpaid_text"])

    output = io.BytesIO()
    wb.save(output)
    output.seek(0)
    logger.info("Exported %d purchase orders (total %s)", len(reservations), total_amount)
    return output.getvalue()
