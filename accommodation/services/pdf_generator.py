"""
Purchase Order PDF Generator

Builds the content of an accommodation purchase order from a reserved
request and draws it on a single A4 page with reportlab.
"""
import io
import logging
from datetime import datetime
from typing import List, Optional, Tuple

from pydantic import BaseModel
from reportlab.lib.colors import HexColor, white
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from accommodation.config import settings
from accommodation.models.hotel import HotelBase
from accommodation.models.request import RequestBase
from accommodation.models.user import UserBase
from accommodation.services.formatting import (
    NBSP,
    format_amount,
    format_date,
    format_formula,
)

logger = logging.getLogger(__name__)

COLORS = {
    "primary": HexColor("#E31837"),
    "secondary": HexColor("#1E3A5F"),
    "text": HexColor("#333333"),
    "light_gray": HexColor("#F5F5F5"),
    "medium_gray": HexColor("#CCCCCC"),
    "dark_gray": HexColor("#666666"),
}

OPTION_LABELS = [
    ("allow_cancellation", "Annulation possible"),
    ("allow_hotel_change", "Changement d'hôtel autorisé"),
    ("late_reservation", "Réservation tardive"),
    ("post_stay_entry", "Saisie post-hébergement"),
]

TABLE_HEADERS = ["Désignation", "Formule", "Nuits", "Prix/Nuit", "Total"]
TABLE_COL_WIDTHS = [150, 100, 60, 90, 95]

Line = Tuple[str, str]


class PurchaseOrderContent(BaseModel):
    """Everything printed on a purchase order, already formatted"""
    po_number: str
    issued_on: str
    employee: List[Line]
    stay: List[Line]
    accommodation: List[Line]
    table_rows: List[List[str]]
    grand_total: str
    options: List[str]
    remarks: List[str]
    validated_on: str


def _pick(snapshot_value, live_value) -> str:
    return snapshot_value or live_value or "-"


def _money(value, currency: str) -> str:
    # Helvetica has no glyph for U+202F
    return format_amount(value, currency, group_separator=NBSP)


def build_purchase_order(
    request: RequestBase,
    hotel: Optional[HotelBase],
    po_number: str,
    employee: Optional[UserBase] = None,
) -> PurchaseOrderContent:
    """Lay out the purchase order fields; the snapshot wins over the live record"""
    finance = request.finance
    reservation = request.reservation
    snapshot = finance.employee_snapshot if finance else None
    currency = finance.currency if finance else settings.DEFAULT_CURRENCY

    def snap(field):
        return getattr(snapshot, field, None) if snapshot else None

    def live(field):
        if employee is None:
            return None
        if field == "name":
            return employee.display_name
        return getattr(employee, field, None)

    region_tag = _pick(snap("region_tag"), live("region_tag"))
    region_name = snap("region_name") or live("region_name") or ""
    employee_lines = [
        ("Nom complet:", _pick(snap("name"), live("name"))),
        ("Matricule:", _pick(snap("employee_code"), live("employee_code"))),
        ("Région:", f"{region_tag} - {region_name}" if region_name else region_tag),
        ("Département:", _pick(snap("department"), live("department"))),
        ("Service/Imputation:", _pick(snap("organizational_unit"), live("organizational_unit"))),
    ]

    nights = finance.nights if finance else 1
    stay_lines = [
        ("Destination:", f"{request.destination or '-'}, {request.country or settings.DEFAULT_COUNTRY}"),
        ("Date d'arrivée:", format_date(request.stay_start)),
        ("Date de départ:", format_date(request.stay_end)),
        ("Nombre de nuits:", str(nights)),
    ]
    if request.motive:
        stay_lines.append(("Motif mission:", request.motive))

    formula_label = format_formula(reservation.formula if reservation else None)
    accommodation_lines = [
        ("Hôtel:", hotel.name if hotel else "-"),
        ("Ville:", hotel.city if hotel else "-"),
        ("Code contrat:", (hotel.code if hotel else None) or "-"),
        ("Type de chambre:", (reservation.room_type if reservation else None) or "Standard"),
        ("Formule:", formula_label),
    ]

    price_per_night = finance.price_per_night if finance else 0
    total = finance.total if finance else 0
    participants = finance.participants_count if finance else 1
    rows = [[
        hotel.name if hotel else "Hébergement",
        formula_label,
        str(nights),
        _money(price_per_night, currency),
        _money(total, currency),
    ]]
    if participants > 1:
        rows.append([
            f"Participants (x{participants})",
            "-",
            "-",
            "-",
            _money(total * participants, currency),
        ])

    options = []
    if reservation:
        options = [label for field, label in OPTION_LABELS if getattr(reservation.options, field)]

    remarks = []
    if reservation and reservation.comment:
        remarks.append(f"Logistique: {reservation.comment}")
    if request.extra_requests:
        remarks.append(f"Demandes spéciales: {request.extra_requests}")

    issued_at = (finance.generated_at or finance.validated_at) if finance else None
    return PurchaseOrderContent(
        po_number=po_number,
        issued_on=format_date(issued_at or datetime.utcnow()),
        employee=employee_lines,
        stay=stay_lines,
        accommodation=accommodation_lines,
        table_rows=rows,
        grand_total=_money(total * max(participants, 1), currency),
        options=options,
        remarks=remarks,
        validated_on=format_date(finance.validated_at if finance else None),
    )


class PurchaseOrderPDF:
    """
    Draws a PurchaseOrderContent on one A4 canvas.

    The footer and the signature block sit at fixed heights from the bottom
    of the page; the flowing sections above them wrap long text and the
    observations are cut to the room left above the signatures.
    """

    LEFT = 50
    LABEL_WIDTH = 130
    LINE_HEIGHT = 14
    WRAP_HEIGHT = 11
    HEADER_HEIGHT = 100
    FOOTER_HEIGHT = 70
    SIGNATURE_HEIGHT = 75

    def __init__(self, content: PurchaseOrderContent):
        self.content = content
        self.buffer = io.BytesIO()
        self.canvas = canvas.Canvas(self.buffer, pagesize=A4)
        self.canvas.setTitle(f"Bon de commande {content.po_number}")
        self.width, self.height = A4
        self.footer_top = self.height - self.FOOTER_HEIGHT
        self.signature_top = self.footer_top - self.SIGNATURE_HEIGHT

    # reportlab's origin is bottom-left; layout below works top-down
    def _y(self, top: float) -> float:
        return self.height - top

    def _text(self, x, top, text, size=10, color=None, font="Helvetica"):
        c = self.canvas
        c.setFont(font, size)
        c.setFillColor(color or COLORS["text"])
        c.drawString(x, self._y(top), text)

    def _rect(self, x, top, width, height, fill=None, stroke=None):
        c = self.canvas
        if fill is not None:
            c.setFillColor(fill)
        if stroke is not None:
            c.setStrokeColor(stroke)
        c.rect(x, self._y(top + height), width, height, fill=int(fill is not None), stroke=int(stroke is not None))

    @staticmethod
    def _wrap(text: str, width: float, size: float, font: str = "Helvetica", max_lines: Optional[int] = None) -> List[str]:
        lines = simpleSplit(text or "-", font, size, width) or ["-"]
        if max_lines and len(lines) > max_lines:
            lines = lines[:max_lines]
            lines[-1] = lines[-1].rstrip() + " …"
        return lines

    def draw_header(self):
        content = self.content
        self._rect(0, 0, self.width, self.HEADER_HEIGHT, fill=COLORS["secondary"])
        self._rect(self.LEFT, 15, 90, 70, fill=white)
        org_lines = self._wrap(settings.ORG_NAME, 80, 8, font="Helvetica-Bold", max_lines=6)
        top = 50 - (len(org_lines) - 1) * 5
        for line in org_lines:
            self._text(55, top, line, size=8, color=COLORS["primary"], font="Helvetica-Bold")
            top += 10
        self._text(160, 40, "BON DE COMMANDE", size=22, color=white, font="Helvetica-Bold")
        self._text(160, 60, "Réservation Hébergement", size=12, color=white)
        self._text(160, 76, f"{settings.ORG_DIVISION} - {settings.ORG_DEPARTMENT}", size=8, color=white)
        c = self.canvas
        c.setFont("Helvetica", 10)
        c.setFillColor(white)
        c.drawRightString(self.width - self.LEFT, self._y(35), f"N° {content.po_number}")
        c.drawRightString(self.width - self.LEFT, self._y(52), f"Date: {content.issued_on}")
        self._rect(self.LEFT, self.HEADER_HEIGHT - 4, self.width - 2 * self.LEFT, 3, fill=COLORS["primary"])

    def draw_section(self, title: str, top: float) -> float:
        self._rect(self.LEFT, top, self.width - 2 * self.LEFT, 18, fill=COLORS["light_gray"])
        self._text(60, top + 13, title, size=10, color=COLORS["secondary"], font="Helvetica-Bold")
        return top + 22

    def draw_lines(self, lines: List[Line], top: float) -> float:
        value_width = self.width - self.LEFT - 60 - self.LABEL_WIDTH
        for label, value in lines:
            self._text(60, top + 10, label, size=9, color=COLORS["dark_gray"])
            wrapped = self._wrap(value, value_width, 9, max_lines=2)
            for index, part in enumerate(wrapped):
                self._text(60 + self.LABEL_WIDTH, top + 10 + index * self.WRAP_HEIGHT, part, size=9)
            top += self.LINE_HEIGHT + (len(wrapped) - 1) * self.WRAP_HEIGHT
        return top

    def draw_table(self, rows: List[List[str]], top: float) -> float:
        table_width = sum(TABLE_COL_WIDTHS)
        start_top = top
        self._rect(60, top, table_width, 18, fill=COLORS["secondary"])
        x = 60
        for header, width in zip(TABLE_HEADERS, TABLE_COL_WIDTHS):
            self._text(x + 5, top + 12, header, size=9, color=white, font="Helvetica-Bold")
            x += width
        top += 18
        for index, row in enumerate(rows):
            self._rect(60, top, table_width, 16, fill=white if index % 2 == 0 else COLORS["light_gray"])
            x = 60
            for cell, width in zip(row, TABLE_COL_WIDTHS):
                self._text(x + 5, top + 11, self._wrap(str(cell), width - 10, 9, max_lines=1)[0], size=9)
                x += width
            top += 16
        self._rect(60, start_top, table_width, top - start_top, stroke=COLORS["medium_gray"])
        return top + 8

    def draw_total(self, top: float) -> float:
        self._rect(340, top, 195, 34, fill=COLORS["primary"])
        self._text(350, top + 13, "TOTAL ESTIMÉ", size=11, color=white, font="Helvetica-Bold")
        self._text(350, top + 29, self.content.grand_total, size=14, color=white, font="Helvetica-Bold")
        return top + 42

    def draw_observations(self, top: float) -> float:
        """Options and remarks, wrapped, stopping above the signature block"""
        content = self.content
        limit = self.signature_top - 8
        text_width = self.width - 2 * self.LEFT - 20
        blocks = []
        if content.options:
            blocks.append(("OPTIONS / CONDITIONS", [" · ".join(content.options)]))
        if content.remarks:
            blocks.append(("OBSERVATIONS", content.remarks))

        for title, paragraphs in blocks:
            if top + 22 + self.WRAP_HEIGHT > limit:
                logger.warning("No room left for %s on purchase order %s", title, content.po_number)
                break
            top = self.draw_section(title, top)
            room = int((limit - top) // self.WRAP_HEIGHT)
            lines = []
            for paragraph in paragraphs:
                lines.extend(self._wrap(paragraph, text_width, 9))
            if len(lines) > room:
                logger.warning("Observations of purchase order %s cut to %d lines", content.po_number, room)
                lines = lines[:room]
                lines[-1] = lines[-1].rstrip() + " …"
            for line in lines:
                self._text(60, top + 9, line, size=9)
                top += self.WRAP_HEIGHT
            top += 4
        return top

    def draw_signatures(self):
        top = self.signature_top + 10
        self._text(60, top, "Validé par le Service Logistique", size=9, color=COLORS["dark_gray"])
        self._rect(60, top + 5, 150, 40, stroke=COLORS["medium_gray"])
        self._text(65, top + 57, f"Date: {self.content.validated_on}", size=9, color=COLORS["dark_gray"])
        self._text(350, top, "Visa Finance", size=9, color=COLORS["dark_gray"])
        self._rect(350, top + 5, 150, 40, stroke=COLORS["medium_gray"])

    def draw_footer(self):
        footer_top = self.footer_top
        self._rect(self.LEFT, footer_top, self.width - 2 * self.LEFT, 1, fill=COLORS["medium_gray"])
        c = self.canvas
        c.setFillColor(COLORS["dark_gray"])
        c.setFont("Helvetica", 8)
        c.drawCentredString(self.width / 2, self._y(footer_top + 15), f"{settings.ORG_NAME} - {settings.ORG_ADDRESS}")
        c.setFont("Helvetica", 7)
        c.drawCentredString(
            self.width / 2,
            self._y(footer_top + 30),
            "Ce document est généré automatiquement et constitue un bon de commande officiel pour la réservation hébergement.",
        )
        c.setFont("Helvetica", 8)
        c.drawCentredString(self.width / 2, self._y(footer_top + 45), "Page 1/1")

    def render(self) -> bytes:
        content = self.content
        self.draw_header()
        top = self.HEADER_HEIGHT + 12
        top = self.draw_section("INFORMATIONS EMPLOYÉ", top)
        top = self.draw_lines(content.employee, top) + 4
        top = self.draw_section("DÉTAILS DU SÉJOUR", top)
        top = self.draw_lines(content.stay, top) + 4
        top = self.draw_section("HÉBERGEMENT RÉSERVÉ", top)
        top = self.draw_lines(content.accommodation, top) + 4
        top = self.draw_section("RÉCAPITULATIF FINANCIER", top) + 2
        top = self.draw_table(content.table_rows, top)
        top = self.draw_total(top)
        self.draw_observations(top)
        self.draw_signatures()
        self.draw_footer()
        self.canvas.showPage()
        self.canvas.save()
        return self.buffer.getvalue()


def generate_purchase_order_pdf(
    request: RequestBase,
    hotel: Optional[HotelBase],
    po_number: str,
    employee: Optional[UserBase] = None,
) -> bytes:
    """Render the purchase order of a reserved request to PDF bytes"""
    content = build_purchase_order(request, hotel, po_number, employee)
    pdf = PurchaseOrderPDF(content).render()
    logger.info("Rendered purchase order %s (%d bytes)", po_number, len(pdf))
    return pdf
