"""
Document Formatting
fr-FR date and number rendering shared by the PDF and Excel documents
"""
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

from accommodation.models.hotel import Formula
from accommodation.models.request import PaymentStatus

NARROW_NBSP = "\u202f"
NBSP = "\xa0"

FORMULA_LABELS = {
    Formula.PLAIN_STAY: "Séjour Simple",
    Formula.MEAL_PLAN: "Formule Repas",
    Formula.HALF_BOARD: "Demi-Pension",
    Formula.FULL_BOARD: "Pension Complète",
}

PAYMENT_LABELS = {
    PaymentStatus.PAID: "Payé",
    PaymentStatus.UNPAID: "Non payé",
}


def format_date(value: Optional[datetime]) -> str:
    """dd/mm/yyyy, or '-' when missing"""
    if not value:
        return "-"
    return value.strftime("%d/%m/%Y")


def format_number(value: Optional[Union[int, float, Decimal]], group_separator: str = NARROW_NBSP) -> str:
    """
    Group digits by three and use a decimal comma, keeping at most three
    fraction digits: 16000 -> '16 000', 1234.5 -> '1 234,5'.
    """
    if value is None:
        return "-"
    amount = Decimal(str(value)).quantize(Decimal("0.001"), rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    integer_part, _, fraction = f"{abs(amount):.3f}".partition(".")
    groups = []
    while integer_part:
        groups.insert(0, integer_part[-3:])
        integer_part = integer_part[:-3]
    text = group_separator.join(groups)
    fraction = fraction.rstrip("0")
    if fraction:
        text = f"{text},{fraction}"
    return f"{sign}{text}"


def format_amount(value, currency: str = "DZD", group_separator: str = NARROW_NBSP) -> str:
    return f"{format_number(value, group_separator)} {currency}"


def format_formula(selector: Optional[str]) -> str:
    formula = Formula.parse(selector)
    if formula:
        return FORMULA_LABELS[formula]
    return selector or "-"


def format_payment_status(status: Optional[PaymentStatus]) -> str:
    return PAYMENT_LABELS.get(status, PAYMENT_LABELS[PaymentStatus.UNPAID])
