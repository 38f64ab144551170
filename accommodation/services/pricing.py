"""
Pricing Calculator
Nightly rate, night count and total of a stay
"""
import math
from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from accommodation.models.hotel import Formula, HotelBase

SECONDS_PER_DAY = 24 * 60 * 60


class PriceQuote(BaseModel):
    formula: Formula
    price_per_night: float
    nights: int
    total: float


def count_nights(start: datetime, end: datetime) -> int:
    """Whole nights between two dates, never less than one"""
    days = (end - start).total_seconds() / SECONDS_PER_DAY
    # half-up, so 1.5 days is 2 nights
    return max(1, math.floor(days + 0.5))


def resolve_formula(selector: Optional[str]) -> Formula:
    """Unknown or empty selectors are billed as a plain stay"""
    return Formula.parse(selector) or Formula.PLAIN_STAY


def nightly_rate(hotel: HotelBase, formula: Formula) -> float:
    rate = hotel.prices.rate_for(formula) if hotel.prices else None
    return float(rate or 0)


def quote_stay(hotel: HotelBase, selector: Optional[str], start: datetime, end: datetime) -> PriceQuote:
    formula = resolve_formula(selector)
    price_per_night = nightly_rate(hotel, formula)
    nights = count_nights(start, end)
    return PriceQuote(
        formula=formula,
        price_per_night=price_per_night,
        nights=nights,
        total=nights * price_per_night,
    )
