"""
Purchase Order Numbering
Year-scoped sequence: PO-<YYYY>-<NNNNN>
"""
import logging
import re
from datetime import datetime
from typing import Optional

logger = logging.getLogger(__name__)

PO_PREFIX = "PO"
PO_NUMBER_PATTERN = re.compile(r"^PO-(\d{4})-(\d{5,})$")


def year_prefix(year: int) -> str:
    return f"{PO_PREFIX}-{year:04d}-"


def format_po_number(year: int, sequence: int) -> str:
    return f"{year_prefix(year)}{sequence:05d}"


def parse_po_number(po_number: Optional[str]):
    """Return (year, sequence) or None when the number is not in PO format"""
    if not po_number:
        return None
    match = PO_NUMBER_PATTERN.match(po_number)
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


class PurchaseOrderNumbering:
    """
    Issues the next purchase order number of a calendar year.

    Not atomic: two callers can read the same maximum. The unique index on
    finance.po_number rejects the second write.
    """

    def __init__(self, requests):
        self.requests = requests

    async def next_number(self, year: Optional[int] = None) -> str:
        year = year or datetime.utcnow().year
        last = await self.requests.last_po_number(year_prefix(year))
        parsed = parse_po_number(last)
        sequence = parsed[1] + 1 if parsed else 1
        number = format_po_number(year, sequence)
        logger.debug("Next purchase order number for %s: %s", year, number)
        return number

    async def number_for(self, request, year: Optional[int] = None) -> str:
        """Keep the number a request already carries, otherwise issue one"""
        if request.finance and request.finance.po_number:
            return request.finance.po_number
        return await self.next_number(year)
