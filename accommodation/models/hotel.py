"""
Hotel Model
Reference data for contracted hotels and their nightly rates
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from beanie import Document
from pydantic import BaseModel, Field


class Formula(str, Enum):
    """Meal/service plan used to pick a nightly rate"""
    PLAIN_STAY = "PLAIN_STAY"
    MEAL_PLAN = "MEAL_PLAN"
    HALF_BOARD = "HALF_BOARD"
    FULL_BOARD = "FULL_BOARD"

    @classmethod
    def parse(cls, selector: Optional[str]) -> Optional["Formula"]:
        """Resolve a free-form selector ("half-board", "DEMI_PENSION", ...)"""
        if not selector:
            return None
        key = selector.strip().upper().replace("-", "_").replace(" ", "_")
        key = FORMULA_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            return None


# Labels used by the legacy booking desk
FORMULA_ALIASES = {
    "SEJOUR_SIMPLE": "PLAIN_STAY",
    "SIMPLE": "PLAIN_STAY",
    "FORMULE_REPAS": "MEAL_PLAN",
    "DEMI_PENSION": "HALF_BOARD",
    "PENSION_COMPLETE": "FULL_BOARD",
}


class HotelPrices(BaseModel):
    """Nightly rate per formula"""
    plain_stay: Optional[float] = None
    meal_plan: Optional[float] = None
    half_board: Optional[float] = None
    full_board: Optional[float] = None

    def rate_for(self, formula: Formula) -> Optional[float]:
        return getattr(self, formula.value.lower())


class RoomType(BaseModel):
    label: str  # Single, Double, Suite
    code: Optional[str] = None
    base_price: Optional[float] = None


class HotelBase(BaseModel):
    name: str
    city: str
    country: str = "Algérie"
    code: Optional[str] = None  # contract code
    prices: HotelPrices = Field(default_factory=HotelPrices)
    room_types: List[RoomType] = []
    provider: Optional[str] = None
    notes: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class Hotel(Document, HotelBase):
    """Hotel document"""

    class Settings:
        name = "hotels"
        indexes = [
            "city",
            "name",
        ]

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Hotel El Djazair",
                "city": "Alger",
                "code": "CTR-2025-014",
                "prices": {
                    "plain_stay": 6500,
                    "meal_plan": 7200,
                    "half_board": 8000,
                    "full_board": 9500
                },
                "room_types": [{"label": "Single", "code": "SGL", "base_price": 6500}]
            }
        }
