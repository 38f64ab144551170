"""
User & Region Models
Employee identity and organisational reference data
"""
from datetime import datetime
from enum import Enum
from typing import Optional

from beanie import Document, Indexed
from pydantic import BaseModel, EmailStr, Field


class RegionType(str, Enum):
    HEADQUARTERS = "HEADQUARTERS"
    REGIONAL_DIRECTORATE = "REGIONAL_DIRECTORATE"
    DIRECTORATE = "DIRECTORATE"


class Region(Document):
    code: Indexed(str, unique=True)  # HMD, HRM, OHT...
    name: str
    type: RegionType = RegionType.REGIONAL_DIRECTORATE

    class Settings:
        name = "regions"


class UserRole(str, Enum):
    EMPLOYEE = "employee"
    MANAGER = "manager"
    LOGISTICS = "logistics"
    FINANCE = "finance"
    ADMIN = "admin"


class UserBase(BaseModel):
    """Identity and organisation fields of an employee"""
    employee_code: str  # matricule
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    name: Optional[str] = None
    email: Optional[EmailStr] = None

    region_tag: Optional[str] = None
    region_name: Optional[str] = None
    organizational_unit: Optional[str] = None  # service / imputation
    department: Optional[str] = None

    role: UserRole = UserRole.EMPLOYEE
    is_active: bool = True

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def display_name(self) -> Optional[str]:
        if self.name:
            return self.name
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) or None


class User(Document, UserBase):
    """Employee document"""

    class Settings:
        name = "users"
        indexes = [
            "employee_code",
            "email",
            "region_tag",
            "role",
        ]

    class Config:
        json_schema_extra = {
            "example": {
                "employee_code": "M10234",
                "first_name": "Amine",
                "last_name": "Benali",
                "email": "amine.benali@company.dz",
                "region_tag": "HMD",
                "region_name": "Hassi Messaoud",
                "organizational_unit": "Forage",
                "department": "Production",
                "role": "employee"
            }
        }
