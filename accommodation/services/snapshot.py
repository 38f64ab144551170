from typing import Optional

from accommodation.models.request import EmployeeSnapshot
from accommodation.models.user import UserBase


def build_employee_snapshot(user: Optional[UserBase]) -> EmployeeSnapshot:
    """Copy the identity fields of the live employee record"""
    if user is None:
        return EmployeeSnapshot()
    return EmployeeSnapshot(
        employee_code=user.employee_code,
        name=user.display_name,
        region_tag=user.region_tag,
        region_name=user.region_name,
        organizational_unit=user.organizational_unit,
        department=user.department,
    )
