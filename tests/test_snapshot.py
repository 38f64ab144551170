from accommodation.models.user import UserBase
from accommodation.services.snapshot import build_employee_snapshot


def test_copies_identity_fields():
    user = UserBase(
        employee_code="M10234",
        first_name="Amine",
        last_name="Benali",
        region_tag="HMD",
        region_name="Hassi Messaoud",
        organizational_unit="Forage",
        department="Production",
    )
    snapshot = build_employee_snapshot(user)

    assert snapshot.employee_code == "M10234"
    assert snapshot.name == "Amine Benali"
    assert snapshot.region_tag == "HMD"
    assert snapshot.region_name == "Hassi Messaoud"
    assert snapshot.organizational_unit == "Forage"
    assert snapshot.department == "Production"


def test_display_name_prefers_full_name():
    user = UserBase(employee_code="X1", first_name="A", last_name="B", name="Dr A. B.")
    assert build_employee_snapshot(user).name == "Dr A. B."


def test_later_changes_do_not_leak():
    user = UserBase(employee_code="M1", name="Before", department="Forage")
    snapshot = build_employee_snapshot(user)
    user.name = "After"
    user.department = "Sécurité"

    assert snapshot.name == "Before"
    assert snapshot.department == "Forage"


def test_missing_user_gives_empty_snapshot():
    snapshot = build_employee_snapshot(None)
    assert snapshot.name is None
    assert snapshot.employee_code is None
