from datetime import datetime

from accommodation.models.request import PaymentStatus, PurchaseOrderFilter
from accommodation.services.repositories import purchase_order_query, to_object_id


def test_default_query_selects_issued_purchase_orders():
    assert purchase_order_query(PurchaseOrderFilter()) == {
        "status": "RESERVED",
        "finance.po_number": {"$type": "string"},
    }


def test_filters_are_translated():
    query = purchase_order_query(PurchaseOrderFilter(
        payment_status=PaymentStatus.PAID,
        region="HMD",
        search="PO-2025.0",
        generated_from=datetime(2025, 1, 1),
        generated_to=datetime(2025, 12, 31),
    ))

    assert query["finance.payment_status"] == "PAID"
    assert query["region_tag"] == "HMD"
    assert query["finance.generated_at"] == {"$gte": datetime(2025, 1, 1), "$lte": datetime(2025, 12, 31)}
    pattern = {"$regex": r"PO\-2025\.0", "$options": "i"}
    assert {"finance.po_number": pattern} in query["$or"]
    assert {"destination": pattern} in query["$or"]


def test_filter_labels():
    labels = PurchaseOrderFilter(payment_status=PaymentStatus.UNPAID, region="OHT").labels()
    assert labels == {"Statut": "Non payé", "Région": "OHT"}


def test_malformed_ids():
    assert to_object_id("not-an-id") is None
    assert str(to_object_id("64b000000000000000000abc")) == "64b000000000000000000abc"
