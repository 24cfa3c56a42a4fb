from datetime import datetime, timezone

import pytest

from bizdash.errors import BackendError, RecordValidationError
from bizdash.records import (
    add_product,
    build_product,
    delete_investment,
    list_investments,
    record_investment,
)


def test_build_product_normalises_blank_fields():
    payload = build_product(
        {"name": "  Kraft Pouch 6x9 ", "purchase_price": "", "selling_price": "12.5", "description": "  ", "hsn_sac": " 3923 "}
    )
    assert payload["name"] == "Kraft Pouch 6x9"
    assert payload["purchase_price"] is None
    assert payload["selling_price"] == 12.5
    assert payload["description"] is None
    assert payload["hsn_sac"] == "3923"
    assert payload["tax_rate"] == "Tax Exemption"
    assert payload["unit"] == "Pieces"
    assert payload["category"] == "Packages"


@pytest.mark.parametrize(
    "form",
    [
        {"name": "   "},
        {"name": "Pouch", "selling_price": "abc"},
        {"name": "Pouch", "category": "Spices"},
        {"name": "Pouch", "tax_rate": "7%"},
        {"name": "Pouch", "unit": "Furlongs"},
    ],
)
def test_invalid_product_is_rejected_before_any_write(fake_db, form):
    with pytest.raises(RecordValidationError):
        add_product(fake_db, form)
    assert fake_db.executed == []


def test_add_product_inserts_one_row(fake_db):
    row = add_product(fake_db, {"name": "Tri Colour 9x11", "purchase_price": "4", "category": "Packages"})
    assert row["name"] == "Tri Colour 9x11"
    assert row["purchase_price"] == 4.0
    assert "id" in row
    assert fake_db.executed == [("products", "insert")]


def test_record_investment_converts_wall_time_to_utc(fake_db):
    row = record_investment(fake_db, "Kavin", "2500", datetime(2024, 4, 1, 10, 0))
    assert row["created_at"] == "2024-04-01T04:30:00.000Z"
    assert row["amount"] == 2500.0


def test_record_investment_keeps_aware_times(fake_db):
    row = record_investment(fake_db, "Vicky", 10, datetime(2024, 4, 1, 10, 0, tzinfo=timezone.utc))
    assert row["created_at"] == "2024-04-01T10:00:00.000Z"


@pytest.mark.parametrize(
    "name, amount",
    [("Someone", 100), ("Kavin", 0), ("Kavin", -5), ("Kavin", "nan"), ("Kavin", "inf"), ("Vicky", "")],
)
def test_record_investment_validation(fake_db, name, amount):
    with pytest.raises(RecordValidationError):
        record_investment(fake_db, name, amount)
    assert fake_db.executed == []


def test_backend_failure_surfaces_as_backend_error(fake_db):
    fake_db.fail_on.add("investments")
    with pytest.raises(BackendError):
        record_investment(fake_db, "Kavin", 100)


def test_list_investments_pages_newest_first(fake_db):
    page = list_investments(fake_db, page=1, page_size=2)
    assert [r["id"] for r in page.rows] == [3, 2]
    assert page.count == 3
    assert page.total_pages == 2
    assert page.total == pytest.approx(700)
    assert page.partner_totals == {"Kavin": 0, "Vicky": 500}

    second = list_investments(fake_db, page=2, page_size=2)
    assert [r["id"] for r in second.rows] == [1]
    assert second.partner_totals["Kavin"] == 1000


def test_delete_investment(fake_db):
    delete_investment(fake_db, 2)
    assert [r["id"] for r in fake_db.tables["investments"]] == [1, 3]
    with pytest.raises(RecordValidationError):
        delete_investment(fake_db, "")
