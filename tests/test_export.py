import csv
import io

from bizdash.export import build_dashboard_csv


def _rows(text):
    return list(csv.reader(io.StringIO(text)))


def test_fields_are_quoted_and_quotes_doubled():
    text = build_dashboard_csv({"top_clients": [{"client": 'Ravi "RS" Stores', "qty": 10}]}, "Groceries")
    assert '"Ravi ""RS"" Stores"' in text
    assert '"","Ravi ""RS"" Stores","10"' in text.split("\n")


def test_reparsing_recovers_original_strings():
    name = 'Acme, "Polymers"\nUnit 2'
    text = build_dashboard_csv(
        {
            "metrics": {"revenue": 600.0, "profit_margin": 33.5},
            "top_vendors": [{"vendor": name, "spend": 3000.0}],
        },
        "Groceries",
    )
    rows = _rows(text)
    assert ["Section", "Key", "Value"] == rows[0]
    assert ["Metrics", "revenue", "600"] in rows
    assert ["Metrics", "profit_margin", "33.5"] in rows
    assert ["", name, "3000"] in rows


def test_section_layout_for_packages():
    sections = {
        "trend": [{"date": "2024-03-10", "revenue": 500, "cost": 300, "profit": 200, "orders": 1}],
        "breakdowns": {"size": [{"size": "10x12", "qty": 10}]},
        "seasonal": [{"month": "2024-03", "revenue": 600, "orders": 2}],
        "focus_client": {"size": [{"size": "8x10", "qty": 5}], "type": []},
    }
    rows = _rows(build_dashboard_csv(sections, "Packages"))
    headers = [r[0] for r in rows if r and r[0]]
    assert headers[:4] == ["Section", "Trend", "Type Performance", "Size Performance"]
    assert "Category Performance" not in headers
    assert "Focus Client Sizes" in headers
    assert "Focus Client Types" not in headers
    assert ["", "2024-03-10", "500", "300", "200", "1"] in rows
    assert ["", "10x12", "10"] in rows


def test_groceries_uses_category_breakdown():
    sections = {"breakdowns": {"category": [{"category": "Kilograms", "qty": 2}]}}
    rows = _rows(build_dashboard_csv(sections, "Groceries"))
    assert ["Category Performance", "Category", "Quantity"] in rows
    assert ["", "Kilograms", "2"] in rows


def test_empty_sections_still_emit_headers():
    rows = _rows(build_dashboard_csv({}, "Groceries"))
    assert rows[0] == ["Section", "Key", "Value"]
    assert ["Top Clients", "Client", "Quantity"] in rows
