"""Record entry: new products and partner investments.

Validation happens before any backend call and raises
:class:`~bizdash.errors.RecordValidationError`; write failures surface as
:class:`~bizdash.errors.BackendError`. Nothing is retried.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from bizdash.backend import delete_rows, insert_row, read_page
from bizdash.daterange import IST_OFFSET, to_iso
from bizdash.errors import RecordValidationError

logger = logging.getLogger(__name__)

TAX_OPTIONS = ["Tax Exemption", "2.5%", "5%", "12%", "18%"]
UNIT_OPTIONS = [
    "Pieces", "Numbers", "Kilograms", "Box", "Packs", "Meters", "Sets", "Square Feet",
    "Pouch", "Bottles", "Bags", "Grams", "Feet", "Case", "Rolls", "Pairs", "Quintal",
    "Tonnes", "Bundles", "Tin", "Barrel", "Packets", "Length", "Dozens", "Grums",
    "Litres", "Tanks", "Qualtity",
]
CATEGORY_OPTIONS = ["Packages", "Groceries", "Oil"]
PARTNERS = ["Kavin", "Vicky"]

INVESTMENT_PAGE_SIZE = 10


def _trimmed(value: Any) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def _price(value: Any, label: str) -> Optional[float]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        price = float(value)
    except (TypeError, ValueError) as exc:
        raise RecordValidationError(f"{label} must be a number") from exc
    if not math.isfinite(price):
        raise RecordValidationError(f"{label} must be a finite number")
    return price


def _choice(value: Any, options: List[str], default: str, label: str) -> str:
    choice = _trimmed(value) or default
    if choice not in options:
        raise RecordValidationError(f"{label} must be one of: {', '.join(options)}")
    return choice


def build_product(form: Mapping[str, Any]) -> Dict[str, Any]:
    name = _trimmed(form.get("name"))
    if not name:
        raise RecordValidationError("Product name is required")
    return {
        "name": name,
        "purchase_price": _price(form.get("purchase_price"), "Purchase price"),
        "selling_price": _price(form.get("selling_price"), "Selling price"),
        "tax_rate": _choice(form.get("tax_rate"), TAX_OPTIONS, TAX_OPTIONS[0], "Tax rate"),
        "unit": _choice(form.get("unit"), UNIT_OPTIONS, UNIT_OPTIONS[0], "Unit"),
        "description": _trimmed(form.get("description")),
        "active": bool(form.get("active", True)),
        "hsn_sac": _trimmed(form.get("hsn_sac")),
        "category": _choice(form.get("category"), CATEGORY_OPTIONS, CATEGORY_OPTIONS[0], "Category"),
    }


def add_product(client: Any, form: Mapping[str, Any]) -> Dict[str, Any]:
    payload = build_product(form)
    row = insert_row(client, "products", payload)
    logger.info("Added product %r in %s", payload["name"], payload["category"])
    return row


def ist_wall_time_to_utc(ts: datetime) -> datetime:
    """Naive datetimes are +5:30 wall-clock times; aware ones are converted as-is."""
    if ts.tzinfo is None:
        return (ts - IST_OFFSET).replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def build_investment(name: Any, amount: Any, created_at: Optional[datetime] = None) -> Dict[str, Any]:
    partner = _trimmed(name)
    if partner not in PARTNERS:
        raise RecordValidationError(f"Partner must be one of: {', '.join(PARTNERS)}")
    try:
        value = float(amount)
    except (TypeError, ValueError) as exc:
        raise RecordValidationError("Amount must be a positive number.") from exc
    if not math.isfinite(value) or value <= 0:
        raise RecordValidationError("Amount must be a positive number.")
    created = ist_wall_time_to_utc(created_at) if created_at else datetime.now(timezone.utc)
    return {"name": partner, "amount": value, "created_at": to_iso(created)}


def record_investment(
    client: Any, name: Any, amount: Any, created_at: Optional[datetime] = None
) -> Dict[str, Any]:
    payload = build_investment(name, amount, created_at)
    row = insert_row(client, "investments", payload)
    logger.info("Recorded investment of %.2f by %s", payload["amount"], payload["name"])
    return row


def delete_investment(client: Any, investment_id: Any) -> None:
    if investment_id is None or str(investment_id).strip() == "":
        raise RecordValidationError("Investment id is required")
    delete_rows(client, "investments", eq={"id": investment_id})
    logger.info("Deleted investment %s", investment_id)


@dataclass
class InvestmentPage:
    rows: List[Dict[str, Any]] = field(default_factory=list)
    count: int = 0
    page: int = 1
    page_size: int = INVESTMENT_PAGE_SIZE
    total: float = 0.0
    partner_totals: Dict[str, float] = field(default_factory=dict)

    @property
    def total_pages(self) -> int:
        return max(1, math.ceil(self.count / self.page_size))


def list_investments(client: Any, page: int = 1, page_size: int = INVESTMENT_PAGE_SIZE) -> InvestmentPage:
    """One page of investments, newest first, with totals over the page's rows."""
    page = max(1, int(page))
    page_size = max(1, int(page_size))
    start = (page - 1) * page_size
    rows, count = read_page(
        client,
        "investments",
        "id,name,amount,created_at",
        order=[("created_at", True), ("id", True)],
        start=start,
        end=start + page_size - 1,
    )

    def amount(row: Dict[str, Any]) -> float:
        try:
            return float(row.get("amount") or 0)
        except (TypeError, ValueError):
            return 0.0

    totals = {p: sum(amount(r) for r in rows if r.get("name") == p) for p in PARTNERS}
    return InvestmentPage(
        rows=rows,
        count=count,
        page=page,
        page_size=page_size,
        total=sum(amount(r) for r in rows),
        partner_totals=totals,
    )
