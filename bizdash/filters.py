from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from bizdash.daterange import PRESETS, DateRange, resolve_range

CATEGORIES = ["Packages", "Groceries", "Oil"]
DASHBOARD_CATEGORIES = ["Packages", "Groceries"]

DEFAULT_PRESETS = {"Packages": "This Month"}
FALLBACK_PRESET = "All Time"


@dataclass(frozen=True)
class DashboardFilters:
    category: str = "Packages"
    preset: str = "This Month"
    custom_start: Optional[str] = None
    custom_end: Optional[str] = None
    focus_client_id: Optional[str] = None
    include_investments: bool = True
    top_n: int = 10

    def date_range(self, now: Optional[datetime] = None) -> DateRange:
        return resolve_range(self.preset, self.custom_start, self.custom_end, now=now)


def default_preset(category: str) -> str:
    return DEFAULT_PRESETS.get(category, FALLBACK_PRESET)


def _clean_str(value: object) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def normalize_filters(raw: dict) -> DashboardFilters:
    category = _clean_str(raw.get("category")) or "Packages"
    if category not in CATEGORIES:
        raise ValueError(f"Unknown category: {category!r}")

    preset = _clean_str(raw.get("preset")) or default_preset(category)
    if preset not in PRESETS:
        preset = default_preset(category)

    top_n = raw.get("top_n", 10)
    try:
        top_n = int(top_n)
    except (TypeError, ValueError):
        top_n = 10
    top_n = max(1, min(50, top_n))

    include_investments = raw.get("include_investments")
    if include_investments is None:
        # Only the Packages view shows the capital tiles.
        include_investments = category == "Packages"

    return DashboardFilters(
        category=category,
        preset=preset,
        custom_start=_clean_str(raw.get("custom_start")),
        custom_end=_clean_str(raw.get("custom_end")),
        focus_client_id=_clean_str(raw.get("focus_client_id")),
        include_investments=bool(include_investments),
        top_n=top_n,
    )
