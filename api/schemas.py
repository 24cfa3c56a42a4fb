from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class DashboardFiltersModel(BaseModel):
    category: str = "Packages"
    preset: Optional[str] = None
    custom_start: Optional[str] = None
    custom_end: Optional[str] = None
    focus_client_id: Optional[str] = None
    include_investments: Optional[bool] = None
    top_n: int = 10


class ProductCreate(BaseModel):
    name: str
    purchase_price: Optional[Any] = None
    selling_price: Optional[Any] = None
    tax_rate: str = "Tax Exemption"
    unit: str = "Pieces"
    description: Optional[str] = None
    active: bool = True
    hsn_sac: Optional[str] = None
    category: str = "Packages"


class InvestmentCreate(BaseModel):
    name: str
    amount: Any
    created_at: Optional[datetime] = None


class InvestmentPageResponse(BaseModel):
    rows: List[Dict[str, Any]] = Field(default_factory=list)
    count: int = 0
    page: int = 1
    page_size: int = 10
    total_pages: int = 1
    total: float = 0.0
    partner_totals: Dict[str, float] = Field(default_factory=dict)


class MetaPresetsResponse(BaseModel):
    presets: List[str]
    categories: List[str]
    defaults: Dict[str, str]
