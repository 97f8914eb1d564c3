# salesdesk/schemas/sales.py
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from salesdesk.core.statuses import SaleStatus
from salesdesk.schemas.records import SaleRecord


class SaleStatusChange(BaseModel):
    status: SaleStatus
    tracking_code: Optional[str] = Field(default=None, max_length=120)
    note: Optional[str] = Field(default=None, max_length=2000)


class SaleListOut(BaseModel):
    items: List[SaleRecord]
    total: int


class DuplicateSyncOut(BaseModel):
    flagged: int
    sale_ids: List[str]
