# salesdesk/schemas/reports.py
from __future__ import annotations

import enum
from datetime import date
from decimal import Decimal
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from salesdesk.core.statuses import SaleStatus
from salesdesk.core.windows import Period

ZERO = Decimal("0.00")


class ReportFilters(BaseModel):
    affiliate_id: Optional[str] = None   # ignored unless the viewer is Admin/Manager
    product_id: Optional[str] = None
    sub_id_query: Optional[str] = None   # case-insensitive substring
    statuses: List[SaleStatus] = Field(default_factory=list)


class ReportPeriod(BaseModel):
    period: Period
    first_day: Optional[date] = None
    last_day: Optional[date] = None


# ---------------------------------------------------------
# KPI bundles (one per role family, tagged on `kind`)
# ---------------------------------------------------------
class ManagementKpis(BaseModel):
    kind: Literal["management"] = "management"

    revenue: Decimal = ZERO
    confirmed_revenue: Decimal = ZERO
    pending_revenue: Decimal = ZERO
    operational_costs: Decimal = ZERO
    approved_affiliate_commissions: Decimal = ZERO
    pending_affiliate_commissions: Decimal = ZERO
    logistics_commissions: Decimal = ZERO
    customer_care_commissions: Decimal = ZERO
    net_profit: Decimal = ZERO
    # Admin only; None for managers.
    platform_fees: Optional[Decimal] = None

    sale_count: int = 0
    delivered_count: int = 0
    approval_rate: Decimal = ZERO


class AffiliateKpis(BaseModel):
    kind: Literal["affiliate"] = "affiliate"

    approved_commissions: Decimal = ZERO
    pending_commissions: Decimal = ZERO
    sale_count: int = 0
    delivered_count: int = 0
    approval_rate: Decimal = ZERO


class LogisticsKpis(BaseModel):
    kind: Literal["logistics"] = "logistics"

    managed_orders: int = 0
    approved_commissions: Decimal = ZERO
    pending_commissions: Decimal = ZERO
    orders_to_ship: int = 0
    status_breakdown: Dict[SaleStatus, int] = Field(default_factory=dict)


class CustomerCareKpis(BaseModel):
    kind: Literal["customer_care"] = "customer_care"

    earned_commissions: Decimal = ZERO
    pending_commissions: Decimal = ZERO
    handled_orders: int = 0
    orders_to_contact: int = 0
    conversion_rate: Decimal = ZERO


Kpis = Annotated[
    Union[ManagementKpis, AffiliateKpis, LogisticsKpis, CustomerCareKpis],
    Field(discriminator="kind"),
]


# ---------------------------------------------------------
# Rankings
# ---------------------------------------------------------
class TopProduct(BaseModel):
    product_id: str
    product_name: str
    value: Decimal = ZERO   # the role's ranking metric
    count: int = 0
    quantity: int = 0


class LeaderboardColumn(str, enum.Enum):
    NAME = "name"
    TOTAL_REVENUE = "total_revenue"
    TOTAL_SALES = "total_sales"
    APPROVED_COMMISSIONS = "approved_commissions"
    PENDING_COMMISSIONS = "pending_commissions"


class SortDirection(str, enum.Enum):
    ASC = "asc"
    DESC = "desc"


class LeaderboardRow(BaseModel):
    affiliate_id: str
    name: str
    total_revenue: Decimal = ZERO
    total_sales: int = 0
    approved_commissions: Decimal = ZERO
    pending_commissions: Decimal = ZERO


# ---------------------------------------------------------
# Reports
# ---------------------------------------------------------
class DashboardOut(BaseModel):
    period: ReportPeriod
    kpis: Kpis
    top_products: List[TopProduct]
    leaderboard: Optional[List[LeaderboardRow]] = None


class PerformanceReportOut(BaseModel):
    period: ReportPeriod
    kpis: Kpis
    top_products: List[TopProduct]
    status_counts: Dict[SaleStatus, int]
    leaderboard: Optional[List[LeaderboardRow]] = None
