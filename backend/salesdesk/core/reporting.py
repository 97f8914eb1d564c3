# salesdesk/core/reporting.py
"""
Role-scoped reports over the duplicate-annotated sale list.

Everything a role sees is driven by REPORT_RULES: which sales are in scope,
which KPI bundle is built, and what top products are ranked by. Missing
products contribute zero; nothing here raises on well-typed input.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from salesdesk.core.config import settings
from salesdesk.core.duplicates import flag_duplicates
from salesdesk.core.ledger import BONUS_DEBIT_PRODUCT_ID, commission_summary
from salesdesk.core.roles import UserRole
from salesdesk.core.statuses import (
    COMMISSION_APPROVED_STATUSES,
    CUSTOMER_CARE_APPROVED_STATUSES,
    LOGISTICS_APPROVED_STATUSES,
    STAFF_COMMISSION_PENDING_STATUSES,
    SaleStatus,
    is_commission_approved,
    is_commission_pending,
    is_counted,
    is_revenue_bearing,
)
from salesdesk.core.windows import DateWindow
from salesdesk.schemas.records import ZERO, ProductRecord, SaleRecord, UserRecord, money
from salesdesk.schemas.reports import (
    AffiliateKpis,
    CustomerCareKpis,
    LeaderboardColumn,
    LeaderboardRow,
    LogisticsKpis,
    ManagementKpis,
    ReportFilters,
    SortDirection,
    TopProduct,
)
from salesdesk.schemas.snapshot import Snapshot

S = SaleStatus

# Statuses that mean the parcel passed through logistics.
LOGISTICS_HANDLED_STATUSES = frozenset({S.CONFERMATO, S.SPEDITO, S.CONSEGNATO, S.SVINCOLATO, S.NON_RITIRATO, S.GIACENZA})
LOGISTICS_BREAKDOWN_STATUSES = (S.SPEDITO, S.CONSEGNATO, S.SVINCOLATO, S.NON_RITIRATO)

HUNDRED = Decimal("100")
CENT = Decimal("0.01")


def percentage(part: int, whole: int) -> Decimal:
    if whole <= 0:
        return ZERO
    return (Decimal(part) * HUNDRED / Decimal(whole)).quantize(CENT, rounding=ROUND_HALF_UP)


# ---------------------------------------------------------
# Per-sale amounts
# ---------------------------------------------------------
def _product(snapshot: Snapshot, sale: SaleRecord) -> Optional[ProductRecord]:
    return snapshot.product(sale.product_id)


def fulfillment_commission(snapshot: Snapshot, sale: SaleRecord) -> Decimal:
    # per order, not per unit
    p = _product(snapshot, sale)
    return money(p.fulfillment_cost) if p else ZERO


def care_commission(snapshot: Snapshot, sale: SaleRecord) -> Decimal:
    p = _product(snapshot, sale)
    return money(p.customer_care_commission) if p else ZERO


def operational_cost(snapshot: Snapshot, sale: SaleRecord) -> Decimal:
    p = _product(snapshot, sale)
    if p is None:
        return ZERO
    return money(p.cost_of_goods) * sale.units + money(p.shipping_cost)


def platform_fee(snapshot: Snapshot, sale: SaleRecord) -> Decimal:
    p = _product(snapshot, sale)
    if p is None:
        return ZERO
    bundle = p.bundle(sale.bundle_id)
    if bundle is not None and bundle.platform_fee is not None:
        return bundle.platform_fee
    return money(p.platform_fee)


def _counted(sales: Iterable[SaleRecord]) -> List[SaleRecord]:
    return [s for s in sales if is_counted(s.status, is_bonus=s.is_bonus)]


def _delivered(sales: Iterable[SaleRecord]) -> int:
    return sum(1 for s in sales if s.status == S.CONSEGNATO)


# ---------------------------------------------------------
# KPI builders
# ---------------------------------------------------------
def management_kpis(snapshot: Snapshot, viewer: UserRecord, scoped: Sequence[SaleRecord], _everything: Sequence[SaleRecord]) -> ManagementKpis:
    care_user_ids = {u.id for u in snapshot.users_with_role(UserRole.CUSTOMER_CARE)}

    revenue = confirmed = pending = ZERO
    costs = approved_comm = pending_comm = logistics = care = fees = ZERO

    for s in scoped:
        if is_revenue_bearing(s.status, is_bonus=s.is_bonus):
            revenue += money(s.sale_amount)
            if s.status == S.CONSEGNATO:
                confirmed += money(s.sale_amount)
            elif s.status in STAFF_COMMISSION_PENDING_STATUSES:
                pending += money(s.sale_amount)

        if is_commission_approved(s.status, is_bonus=s.is_bonus):
            approved_comm += money(s.commission_amount)
        elif is_commission_pending(s.status, is_bonus=s.is_bonus):
            pending_comm += money(s.commission_amount)

        if s.is_bonus:
            continue

        if s.status in COMMISSION_APPROVED_STATUSES:
            costs += operational_cost(snapshot, s)
        if s.status in LOGISTICS_APPROVED_STATUSES:
            logistics += fulfillment_commission(snapshot, s)
        if s.status in CUSTOMER_CARE_APPROVED_STATUSES and s.last_contacted_by in care_user_ids:
            care += care_commission(snapshot, s)
        if s.status == S.CONSEGNATO:
            fees += platform_fee(snapshot, s)

    counted = _counted(scoped)
    delivered = _delivered(counted)

    return ManagementKpis(
        revenue=revenue,
        confirmed_revenue=confirmed,
        pending_revenue=pending,
        operational_costs=costs,
        approved_affiliate_commissions=approved_comm,
        pending_affiliate_commissions=pending_comm,
        logistics_commissions=logistics,
        customer_care_commissions=care,
        net_profit=revenue - costs - approved_comm - logistics - care,
        platform_fees=fees if viewer.user_role == UserRole.ADMIN else None,
        sale_count=len(counted),
        delivered_count=delivered,
        approval_rate=percentage(delivered, len(counted)),
    )


def affiliate_kpis(_snapshot: Snapshot, viewer: UserRecord, scoped: Sequence[SaleRecord], _everything: Sequence[SaleRecord]) -> AffiliateKpis:
    summary = commission_summary(scoped, viewer.id)
    counted = _counted(scoped)
    delivered = _delivered(counted)
    return AffiliateKpis(
        approved_commissions=summary.approved,
        pending_commissions=summary.pending,
        sale_count=len(counted),
        delivered_count=delivered,
        approval_rate=percentage(delivered, len(counted)),
    )


def logistics_kpis(snapshot: Snapshot, _viewer: UserRecord, scoped: Sequence[SaleRecord], everything: Sequence[SaleRecord]) -> LogisticsKpis:
    handled = [s for s in scoped if not s.is_bonus and s.status in LOGISTICS_HANDLED_STATUSES]

    approved = sum((fulfillment_commission(snapshot, s) for s in handled if s.status in LOGISTICS_APPROVED_STATUSES), ZERO)
    pending = sum(
        (fulfillment_commission(snapshot, s) for s in scoped if not s.is_bonus and s.status in STAFF_COMMISSION_PENDING_STATUSES),
        ZERO,
    )

    breakdown = {st: 0 for st in LOGISTICS_BREAKDOWN_STATUSES}
    for s in handled:
        if s.status in breakdown:
            breakdown[s.status] += 1

    return LogisticsKpis(
        managed_orders=len(handled),
        approved_commissions=approved,
        pending_commissions=pending,
        # whole snapshot, not the window
        orders_to_ship=sum(1 for s in everything if not s.is_bonus and s.status == S.CONFERMATO),
        status_breakdown=breakdown,
    )


def customer_care_kpis(snapshot: Snapshot, viewer: UserRecord, scoped: Sequence[SaleRecord], everything: Sequence[SaleRecord]) -> CustomerCareKpis:
    mine = [s for s in scoped if not s.is_bonus and s.last_contacted_by == viewer.id]

    earned = sum((care_commission(snapshot, s) for s in mine if s.status in CUSTOMER_CARE_APPROVED_STATUSES), ZERO)
    pending = sum((care_commission(snapshot, s) for s in mine if s.status in STAFF_COMMISSION_PENDING_STATUSES), ZERO)

    confirmed = sum(1 for s in mine if s.status == S.CONFERMATO)
    cancelled = sum(1 for s in mine if s.status == S.CANCELLATO)

    return CustomerCareKpis(
        earned_commissions=earned,
        pending_commissions=pending,
        handled_orders=len(mine),
        # whole snapshot, not the window
        orders_to_contact=sum(1 for s in everything if not s.is_bonus and s.status == S.IN_ATTESA),
        conversion_rate=percentage(confirmed, confirmed + cancelled),
    )


# ---------------------------------------------------------
# Rule table
# ---------------------------------------------------------
KpiBuilder = Callable[[Snapshot, UserRecord, Sequence[SaleRecord], Sequence[SaleRecord]], object]
SaleMetric = Callable[[Snapshot, SaleRecord], Decimal]
RankFilter = Callable[[UserRecord, SaleRecord], bool]


@dataclass(frozen=True)
class ReportRule:
    own_sales_only: bool
    can_filter_affiliate: bool
    kpis: KpiBuilder
    top_products_metric: SaleMetric
    leaderboard: bool
    # narrows the scoped sales before top products are ranked
    ranks: RankFilter


def _by_revenue(snapshot: Snapshot, sale: SaleRecord) -> Decimal:
    return money(sale.sale_amount)


def _by_commission(snapshot: Snapshot, sale: SaleRecord) -> Decimal:
    return money(sale.commission_amount)


def _by_count(snapshot: Snapshot, sale: SaleRecord) -> Decimal:
    return Decimal(1)


def _any_sale(viewer: UserRecord, sale: SaleRecord) -> bool:
    return True


def _handled_by_logistics(viewer: UserRecord, sale: SaleRecord) -> bool:
    return sale.status in LOGISTICS_HANDLED_STATUSES


def _contacted_by_viewer(viewer: UserRecord, sale: SaleRecord) -> bool:
    return sale.last_contacted_by == viewer.id


_MANAGEMENT = ReportRule(
    own_sales_only=False,
    can_filter_affiliate=True,
    kpis=management_kpis,
    top_products_metric=_by_revenue,
    leaderboard=True,
    ranks=_any_sale,
)

REPORT_RULES: Mapping[UserRole, ReportRule] = {
    UserRole.ADMIN: _MANAGEMENT,
    UserRole.MANAGER: _MANAGEMENT,
    UserRole.AFFILIATE: ReportRule(
        own_sales_only=True,
        can_filter_affiliate=False,
        kpis=affiliate_kpis,
        top_products_metric=_by_commission,
        leaderboard=False,
        ranks=_any_sale,
    ),
    UserRole.LOGISTICS: ReportRule(
        own_sales_only=False,
        can_filter_affiliate=False,
        kpis=logistics_kpis,
        top_products_metric=_by_count,
        leaderboard=False,
        ranks=_handled_by_logistics,
    ),
    UserRole.CUSTOMER_CARE: ReportRule(
        own_sales_only=False,
        can_filter_affiliate=False,
        kpis=customer_care_kpis,
        top_products_metric=care_commission,
        leaderboard=False,
        ranks=_contacted_by_viewer,
    ),
}


def rule_for(viewer: UserRecord) -> ReportRule:
    return REPORT_RULES[viewer.user_role]


# ---------------------------------------------------------
# Scoping
# ---------------------------------------------------------
def scope_sales(
    sales: Iterable[SaleRecord],
    viewer: UserRecord,
    window: DateWindow,
    filters: Optional[ReportFilters] = None,
    *,
    apply_status_filter: bool = True,
) -> List[SaleRecord]:
    """Sales the viewer's reports are computed over. Test sales never appear."""
    rule = rule_for(viewer)
    f = filters or ReportFilters()
    sub_query = (f.sub_id_query or "").strip().lower()
    wanted_statuses = set(f.statuses) if apply_status_filter else set()

    out: List[SaleRecord] = []
    for s in sales:
        if s.status == S.TEST:
            continue
        if rule.own_sales_only and s.affiliate_id != viewer.id:
            continue
        if not window.contains(s.sale_date):
            continue
        if rule.can_filter_affiliate and f.affiliate_id and s.affiliate_id != f.affiliate_id:
            continue
        if f.product_id and s.product_id != f.product_id:
            continue
        if sub_query and sub_query not in (s.sub_id or "").strip().lower():
            continue
        if wanted_statuses and s.status not in wanted_statuses:
            continue
        out.append(s)
    return out


# ---------------------------------------------------------
# Rankings
# ---------------------------------------------------------
def top_products(
    snapshot: Snapshot,
    sales: Iterable[SaleRecord],
    metric: SaleMetric,
    limit: Optional[int] = None,
) -> List[TopProduct]:
    """
    Group counted sales by product and rank by `metric`, highest first.
    Ties keep first-appearance order.
    """
    rows: Dict[str, TopProduct] = {}
    for s in _counted(sales):
        row = rows.get(s.product_id)
        if row is None:
            product = snapshot.product(s.product_id)
            row = TopProduct(product_id=s.product_id, product_name=product.name if product else s.product_name)
            rows[s.product_id] = row
        row.value += metric(snapshot, s)
        row.count += 1
        row.quantity += s.units

    ranked = sorted(rows.values(), key=lambda r: r.value, reverse=True)
    return ranked if limit is None else ranked[:limit]


def affiliate_leaderboard(
    sales: Iterable[SaleRecord],
    sort_by: LeaderboardColumn = LeaderboardColumn.TOTAL_REVENUE,
    direction: SortDirection = SortDirection.DESC,
) -> List[LeaderboardRow]:
    rows: Dict[str, LeaderboardRow] = {}
    for s in sales:
        # the manager side of a bonus is not an affiliate row
        if s.product_id == BONUS_DEBIT_PRODUCT_ID:
            continue
        row = rows.get(s.affiliate_id)
        if row is None:
            row = LeaderboardRow(affiliate_id=s.affiliate_id, name=s.affiliate_name or s.affiliate_id)
            rows[s.affiliate_id] = row

        if is_revenue_bearing(s.status, is_bonus=s.is_bonus):
            row.total_revenue += money(s.sale_amount)
        if is_counted(s.status, is_bonus=s.is_bonus):
            row.total_sales += 1
        if is_commission_approved(s.status, is_bonus=s.is_bonus):
            row.approved_commissions += money(s.commission_amount)
        elif is_commission_pending(s.status, is_bonus=s.is_bonus):
            row.pending_commissions += money(s.commission_amount)

    if sort_by == LeaderboardColumn.NAME:
        key = lambda r: r.name.lower()  # noqa: E731
    else:
        key = lambda r: getattr(r, sort_by.value)  # noqa: E731

    # sorted() is stable in both directions
    return sorted(rows.values(), key=key, reverse=direction == SortDirection.DESC)


def status_counts(sales: Iterable[SaleRecord]) -> Dict[SaleStatus, int]:
    counts = {st: 0 for st in SaleStatus if st != S.TEST}
    for s in sales:
        if s.is_bonus or s.status not in counts:
            continue
        counts[s.status] += 1
    return counts


# ---------------------------------------------------------
# Report assembly
# ---------------------------------------------------------
@dataclass(frozen=True)
class ReportParts:
    kpis: object
    top_products: List[TopProduct]
    status_counts: Dict[SaleStatus, int]
    leaderboard: Optional[List[LeaderboardRow]]


def build_report(
    snapshot: Snapshot,
    viewer: UserRecord,
    window: DateWindow,
    filters: Optional[ReportFilters] = None,
    *,
    top_limit: Optional[int] = None,
    sort_by: LeaderboardColumn = LeaderboardColumn.TOTAL_REVENUE,
    direction: SortDirection = SortDirection.DESC,
) -> ReportParts:
    rule = rule_for(viewer)
    annotated = flag_duplicates(snapshot.sales)
    scoped = scope_sales(annotated, viewer, window, filters)
    ranked = [s for s in scoped if rule.ranks(viewer, s)]

    return ReportParts(
        kpis=rule.kpis(snapshot, viewer, scoped, annotated),
        top_products=top_products(snapshot, ranked, rule.top_products_metric, top_limit),
        status_counts=status_counts(scope_sales(annotated, viewer, window, filters, apply_status_filter=False)),
        leaderboard=affiliate_leaderboard(scoped, sort_by, direction) if rule.leaderboard else None,
    )


def build_dashboard(snapshot: Snapshot, viewer: UserRecord, window: DateWindow, filters: Optional[ReportFilters] = None) -> ReportParts:
    return build_report(snapshot, viewer, window, filters, top_limit=settings.DASHBOARD_TOP_PRODUCTS)
