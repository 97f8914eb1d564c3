# salesdesk/api/v1/reports.py
from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from salesdesk.api.deps.context import get_current_user, get_snapshot, require_roles
from salesdesk.core import reporting
from salesdesk.core.duplicates import flag_duplicates
from salesdesk.core.roles import UserRole
from salesdesk.core.statuses import SaleStatus
from salesdesk.core.windows import DateWindow, Period, resolve_window
from salesdesk.schemas.records import UserRecord
from salesdesk.schemas.reports import (
    DashboardOut,
    LeaderboardColumn,
    LeaderboardRow,
    PerformanceReportOut,
    ReportFilters,
    ReportPeriod,
    SortDirection,
)
from salesdesk.schemas.snapshot import Snapshot

router = APIRouter(prefix="/reports", tags=["reports"])


def _window(period: Period, start: Optional[date], end: Optional[date]) -> DateWindow:
    if period == Period.CUSTOM and start and end and start > end:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"code": "invalid_range", "message": "start must not be after end."},
        )
    return resolve_window(period, custom_start=start, custom_end=end)


def _period_out(period: Period, window: DateWindow) -> ReportPeriod:
    return ReportPeriod(period=period, first_day=window.first_day, last_day=window.last_day)


def report_filters(
    affiliate_id: Optional[str] = Query(default=None),
    product_id: Optional[str] = Query(default=None),
    sub_id: Optional[str] = Query(default=None, max_length=120),
    statuses: List[SaleStatus] = Query(default=[]),
) -> ReportFilters:
    return ReportFilters(affiliate_id=affiliate_id, product_id=product_id, sub_id_query=sub_id, statuses=statuses)


@router.get("/dashboard", response_model=DashboardOut)
async def dashboard(
    period: Period = Query(default=Period.LAST_30_DAYS),
    start: Optional[date] = Query(default=None),
    end: Optional[date] = Query(default=None),
    filters: ReportFilters = Depends(report_filters),
    snapshot: Snapshot = Depends(get_snapshot),
    user: UserRecord = Depends(get_current_user),
):
    window = _window(period, start, end)
    parts = reporting.build_dashboard(snapshot, user, window, filters)
    return DashboardOut(
        period=_period_out(period, window),
        kpis=parts.kpis,
        top_products=parts.top_products,
        leaderboard=parts.leaderboard,
    )


@router.get("/performance", response_model=PerformanceReportOut)
async def performance(
    period: Period = Query(default=Period.THIS_MONTH),
    start: Optional[date] = Query(default=None),
    end: Optional[date] = Query(default=None),
    sort_by: LeaderboardColumn = Query(default=LeaderboardColumn.TOTAL_REVENUE),
    direction: SortDirection = Query(default=SortDirection.DESC),
    filters: ReportFilters = Depends(report_filters),
    snapshot: Snapshot = Depends(get_snapshot),
    user: UserRecord = Depends(get_current_user),
):
    window = _window(period, start, end)
    parts = reporting.build_report(snapshot, user, window, filters, sort_by=sort_by, direction=direction)
    return PerformanceReportOut(
        period=_period_out(period, window),
        kpis=parts.kpis,
        top_products=parts.top_products,
        status_counts=parts.status_counts,
        leaderboard=parts.leaderboard,
    )


@router.get("/leaderboard", response_model=List[LeaderboardRow])
async def leaderboard(
    period: Period = Query(default=Period.ALL),
    start: Optional[date] = Query(default=None),
    end: Optional[date] = Query(default=None),
    sort_by: LeaderboardColumn = Query(default=LeaderboardColumn.TOTAL_REVENUE),
    direction: SortDirection = Query(default=SortDirection.DESC),
    filters: ReportFilters = Depends(report_filters),
    snapshot: Snapshot = Depends(get_snapshot),
    user: UserRecord = Depends(require_roles(UserRole.ADMIN, UserRole.MANAGER)),
):
    window = _window(period, start, end)
    scoped = reporting.scope_sales(flag_duplicates(snapshot.sales), user, window, filters)
    return reporting.affiliate_leaderboard(scoped, sort_by, direction)
