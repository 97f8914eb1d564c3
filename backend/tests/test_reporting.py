# tests/test_reporting.py
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from salesdesk.core import reporting
from salesdesk.core.ledger import commission_summary
from salesdesk.core.statuses import SaleStatus
from salesdesk.core.windows import DateWindow
from salesdesk.schemas.reports import LeaderboardColumn, ReportFilters, SortDirection

from factories import (
    ADMIN_ID,
    AFF1_ID,
    AFF2_ID,
    BASE_DATE,
    CARE_ID,
    LOGISTICS_ID,
    MANAGER_ID,
    MemoryStore,
    make_bonus,
    make_sale,
)

D = Decimal
MAY = DateWindow(date(2024, 5, 1), date(2024, 5, 31))


@pytest.fixture()
def store() -> MemoryStore:
    s = MemoryStore()
    s.sales = [
        # delivered, closed by customer care
        make_sale("A", status=SaleStatus.CONSEGNATO, last_contacted_by=CARE_ID),
        # in transit, other affiliate, other product
        make_sale(
            "B",
            affiliate_id=AFF2_ID,
            affiliate_name="Marco Verdi",
            product_id="P2",
            product_name="Siero",
            sale_amount=D("29.90"),
            commission_amount=D("6.00"),
            status=SaleStatus.SPEDITO,
            sub_id="FB-Camp-01",
        ),
        make_sale("C", status=SaleStatus.ANNULLATO),
        make_sale("D", status=SaleStatus.TEST),
        make_bonus("E", amount="25.00"),
        # outside May
        make_sale("F", sale_date=datetime(2024, 4, 20, 10, 0, tzinfo=timezone.utc)),
    ]
    return s


def viewer(store: MemoryStore, user_id: str):
    return store.user(user_id)


def report(store: MemoryStore, user_id: str, filters=None, **kwargs):
    return reporting.build_report(store.snapshot(), viewer(store, user_id), MAY, filters, **kwargs)


def test_percentage_rounds_half_up():
    assert reporting.percentage(1, 3) == D("33.33")
    assert reporting.percentage(2, 3) == D("66.67")
    assert reporting.percentage(1, 8) == D("12.50")
    assert reporting.percentage(5, 0) == D("0")


def test_management_kpis_for_admin(store):
    k = report(store, ADMIN_ID).kpis

    assert k.kind == "management"
    assert k.revenue == D("79.80")
    assert k.confirmed_revenue == D("49.90")
    assert k.pending_revenue == D("29.90")
    # cogs 8 x 1 + shipping 5
    assert k.operational_costs == D("13.00")
    # order commission + bonus
    assert k.approved_affiliate_commissions == D("35.00")
    assert k.pending_affiliate_commissions == D("6.00")
    assert k.logistics_commissions == D("2.00")
    assert k.customer_care_commissions == D("1.50")
    assert k.net_profit == D("28.30")
    assert k.platform_fees == D("3.00")
    assert k.sale_count == 2
    assert k.delivered_count == 1
    assert k.approval_rate == D("50.00")


def test_platform_fees_are_hidden_from_managers(store):
    assert report(store, MANAGER_ID).kpis.platform_fees is None


def test_bundle_platform_fee_overrides_the_product_fee(store):
    store.sales.append(
        make_sale("G", bundle_id="B2", quantity=2, sale_amount=D("89.90"), commission_amount=D("18.00"), status=SaleStatus.CONSEGNATO)
    )

    k = report(store, ADMIN_ID).kpis

    assert k.platform_fees == D("8.00")
    # two units of cogs on the bundle
    assert k.operational_costs == D("13.00") + D("21.00")


def test_read_time_duplicates_drop_out_of_revenue(store):
    store.sales.append(
        make_sale("A2", customer_name="Cliente A", status=SaleStatus.CONSEGNATO, sale_date=BASE_DATE + timedelta(hours=1))
    )

    k = report(store, ADMIN_ID).kpis

    assert k.revenue == D("79.80")
    assert k.sale_count == 2


def test_affiliate_sees_only_their_own_sales(store):
    parts = report(store, AFF1_ID, ReportFilters(affiliate_id=AFF2_ID))
    k = parts.kpis

    assert k.kind == "affiliate"
    assert k.approved_commissions == D("35.00")
    assert k.pending_commissions == D("0")
    assert k.sale_count == 1
    assert k.approval_rate == D("100.00")
    assert parts.leaderboard is None
    assert [p.product_id for p in parts.top_products] == ["P1"]
    assert parts.top_products[0].value == D("10.00")


def test_logistics_kpis(store):
    store.sales.append(make_sale("H", status=SaleStatus.CONFERMATO, sale_date=datetime(2024, 3, 1, tzinfo=timezone.utc)))

    k = report(store, LOGISTICS_ID).kpis

    assert k.kind == "logistics"
    assert k.managed_orders == 2
    assert k.approved_commissions == D("2.00")
    assert k.pending_commissions == D("2.00")
    # counted over everything, not only May
    assert k.orders_to_ship == 1
    assert k.status_breakdown == {
        SaleStatus.SPEDITO: 1,
        SaleStatus.CONSEGNATO: 1,
        SaleStatus.SVINCOLATO: 0,
        SaleStatus.NON_RITIRATO: 0,
    }


def test_customer_care_kpis(store):
    store.sales.extend(
        [
            make_sale("J", status=SaleStatus.CONFERMATO, last_contacted_by=CARE_ID),
            make_sale("K", status=SaleStatus.CONFERMATO, last_contacted_by=CARE_ID),
            make_sale("L", status=SaleStatus.CANCELLATO, last_contacted_by=CARE_ID),
        ]
    )

    k = report(store, CARE_ID).kpis

    assert k.kind == "customer_care"
    assert k.earned_commissions == D("1.50")
    # two Confermato orders still on their way
    assert k.pending_commissions == D("3.00")
    assert k.handled_orders == 4
    # F is In attesa, outside the window but still to call
    assert k.orders_to_contact == 1
    assert k.conversion_rate == D("66.67")


def test_top_products_rank_by_revenue_for_management(store):
    top = report(store, ADMIN_ID).top_products

    assert [(t.product_id, t.value, t.count) for t in top] == [("P1", D("49.90"), 1), ("P2", D("29.90"), 1)]


def test_dashboard_caps_top_products(store, monkeypatch):
    monkeypatch.setattr(reporting.settings, "DASHBOARD_TOP_PRODUCTS", 1)

    parts = reporting.build_dashboard(store.snapshot(), viewer(store, ADMIN_ID), MAY)

    assert [t.product_id for t in parts.top_products] == ["P1"]


def test_status_counts_skip_test_and_keep_zeros(store):
    counts = report(store, ADMIN_ID).status_counts

    assert SaleStatus.TEST not in counts
    assert counts[SaleStatus.CONSEGNATO] == 1
    assert counts[SaleStatus.SPEDITO] == 1
    assert counts[SaleStatus.ANNULLATO] == 1
    assert counts[SaleStatus.IN_ATTESA] == 0
    assert counts[SaleStatus.GIACENZA] == 0


def test_status_filter_narrows_kpis_but_not_status_counts(store):
    parts = report(store, ADMIN_ID, ReportFilters(statuses=[SaleStatus.SPEDITO]))

    assert parts.kpis.revenue == D("29.90")
    assert parts.status_counts[SaleStatus.CONSEGNATO] == 1


def test_product_and_sub_id_filters(store):
    assert report(store, ADMIN_ID, ReportFilters(product_id="P2")).kpis.revenue == D("29.90")
    assert report(store, ADMIN_ID, ReportFilters(sub_id_query="  fb-camp ")).kpis.revenue == D("29.90")
    assert report(store, ADMIN_ID, ReportFilters(affiliate_id=AFF1_ID)).kpis.revenue == D("49.90")


def test_reversed_window_yields_an_empty_report(store):
    parts = reporting.build_report(
        store.snapshot(), viewer(store, ADMIN_ID), DateWindow(date(2024, 5, 31), date(2024, 5, 1))
    )

    assert parts.kpis.revenue == D("0")
    assert parts.kpis.sale_count == 0
    assert parts.top_products == []
    assert parts.leaderboard == []


def test_leaderboard_totals_and_sorting(store):
    scoped = reporting.scope_sales(store.sales, viewer(store, ADMIN_ID), MAY)

    rows = reporting.affiliate_leaderboard(scoped)
    assert [r.affiliate_id for r in rows] == [AFF1_ID, AFF2_ID]
    first = rows[0]
    # the bonus adds commission but no revenue or sale
    assert (first.total_revenue, first.total_sales, first.approved_commissions) == (D("49.90"), 1, D("35.00"))
    assert rows[1].pending_commissions == D("6.00")

    ascending = reporting.affiliate_leaderboard(scoped, LeaderboardColumn.TOTAL_REVENUE, SortDirection.ASC)
    assert [r.affiliate_id for r in ascending] == [AFF2_ID, AFF1_ID]

    by_name = reporting.affiliate_leaderboard(scoped, LeaderboardColumn.NAME, SortDirection.ASC)
    assert [r.name for r in by_name] == ["Giulia Bianchi", "Marco Verdi"]


def test_scope_never_includes_test_orders(store):
    scoped = reporting.scope_sales(store.sales, viewer(store, ADMIN_ID), DateWindow())

    assert "D" not in {s.id for s in scoped}
    assert "F" in {s.id for s in scoped}


def test_leaderboard_commissions_match_the_ledger(store):
    # manager side of a bonus paid to AFF1
    store.sales.append(make_bonus("M", affiliate_id=MANAGER_ID, amount="-25.00", product_id="BONUS-DEBIT"))
    scoped = reporting.scope_sales(store.sales, viewer(store, ADMIN_ID), MAY)

    rows = {r.affiliate_id: r for r in reporting.affiliate_leaderboard(scoped)}

    assert set(rows) == {AFF1_ID, AFF2_ID}
    assert rows[AFF1_ID].approved_commissions == commission_summary(scoped, AFF1_ID).approved


def test_logistics_top_products_count_handled_orders_only():
    store = MemoryStore()
    store.sales = [
        make_sale("A", status=SaleStatus.IN_ATTESA),
        make_sale("B", status=SaleStatus.CONTATTATO),
        make_sale("C", status=SaleStatus.NON_RAGGIUNGIBILE),
        make_sale("D", product_id="P2", product_name="Siero", status=SaleStatus.SPEDITO),
    ]

    parts = reporting.build_report(store.snapshot(), viewer(store, LOGISTICS_ID), DateWindow())

    assert parts.kpis.managed_orders == 1
    assert [(t.product_id, t.value, t.count) for t in parts.top_products] == [("P2", D("1"), 1)]


def test_customer_care_top_products_cover_own_contacts_only():
    store = MemoryStore()
    store.sales = [
        make_sale("A", status=SaleStatus.CONSEGNATO, last_contacted_by=CARE_ID),
        make_sale("B", product_id="P2", product_name="Siero", status=SaleStatus.CONSEGNATO, last_contacted_by=ADMIN_ID),
        make_sale("C", product_id="P2", product_name="Siero", status=SaleStatus.CONFERMATO),
    ]

    parts = reporting.build_report(store.snapshot(), viewer(store, CARE_ID), DateWindow())

    assert parts.kpis.handled_orders == 1
    assert [(t.product_id, t.value) for t in parts.top_products] == [("P1", D("1.50"))]


def test_leaderboard_ties_keep_first_appearance_order():
    store = MemoryStore()
    store.sales = [
        make_sale("A", affiliate_id=AFF2_ID, affiliate_name="Marco Verdi"),
        make_sale("B"),
    ]
    scoped = reporting.scope_sales(store.sales, viewer(store, ADMIN_ID), DateWindow())

    for direction in (SortDirection.ASC, SortDirection.DESC):
        for column in (LeaderboardColumn.TOTAL_REVENUE, LeaderboardColumn.TOTAL_SALES):
            rows = reporting.affiliate_leaderboard(scoped, column, direction)
            assert [r.affiliate_id for r in rows] == [AFF2_ID, AFF1_ID]


def test_top_products_ties_keep_first_appearance_order():
    store = MemoryStore()
    store.sales = [
        make_sale("A", product_id="P2", product_name="Siero"),
        make_sale("B"),
    ]
    admin = viewer(store, ADMIN_ID)

    top = reporting.build_report(store.snapshot(), admin, DateWindow()).top_products
    assert [t.product_id for t in top] == ["P2", "P1"]

    store.sales.reverse()
    top = reporting.build_report(store.snapshot(), admin, DateWindow()).top_products
    assert [t.product_id for t in top] == ["P1", "P2"]
