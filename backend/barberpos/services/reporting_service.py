# Overview: Service-layer operations for reporting; read-only aggregates over sales, payments, tills and commissions.

"""
Reporting

Pure reads. Periods are inclusive calendar-date ranges [start, end]
(UTC business dates). Revenue of a period = sale totals + payment gross.
Running a report twice over the same data yields the same result.
"""

from __future__ import annotations

from collections import OrderedDict
from datetime import date, timedelta

from sqlalchemy import func

from ..extensions import db
from ..errors import InvalidInput
from ..models import CommissionEntry, Payment, PaymentTender, Provider, Sale, Till, TillEntry
from ..models.registers import ENTRY_EGRESS, ENTRY_INGRESS, TILL_STATUS_CLOSED, VARIANCE_NONE
from barberpos.time_utils import day_end, day_start
from .register_service import minor_variance_limit


LEADERBOARD_LIMIT = 10


def _validate_period(start_date: date, end_date: date) -> tuple:
    if start_date is None or end_date is None:
        raise InvalidInput("start and end dates are required")
    if end_date < start_date:
        raise InvalidInput("end date must not be before start date")
    return day_start(start_date), day_end(end_date)


def percent_change(previous: int, current: int) -> float:
    """
    Period-over-period change in percent, one decimal.

    A zero prior period counts as 100% growth when the current one is
    positive, and 0% when both are zero.
    """
    if previous == 0:
        if current > 0:
            return 100.0
        if current == 0:
            return 0.0
        return -100.0
    return round((current - previous) * 100.0 / abs(previous), 1)


def _share(amount: int, total: int) -> float:
    if not total:
        return 0.0
    return round(amount * 100.0 / total, 1)


def period_summary(tenant_id: int, start_date: date, end_date: date) -> dict:
    start_dt, end_dt = _validate_period(start_date, end_date)

    sales = db.session.query(
        func.count(Sale.id),
        func.coalesce(func.sum(Sale.subtotal_cents), 0),
        func.coalesce(func.sum(Sale.discount_cents), 0),
        func.coalesce(func.sum(Sale.tax_cents), 0),
        func.coalesce(func.sum(Sale.total_cents), 0),
    ).filter(
        Sale.tenant_id == tenant_id,
        Sale.created_at >= start_dt,
        Sale.created_at < end_dt,
    ).one()

    payments = db.session.query(
        func.count(Payment.id),
        func.coalesce(func.sum(Payment.gross_cents), 0),
        func.coalesce(func.sum(Payment.fee_cents), 0),
        func.coalesce(func.sum(Payment.net_cents), 0),
        func.coalesce(func.sum(Payment.tax_cents), 0),
    ).filter(
        Payment.tenant_id == tenant_id,
        Payment.created_at >= start_dt,
        Payment.created_at < end_dt,
    ).one()

    commissions = db.session.query(
        func.count(CommissionEntry.id),
        func.coalesce(func.sum(CommissionEntry.gross_cents), 0),
        func.coalesce(func.sum(CommissionEntry.provider_cents), 0),
        func.coalesce(func.sum(CommissionEntry.business_cents), 0),
        func.coalesce(func.sum(CommissionEntry.tax_withheld_cents), 0),
    ).filter(
        CommissionEntry.tenant_id == tenant_id,
        CommissionEntry.created_at >= start_dt,
        CommissionEntry.created_at < end_dt,
    ).one()

    till_rows = db.session.query(
        TillEntry.entry_type,
        func.coalesce(func.sum(TillEntry.amount_cents), 0),
    ).filter(
        TillEntry.tenant_id == tenant_id,
        TillEntry.occurred_at >= start_dt,
        TillEntry.occurred_at < end_dt,
    ).group_by(TillEntry.entry_type).all()
    till_totals = {entry_type: int(amount) for entry_type, amount in till_rows}

    sales_total = int(sales[4])
    payments_gross = int(payments[1])

    return {
        "start": start_date.isoformat(),
        "end": end_date.isoformat(),
        "revenue_cents": sales_total + payments_gross,
        "sales": {
            "count": int(sales[0]),
            "subtotal_cents": int(sales[1]),
            "discount_cents": int(sales[2]),
            "tax_cents": int(sales[3]),
            "total_cents": sales_total,
        },
        "payments": {
            "count": int(payments[0]),
            "gross_cents": payments_gross,
            "fee_cents": int(payments[2]),
            "net_cents": int(payments[3]),
            "tax_cents": int(payments[4]),
        },
        "commissions": {
            "count": int(commissions[0]),
            "gross_cents": int(commissions[1]),
            "provider_cents": int(commissions[2]),
            "business_cents": int(commissions[3]),
            "tax_withheld_cents": int(commissions[4]),
        },
        "till": {
            "ingress_cents": till_totals.get(ENTRY_INGRESS, 0),
            "egress_cents": till_totals.get(ENTRY_EGRESS, 0),
        },
    }


def provider_leaderboard(
    tenant_id: int,
    start_date: date,
    end_date: date,
    *,
    limit: int = LEADERBOARD_LIMIT,
) -> list[dict]:
    """Commission entries grouped by provider, provider amount descending."""
    start_dt, end_dt = _validate_period(start_date, end_date)

    provider_total = func.coalesce(func.sum(CommissionEntry.provider_cents), 0)
    rows = db.session.query(
        CommissionEntry.provider_id,
        Provider.name,
        provider_total.label("provider_cents"),
        func.coalesce(func.sum(CommissionEntry.gross_cents), 0).label("gross_cents"),
        func.count(CommissionEntry.id).label("entry_count"),
    ).join(
        Provider, Provider.id == CommissionEntry.provider_id
    ).filter(
        CommissionEntry.tenant_id == tenant_id,
        CommissionEntry.created_at >= start_dt,
        CommissionEntry.created_at < end_dt,
    ).group_by(
        CommissionEntry.provider_id, Provider.name
    ).order_by(
        provider_total.desc(), CommissionEntry.provider_id.asc()
    ).limit(max(limit, 1)).all()

    return [
        {
            "rank": rank,
            "provider_id": row.provider_id,
            "provider_name": row.name,
            "provider_cents": int(row.provider_cents),
            "gross_cents": int(row.gross_cents),
            "entry_count": int(row.entry_count),
        }
        for rank, row in enumerate(rows, start=1)
    ]


def tender_breakdown(tenant_id: int, start_date: date, end_date: date) -> dict:
    """Amount per tender method across sales and payment tenders, with shares."""
    start_dt, end_dt = _validate_period(start_date, end_date)

    totals: dict[str, int] = {}

    sale_rows = db.session.query(
        Sale.tender_method,
        func.coalesce(func.sum(Sale.total_cents), 0),
    ).filter(
        Sale.tenant_id == tenant_id,
        Sale.created_at >= start_dt,
        Sale.created_at < end_dt,
    ).group_by(Sale.tender_method).all()
    for method, amount in sale_rows:
        totals[method] = totals.get(method, 0) + int(amount)

    tender_rows = db.session.query(
        PaymentTender.method,
        func.coalesce(func.sum(PaymentTender.amount_cents), 0),
    ).join(
        Payment, Payment.id == PaymentTender.payment_id
    ).filter(
        Payment.tenant_id == tenant_id,
        Payment.created_at >= start_dt,
        Payment.created_at < end_dt,
    ).group_by(PaymentTender.method).all()
    for method, amount in tender_rows:
        totals[method] = totals.get(method, 0) + int(amount)

    grand_total = sum(totals.values())
    methods = sorted(totals.items(), key=lambda kv: (-kv[1], kv[0]))
    return {
        "total_cents": grand_total,
        "methods": [
            {"method": method, "amount_cents": amount, "percentage": _share(amount, grand_total)}
            for method, amount in methods
        ],
    }


def daily_revenue(tenant_id: int, start_date: date, end_date: date) -> list[dict]:
    """One bucket per calendar day in the range, zero-filled."""
    start_dt, end_dt = _validate_period(start_date, end_date)

    buckets: "OrderedDict[date, dict]" = OrderedDict()
    day = start_date
    while day <= end_date:
        buckets[day] = {"sales_cents": 0, "payments_cents": 0}
        day += timedelta(days=1)

    for created_at, total in db.session.query(Sale.created_at, Sale.total_cents).filter(
        Sale.tenant_id == tenant_id,
        Sale.created_at >= start_dt,
        Sale.created_at < end_dt,
    ):
        buckets[created_at.date()]["sales_cents"] += total

    for created_at, gross in db.session.query(Payment.created_at, Payment.gross_cents).filter(
        Payment.tenant_id == tenant_id,
        Payment.created_at >= start_dt,
        Payment.created_at < end_dt,
    ):
        buckets[created_at.date()]["payments_cents"] += gross

    return [
        {
            "date": day.isoformat(),
            "sales_cents": values["sales_cents"],
            "payments_cents": values["payments_cents"],
            "revenue_cents": values["sales_cents"] + values["payments_cents"],
        }
        for day, values in buckets.items()
    ]


def previous_period(start_date: date, end_date: date) -> tuple[date, date]:
    """The equal-length period ending the day before start_date."""
    length = (end_date - start_date).days + 1
    prev_end = start_date - timedelta(days=1)
    return prev_end - timedelta(days=length - 1), prev_end


def financial_report(tenant_id: int, start_date: date, end_date: date) -> dict:
    current = period_summary(tenant_id, start_date, end_date)
    prev_start, prev_end = previous_period(start_date, end_date)
    previous = period_summary(tenant_id, prev_start, prev_end)

    return {
        "period": current,
        "previous_period": previous,
        "growth": {
            "revenue_pct": percent_change(previous["revenue_cents"], current["revenue_cents"]),
            "sales_count_pct": percent_change(previous["sales"]["count"], current["sales"]["count"]),
            "payments_count_pct": percent_change(previous["payments"]["count"], current["payments"]["count"]),
            "commissions_pct": percent_change(
                previous["commissions"]["provider_cents"], current["commissions"]["provider_cents"]
            ),
        },
        "leaderboard": provider_leaderboard(tenant_id, start_date, end_date),
        "tenders": tender_breakdown(tenant_id, start_date, end_date),
        "daily": daily_revenue(tenant_id, start_date, end_date),
    }


def till_variance_report(tenant_id: int, start_date: date, end_date: date) -> dict:
    """Closed tills in the period whose count differed from the expected cash."""
    _validate_period(start_date, end_date)
    limit = minor_variance_limit()

    tills = db.session.query(Till).filter(
        Till.tenant_id == tenant_id,
        Till.status == TILL_STATUS_CLOSED,
        Till.business_date >= start_date,
        Till.business_date <= end_date,
    ).order_by(Till.business_date.asc(), Till.id.asc()).all()

    rows = []
    net_variance = 0
    for till in tills:
        severity = till.variance_severity(limit)
        if severity == VARIANCE_NONE:
            continue
        net_variance += till.variance_cents
        rows.append({
            "till_id": till.id,
            "business_date": till.business_date.isoformat(),
            "shift": till.shift,
            "responsible": till.responsible,
            "expected_cents": till.expected_cents,
            "counted_cents": till.counted_cents,
            "variance_cents": till.variance_cents,
            "severity": severity,
        })

    return {
        "start": start_date.isoformat(),
        "end": end_date.isoformat(),
        "closed_tills": len(tills),
        "tills_with_variance": len(rows),
        "net_variance_cents": net_variance,
        "rows": rows,
    }
