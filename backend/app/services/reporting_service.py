# Overview: Service-layer operations for reporting; reads the daily revenue aggregate and spendings.

from __future__ import annotations

import math
from datetime import date, timedelta
from typing import Callable

from flask import current_app

from app.extensions import db
from app.models import DailyRevenue, Spending
from app.validation import ValidationError, coerce_date
from app.time_utils import business_today
from .results import ServiceResult, ok, service_operation
from . import subscription_service

PERIOD_DAILY = "daily"
PERIOD_WEEKLY = "weekly"
PERIOD_MONTHLY = "monthly"


def get_date_range(period: str, today: date | None = None) -> tuple[date, date]:
    """
    Preset report windows ending today.

    - daily: last 7 days
    - weekly: last 28 days
    - monthly: the last 12 calendar months, starting on the 1st
    - anything else: today only
    """
    end = today or business_today()
    if period == PERIOD_DAILY:
        start = end - timedelta(days=6)
    elif period == PERIOD_WEEKLY:
        start = end - timedelta(days=27)
    elif period == PERIOD_MONTHLY:
        month_index = end.year * 12 + (end.month - 1) - 11
        start = date(month_index // 12, month_index % 12 + 1, 1)
    else:
        start = end
    return start, end


def _parse_range(start_date, end_date) -> tuple[date, date]:
    start = coerce_date(start_date, "start_date")
    end = coerce_date(end_date, "end_date")
    if start > end:
        raise ValidationError("Tanggal mulai harus sebelum atau sama dengan tanggal akhir")
    return start, end


def _revenues_in_range(start: date, end: date) -> list[DailyRevenue]:
    return (
        db.session.query(DailyRevenue)
        .filter(DailyRevenue.date >= start, DailyRevenue.date <= end)
        .order_by(DailyRevenue.date.desc())
        .all()
    )


def summarize(revenues: list[dict]) -> dict:
    total_revenue = sum(r["total_revenue"] for r in revenues)
    total_orders = sum(r["total_orders"] for r in revenues)
    return {
        "total_revenue": total_revenue,
        "total_spending": sum(r["total_spending"] for r in revenues),
        "net_revenue": sum(r["net_revenue"] for r in revenues),
        "total_orders": total_orders,
        "average_order_value": total_revenue / total_orders if total_orders > 0 else 0,
    }


@service_operation("Gagal memuat laporan")
def get_revenue_report(start_date, end_date, page: int = 1, page_size: int | None = None) -> ServiceResult:
    """
    Daily revenues in [start_date, end_date], newest first.

    The summary covers the whole range; only daily_revenues is paginated.
    """
    start, end = _parse_range(start_date, end_date)
    page_size = page_size or current_app.config.get("REPORT_PAGE_SIZE", 10)
    if page_size <= 0:
        raise ValidationError("Ukuran halaman harus lebih dari 0")
    page = max(int(page or 1), 1)

    revenues = [r.to_dict() for r in _revenues_in_range(start, end)]
    total_records = len(revenues)
    offset = (page - 1) * page_size

    return ok({
        "start_date": start.isoformat(),
        "end_date": end.isoformat(),
        "daily_revenues": revenues[offset:offset + page_size],
        "summary": summarize(revenues),
        "current_page": page,
        "total_pages": math.ceil(total_records / page_size),
        "total_records": total_records,
    })


@service_operation("Gagal memuat laporan")
def get_spending_report(start_date, end_date) -> ServiceResult:
    start, end = _parse_range(start_date, end_date)
    spendings = (
        db.session.query(Spending)
        .filter(Spending.spending_date >= start, Spending.spending_date <= end)
        .order_by(Spending.spending_date.desc(), Spending.id.desc())
        .all()
    )
    return ok({
        "start_date": start.isoformat(),
        "end_date": end.isoformat(),
        "spendings": [s.to_dict() for s in spendings],
        "total_entries": len(spendings),
        "total_spending": sum(s.total_amount for s in spendings),
    })


def subscribe_reports(
    start_date,
    end_date,
    on_data: Callable[[list], None],
    on_error: Callable[[str], None] | None = None,
):
    """
    Live daily revenues for a range.

    Raises:
        ValidationError: bad range (checked once, before subscribing)
    """
    start, end = _parse_range(start_date, end_date)
    return subscription_service.subscribe(
        subscription_service.COLLECTION_DAILY_REVENUES,
        lambda: [r.to_dict() for r in _revenues_in_range(start, end)],
        on_data,
        on_error,
    )
