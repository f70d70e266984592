# Overview: Service-layer operations for the daily revenue aggregate; keeps one summary row per business day.

"""
Daily Revenue Reconciler

WHY: The revenue report reads one row per day instead of scanning orders and
spendings. Two managers write that row:
- order_service adds revenue when money is actually received
- spending_service resyncs total_spending when expenses change

RULES:
- add revenue: create the row lazily on the first revenue of a day, then
  total_revenue += amount, total_orders += 1
- resync spending: total_spending = full sum of that day's spendings
  (recomputed, never incremented); no-op when the day has no row yet
- net_revenue = total_revenue - total_spending after every change

CONCURRENCY: rows are read FOR UPDATE and written with a version check; the
unique date constraint turns a racing first insert into IntegrityError, which
is retried as an update of the winner's row.
"""

from __future__ import annotations

from datetime import date

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import DailyRevenue, Spending
from ..validation import NotFoundError, coerce_amount, coerce_date
from app.time_utils import business_today, utcnow
from .concurrency import UPSERT_RETRYABLE_ERRORS, lock_for_update, run_with_retry
from .results import ServiceResult, ok, service_operation
from . import subscription_service


def sum_spending_for_date(day: date) -> int:
    """Full recompute of the spending total for one day."""
    total = db.session.query(
        func.coalesce(func.sum(Spending.total_amount), 0)
    ).filter(Spending.spending_date == day).scalar()
    return int(total or 0)


def _locked_daily_revenue(day: date) -> DailyRevenue | None:
    return lock_for_update(db.session.query(DailyRevenue).filter_by(date=day)).first()


def apply_revenue(day: date, amount: int) -> DailyRevenue:
    """
    Add a revenue contribution inside the caller's transaction (no commit).

    A day created here starts from the spendings already recorded for it,
    which is zero unless expenses were entered before the first sale.
    """
    daily = _locked_daily_revenue(day)
    now = utcnow()
    if daily is None:
        daily = DailyRevenue(
            date=day,
            total_revenue=amount,
            total_orders=1,
            total_spending=sum_spending_for_date(day),
            created_at=now,
        )
        daily.recompute_net()
        db.session.add(daily)
    else:
        daily.total_revenue = (daily.total_revenue or 0) + amount
        daily.total_orders = (daily.total_orders or 0) + 1
        daily.recompute_net()
        daily.updated_at = now
    db.session.flush()
    return daily


def apply_spending_resync(day: date) -> DailyRevenue | None:
    """
    Recompute total_spending for a day inside the caller's transaction.

    Returns None (and creates nothing) when the day has no aggregate yet.
    """
    daily = _locked_daily_revenue(day)
    if daily is None:
        return None
    daily.total_spending = sum_spending_for_date(day)
    daily.recompute_net()
    daily.updated_at = utcnow()
    db.session.flush()
    return daily


@service_operation("Gagal memperbarui pendapatan harian")
def add_revenue(day, amount) -> ServiceResult:
    """
    Record money received on a day. Defaults to today in BUSINESS_TIMEZONE.

    Returns:
        ServiceResult with the updated aggregate as a dict
    """
    day = coerce_date(day, "date") if day is not None else business_today()
    amount = coerce_amount(amount, "amount")

    def _op():
        daily = apply_revenue(day, amount)
        db.session.commit()
        return daily.to_dict()

    data = run_with_retry(_op, retry_on=UPSERT_RETRYABLE_ERRORS)
    current_app.logger.info("Revenue +%s recorded for %s", amount, day.isoformat())
    subscription_service.notify(subscription_service.COLLECTION_DAILY_REVENUES)
    return ok(data)


@service_operation("Gagal memperbarui total pengeluaran")
def resync_spending(day) -> ServiceResult:
    """
    Recompute a day's spending total from the spendings table.

    Idempotent. Data is the updated aggregate, or None when the day has no
    aggregate (nothing to reconcile).
    """
    day = coerce_date(day, "date")

    def _op():
        daily = apply_spending_resync(day)
        db.session.commit()
        return daily.to_dict() if daily else None

    data = run_with_retry(_op)
    if data is not None:
        subscription_service.notify(subscription_service.COLLECTION_DAILY_REVENUES)
    return ok(data)


@service_operation("Gagal memuat laporan")
def get_daily_revenue(day) -> ServiceResult:
    day = coerce_date(day, "date")
    daily = db.session.query(DailyRevenue).filter_by(date=day).first()
    if daily is None:
        raise NotFoundError("Data laporan tidak ditemukan")
    return ok(daily.to_dict())
