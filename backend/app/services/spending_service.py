# Overview: Service-layer operations for spendings (expenses); keeps the daily aggregate in sync.

"""
Spending Service

WHY: Net revenue per day = money received - money spent. Every spending
change re-derives total_spending for each day it touches.

DESIGN:
- spending_date (the business day) drives reconciliation, not created_at
- The spending write and the aggregate resync commit in ONE transaction, so a
  failure leaves both untouched
- On update, both the previous and the new date are resynced when they differ
- Receipt image removal is best-effort and happens after the commit
"""

from __future__ import annotations

from datetime import date
from typing import Callable, Iterable

from werkzeug.datastructures import FileStorage

from ..extensions import db
from ..models import Spending
from ..validation import NotFoundError, ValidationError, coerce_amount, coerce_date, require_text
from app.time_utils import utcnow
from .concurrency import run_with_retry
from .results import ServiceResult, ok, service_operation
from .revenue_service import apply_spending_resync
from . import storage_service, subscription_service

MAX_DESCRIPTION_LENGTH = 255

# image_path not sent by the client: keep the stored receipt
UNCHANGED = object()


def _clean_fields(description, total_amount, spending_date, image_path=UNCHANGED) -> dict:
    description = require_text(description, "description")
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise ValidationError(f"Deskripsi melebihi {MAX_DESCRIPTION_LENGTH} karakter")
    fields = {
        "description": description,
        "total_amount": coerce_amount(total_amount, "total_amount"),
        "spending_date": coerce_date(spending_date, "spending_date"),
    }
    if image_path is not UNCHANGED:
        fields["image_path"] = (str(image_path).strip() or None) if image_path else None
    return fields


def _resync(*days: date) -> None:
    for day in dict.fromkeys(days):
        apply_spending_resync(day)


def _notify() -> None:
    subscription_service.notify(
        subscription_service.COLLECTION_SPENDINGS,
        subscription_service.COLLECTION_DAILY_REVENUES,
    )


@service_operation("Gagal menambahkan pengeluaran")
def create_spending(*, description, total_amount, spending_date, image_path=None) -> ServiceResult:
    """
    Record an expense and resync its day.

    Returns:
        ServiceResult with the new spending id
    """
    fields = _clean_fields(description, total_amount, spending_date, image_path)

    def _op():
        spending = Spending(created_at=utcnow(), **fields)
        db.session.add(spending)
        db.session.flush()
        _resync(spending.spending_date)
        db.session.commit()
        return spending.id

    spending_id = run_with_retry(_op)
    _notify()
    return ok(spending_id)


@service_operation("Gagal memperbarui pengeluaran")
def update_spending(
    spending_id: int, *, description, total_amount, spending_date, image_path=UNCHANGED
) -> ServiceResult:
    """
    Replace a spending's fields and resync the days it touches.

    Omitting image_path keeps the stored receipt; None clears it. The old
    file is removed only when the receipt was cleared or replaced.
    """
    fields = _clean_fields(description, total_amount, spending_date, image_path)

    def _op():
        spending = db.session.get(Spending, spending_id)
        if spending is None:
            raise NotFoundError("Pengeluaran tidak ditemukan")
        previous_date = spending.spending_date
        previous_image = spending.image_path
        for key, value in fields.items():
            setattr(spending, key, value)
        spending.updated_at = utcnow()
        db.session.flush()
        _resync(previous_date, spending.spending_date)
        db.session.commit()
        return previous_image, spending.to_dict()

    previous_image, data = run_with_retry(_op)
    if "image_path" in fields and previous_image and previous_image != data["image_path"]:
        storage_service.delete_image(previous_image, storage_service.RECEIPTS_FOLDER)
    _notify()
    return ok(data)


@service_operation("Gagal menghapus pengeluaran")
def delete_spending(spending_id: int) -> ServiceResult:
    def _op():
        spending = db.session.get(Spending, spending_id)
        if spending is None:
            raise NotFoundError("Pengeluaran tidak ditemukan")
        day = spending.spending_date
        image_path = spending.image_path
        db.session.delete(spending)
        db.session.flush()
        _resync(day)
        db.session.commit()
        return image_path

    image_path = run_with_retry(_op)
    storage_service.delete_image(image_path, storage_service.RECEIPTS_FOLDER)
    _notify()
    return ok()


@service_operation("Gagal menyimpan gambar")
def attach_receipt(spending_id: int, file: FileStorage) -> ServiceResult:
    """Store a receipt photo for a spending; the previous photo is removed."""
    if db.session.get(Spending, spending_id) is None:
        raise NotFoundError("Pengeluaran tidak ditemukan")

    new_path = storage_service.save_image(file, storage_service.RECEIPTS_FOLDER, spending_id)

    def _op():
        spending = db.session.get(Spending, spending_id)
        if spending is None:
            raise NotFoundError("Pengeluaran tidak ditemukan")
        old = spending.image_path
        spending.image_path = new_path
        spending.updated_at = utcnow()
        db.session.commit()
        return old, spending.to_dict()

    old_path, data = run_with_retry(_op)
    if old_path and old_path != new_path:
        storage_service.delete_image(old_path, storage_service.RECEIPTS_FOLDER)
    subscription_service.notify(subscription_service.COLLECTION_SPENDINGS)
    return ok(data)


# =============================================================================
# QUERIES
# =============================================================================

def _spendings_query(start: date | None = None, end: date | None = None):
    query = db.session.query(Spending)
    if start is not None:
        query = query.filter(Spending.spending_date >= start)
    if end is not None:
        query = query.filter(Spending.spending_date <= end)
    return query.order_by(Spending.spending_date.desc(), Spending.id.desc())


def calculate_total(spendings: Iterable[dict]) -> int:
    return sum(int(s["total_amount"]) for s in spendings)


@service_operation("Gagal memuat pengeluaran")
def get_spending(spending_id: int) -> ServiceResult:
    spending = db.session.get(Spending, spending_id)
    if spending is None:
        raise NotFoundError("Pengeluaran tidak ditemukan")
    return ok(spending.to_dict())


@service_operation("Gagal memuat data pengeluaran")
def list_spendings() -> ServiceResult:
    return ok([s.to_dict() for s in _spendings_query().all()])


@service_operation("Gagal memuat data pengeluaran")
def list_spendings_by_range(start_date, end_date) -> ServiceResult:
    start = coerce_date(start_date, "start_date")
    end = coerce_date(end_date, "end_date")
    if start > end:
        raise ValidationError("Tanggal mulai harus sebelum atau sama dengan tanggal akhir")
    return ok([s.to_dict() for s in _spendings_query(start, end).all()])


def subscribe_spendings(on_data: Callable[[list], None], on_error: Callable[[str], None] | None = None):
    return subscription_service.subscribe(
        subscription_service.COLLECTION_SPENDINGS,
        lambda: [s.to_dict() for s in _spendings_query().all()],
        on_data,
        on_error,
    )
