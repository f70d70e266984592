# Overview: Service-layer operations for orders and credit ledgers; encapsulates business logic and database work.

"""
Order Service

WHY: Checkout turns a cart into an order. Credit ("utang") orders let a
customer take goods now and pay over time, so they carry a ledger of
installments.

DESIGN PRINCIPLES:
- Lines snapshot product name and price; totals are derived from lines
- Revenue is recognised when money is received: the full total for cash,
  card and QRIS; only the tendered part for credit at checkout, then each
  installment on the day it is paid
- The order/ledger write is the source of truth. Stock and the daily
  revenue aggregate are updated afterwards, best-effort
- Installments are serialized per order (row lock + version check + retry)
"""

from __future__ import annotations

import uuid
from typing import Callable, Iterable

from flask import current_app
from sqlalchemy import or_

from ..extensions import db
from ..models import CreditLedger, CreditPayment, Order, OrderItem
from ..money import format_idr
from ..validation import NotFoundError, ValidationError, coerce_amount, coerce_int
from app.time_utils import business_today, utcnow
from .concurrency import lock_for_update, run_with_retry
from .results import ServiceResult, ok, service_operation
from . import products_service, revenue_service, subscription_service


# =============================================================================
# PAYMENT METHODS (CONSTANTS)
# =============================================================================

PAYMENT_CASH = "cash"
PAYMENT_CARD = "card"
PAYMENT_QRIS = "qris"
PAYMENT_CREDIT = "credit"

VALID_PAYMENT_METHODS = [PAYMENT_CASH, PAYMENT_CARD, PAYMENT_QRIS, PAYMENT_CREDIT]

# Installments on a credit order must be real money
CREDIT_PAYMENT_METHODS = [PAYMENT_CASH, PAYMENT_CARD, PAYMENT_QRIS]

INITIAL_PAYMENT_METHOD = PAYMENT_CASH
INITIAL_PAYMENT_NOTE = "Initial payment"


# =============================================================================
# CALCULATIONS
# =============================================================================

def calculate_total(items: Iterable[dict]) -> int:
    """Sum of price * quantity over cart items."""
    return sum(int(item["price"]) * int(item["quantity"]) for item in items)


def calculate_change(payment_amount: int, total_amount: int) -> int:
    return max(0, payment_amount - total_amount)


def revenue_amount_for(payment_method: str, total_amount: int, payment_amount: int) -> int:
    """Portion of a new order that counts as revenue today."""
    if payment_method == PAYMENT_CREDIT:
        return payment_amount
    return total_amount


def _normalize_items(items) -> list[dict]:
    if not isinstance(items, list) or not items:
        raise ValidationError("Pesanan harus berisi minimal satu item")

    lines = []
    for index, raw in enumerate(items, start=1):
        if not isinstance(raw, dict):
            raise ValidationError(f"Item {index} tidak valid")
        name = str(raw.get("product_name") or "").strip()
        if not name:
            raise ValidationError(f"Item {index}: nama produk wajib diisi")
        price = coerce_amount(raw.get("price"), f"Item {index}: price", allow_zero=True)
        quantity = coerce_int(raw.get("quantity"), f"Item {index}: quantity")
        if quantity <= 0:
            raise ValidationError(f"Item {index}: jumlah harus lebih dari 0")
        product_id = raw.get("product_id")
        if product_id is not None:
            product_id = coerce_int(product_id, f"Item {index}: product_id")
        lines.append({
            "product_id": product_id,
            "product_name": name,
            "price": price,
            "quantity": quantity,
            "subtotal": price * quantity,
            "image_path": raw.get("image_path") or None,
        })
    return lines


# =============================================================================
# ORDER CREATION
# =============================================================================

@service_operation("Gagal membuat pesanan")
def create_order(
    *,
    items: list[dict],
    payment_method: str,
    payment_amount,
    customer_name: str | None = None,
    total_amount=None,
) -> ServiceResult:
    """
    Create an order from cart items.

    Args:
        items: [{"product_id", "product_name", "price", "quantity", "image_path"}]
        payment_method: cash, card, qris or credit
        payment_amount: amount tendered (may be 0 for credit)
        customer_name: required for credit orders
        total_amount: optional client-side total; must match the lines

    Returns:
        ServiceResult with the new order id
    """
    lines = _normalize_items(items)
    total = sum(line["subtotal"] for line in lines)
    if total_amount is not None and coerce_int(total_amount, "total_amount") != total:
        raise ValidationError("Total pesanan tidak sesuai dengan item")

    if payment_method not in VALID_PAYMENT_METHODS:
        raise ValidationError(f"Metode pembayaran tidak valid: {payment_method}. Pilihan: {VALID_PAYMENT_METHODS}")

    tendered = coerce_amount(payment_amount, "payment_amount", allow_zero=True)
    customer = (customer_name or "").strip()

    if payment_method == PAYMENT_CREDIT:
        if not customer:
            raise ValidationError("Nama pelanggan wajib diisi untuk pesanan kredit")
        if tendered > total:
            raise ValidationError(f"Uang muka tidak boleh melebihi total pesanan ({format_idr(total)})")
        change = 0
    else:
        if tendered < total:
            raise ValidationError(f"Jumlah pembayaran kurang dari total pesanan ({format_idr(total)})")
        change = calculate_change(tendered, total)

    def _op():
        now = utcnow()
        order = Order(
            total_amount=total,
            payment_method=payment_method,
            payment_amount=tendered,
            change_amount=change,
            customer_name=customer,
            created_at=now,
        )
        for position, line in enumerate(lines):
            order.items.append(OrderItem(
                position=position,
                product_id=line["product_id"],
                product_name=line["product_name"],
                image_path=line["image_path"],
                unit_price=line["price"],
                quantity=line["quantity"],
                subtotal=line["subtotal"],
            ))

        if payment_method == PAYMENT_CREDIT:
            order.credit_ledger = _open_credit_ledger(total, tendered, now)

        db.session.add(order)
        db.session.commit()
        return order.id

    order_id = run_with_retry(_op)
    current_app.logger.info("Order %s created (%s, total %s)", order_id, payment_method, total)

    products_service.decrement_stock(lines)

    revenue = revenue_amount_for(payment_method, total, tendered)
    if revenue > 0:
        _record_revenue(revenue)

    subscription_service.notify(subscription_service.COLLECTION_ORDERS)
    return ok(order_id)


def _open_credit_ledger(total: int, down_payment: int, now) -> CreditLedger:
    ledger = CreditLedger(total_paid=0, remaining_debt=total, is_settled=total <= 0)
    if down_payment > 0:
        ledger.payments.append(CreditPayment(
            payment_id=_new_payment_id(),
            amount=down_payment,
            payment_method=INITIAL_PAYMENT_METHOD,
            note=INITIAL_PAYMENT_NOTE,
            paid_at=now,
        ))
        ledger.apply_payment(down_payment, total, now)
    return ledger


def _new_payment_id() -> str:
    return f"payment_{uuid.uuid4().hex}"


def _record_revenue(amount: int) -> None:
    """Best-effort: the order is already committed, a stale aggregate is acceptable."""
    result = revenue_service.add_revenue(business_today(), amount)
    if not result.success:
        current_app.logger.warning("Daily revenue not updated (+%s): %s", amount, result.error)


# =============================================================================
# CREDIT PAYMENTS
# =============================================================================

@service_operation("Gagal menambahkan pembayaran")
def add_payment(order_id: int, amount, payment_method: str, note: str | None = None) -> ServiceResult:
    """
    Record an installment against a credit order.

    The whole read-validate-write runs under run_with_retry: if another
    payment commits first, this one re-reads the ledger and validates
    against the new remaining debt.

    Returns:
        ServiceResult with the updated credit info
    """
    amount = coerce_amount(amount, "amount")
    if payment_method not in CREDIT_PAYMENT_METHODS:
        raise ValidationError(f"Metode pembayaran tidak valid: {payment_method}. Pilihan: {CREDIT_PAYMENT_METHODS}")
    note = (note or "").strip()

    def _op():
        order = db.session.get(Order, order_id)
        if order is None:
            raise NotFoundError("Pesanan tidak ditemukan")
        if order.payment_method != PAYMENT_CREDIT:
            raise ValidationError("Pesanan ini bukan pesanan kredit")

        ledger = lock_for_update(
            db.session.query(CreditLedger).filter_by(order_id=order.id)
        ).populate_existing().first()
        if ledger is None:
            raise ValidationError("Data kredit tidak ditemukan")
        if ledger.is_settled:
            raise ValidationError("Utang sudah lunas")
        if amount > ledger.remaining_debt:
            raise ValidationError(
                f"Jumlah pembayaran melebihi sisa utang ({format_idr(ledger.remaining_debt)})"
            )

        now = utcnow()
        ledger.payments.append(CreditPayment(
            payment_id=_new_payment_id(),
            amount=amount,
            payment_method=payment_method,
            note=note,
            paid_at=now,
        ))
        ledger.apply_payment(amount, order.total_amount, now)
        db.session.commit()
        return ledger.to_dict()

    credit_info = run_with_retry(_op)
    current_app.logger.info("Payment %s recorded on order %s", amount, order_id)

    # Attributed to the day the money arrives, not the order's day.
    _record_revenue(amount)

    subscription_service.notify(subscription_service.COLLECTION_ORDERS)
    return ok(credit_info)


# =============================================================================
# QUERIES
# =============================================================================

def _orders_query():
    return db.session.query(Order).order_by(Order.created_at.desc(), Order.id.desc())


def _credit_orders_query(include_settled: bool):
    query = (
        db.session.query(Order)
        .outerjoin(CreditLedger, CreditLedger.order_id == Order.id)
        .filter(Order.payment_method == PAYMENT_CREDIT)
    )
    if not include_settled:
        query = query.filter(or_(CreditLedger.id.is_(None), CreditLedger.is_settled.is_(False)))
    return query.order_by(Order.created_at.desc(), Order.id.desc())


@service_operation("Gagal memuat pesanan")
def get_order(order_id: int) -> ServiceResult:
    order = db.session.get(Order, order_id)
    if order is None:
        raise NotFoundError("Pesanan tidak ditemukan")
    return ok(order.to_dict())


@service_operation("Gagal memuat data pesanan")
def list_orders() -> ServiceResult:
    return ok([o.to_dict() for o in _orders_query().all()])


@service_operation("Gagal memuat data pesanan")
def list_recent_orders(limit: int = 10) -> ServiceResult:
    limit = max(1, min(int(limit), 100))
    return ok([o.to_dict() for o in _orders_query().limit(limit).all()])


@service_operation("Gagal memuat data utang")
def list_credit_orders(include_settled: bool = False) -> ServiceResult:
    """Credit orders, newest first; unsettled only unless include_settled."""
    return ok([o.to_dict() for o in _credit_orders_query(include_settled).all()])


def subscribe_orders(on_data: Callable[[list], None], on_error: Callable[[str], None] | None = None):
    return subscription_service.subscribe(
        subscription_service.COLLECTION_ORDERS,
        lambda: [o.to_dict() for o in _orders_query().all()],
        on_data,
        on_error,
    )


def subscribe_credit_orders(
    include_settled: bool,
    on_data: Callable[[list], None],
    on_error: Callable[[str], None] | None = None,
):
    return subscription_service.subscribe(
        subscription_service.COLLECTION_ORDERS,
        lambda: [o.to_dict() for o in _credit_orders_query(include_settled).all()],
        on_data,
        on_error,
    )
