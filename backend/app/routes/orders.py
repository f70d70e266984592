# Overview: Flask API routes for orders and credit payments; parses input and returns JSON responses.

# backend/app/routes/orders.py
"""
Order API Routes

- Checkout (cash, card, QRIS, credit)
- Installments on credit orders
- Order history, debt list and live streams
"""

from flask import Blueprint, current_app, request

from ..services import order_service
from .common import event_stream, internal_error, respond


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _flag(name: str) -> bool:
    return request.args.get(name, "false").lower() == "true"


@orders_bp.post("")
def create_order_route():
    """
    Create an order.

    Request body:
    {
        "items": [{"product_id": 1, "product_name": "Es Teh", "price": 5000, "quantity": 2}],
        "payment_method": "cash",        (cash, card, qris, credit)
        "payment_amount": 10000,
        "customer_name": "Budi",         (required for credit)
        "total_amount": 10000            (optional, checked against items)
    }

    Returns:
        201: the created order
        400: invalid input
    """
    try:
        data = request.get_json(silent=True) or {}
        result = order_service.create_order(
            items=data.get("items"),
            payment_method=data.get("payment_method"),
            payment_amount=data.get("payment_amount"),
            customer_name=data.get("customer_name"),
            total_amount=data.get("total_amount"),
        )
        if not result.success:
            return respond(result)
        return respond(order_service.get_order(result.data), 201)
    except Exception:
        current_app.logger.exception("Failed to create order")
        return internal_error()


@orders_bp.get("")
def list_orders_route():
    return respond(order_service.list_orders())


@orders_bp.get("/recent")
def list_recent_orders_route():
    limit = request.args.get("limit", 10, type=int)
    return respond(order_service.list_recent_orders(limit))


@orders_bp.get("/<int:order_id>")
def get_order_route(order_id: int):
    return respond(order_service.get_order(order_id))


@orders_bp.get("/credit")
def list_credit_orders_route():
    """Debt list. Unsettled only unless ?include_settled=true."""
    return respond(order_service.list_credit_orders(include_settled=_flag("include_settled")))


@orders_bp.post("/<int:order_id>/payments")
def add_payment_route(order_id: int):
    """
    Pay part of a credit order's debt.

    Request body:
    {
        "amount": 50000,
        "payment_method": "cash",   (cash, card, qris)
        "note": "second installment"  (optional)
    }

    Returns:
        201: updated credit info
        400: invalid amount, not a credit order, already settled, exceeds debt
        404: order not found
    """
    try:
        data = request.get_json(silent=True) or {}
        result = order_service.add_payment(
            order_id,
            data.get("amount"),
            data.get("payment_method"),
            data.get("note"),
        )
        return respond(result, 201)
    except Exception:
        current_app.logger.exception("Failed to add payment")
        return internal_error()


@orders_bp.get("/stream")
def stream_orders_route():
    return event_stream(order_service.subscribe_orders)


@orders_bp.get("/credit/stream")
def stream_credit_orders_route():
    include_settled = _flag("include_settled")
    return event_stream(
        lambda on_data, on_error: order_service.subscribe_credit_orders(include_settled, on_data, on_error)
    )
