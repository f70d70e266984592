# Overview: Flask API routes for spendings (expenses) and their receipt photos.

# backend/app/routes/spendings.py

from flask import Blueprint, current_app, request

from ..services import spending_service
from .common import event_stream, internal_error, respond


spendings_bp = Blueprint("spendings", __name__, url_prefix="/api/spendings")


def _fields(data: dict) -> dict:
    fields = {
        "description": data.get("description"),
        "total_amount": data.get("total_amount"),
        "spending_date": data.get("spending_date"),
    }
    # Absent image_path keeps the stored receipt on update; null clears it
    if "image_path" in data:
        fields["image_path"] = data["image_path"]
    return fields


@spendings_bp.post("")
def create_spending_route():
    """
    Record an expense.

    Request body:
    {
        "description": "Gas refill",
        "total_amount": 25000,
        "spending_date": "2024-05-01",
        "image_path": null
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        result = spending_service.create_spending(**_fields(data))
        if not result.success:
            return respond(result)
        return respond(spending_service.get_spending(result.data), 201)
    except Exception:
        current_app.logger.exception("Failed to create spending")
        return internal_error()


@spendings_bp.get("")
def list_spendings_route():
    """All spendings, or ?start=YYYY-MM-DD&end=YYYY-MM-DD for a range."""
    start = request.args.get("start")
    end = request.args.get("end")
    if start or end:
        return respond(spending_service.list_spendings_by_range(start, end))
    return respond(spending_service.list_spendings())


@spendings_bp.get("/<int:spending_id>")
def get_spending_route(spending_id: int):
    return respond(spending_service.get_spending(spending_id))


@spendings_bp.put("/<int:spending_id>")
def update_spending_route(spending_id: int):
    try:
        data = request.get_json(silent=True) or {}
        return respond(spending_service.update_spending(spending_id, **_fields(data)))
    except Exception:
        current_app.logger.exception("Failed to update spending")
        return internal_error()


@spendings_bp.delete("/<int:spending_id>")
def delete_spending_route(spending_id: int):
    try:
        return respond(spending_service.delete_spending(spending_id))
    except Exception:
        current_app.logger.exception("Failed to delete spending")
        return internal_error()


@spendings_bp.post("/<int:spending_id>/receipt")
def upload_receipt_route(spending_id: int):
    """Multipart upload, field name "image"."""
    try:
        return respond(spending_service.attach_receipt(spending_id, request.files.get("image")))
    except Exception:
        current_app.logger.exception("Failed to upload receipt")
        return internal_error()


@spendings_bp.get("/stream")
def stream_spendings_route():
    return event_stream(spending_service.subscribe_spendings)
