# Overview: Flask API routes for revenue and spending reports; date presets, pagination, live updates.

from flask import Blueprint, jsonify, request

from app.services import reporting_service, revenue_service
from app.validation import ValidationError
from .common import event_stream, respond


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _range_from_args():
    """?start=&end= wins; otherwise ?period=daily|weekly|monthly (default daily)."""
    start = request.args.get("start")
    end = request.args.get("end")
    if start or end:
        return start, end
    period = request.args.get("period", reporting_service.PERIOD_DAILY)
    return reporting_service.get_date_range(period)


@reports_bp.get("/revenue")
def revenue_report():
    start, end = _range_from_args()
    page = request.args.get("page", 1, type=int)
    page_size = request.args.get("page_size", type=int)
    return respond(reporting_service.get_revenue_report(start, end, page=page, page_size=page_size))


@reports_bp.get("/revenue/<day>")
def daily_revenue(day: str):
    return respond(revenue_service.get_daily_revenue(day))


@reports_bp.get("/spending")
def spending_report():
    start, end = _range_from_args()
    return respond(reporting_service.get_spending_report(start, end))


@reports_bp.get("/stream")
def stream_revenue_report():
    start, end = _range_from_args()
    try:
        return event_stream(
            lambda on_data, on_error: reporting_service.subscribe_reports(start, end, on_data, on_error)
        )
    except ValidationError as exc:
        return jsonify({"error": str(exc)}), 400
