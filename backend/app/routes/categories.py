# Overview: Flask API routes for product categories.

from flask import Blueprint, current_app, request

from ..services import category_service
from .common import event_stream, internal_error, respond


categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.get("")
def list_categories_route():
    return respond(category_service.list_categories())


@categories_bp.post("")
def create_category_route():
    try:
        data = request.get_json(silent=True) or {}
        return respond(category_service.create_category(data.get("name"), data.get("parent_id")), 201)
    except Exception:
        current_app.logger.exception("Failed to create category")
        return internal_error()


@categories_bp.get("/<int:category_id>")
def get_category_route(category_id: int):
    return respond(category_service.get_category(category_id))


@categories_bp.put("/<int:category_id>")
def update_category_route(category_id: int):
    try:
        data = request.get_json(silent=True) or {}
        return respond(category_service.update_category(category_id, data.get("name"), data.get("parent_id")))
    except Exception:
        current_app.logger.exception("Failed to update category")
        return internal_error()


@categories_bp.delete("/<int:category_id>")
def delete_category_route(category_id: int):
    try:
        return respond(category_service.delete_category(category_id))
    except Exception:
        current_app.logger.exception("Failed to delete category")
        return internal_error()


@categories_bp.get("/stream")
def stream_categories_route():
    return event_stream(category_service.subscribe_categories)
