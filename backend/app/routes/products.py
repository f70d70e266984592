# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/app/routes/products.py
"""
Product catalog routes.

Query params on the list route:
- category_id: int (optional) - filter by category
- page: int (optional) - page number (1-indexed). If omitted, returns all items.
- per_page: int (optional) - items per page (default 20, max 100)
"""
from flask import Blueprint, current_app, request

from ..services import products_service
from .common import event_stream, internal_error, respond


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products():
    return respond(products_service.list_products(
        category_id=request.args.get("category_id", type=int),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    ))


@products_bp.post("")
def create_product():
    try:
        payload = request.get_json(silent=True) or {}
        return respond(products_service.create_product(payload), 201)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return internal_error()


@products_bp.get("/<int:product_id>")
def get_product(product_id: int):
    return respond(products_service.get_product(product_id))


@products_bp.put("/<int:product_id>")
def update_product(product_id: int):
    try:
        payload = request.get_json(silent=True) or {}
        return respond(products_service.update_product(product_id, payload))
    except Exception:
        current_app.logger.exception("Failed to update product")
        return internal_error()


@products_bp.delete("/<int:product_id>")
def delete_product(product_id: int):
    try:
        return respond(products_service.delete_product(product_id))
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return internal_error()


@products_bp.post("/<int:product_id>/image")
def upload_product_image(product_id: int):
    """Multipart upload, field name "image"."""
    try:
        return respond(products_service.attach_image(product_id, request.files.get("image")))
    except Exception:
        current_app.logger.exception("Failed to upload product image")
        return internal_error()


@products_bp.get("/stream")
def stream_products():
    return event_stream(products_service.subscribe_products)
