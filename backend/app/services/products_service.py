# backend/app/services/products_service.py
"""
Products Service

Catalog CRUD plus the stock decrement that follows checkout.

- list_products supports an optional category filter and pagination
- create_product / update_product take a patch already validated against
  PRODUCT_POLICY by the caller (or validate it here when given raw input)
- delete_product removes the product image best-effort
"""
from __future__ import annotations

from typing import Callable

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.datastructures import FileStorage

from ..extensions import db
from ..models import Category, Product
from ..validation import (
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_rules_product,
    validate_payload,
)
from app.time_utils import utcnow
from .concurrency import run_with_retry
from .results import ServiceResult, ok, service_operation
from . import storage_service, subscription_service

PRODUCT_MUTABLE_FIELDS = {"name", "category_id", "description", "price", "stock", "image_path"}

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=PRODUCT_MUTABLE_FIELDS,
    required_on_create={"name", "price"},
)


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _clean_patch(payload: dict, *, partial: bool) -> dict:
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=partial)
    enforce_rules_product(patch)
    if patch.get("category_id") is not None:
        if db.session.get(Category, patch["category_id"]) is None:
            raise ValidationError("Kategori tidak ditemukan")
    return patch


def _products_query(category_id: int | None = None):
    query = db.session.query(Product)
    if category_id is not None:
        query = query.filter(Product.category_id == category_id)
    return query.order_by(Product.name.asc(), Product.id.asc())


@service_operation("Gagal memuat data produk")
def list_products(
    category_id: int | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> ServiceResult:
    """
    Product listing ordered by name, with optional pagination.

    Args:
        category_id: only products in this category
        page: Page number (1-indexed). If None, returns all items.
        per_page: Items per page (default 20, max 100)

    Returns:
        Dict with 'items', 'count', and pagination metadata if paginated.
    """
    base_query = _products_query(category_id)

    if page is None:
        products = base_query.all()
        return ok({
            "items": [p.to_dict() for p in products],
            "count": len(products),
        })

    per_page = min(per_page or 20, 100)  # Default 20, max 100
    page = max(page, 1)

    total = base_query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    products = base_query.offset((page - 1) * per_page).limit(per_page).all()

    return ok({
        "items": [p.to_dict() for p in products],
        "count": len(products),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    })


@service_operation("Gagal memuat produk")
def get_product(product_id: int) -> ServiceResult:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Produk tidak ditemukan")
    return ok(product.to_dict())


@service_operation("Gagal menambahkan produk")
def create_product(payload: dict) -> ServiceResult:
    patch = _clean_patch(payload, partial=False)

    def _op():
        product = Product(created_at=utcnow())
        apply_product_patch(product, patch)
        db.session.add(product)
        db.session.commit()
        return product.to_dict()

    data = run_with_retry(_op)
    subscription_service.notify(subscription_service.COLLECTION_PRODUCTS)
    return ok(data)


@service_operation("Gagal memperbarui produk")
def update_product(product_id: int, payload: dict) -> ServiceResult:
    patch = _clean_patch(payload, partial=True)

    def _op():
        product = db.session.get(Product, product_id)
        if product is None:
            raise NotFoundError("Produk tidak ditemukan")
        apply_product_patch(product, patch)
        product.updated_at = utcnow()
        db.session.commit()
        return product.to_dict()

    data = run_with_retry(_op)
    subscription_service.notify(subscription_service.COLLECTION_PRODUCTS)
    return ok(data)


@service_operation("Gagal menghapus produk")
def delete_product(product_id: int) -> ServiceResult:
    def _op():
        product = db.session.get(Product, product_id)
        if product is None:
            raise NotFoundError("Produk tidak ditemukan")
        image_path = product.image_path
        db.session.delete(product)
        db.session.commit()
        return image_path

    image_path = run_with_retry(_op)
    storage_service.delete_image(image_path, storage_service.PRODUCTS_FOLDER)
    subscription_service.notify(subscription_service.COLLECTION_PRODUCTS)
    return ok()


@service_operation("Gagal menyimpan gambar")
def attach_image(product_id: int, file: FileStorage) -> ServiceResult:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Produk tidak ditemukan")

    new_path = storage_service.save_image(file, storage_service.PRODUCTS_FOLDER, product_id)

    def _op():
        p = db.session.get(Product, product_id)
        if p is None:
            raise NotFoundError("Produk tidak ditemukan")
        old = p.image_path
        p.image_path = new_path
        p.updated_at = utcnow()
        db.session.commit()
        return old, p.to_dict()

    old_path, data = run_with_retry(_op)
    if old_path and old_path != new_path:
        storage_service.delete_image(old_path, storage_service.PRODUCTS_FOLDER)
    subscription_service.notify(subscription_service.COLLECTION_PRODUCTS)
    return ok(data)


def decrement_stock(lines: list[dict]) -> None:
    """
    Take sold quantities off stock, clamped at zero.

    Best-effort: runs after the order is committed and never fails the
    checkout. Lines without a product_id (custom items) are skipped.
    """
    quantities: dict[int, int] = {}
    for line in lines:
        if line.get("product_id") is None:
            continue
        quantities[line["product_id"]] = quantities.get(line["product_id"], 0) + line["quantity"]
    if not quantities:
        return

    def _op():
        now = utcnow()
        for product_id, qty in quantities.items():
            product = db.session.get(Product, product_id)
            if product is None:
                continue
            product.stock = max(0, (product.stock or 0) - qty)
            product.updated_at = now
        db.session.commit()

    try:
        run_with_retry(_op)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Failed to update product stock")
        return
    subscription_service.notify(subscription_service.COLLECTION_PRODUCTS)


def subscribe_products(on_data: Callable[[list], None], on_error: Callable[[str], None] | None = None):
    return subscription_service.subscribe(
        subscription_service.COLLECTION_PRODUCTS,
        lambda: [p.to_dict() for p in _products_query().all()],
        on_data,
        on_error,
    )
