# Overview: Service-layer operations for product categories.

from __future__ import annotations

from typing import Callable

from ..extensions import db
from ..models import Category, Product
from ..validation import NotFoundError, ValidationError, coerce_int, require_text
from app.time_utils import utcnow
from .concurrency import run_with_retry
from .results import ServiceResult, ok, service_operation
from . import subscription_service

MAX_NAME_LENGTH = 120


def _clean_name(name) -> str:
    name = require_text(name, "name")
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError(f"Nama melebihi {MAX_NAME_LENGTH} karakter")
    return name


def _resolve_parent(parent_id, category_id: int | None = None) -> int | None:
    if parent_id in (None, ""):
        return None
    parent_id = coerce_int(parent_id, "parent_id")
    if category_id is not None and parent_id == category_id:
        raise ValidationError("Kategori tidak bisa menjadi induk dirinya sendiri")
    parent = db.session.get(Category, parent_id)
    if parent is None:
        raise ValidationError("Kategori induk tidak ditemukan")
    if category_id is not None:
        # Walk up from the new parent; meeting category_id would close a loop.
        seen = set()
        ancestor = parent
        while ancestor is not None and ancestor.id not in seen:
            if ancestor.parent_id == category_id:
                raise ValidationError("Kategori induk tidak boleh merupakan sub-kategori dari kategori ini")
            seen.add(ancestor.id)
            ancestor = ancestor.parent
    return parent_id


def _categories_query():
    return db.session.query(Category).order_by(Category.name.asc(), Category.id.asc())


@service_operation("Gagal menambahkan kategori")
def create_category(name, parent_id=None) -> ServiceResult:
    name = _clean_name(name)
    parent_id = _resolve_parent(parent_id)

    def _op():
        category = Category(name=name, parent_id=parent_id, created_at=utcnow())
        db.session.add(category)
        db.session.commit()
        return category.to_dict()

    data = run_with_retry(_op)
    subscription_service.notify(subscription_service.COLLECTION_CATEGORIES)
    return ok(data)


@service_operation("Gagal memperbarui kategori")
def update_category(category_id: int, name, parent_id=None) -> ServiceResult:
    name = _clean_name(name)
    parent_id = _resolve_parent(parent_id, category_id)

    def _op():
        category = db.session.get(Category, category_id)
        if category is None:
            raise NotFoundError("Kategori tidak ditemukan")
        category.name = name
        category.parent_id = parent_id
        category.updated_at = utcnow()
        db.session.commit()
        return category.to_dict()

    data = run_with_retry(_op)
    subscription_service.notify(subscription_service.COLLECTION_CATEGORIES)
    return ok(data)


@service_operation("Gagal menghapus kategori")
def delete_category(category_id: int) -> ServiceResult:
    """Delete a category. Its products and sub-categories become uncategorized."""
    def _op():
        category = db.session.get(Category, category_id)
        if category is None:
            raise NotFoundError("Kategori tidak ditemukan")
        db.session.query(Product).filter_by(category_id=category_id).update(
            {"category_id": None}, synchronize_session="fetch"
        )
        db.session.query(Category).filter_by(parent_id=category_id).update(
            {"parent_id": None}, synchronize_session="fetch"
        )
        db.session.delete(category)
        db.session.commit()

    run_with_retry(_op)
    subscription_service.notify(
        subscription_service.COLLECTION_CATEGORIES,
        subscription_service.COLLECTION_PRODUCTS,
    )
    return ok()


@service_operation("Gagal memuat kategori")
def get_category(category_id: int) -> ServiceResult:
    category = db.session.get(Category, category_id)
    if category is None:
        raise NotFoundError("Kategori tidak ditemukan")
    return ok(category.to_dict())


@service_operation("Gagal memuat data kategori")
def list_categories() -> ServiceResult:
    return ok([c.to_dict() for c in _categories_query().all()])


def subscribe_categories(on_data: Callable[[list], None], on_error: Callable[[str], None] | None = None):
    return subscription_service.subscribe(
        subscription_service.COLLECTION_CATEGORIES,
        lambda: [c.to_dict() for c in _categories_query().all()],
        on_data,
        on_error,
    )
