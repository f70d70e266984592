# Overview: Pytest coverage for categories and products.

import io

from werkzeug.datastructures import FileStorage

from app.models import Category, Product
from app.services import category_service, products_service, storage_service


class TestCategories:
    def test_create_trims_name(self, db_session):
        result = category_service.create_category("  Makanan  ")
        assert result.success
        assert result.data["name"] == "Makanan"

    def test_parent_must_exist(self, db_session):
        result = category_service.create_category("Snack", parent_id=999)
        assert not result.success
        assert result.error == "Kategori induk tidak ditemukan"

    def test_cannot_parent_itself(self, db_session, category):
        result = category_service.update_category(category.id, "Minuman", parent_id=category.id)
        assert not result.success

    def test_cannot_parent_to_own_descendant(self, db_session):
        root = category_service.create_category("Makanan").data
        child = category_service.create_category("Gorengan", parent_id=root["id"]).data
        grandchild = category_service.create_category("Tahu", parent_id=child["id"]).data

        for descendant in (child, grandchild):
            result = category_service.update_category(root["id"], "Makanan", parent_id=descendant["id"])
            assert not result.success
            assert result.error_kind == "validation"

        db_session.expire_all()
        assert db_session.get(Category, root["id"]).parent_id is None

        moved = category_service.update_category(grandchild["id"], "Tahu", parent_id=root["id"])
        assert moved.success, moved.error

    def test_list_sorted_by_name(self, db_session):
        for name in ("Snack", "Makanan", "Minuman"):
            category_service.create_category(name)
        names = [c["name"] for c in category_service.list_categories().data]
        assert names == ["Makanan", "Minuman", "Snack"]

    def test_delete_uncategorizes_products(self, db_session, category, product):
        assert category_service.delete_category(category.id).success
        db_session.expire_all()
        assert db_session.get(Category, category.id) is None
        assert db_session.get(Product, product.id).category_id is None

    def test_missing(self, db_session):
        assert category_service.get_category(1).error_kind == "not_found"
        assert category_service.delete_category(1).error_kind == "not_found"


class TestProducts:
    def test_create_and_get(self, db_session, category):
        result = products_service.create_product({"name": "Kopi Susu", "price": 18000, "category_id": category.id})
        assert result.success, result.error
        fetched = products_service.get_product(result.data["id"]).data
        assert fetched["price"] == 18000
        assert fetched["stock"] == 0

    def test_required_fields(self, db_session):
        result = products_service.create_product({"name": "Kopi"})
        assert not result.success
        assert "price" in result.error

    def test_unknown_field_rejected(self, db_session):
        result = products_service.create_product({"name": "Kopi", "price": 1, "version_id": 9})
        assert not result.success
        assert "Field not allowed" in result.error

    def test_payload_coerces_integers_and_trims_text(self, db_session):
        result = products_service.create_product({"name": "  Kopi  ", "price": "18000", "stock": " 4 "})
        assert result.success, result.error
        assert result.data["name"] == "Kopi"
        assert result.data["price"] == 18000
        assert result.data["stock"] == 4

        result = products_service.create_product({"name": "Kopi", "price": 1.5})
        assert not result.success
        assert "price" in result.error

    def test_negative_price_rejected(self, db_session, product):
        result = products_service.update_product(product.id, {"price": -1})
        assert not result.success

    def test_unknown_category_rejected(self, db_session):
        result = products_service.create_product({"name": "Kopi", "price": 1, "category_id": 42})
        assert not result.success
        assert result.error == "Kategori tidak ditemukan"

    def test_partial_update(self, db_session, product):
        result = products_service.update_product(product.id, {"stock": 3})
        assert result.success
        assert result.data["stock"] == 3
        assert result.data["name"] == "Es Teh"

    def test_list_filter_and_pagination(self, db_session, category):
        for i in range(5):
            products_service.create_product({"name": f"Item {i}", "price": 1000, "category_id": category.id})
        products_service.create_product({"name": "Lain", "price": 1000})

        assert products_service.list_products(category_id=category.id).data["count"] == 5

        page = products_service.list_products(page=2, per_page=4).data
        assert page["count"] == 2
        assert page["pagination"]["total"] == 6
        assert page["pagination"]["has_prev"] is True
        assert page["pagination"]["has_next"] is False

    def test_image_upload_and_delete(self, db_session, product):
        image = FileStorage(stream=io.BytesIO(b"png"), filename="teh.png", content_type="image/png")
        data = products_service.attach_image(product.id, image).data
        path = storage_service.resolve_image(data["image_path"], storage_service.PRODUCTS_FOLDER)
        assert path.is_file()

        assert products_service.delete_product(product.id).success
        assert not path.exists()
        assert products_service.get_product(product.id).error_kind == "not_found"

    def test_decrement_stock_skips_custom_lines(self, db_session, product):
        products_service.decrement_stock([
            {"product_id": product.id, "quantity": 3},
            {"product_id": None, "quantity": 5},
            {"product_id": product.id, "quantity": 2},
        ])
        db_session.expire_all()
        assert db_session.get(Product, product.id).stock == 5
