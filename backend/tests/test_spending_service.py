# Overview: Pytest coverage for spendings and their effect on the daily aggregate.

import io
from datetime import date
from unittest import mock

from sqlalchemy.exc import OperationalError
from werkzeug.datastructures import FileStorage

from app.extensions import db
from app.models import DailyRevenue, Spending
from app.services import revenue_service, spending_service, storage_service
from conftest import make_spending

JAN_1 = date(2024, 1, 1)
JAN_2 = date(2024, 1, 2)


def _aggregate(day):
    db.session.expire_all()
    return db.session.query(DailyRevenue).filter_by(date=day).first()


def _image(name="nota.jpg"):
    return FileStorage(stream=io.BytesIO(b"\xff\xd8\xff fake jpeg"), filename=name, content_type="image/jpeg")


class TestCreateSpending:
    def test_create_resyncs_existing_aggregate(self, db_session):
        revenue_service.add_revenue(JAN_1, 100000)
        make_spending(JAN_1, 30000)

        daily = _aggregate(JAN_1)
        assert daily.total_spending == 30000
        assert daily.net_revenue == 70000

    def test_create_without_aggregate_creates_none(self, db_session):
        spending_id = make_spending(JAN_1, 30000)
        assert db_session.get(Spending, spending_id) is not None
        assert _aggregate(JAN_1) is None

    def test_validation(self, db_session):
        result = spending_service.create_spending(description=" ", total_amount=1000, spending_date=JAN_1)
        assert not result.success
        assert "description" in result.error

        result = spending_service.create_spending(description="Gas", total_amount=0, spending_date=JAN_1)
        assert not result.success

        result = spending_service.create_spending(description="Gas", total_amount=1000, spending_date="01/01/2024")
        assert not result.success
        assert "YYYY-MM-DD" in result.error

    def test_store_failure_rolls_back_spending_and_aggregate(self, db_session):
        """The spending row and the resync commit together or not at all."""
        revenue_service.add_revenue(JAN_1, 100000)

        with mock.patch.object(
            spending_service, "apply_spending_resync",
            side_effect=OperationalError("UPDATE", {}, Exception("database is locked")),
        ):
            result = spending_service.create_spending(description="Gas", total_amount=5000, spending_date=JAN_1)

        assert not result.success
        assert result.error_kind == "store"
        assert db_session.query(Spending).count() == 0
        assert _aggregate(JAN_1).total_spending == 0


class TestUpdateSpending:
    def test_edit_moves_date(self, db_session):
        """Moving a spending from Jan 1 to Jan 2 moves its amount between aggregates."""
        revenue_service.add_revenue(JAN_1, 100000)
        revenue_service.add_revenue(JAN_2, 100000)
        spending_id = make_spending(JAN_1, 5000)
        assert _aggregate(JAN_1).total_spending == 5000

        result = spending_service.update_spending(
            spending_id, description="Gas LPG", total_amount=5000, spending_date=JAN_2
        )
        assert result.success, result.error
        assert result.data["spending_date"] == "2024-01-02"

        assert _aggregate(JAN_1).total_spending == 0
        assert _aggregate(JAN_1).net_revenue == 100000
        assert _aggregate(JAN_2).total_spending == 5000
        assert _aggregate(JAN_2).net_revenue == 95000

    def test_edit_to_date_without_aggregate_creates_none(self, db_session):
        revenue_service.add_revenue(JAN_1, 100000)
        spending_id = make_spending(JAN_1, 5000)

        spending_service.update_spending(spending_id, description="Gas", total_amount=5000, spending_date=JAN_2)

        assert _aggregate(JAN_1).total_spending == 0
        assert _aggregate(JAN_2) is None

    def test_edit_without_image_path_keeps_receipt(self, db_session):
        spending_id = make_spending(JAN_1, 5000)
        stored = spending_service.attach_receipt(spending_id, _image()).data["image_path"]
        path = storage_service.resolve_image(stored, storage_service.RECEIPTS_FOLDER)

        result = spending_service.update_spending(
            spending_id, description="Gas refill", total_amount=5000, spending_date="2024-01-01"
        )
        assert result.success, result.error
        assert result.data["image_path"] == stored
        assert path.is_file()

    def test_edit_with_null_image_path_clears_receipt(self, db_session):
        spending_id = make_spending(JAN_1, 5000)
        stored = spending_service.attach_receipt(spending_id, _image()).data["image_path"]
        path = storage_service.resolve_image(stored, storage_service.RECEIPTS_FOLDER)

        result = spending_service.update_spending(
            spending_id, description="Gas", total_amount=5000, spending_date=JAN_1, image_path=None
        )
        assert result.data["image_path"] is None
        assert not path.exists()

    def test_update_missing(self, db_session):
        result = spending_service.update_spending(404, description="x", total_amount=1, spending_date=JAN_1)
        assert result.error_kind == "not_found"


class TestDeleteSpending:
    def test_delete_resyncs(self, db_session):
        revenue_service.add_revenue(JAN_1, 100000)
        keep = make_spending(JAN_1, 10000)
        gone = make_spending(JAN_1, 5000)

        assert spending_service.delete_spending(gone).success
        assert db_session.get(Spending, keep) is not None
        assert _aggregate(JAN_1).total_spending == 10000

    def test_delete_missing(self, db_session):
        result = spending_service.delete_spending(404)
        assert not result.success
        assert result.error == "Pengeluaran tidak ditemukan"

    def test_delete_removes_receipt(self, db_session):
        spending_id = make_spending(JAN_1, 5000)
        data = spending_service.attach_receipt(spending_id, _image()).data
        path = storage_service.resolve_image(data["image_path"], storage_service.RECEIPTS_FOLDER)
        assert path.is_file()

        assert spending_service.delete_spending(spending_id).success
        assert not path.exists()


class TestReceipts:
    def test_replacing_receipt_deletes_previous(self, db_session):
        spending_id = make_spending(JAN_1, 5000)
        first = spending_service.attach_receipt(spending_id, _image("a.jpg")).data["image_path"]
        first_path = storage_service.resolve_image(first, storage_service.RECEIPTS_FOLDER)

        second = spending_service.attach_receipt(spending_id, _image("b.png")).data["image_path"]
        assert second.startswith("receipts/")
        assert second.endswith(".png")
        assert not first_path.exists()

    def test_rejects_bad_extension(self, db_session):
        spending_id = make_spending(JAN_1, 5000)
        result = spending_service.attach_receipt(spending_id, _image("nota.exe"))
        assert not result.success
        assert result.error_kind == "validation"


class TestSpendingQueries:
    def test_range_and_total(self, db_session):
        make_spending(JAN_1, 1000)
        make_spending(JAN_2, 2000)
        make_spending(date(2024, 1, 5), 4000)

        in_range = spending_service.list_spendings_by_range("2024-01-01", "2024-01-02").data
        assert [s["spending_date"] for s in in_range] == ["2024-01-02", "2024-01-01"]
        assert spending_service.calculate_total(in_range) == 3000

    def test_inverted_range_rejected(self, db_session):
        result = spending_service.list_spendings_by_range("2024-01-05", "2024-01-01")
        assert not result.success
