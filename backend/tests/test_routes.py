# Overview: Pytest coverage for the JSON API.

import io
from datetime import date

from app.services import subscription_service
from app.time_utils import business_today


def _order_body(**overrides):
    body = {
        "items": [{"product_name": "Nasi Goreng", "price": 25000, "quantity": 2}],
        "payment_method": "cash",
        "payment_amount": 50000,
    }
    body.update(overrides)
    return body


class TestSystemRoutes:
    def test_health(self, client, db_session):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json["checks"]["database"]["status"] == "healthy"


class TestOrderRoutes:
    def test_create_and_fetch(self, client, db_session):
        response = client.post("/api/orders", json=_order_body(payment_amount=60000))
        assert response.status_code == 201
        order = response.json["data"]
        assert order["change_amount"] == 10000

        response = client.get(f"/api/orders/{order['id']}")
        assert response.status_code == 200
        assert response.json["data"]["total_amount"] == 50000

    def test_validation_is_400(self, client, db_session):
        response = client.post("/api/orders", json=_order_body(items=[]))
        assert response.status_code == 400
        assert "error" in response.json

    def test_missing_order_is_404(self, client, db_session):
        assert client.get("/api/orders/999").status_code == 404

    def test_credit_flow(self, client, db_session):
        body = _order_body(
            items=[{"product_name": "Beras", "price": 100000, "quantity": 1}],
            payment_method="credit",
            payment_amount=20000,
            customer_name="Budi",
        )
        order_id = client.post("/api/orders", json=body).json["data"]["id"]

        debts = client.get("/api/orders/credit").json["data"]
        assert [o["id"] for o in debts] == [order_id]

        response = client.post(f"/api/orders/{order_id}/payments", json={"amount": 150000, "payment_method": "cash"})
        assert response.status_code == 400

        response = client.post(f"/api/orders/{order_id}/payments", json={"amount": 80000, "payment_method": "qris"})
        assert response.status_code == 201
        assert response.json["data"]["is_paid"] is True

        assert client.get("/api/orders/credit").json["data"] == []
        assert len(client.get("/api/orders/credit?include_settled=true").json["data"]) == 1

        report = client.get(f"/api/reports/revenue/{business_today().isoformat()}").json["data"]
        assert report["total_revenue"] == 100000

    def test_stream_sends_snapshot_and_unsubscribes(self, client, db_session):
        response = client.get("/api/orders/stream")
        assert response.mimetype == "text/event-stream"
        first = next(response.response)
        if isinstance(first, bytes):
            first = first.decode()
        assert first.startswith("data: []")
        response.close()
        assert subscription_service.active_count() == 0


class TestSpendingRoutes:
    def test_crud(self, client, db_session):
        response = client.post("/api/spendings", json={
            "description": "Gas LPG", "total_amount": 25000, "spending_date": "2024-01-01",
        })
        assert response.status_code == 201
        spending_id = response.json["data"]["id"]

        response = client.put(f"/api/spendings/{spending_id}", json={
            "description": "Gas LPG 3kg", "total_amount": 22000, "spending_date": "2024-01-02",
        })
        assert response.status_code == 200
        assert response.json["data"]["spending_date"] == "2024-01-02"

        listed = client.get("/api/spendings?start=2024-01-02&end=2024-01-02").json["data"]
        assert [s["id"] for s in listed] == [spending_id]

        assert client.delete(f"/api/spendings/{spending_id}").status_code == 200
        assert client.get(f"/api/spendings/{spending_id}").status_code == 404

    def test_put_without_image_path_keeps_receipt(self, client, db_session):
        spending_id = client.post("/api/spendings", json={
            "description": "Gas", "total_amount": 5000, "spending_date": "2024-01-01",
        }).json["data"]["id"]
        response = client.post(
            f"/api/spendings/{spending_id}/receipt",
            data={"image": (io.BytesIO(b"jpeg"), "nota.jpg")},
            content_type="multipart/form-data",
        )
        stored = response.json["data"]["image_path"]

        response = client.put(f"/api/spendings/{spending_id}", json={
            "description": "Gas refill", "total_amount": 6000, "spending_date": "2024-01-01",
        })
        assert response.status_code == 200
        assert response.json["data"]["image_path"] == stored

    def test_receipt_upload_requires_file(self, client, db_session):
        spending_id = client.post("/api/spendings", json={
            "description": "Es batu", "total_amount": 5000, "spending_date": date.today().isoformat(),
        }).json["data"]["id"]
        response = client.post(f"/api/spendings/{spending_id}/receipt", data={})
        assert response.status_code == 400


class TestReportRoutes:
    def test_revenue_report_by_range(self, client, db_session):
        client.post("/api/orders", json=_order_body())
        today = business_today().isoformat()
        response = client.get(f"/api/reports/revenue?start={today}&end={today}")
        assert response.status_code == 200
        assert response.json["data"]["summary"]["total_revenue"] == 50000

    def test_revenue_report_by_period(self, client, db_session):
        response = client.get("/api/reports/revenue?period=weekly")
        assert response.status_code == 200
        assert response.json["data"]["total_records"] == 0

    def test_missing_day_is_404(self, client, db_session):
        assert client.get("/api/reports/revenue/2030-01-01").status_code == 404

    def test_bad_date_is_400(self, client, db_session):
        assert client.get("/api/reports/spending?start=yesterday&end=today").status_code == 400


class TestCatalogRoutes:
    def test_category_and_product(self, client, db_session):
        category = client.post("/api/categories", json={"name": "Minuman"}).json["data"]
        response = client.post("/api/products", json={"name": "Es Teh", "price": 5000, "category_id": category["id"]})
        assert response.status_code == 201
        product_id = response.json["data"]["id"]

        response = client.put(f"/api/products/{product_id}", json={"price": 6000})
        assert response.json["data"]["price"] == 6000

        listed = client.get(f"/api/products?category_id={category['id']}").json["data"]
        assert listed["count"] == 1

        assert client.delete(f"/api/categories/{category['id']}").status_code == 200
        assert client.get(f"/api/products/{product_id}").json["data"]["category_id"] is None

    def test_product_validation(self, client, db_session):
        response = client.post("/api/products", json={"name": "Es Teh"})
        assert response.status_code == 400
