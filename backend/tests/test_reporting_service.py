# Overview: Pytest coverage for revenue and spending reports.

from datetime import date

import pytest

from app.services import reporting_service, revenue_service
from conftest import make_spending


class TestDateRange:
    @pytest.mark.parametrize("period, start", [
        ("daily", date(2024, 3, 9)),
        ("weekly", date(2024, 2, 17)),
        ("monthly", date(2023, 4, 1)),
        ("yearly", date(2024, 3, 15)),
    ])
    def test_presets_end_today(self, period, start):
        today = date(2024, 3, 15)
        assert reporting_service.get_date_range(period, today) == (start, today)

    def test_monthly_crosses_year_boundary(self):
        assert reporting_service.get_date_range("monthly", date(2024, 1, 31))[0] == date(2023, 2, 1)


class TestRevenueReport:
    def _seed(self):
        revenue_service.add_revenue(date(2024, 1, 1), 100000)
        revenue_service.add_revenue(date(2024, 1, 1), 50000)
        revenue_service.add_revenue(date(2024, 1, 2), 80000)
        revenue_service.add_revenue(date(2024, 1, 3), 20000)
        revenue_service.add_revenue(date(2024, 2, 1), 99999)
        make_spending(date(2024, 1, 2), 30000)

    def test_summary_covers_range(self, db_session):
        self._seed()
        data = reporting_service.get_revenue_report("2024-01-01", "2024-01-31").data

        assert [r["date"] for r in data["daily_revenues"]] == ["2024-01-03", "2024-01-02", "2024-01-01"]
        summary = data["summary"]
        assert summary["total_revenue"] == 250000
        assert summary["total_orders"] == 4
        assert summary["total_spending"] == 30000
        assert summary["net_revenue"] == 220000
        assert summary["average_order_value"] == 62500

    def test_pagination_keeps_full_summary(self, db_session):
        self._seed()
        data = reporting_service.get_revenue_report("2024-01-01", "2024-01-31", page=2, page_size=2).data

        assert [r["date"] for r in data["daily_revenues"]] == ["2024-01-01"]
        assert data["current_page"] == 2
        assert data["total_pages"] == 2
        assert data["total_records"] == 3
        assert data["summary"]["total_revenue"] == 250000

    def test_empty_range(self, db_session):
        data = reporting_service.get_revenue_report("2030-01-01", "2030-01-07").data
        assert data["daily_revenues"] == []
        assert data["summary"]["average_order_value"] == 0
        assert data["total_pages"] == 0

    def test_bad_range(self, db_session):
        result = reporting_service.get_revenue_report("2024-02-01", "2024-01-01")
        assert not result.success
        assert result.error_kind == "validation"


class TestSpendingReport:
    def test_totals(self, db_session):
        make_spending(date(2024, 1, 1), 1000, "Gas")
        make_spending(date(2024, 1, 2), 2500, "Es batu")
        make_spending(date(2024, 3, 1), 9000, "Sewa")

        data = reporting_service.get_spending_report("2024-01-01", "2024-01-31").data
        assert data["total_entries"] == 2
        assert data["total_spending"] == 3500
        assert [s["description"] for s in data["spendings"]] == ["Es batu", "Gas"]
