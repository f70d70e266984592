from __future__ import annotations

from ..extensions import db
from app.time_utils import to_iso_date, to_utc_z


class DailyRevenue(db.Model):
    """
    Denormalized per-day summary read by the revenue report.

    One row per calendar date (unique). net_revenue is always recomputed
    from total_revenue and total_spending, never incremented on its own.
    """
    __tablename__ = "daily_revenues"
    __table_args__ = (
        db.UniqueConstraint("date", name="uq_daily_revenues_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.Date, nullable=False, index=True)
    total_revenue = db.Column(db.BigInteger, nullable=False, default=0)
    total_orders = db.Column(db.Integer, nullable=False, default=0)
    total_spending = db.Column(db.BigInteger, nullable=False, default=0)
    net_revenue = db.Column(db.BigInteger, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def recompute_net(self) -> None:
        self.net_revenue = (self.total_revenue or 0) - (self.total_spending or 0)

    def __repr__(self) -> str:
        return f"<DailyRevenue date={self.date} net={self.net_revenue}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": to_iso_date(self.date),
            "total_revenue": self.total_revenue,
            "total_orders": self.total_orders,
            "total_spending": self.total_spending,
            "net_revenue": self.net_revenue,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at) if self.updated_at else None,
        }
