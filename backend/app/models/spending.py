from __future__ import annotations

from ..extensions import db
from app.time_utils import to_iso_date, to_utc_z


class Spending(db.Model):
    """
    Expense entry.

    spending_date is the business day the expense belongs to, which can
    differ from created_at (receipts are often entered the next morning).
    """
    __tablename__ = "spendings"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    description = db.Column(db.String(255), nullable=False)
    total_amount = db.Column(db.BigInteger, nullable=False)
    spending_date = db.Column(db.Date, nullable=False, index=True)
    image_path = db.Column(db.String(512), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Spending id={self.id} date={self.spending_date} amount={self.total_amount}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "description": self.description,
            "total_amount": self.total_amount,
            "spending_date": to_iso_date(self.spending_date),
            "image_path": self.image_path,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at) if self.updated_at else None,
            "version_id": self.version_id,
        }
