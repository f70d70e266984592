from __future__ import annotations

from ..extensions import db
from app.time_utils import to_utc_z


class Order(db.Model):
    """
    Checkout document.

    payment_amount is what the customer tendered at checkout. For credit
    orders the unpaid remainder lives on the attached CreditLedger.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_method_created", "payment_method", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    total_amount = db.Column(db.BigInteger, nullable=False)
    payment_method = db.Column(db.String(16), nullable=False, index=True)  # cash, card, qris, credit
    payment_amount = db.Column(db.BigInteger, nullable=False, default=0)
    change_amount = db.Column(db.BigInteger, nullable=False, default=0)
    customer_name = db.Column(db.String(120), nullable=False, default="")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    items = db.relationship(
        "OrderItem",
        backref="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.position",
        lazy="selectin",
    )
    credit_ledger = db.relationship(
        "CreditLedger",
        back_populates="order",
        uselist=False,
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Order id={self.id} method={self.payment_method} total={self.total_amount}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "items": [i.to_dict() for i in self.items],
            "total_amount": self.total_amount,
            "payment_method": self.payment_method,
            "payment_amount": self.payment_amount,
            "change_amount": self.change_amount,
            "customer_name": self.customer_name or "",
            "created_at": to_utc_z(self.created_at),
            "credit_info": self.credit_ledger.to_dict() if self.credit_ledger else None,
            "version_id": self.version_id,
        }


class OrderItem(db.Model):
    """Line snapshot: product name and unit price at the time of checkout."""
    __tablename__ = "order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    # Not a FK: products may be deleted while their orders stay.
    product_id = db.Column(db.Integer, nullable=True, index=True)
    product_name = db.Column(db.String(255), nullable=False)
    image_path = db.Column(db.String(512), nullable=True)

    unit_price = db.Column(db.BigInteger, nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    subtotal = db.Column(db.BigInteger, nullable=False)

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "price": self.unit_price,
            "quantity": self.quantity,
            "subtotal": self.subtotal,
            "image_path": self.image_path,
        }


class CreditLedger(db.Model):
    """
    Running debt for a credit order ("utang").

    INVARIANTS:
    - remaining_debt == order.total_amount - total_paid
    - is_settled == (remaining_debt <= 0)
    - total_paid == sum(payment.amount for payment in payments)

    version_id guards the read-validate-write in add_payment: a writer holding
    a stale row gets StaleDataError instead of silently overwriting.
    """
    __tablename__ = "credit_ledgers"
    __table_args__ = (
        db.UniqueConstraint("order_id", name="uq_credit_ledgers_order"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    total_paid = db.Column(db.BigInteger, nullable=False, default=0)
    remaining_debt = db.Column(db.BigInteger, nullable=False)
    is_settled = db.Column(db.Boolean, nullable=False, default=False, index=True)
    last_payment_at = db.Column(db.DateTime(timezone=True), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    order = db.relationship("Order", back_populates="credit_ledger")
    payments = db.relationship(
        "CreditPayment",
        backref="ledger",
        cascade="all, delete-orphan",
        order_by="CreditPayment.id",
        lazy="selectin",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def apply_payment(self, amount: int, total_amount: int, paid_at) -> None:
        self.total_paid = (self.total_paid or 0) + amount
        self.remaining_debt = total_amount - self.total_paid
        self.is_settled = self.remaining_debt <= 0
        self.last_payment_at = paid_at

    def to_dict(self) -> dict:
        return {
            "total_paid": self.total_paid,
            "remaining_debt": self.remaining_debt,
            "is_paid": self.is_settled,
            "last_payment_date": to_utc_z(self.last_payment_at) if self.last_payment_at else None,
            "payment_history": [p.to_dict() for p in self.payments],
        }


class CreditPayment(db.Model):
    """One installment against a credit ledger. Append-only."""
    __tablename__ = "credit_payments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    ledger_id = db.Column(db.Integer, db.ForeignKey("credit_ledgers.id"), nullable=False, index=True)
    payment_id = db.Column(db.String(64), nullable=False, unique=True)
    amount = db.Column(db.BigInteger, nullable=False)
    payment_method = db.Column(db.String(16), nullable=False)  # cash, card, qris
    note = db.Column(db.String(255), nullable=False, default="")
    paid_at = db.Column(db.DateTime(timezone=True), nullable=False)

    def to_dict(self) -> dict:
        return {
            "payment_id": self.payment_id,
            "amount": self.amount,
            "payment_date": to_utc_z(self.paid_at),
            "payment_method": self.payment_method,
            "note": self.note or "",
        }
